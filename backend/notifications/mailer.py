"""
Envoi SMTP (smtplib + email.mime).
- SSL implicite sur le port 465, STARTTLS sinon.
- Sans SMTP_USER configuré, l'envoi est ignoré (log) et send_email retourne False.
Les erreurs SMTP sont propagées: c'est le dispatcher qui les absorbe.
"""
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional

from backend import config

logger = logging.getLogger(__name__)

SMTP_TIMEOUT = 10

# module backend.notifications.mailer
def send_email(to_email: str, subject: str, text: str, html: Optional[str] = None) -> bool:
    if not config.SMTP_USER:
        logger.info("mailer: SMTP non configuré, e-mail ignoré to=%s subject=%s", to_email, subject)
        return False
    if not to_email:
        logger.warning("mailer: destinataire absent, e-mail ignoré subject=%s", subject)
        return False

    msg = MIMEMultipart("alternative")
    msg["From"] = formataddr((config.FROM_NAME, config.FROM_EMAIL))
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.attach(MIMEText(text, "plain", "utf-8"))
    if html:
        msg.attach(MIMEText(html, "html", "utf-8"))

    if config.SMTP_PORT == 465:
        server = smtplib.SMTP_SSL(config.SMTP_HOST, config.SMTP_PORT, timeout=SMTP_TIMEOUT)
    else:
        server = smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=SMTP_TIMEOUT)
    with server:
        if config.SMTP_PORT != 465:
            server.starttls()
        server.login(config.SMTP_USER, config.SMTP_PASS)
        server.sendmail(config.FROM_EMAIL, [to_email], msg.as_string())
    logger.info("mailer: e-mail envoyé to=%s subject=%s", to_email, subject)
    return True
