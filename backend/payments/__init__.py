"""
Module 'payments' (feature-first): construction des sessions Stripe Checkout.
Réunit la logique de lignes, les metadata Stripe, le client Stripe et le service.
"""
