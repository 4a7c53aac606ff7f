"""Event handlers for the supported Stripe event types"""

from stripe_sevdesk.handlers.contact_handler import contact_handler
from stripe_sevdesk.handlers.invoice_handler import invoice_handler

__all__ = [
    "contact_handler",
    "invoice_handler",
]
