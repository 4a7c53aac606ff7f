"""
Stripe-SevDesk Connector

This middleware receives Stripe webhooks and mirrors invoices and customers
into SevDesk, keeping the SevDesk record id in the Stripe object's metadata.
"""

__version__ = "1.0.0"
