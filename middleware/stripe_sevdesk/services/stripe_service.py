"""
Stripe Service

Handles Stripe webhook signature verification and the Stripe API calls the
connector needs: reading customers, invoices and tax rates, and writing the
SevDesk linkage back into object metadata.
"""

import json
from typing import Any, Dict, List, Optional

import stripe
from fastapi import Request

from stripe_sevdesk.config import settings
from stripe_sevdesk.models.stripe_events import (
    StripeCustomer,
    StripeEvent,
    StripeInvoice,
    StripeInvoiceLineItem,
    StripeTaxRate,
)
from stripe_sevdesk.utils.exceptions import StripeException, StripeSignatureException
from stripe_sevdesk.utils.logging_config import get_logger

logger = get_logger(__name__)

# Configure Stripe
stripe.api_key = settings.stripe_secret
stripe.api_version = settings.stripe_api_version


class StripeService:
    """Stripe webhook and API service"""

    def __init__(self, webhook_secret: Optional[str] = None):
        self.webhook_secret = webhook_secret or settings.stripe_webhook_secret

    async def verify_webhook_signature(
        self,
        payload: bytes,
        signature: str,
    ) -> StripeEvent:
        """
        Verify Stripe webhook signature using HMAC-SHA256.

        Args:
            payload: Raw request body as bytes
            signature: Stripe-Signature header value

        Returns:
            Validated StripeEvent

        Raises:
            StripeSignatureException: If the signature or payload is invalid
        """
        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                self.webhook_secret,
            )
        except stripe.SignatureVerificationError as e:
            logger.error(
                f"Stripe signature verification failed: {e}",
                extra={"error": str(e)},
            )
            raise StripeSignatureException(str(e) or "Invalid Stripe webhook signature") from e
        except ValueError as e:
            logger.error(f"Invalid webhook payload: {e}")
            raise StripeSignatureException(
                "Invalid webhook payload",
                details={"error": str(e)},
            ) from e

        logger.info(
            "Webhook signature verified successfully",
            extra={
                "event_id": event.id,
                "event_type": event.type,
            },
        )

        # construct_event already parsed the body, re-read it as plain JSON
        # so the event model never depends on StripeObject internals
        return StripeEvent.model_validate(json.loads(payload))

    async def extract_webhook_data(self, request: Request) -> tuple[bytes, str]:
        """
        Extract webhook payload and signature from request.

        Args:
            request: FastAPI request object

        Returns:
            Tuple of (payload bytes, signature string)

        Raises:
            StripeSignatureException: If the signature header or body is missing
        """
        payload = await request.body()
        signature = request.headers.get("Stripe-Signature")

        if not signature:
            raise StripeSignatureException(
                "Missing Stripe-Signature header",
                details={"header": "Stripe-Signature"},
            )

        if not payload:
            raise StripeSignatureException(
                "Empty request body",
                details={"body": "empty"},
            )

        return payload, signature

    async def get_customer(self, customer_id: str) -> StripeCustomer:
        """
        Retrieve customer from Stripe API, including its tax ids.

        Args:
            customer_id: Stripe customer ID

        Returns:
            Customer model

        Raises:
            StripeException: If retrieval fails
        """
        try:
            customer = stripe.Customer.retrieve(customer_id, expand=["tax_ids"])
        except stripe.StripeError as e:
            logger.error(f"Failed to retrieve customer {customer_id}: {e}")
            raise StripeException(
                "Failed to retrieve customer",
                details={"customer_id": customer_id, "error": str(e)},
            ) from e

        logger.info(
            "Retrieved customer from Stripe",
            extra={"customer_id": customer_id},
        )
        return StripeCustomer.model_validate(customer.to_dict())

    async def get_invoice(self, invoice_id: str) -> StripeInvoice:
        """
        Retrieve invoice from Stripe API.

        Args:
            invoice_id: Stripe invoice ID

        Returns:
            Invoice model

        Raises:
            StripeException: If retrieval fails
        """
        try:
            invoice = stripe.Invoice.retrieve(invoice_id)
        except stripe.StripeError as e:
            logger.error(f"Failed to retrieve invoice {invoice_id}: {e}")
            raise StripeException(
                "Failed to retrieve invoice",
                details={"invoice_id": invoice_id, "error": str(e)},
            ) from e

        return StripeInvoice.model_validate(invoice.to_dict())

    async def list_invoice_lines(self, invoice_id: str) -> List[StripeInvoiceLineItem]:
        """
        Retrieve every line item of an invoice, following pagination.

        Raises:
            StripeException: If retrieval fails
        """
        try:
            pages = stripe.Invoice.list_lines(invoice_id, limit=100)
            lines = [
                StripeInvoiceLineItem.model_validate(line.to_dict())
                for line in pages.auto_paging_iter()
            ]
        except stripe.StripeError as e:
            logger.error(f"Failed to list lines of invoice {invoice_id}: {e}")
            raise StripeException(
                "Failed to list invoice lines",
                details={"invoice_id": invoice_id, "error": str(e)},
            ) from e

        logger.info(
            "Retrieved invoice lines from Stripe",
            extra={"invoice_id": invoice_id, "line_count": len(lines)},
        )
        return lines

    async def get_tax_rate(self, tax_rate_id: str) -> StripeTaxRate:
        """
        Retrieve a tax rate from Stripe API.

        Raises:
            StripeException: If retrieval fails
        """
        try:
            tax_rate = stripe.TaxRate.retrieve(tax_rate_id)
        except stripe.StripeError as e:
            logger.error(f"Failed to retrieve tax rate {tax_rate_id}: {e}")
            raise StripeException(
                "Failed to retrieve tax rate",
                details={"tax_rate_id": tax_rate_id, "error": str(e)},
            ) from e

        return StripeTaxRate.model_validate(tax_rate.to_dict())

    async def update_customer_metadata(
        self, customer_id: str, metadata: Dict[str, Any]
    ) -> None:
        """
        Merge keys into a customer's metadata.

        Raises:
            StripeException: If the update fails
        """
        try:
            stripe.Customer.modify(customer_id, metadata=metadata)
        except stripe.StripeError as e:
            logger.error(f"Failed to update customer {customer_id}: {e}")
            raise StripeException(
                "Failed to update customer metadata",
                details={"customer_id": customer_id, "error": str(e)},
            ) from e

        logger.info(
            "Updated customer metadata in Stripe",
            extra={"customer_id": customer_id, "metadata": metadata},
        )

    async def update_invoice_metadata(
        self, invoice_id: str, metadata: Dict[str, Any]
    ) -> None:
        """
        Merge keys into an invoice's metadata.

        Raises:
            StripeException: If the update fails
        """
        try:
            stripe.Invoice.modify(invoice_id, metadata=metadata)
        except stripe.StripeError as e:
            logger.error(f"Failed to update invoice {invoice_id}: {e}")
            raise StripeException(
                "Failed to update invoice metadata",
                details={"invoice_id": invoice_id, "error": str(e)},
            ) from e

        logger.info(
            "Updated invoice metadata in Stripe",
            extra={"invoice_id": invoice_id, "metadata": metadata},
        )


# Global Stripe service instance
stripe_service = StripeService()
