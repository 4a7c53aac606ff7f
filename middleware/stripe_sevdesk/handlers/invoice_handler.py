"""
Invoice Event Handler

Handles the Stripe invoice lifecycle:
- invoice.finalized: create the invoice in SevDesk (and the contact if needed)
- invoice.paid: book the paid amount on the SevDesk invoice
- invoice.voided: cancel the SevDesk invoice
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

from stripe_sevdesk.config import Settings, settings as default_settings
from stripe_sevdesk.handlers.contact_handler import (
    ClientFactory,
    ContactHandler,
    contact_handler as default_contact_handler,
)
from stripe_sevdesk.models.sevdesk_records import (
    SevDeskBooking,
    SevDeskInvoice,
    SevDeskInvoicePosition,
    SevDeskInvoiceSave,
    SevDeskReference,
)
from stripe_sevdesk.models.stripe_events import (
    LINKAGE_KEY,
    StripeEvent,
    StripeInvoice,
    StripeInvoiceLineItem,
    StripeTaxRate,
)
from stripe_sevdesk.services.sevdesk_service import SevDeskClient, default_client_factory
from stripe_sevdesk.services.stripe_service import StripeService, stripe_service
from stripe_sevdesk.utils.exceptions import LinkageNotFoundException, ValidationException
from stripe_sevdesk.utils.formatting import (
    format_german_date,
    timestamp_to_date,
    to_major_units,
)
from stripe_sevdesk.utils.logging_config import get_logger

logger = get_logger(__name__)

# Stripe customer_tax_exempt -> SevDesk taxType
TAX_TYPES = {
    "exempt": "eu",
    "reverse": "noteu",
}

SEVDESK_STATUS_OPEN = 200
BOOKING_TYPE_NORMAL = "N"

# SevDesk stores unit prices with two decimals
CENT = Decimal("0.01")


def tax_type_for(customer_tax_exempt: Optional[str]) -> str:
    return TAX_TYPES.get(customer_tax_exempt or "", "default")


class InvoiceHandler:
    """Handler for invoice events"""

    def __init__(
        self,
        stripe: Optional[StripeService] = None,
        client_factory: Optional[ClientFactory] = None,
        contact_handler: Optional[ContactHandler] = None,
        settings: Optional[Settings] = None,
    ):
        self.stripe = stripe or stripe_service
        self.settings = settings or default_settings
        self.client_factory = client_factory or default_client_factory(self.settings)
        self.contact_handler = contact_handler or default_contact_handler

    async def handle_invoice_finalized(self, event: StripeEvent) -> Dict[str, Any]:
        """
        Handle invoice.finalized event.
        Creates the invoice in SevDesk and links it to the Stripe invoice.

        Steps:
        1. Load all line items when the payload only carries the first page,
           then reject items with more than one tax rate (nothing is created)
        2. Skip invoices that are already linked, or that SevDesk already
           knows by invoice number (the link is restored in that case)
        3. Resolve the SevDesk contact, creating it if the customer is unlinked
        4. Resolve all tax rates, then create the invoice
        5. Write the SevDesk invoice id back into the Stripe invoice metadata

        Args:
            event: Stripe webhook event

        Returns:
            Processing result

        Raises:
            ValidationException: If a line item carries multiple tax rates
        """
        invoice = event.as_invoice()

        logger.info(
            "Processing invoice.finalized event",
            extra={
                "event_id": event.id,
                "invoice_id": invoice.id,
                "invoice_number": invoice.number,
            },
        )

        if invoice.has_more_lines:
            invoice = invoice.model_copy(
                update={
                    "lines": await self.stripe.list_invoice_lines(invoice.id),
                    "has_more_lines": False,
                }
            )

        self._validate_lines(invoice)

        current = await self.stripe.get_invoice(invoice.id)
        if current.sevdesk_id:
            logger.info(
                "Invoice already linked to SevDesk, skipping creation",
                extra={"invoice_id": invoice.id, "sevdesk_id": current.sevdesk_id},
            )
            return self._result(invoice, current.sevdesk_id, "already_linked")

        async with await self.client_factory() as client:
            existing_id = await self._find_existing_invoice(invoice, client)
            if existing_id:
                await self.stripe.update_invoice_metadata(
                    invoice.id, {LINKAGE_KEY: existing_id}
                )
                logger.warning(
                    "Invoice already exists in SevDesk, restored link",
                    extra={"invoice_id": invoice.id, "sevdesk_id": existing_id},
                )
                return self._result(invoice, existing_id, "relinked")

            customer = await self.stripe.get_customer(invoice.customer_id)
            contact_id = customer.sevdesk_id
            if not contact_id:
                contact_id, _ = await self.contact_handler.sync_contact(customer, client)

            positions = []
            for line in invoice.lines:
                positions.append(await self._build_position(line, invoice.currency))

            request = SevDeskInvoiceSave(
                invoice=SevDeskInvoice(
                    invoice_number=invoice.number,
                    contact=SevDeskReference(id=contact_id, object_name="Contact"),
                    invoice_date=format_german_date(timestamp_to_date(invoice.created)),
                    status=SEVDESK_STATUS_OPEN,
                    tax_type=tax_type_for(invoice.customer_tax_exempt),
                    currency=invoice.currency.upper(),
                ),
                invoice_pos_save=positions,
            )

            response = await client.post(
                "/Invoice/Factory/saveInvoice", request.to_payload()
            )

        sevdesk_id = self._extract_invoice_id(response)
        await self.stripe.update_invoice_metadata(invoice.id, {LINKAGE_KEY: sevdesk_id})

        logger.info(
            "Invoice created in SevDesk",
            extra={
                "invoice_id": invoice.id,
                "sevdesk_id": sevdesk_id,
                "contact_id": contact_id,
                "positions": len(positions),
            },
        )

        return self._result(invoice, sevdesk_id, "created", response=response)

    async def handle_invoice_paid(self, event: StripeEvent) -> Dict[str, Any]:
        """
        Handle invoice.paid event.
        Books the paid amount on the linked SevDesk invoice.

        Raises:
            LinkageNotFoundException: If the invoice was never linked to SevDesk
        """
        invoice = event.as_invoice()
        sevdesk_id = await self._require_linkage(invoice)

        booking = SevDeskBooking(
            amount=float(to_major_units(invoice.amount_paid, invoice.currency)),
            date=format_german_date(),
            type=BOOKING_TYPE_NORMAL,
            check_account=SevDeskReference(
                id=self.settings.sevdesk_check_account,
                object_name="CheckAccount",
            ),
        )

        logger.info(
            "Processing invoice.paid event",
            extra={
                "event_id": event.id,
                "invoice_id": invoice.id,
                "sevdesk_id": sevdesk_id,
                "amount": booking.amount,
            },
        )

        async with await self.client_factory() as client:
            response = await client.put(
                f"/Invoice/{sevdesk_id}/bookAmount", booking.to_payload()
            )

        return self._result(invoice, sevdesk_id, "booked", response=response)

    async def handle_invoice_voided(self, event: StripeEvent) -> Dict[str, Any]:
        """
        Handle invoice.voided event.
        Cancels the linked SevDesk invoice.

        Raises:
            LinkageNotFoundException: If the invoice was never linked to SevDesk
        """
        invoice = event.as_invoice()
        sevdesk_id = await self._require_linkage(invoice)

        logger.info(
            "Processing invoice.voided event",
            extra={"event_id": event.id, "invoice_id": invoice.id, "sevdesk_id": sevdesk_id},
        )

        async with await self.client_factory() as client:
            response = await client.post(f"/Invoice/{sevdesk_id}/cancelInvoice")

        return self._result(invoice, sevdesk_id, "cancelled", response=response)

    async def _require_linkage(self, invoice: StripeInvoice) -> str:
        """
        SevDesk id of the invoice.

        The event payload is a snapshot from before the finalize write-back,
        and redeliveries carry the same snapshot, so an unlinked snapshot is
        checked against the current Stripe invoice.
        """
        if invoice.sevdesk_id:
            return invoice.sevdesk_id

        current = await self.stripe.get_invoice(invoice.id)
        if not current.sevdesk_id:
            logger.warning(
                "Invoice has no SevDesk link",
                extra={"invoice_id": invoice.id},
            )
            raise LinkageNotFoundException("invoice", invoice.id)
        return current.sevdesk_id

    @staticmethod
    def _validate_lines(invoice: StripeInvoice) -> None:
        for line in invoice.lines:
            if len(line.tax_amounts) > 1:
                raise ValidationException(
                    "Multiple tax rates per item are not supported.",
                    details={"invoice_id": invoice.id, "line_id": line.id},
                )

    async def _find_existing_invoice(
        self, invoice: StripeInvoice, client: SevDeskClient
    ) -> Optional[str]:
        """Look up a SevDesk invoice carrying the same invoice number"""
        if not invoice.number:
            return None

        matches = await client.get("/Invoice", params={"invoiceNumber": invoice.number})
        if not matches:
            return None
        return str(matches[0]["id"])

    async def _build_position(
        self, line: StripeInvoiceLineItem, currency: str
    ) -> SevDeskInvoicePosition:
        tax_rate = None
        if line.tax_amounts:
            rate = line.tax_amounts[0].tax_rate
            if not isinstance(rate, StripeTaxRate):
                rate = await self.stripe.get_tax_rate(rate)
            tax_rate = rate.percentage

        quantity = line.quantity or 1
        unit_price = (to_major_units(line.amount, currency) / quantity).quantize(
            CENT, rounding=ROUND_HALF_UP
        )

        return SevDeskInvoicePosition(
            quantity=quantity,
            price=float(unit_price),
            name=line.description,
            tax_rate=tax_rate,
        )

    @staticmethod
    def _extract_invoice_id(response: Any) -> str:
        # saveInvoice answers with {"invoice": {...}, "invoicePos": [...]}
        if isinstance(response, dict) and isinstance(response.get("invoice"), dict):
            return str(response["invoice"]["id"])
        return str(response["id"])

    @staticmethod
    def _result(
        invoice: StripeInvoice,
        sevdesk_id: str,
        action: str,
        response: Any = None,
    ) -> Dict[str, Any]:
        return {
            "invoice_id": invoice.id,
            "sevdesk_id": sevdesk_id,
            "action": action,
            "response": response,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


# Global invoice handler instance
invoice_handler = InvoiceHandler()
