"""
Contact Event Handler

Handles Stripe customer.created / customer.updated events by creating or
updating the matching SevDesk contact.
"""

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from stripe_sevdesk.config import Settings, settings as default_settings
from stripe_sevdesk.models.sevdesk_records import SevDeskContact, SevDeskReference
from stripe_sevdesk.models.stripe_events import LINKAGE_KEY, StripeCustomer, StripeEvent
from stripe_sevdesk.services.sevdesk_service import SevDeskClient, default_client_factory
from stripe_sevdesk.services.stripe_service import StripeService, stripe_service
from stripe_sevdesk.utils.logging_config import get_logger

logger = get_logger(__name__)

EU_VAT = "eu_vat"

ClientFactory = Callable[[], Awaitable[SevDeskClient]]


class ContactHandler:
    """Handler for customer events"""

    def __init__(
        self,
        stripe: Optional[StripeService] = None,
        client_factory: Optional[ClientFactory] = None,
        settings: Optional[Settings] = None,
    ):
        self.stripe = stripe or stripe_service
        self.settings = settings or default_settings
        self.client_factory = client_factory or default_client_factory(self.settings)

    def build_contact(self, customer: StripeCustomer) -> SevDeskContact:
        """
        Map a Stripe customer to a SevDesk contact payload.

        The VAT fields are only part of the payload when the customer has a
        tax id. A tax id of any type other than EU VAT clears both fields.
        """
        contact = SevDeskContact(
            name=customer.name,
            category=SevDeskReference(
                id=self.settings.sevdesk_contact_category_id,
                object_name="Category",
            ),
            description=customer.id,
            exempt_vat=customer.tax_exempt == "exempt",
        )

        tax_id = customer.tax_id
        if tax_id is not None:
            is_eu_vat = tax_id.type == EU_VAT
            contact.vat_number = tax_id.value if is_eu_vat else None
            contact.tax_type = "eu" if is_eu_vat else None

        return contact

    async def sync_contact(
        self, customer: StripeCustomer, client: SevDeskClient
    ) -> Tuple[str, bool]:
        """
        Create or update the SevDesk contact for a customer.

        A new contact's id is written back into the customer's metadata.

        Args:
            customer: Stripe customer
            client: Open SevDesk client

        Returns:
            Tuple of (SevDesk contact id, whether it was created)
        """
        payload = self.build_contact(customer).to_payload()
        contact_id = customer.sevdesk_id

        if contact_id:
            await client.put(f"/Contact/{contact_id}", payload)
            logger.info(
                "Contact updated in SevDesk",
                extra={"customer_id": customer.id, "sevdesk_id": contact_id},
            )
            return contact_id, False

        result = await client.post("/Contact", payload)
        contact_id = str(result["id"])

        await self.stripe.update_customer_metadata(customer.id, {LINKAGE_KEY: contact_id})

        logger.info(
            "Contact created in SevDesk",
            extra={"customer_id": customer.id, "sevdesk_id": contact_id},
        )
        return contact_id, True

    async def handle_customer_updated(self, event: StripeEvent) -> Dict[str, Any]:
        """
        Handle customer.created and customer.updated events.

        The customer is re-read from Stripe first: webhook payloads do not
        include tax ids, and the fresh metadata shows a link written by a
        concurrent delivery, so a redelivered event updates instead of
        creating a second contact.

        Args:
            event: Stripe webhook event

        Returns:
            Processing result
        """
        customer = event.as_customer()

        logger.info(
            f"Processing {event.type} event",
            extra={"event_id": event.id, "customer_id": customer.id},
        )

        customer = await self.stripe.get_customer(customer.id)

        async with await self.client_factory() as client:
            contact_id, created = await self.sync_contact(customer, client)

        return {
            "customer_id": customer.id,
            "sevdesk_id": contact_id,
            "created": created,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


# Global contact handler instance
contact_handler = ContactHandler()
