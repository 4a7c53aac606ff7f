"""
Event Router

Routes Stripe webhook events to the matching handler based on event type.
Every event ends in exactly one outcome:

- success: a handler ran and completed
- ignored: the event type is acknowledged without any work (payout.paid)
- unsupported: no handler is registered for the event type

Handler failures are not caught here; they propagate to the webhook route,
which turns them into a non-2xx response so Stripe redelivers the event.
"""

from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Optional

from stripe_sevdesk.handlers import contact_handler, invoice_handler
from stripe_sevdesk.models.stripe_events import StripeEvent
from stripe_sevdesk.utils.logging_config import get_logger

logger = get_logger(__name__)

EventHandler = Callable[[StripeEvent], Awaitable[Dict[str, Any]]]


class EventOutcome(str, Enum):
    """Result of routing one event"""

    SUCCESS = "success"
    IGNORED = "ignored"
    UNSUPPORTED = "unsupported"


# Event type to handler function mapping
EVENT_HANDLERS: Dict[str, EventHandler] = {
    # Invoice lifecycle
    "invoice.finalized": invoice_handler.handle_invoice_finalized,
    "invoice.paid": invoice_handler.handle_invoice_paid,
    "invoice.voided": invoice_handler.handle_invoice_voided,

    # Customer events
    "customer.created": contact_handler.handle_customer_updated,
    "customer.updated": contact_handler.handle_customer_updated,
}

# Events Stripe sends to this endpoint that need no SevDesk counterpart
IGNORED_EVENTS: FrozenSet[str] = frozenset({
    "payout.paid",
})


class EventRouter:
    """Routes Stripe webhook events to handlers"""

    def __init__(
        self,
        handlers: Optional[Dict[str, EventHandler]] = None,
        ignored_events: Optional[FrozenSet[str]] = None,
    ):
        self.handlers = EVENT_HANDLERS if handlers is None else handlers
        self.ignored_events = IGNORED_EVENTS if ignored_events is None else ignored_events

    def is_supported(self, event_type: str) -> bool:
        return event_type in self.handlers or event_type in self.ignored_events

    async def route_event(self, event: StripeEvent) -> Dict[str, Any]:
        """
        Route a verified Stripe event to its handler.

        Args:
            event: Verified Stripe webhook event

        Returns:
            Dictionary containing:
                - status (str): 'success', 'ignored' or 'unsupported'
                - event_type (str): The event type
                - event_id (str): The Stripe event ID
                - result (dict, optional): Handler result on success

        Raises:
            Exception: Whatever the handler raised, unchanged
        """
        base = {"event_type": event.type, "event_id": event.id}

        if event.type in self.ignored_events:
            logger.info(
                f"Ignoring event: {event.type} ({event.id})",
                extra=base,
            )
            return {"status": EventOutcome.IGNORED.value, **base}

        handler = self.handlers.get(event.type)
        if handler is None:
            logger.warning(
                f"No handler registered for event type: {event.type}",
                extra=base,
            )
            return {"status": EventOutcome.UNSUPPORTED.value, **base}

        logger.info(f"Routing event: {event.type} ({event.id})", extra=base)

        result = await handler(event)

        logger.info(
            f"Event processed successfully: {event.type} ({event.id})",
            extra=base,
        )
        return {"status": EventOutcome.SUCCESS.value, **base, "result": result}


_event_router: Optional[EventRouter] = None


def get_event_router() -> EventRouter:
    """Get the shared event router instance"""
    global _event_router
    if _event_router is None:
        _event_router = EventRouter()
    return _event_router
