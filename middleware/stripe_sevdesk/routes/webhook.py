"""
Stripe Webhook Endpoint

Verifies the Stripe signature, dispatches the event to its handler and only
answers after the handler has finished, so a failure turns into a non-2xx
response and Stripe redelivers the event.
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from stripe_sevdesk.handlers.event_router import EventOutcome, get_event_router
from stripe_sevdesk.monitoring import capture_exception
from stripe_sevdesk.services.stripe_service import stripe_service
from stripe_sevdesk.utils.exceptions import (
    MiddlewareException,
    StripeSignatureException,
    ValidationException,
)
from stripe_sevdesk.utils.logging_config import (
    bind_stripe_event,
    get_correlation_id,
    get_logger,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/webhook", tags=["webhook"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": True, "message": message})


@router.post("/stripe")
async def stripe_webhook(request: Request):
    """
    Stripe webhook endpoint.

    Responses:
    - 200 {"received": true}: event handled or deliberately ignored
    - 400: invalid signature or unsupported event type
    - 422: the event failed validation (e.g. multiple tax rates per line)
    - 500: the handler failed; Stripe will retry
    """
    correlation_id = get_correlation_id()

    try:
        payload, signature = await stripe_service.extract_webhook_data(request)
        stripe_event = await stripe_service.verify_webhook_signature(payload, signature)
    except StripeSignatureException as e:
        logger.error(
            "Webhook signature verification failed",
            extra={"error": e.message, "correlation_id": correlation_id},
        )
        return _error(400, e.message)

    bind_stripe_event(stripe_event.id, stripe_event.type)

    logger.info(
        "Received Stripe webhook event",
        extra={
            "event_id": stripe_event.id,
            "event_type": stripe_event.type,
            "correlation_id": correlation_id,
        },
    )

    try:
        result = await get_event_router().route_event(stripe_event)
    except ValidationException as e:
        logger.error(
            f"Event rejected: {e.message}",
            extra={"event_id": stripe_event.id, "error": e.to_dict()},
        )
        capture_exception(e, event_id=stripe_event.id, event_type=stripe_event.type)
        return _error(422, e.message)
    except MiddlewareException as e:
        logger.error(
            f"Event handler failed: {e.message}",
            extra={"event_id": stripe_event.id, "error": e.to_dict()},
        )
        capture_exception(e, event_id=stripe_event.id, event_type=stripe_event.type)
        return _error(500, e.message)
    except Exception as e:
        logger.exception(
            f"Unexpected error processing webhook: {e}",
            extra={"event_id": stripe_event.id, "correlation_id": correlation_id},
        )
        capture_exception(e, event_id=stripe_event.id, event_type=stripe_event.type)
        return _error(500, str(e) or type(e).__name__)

    if result["status"] == EventOutcome.UNSUPPORTED.value:
        return _error(400, f"Event type not supported: {stripe_event.type}")

    return JSONResponse(status_code=200, content={"received": True})
