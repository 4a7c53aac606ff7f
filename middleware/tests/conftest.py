"""
Pytest Configuration and Fixtures

Provides common fixtures and test utilities for connector tests.
"""

import os

# Settings are loaded at import time, so the environment has to be in place
# before anything from stripe_sevdesk is imported.
os.environ["ENVIRONMENT"] = "test"
os.environ["STRIPE_SECRET"] = "sk_test_123"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["SEVDESK_API_KEY_SECRET"] = "sevdesk_test_key"
os.environ["SEVDESK_CHECK_ACCOUNT"] = "5000"
os.environ["SECRETS_BACKEND"] = "env"
os.environ.pop("SENTRY_DSN", None)

import hashlib
import hmac
import json
import time
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from stripe_sevdesk.config import settings
from stripe_sevdesk.main import app
from stripe_sevdesk.models.stripe_events import (
    StripeCustomer,
    StripeEvent,
    StripeInvoice,
    StripeTaxRate,
)


class FakeSevDeskClient:
    """
    In-memory stand-in for SevDeskClient.

    Records every call in the shared journal as ("sevdesk", method, path, body)
    and answers from a (method, path) -> response table.
    """

    def __init__(self, journal: List[Tuple]):
        self.journal = journal
        self.responses: Dict[Tuple[str, str], Any] = {
            ("GET", "/Invoice"): [],
            ("POST", "/Contact"): {"id": "7001", "objectName": "Contact"},
            ("POST", "/Invoice/Factory/saveInvoice"): {
                "invoice": {"id": "9001", "objectName": "Invoice"},
                "invoicePos": [],
            },
        }
        self.errors: Dict[Tuple[str, str], Exception] = {}
        self.closed = False

    async def __aenter__(self) -> "FakeSevDeskClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.closed = True

    async def _call(self, method: str, path: str, body: Any) -> Any:
        self.journal.append(("sevdesk", method, path, body))
        if (method, path) in self.errors:
            raise self.errors[(method, path)]
        return self.responses.get((method, path), {"id": "1"})

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self._call("GET", path, params)

    async def post(self, path: str, json_data: Optional[Dict[str, Any]] = None) -> Any:
        return await self._call("POST", path, json_data)

    async def put(self, path: str, json_data: Optional[Dict[str, Any]] = None) -> Any:
        return await self._call("PUT", path, json_data)

    @property
    def calls(self) -> List[Tuple]:
        return [entry[1:] for entry in self.journal if entry[0] == "sevdesk"]


@pytest.fixture
def test_client():
    """FastAPI test client"""
    return TestClient(app)


@pytest.fixture
def journal() -> List[Tuple]:
    """Ordered log of all outbound calls made by fakes"""
    return []


@pytest.fixture
def fake_sevdesk(journal) -> FakeSevDeskClient:
    return FakeSevDeskClient(journal)


@pytest.fixture
def client_factory(fake_sevdesk):
    """SevDesk client factory handing out the fake client, counting builds"""

    async def factory() -> FakeSevDeskClient:
        factory.builds += 1
        return fake_sevdesk

    factory.builds = 0
    return factory


@pytest.fixture
def customer_data() -> Dict[str, Any]:
    """Stripe customer without SevDesk link"""
    return {
        "id": "cus_test123",
        "object": "customer",
        "name": "Muster GmbH",
        "email": "billing@muster.example",
        "tax_exempt": "none",
        "metadata": {},
    }


@pytest.fixture
def invoice_data() -> Dict[str, Any]:
    """Finalized Stripe invoice without SevDesk link"""
    return {
        "id": "in_test123",
        "object": "invoice",
        "number": "ABC-0001",
        "created": 1709636400,  # 2024-03-05 11:00 UTC
        "currency": "eur",
        "customer": "cus_test123",
        "customer_tax_exempt": "none",
        "amount_paid": 2999,
        "status": "open",
        "lines": {
            "object": "list",
            "data": [
                {
                    "id": "il_1",
                    "quantity": 1,
                    "amount": 2999,
                    "description": "Premium Plan",
                    "tax_amounts": [],
                }
            ],
        },
        "metadata": {},
    }


@pytest.fixture
def mock_stripe_service(journal, customer_data, invoice_data):
    """
    Mock StripeService.

    Reads return the fixture objects; metadata writes are recorded in the
    journal as ("stripe", method, object_id, metadata).
    """
    mock = AsyncMock()
    mock.get_customer.return_value = StripeCustomer.model_validate(customer_data)
    mock.get_invoice.return_value = StripeInvoice.model_validate(invoice_data)
    mock.get_tax_rate.return_value = StripeTaxRate(id="txr_19", percentage=19.0)

    async def update_customer_metadata(customer_id, metadata):
        journal.append(("stripe", "update_customer_metadata", customer_id, metadata))

    async def update_invoice_metadata(invoice_id, metadata):
        journal.append(("stripe", "update_invoice_metadata", invoice_id, metadata))

    mock.update_customer_metadata.side_effect = update_customer_metadata
    mock.update_invoice_metadata.side_effect = update_invoice_metadata
    return mock


def make_event(event_type: str, obj: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap a Stripe object in an event envelope"""
    return {
        "id": f"evt_{event_type.replace('.', '_')}",
        "object": "event",
        "api_version": "2024-06-20",
        "created": int(time.time()),
        "type": event_type,
        "livemode": False,
        "data": {"object": obj},
    }


def make_stripe_event(event_type: str, obj: Dict[str, Any]) -> StripeEvent:
    return StripeEvent.model_validate(make_event(event_type, obj))


def generate_stripe_signature(payload: str, secret: str) -> str:
    """
    Generate valid Stripe webhook signature for testing.

    Args:
        payload: JSON payload as string
        secret: Webhook secret

    Returns:
        Stripe-Signature header value
    """
    timestamp = str(int(time.time()))
    signed_payload = f"{timestamp}.{payload}"

    signature = hmac.new(
        secret.encode("utf-8"),
        signed_payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()

    return f"t={timestamp},v1={signature}"


@pytest.fixture
def signed_request():
    """Factory producing (body, headers) for a correctly signed webhook"""

    def _signed(event: Dict[str, Any]) -> Tuple[str, Dict[str, str]]:
        payload = json.dumps(event, separators=(",", ":"))
        signature = generate_stripe_signature(payload, settings.stripe_webhook_secret)
        return payload, {
            "Stripe-Signature": signature,
            "Content-Type": "application/json",
        }

    return _signed
