"""
Stripe Event Models

Pydantic models for Stripe webhook events and the objects they carry.
Only the fields the connector reads are declared; everything else is ignored.
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Metadata key holding the SevDesk id on Stripe customers and invoices
LINKAGE_KEY = "sevdesk_id"


def _unwrap_list(value: Any) -> Any:
    """Accept Stripe list objects ({"object": "list", "data": [...]}) or plain lists"""
    if value is None:
        return []
    if isinstance(value, dict):
        return value.get("data") or []
    return value


class StripeLinkedObject(BaseModel):
    """Base for Stripe objects that carry linkage metadata"""

    model_config = ConfigDict(extra="ignore")

    id: str
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def default_metadata(cls, v: Any) -> Any:
        return v or {}

    @property
    def sevdesk_id(self) -> Optional[str]:
        """SevDesk id stored on this object, None when not linked"""
        value = self.metadata.get(LINKAGE_KEY)
        return str(value) if value else None


class StripeTaxId(BaseModel):
    """Customer tax identifier, e.g. an EU VAT number"""

    model_config = ConfigDict(extra="ignore")

    type: str
    value: str


class StripeCustomer(StripeLinkedObject):
    """Stripe customer"""

    name: Optional[str] = None
    tax_exempt: Optional[Literal["none", "exempt", "reverse"]] = None
    tax_ids: List[StripeTaxId] = Field(default_factory=list)

    @field_validator("tax_ids", mode="before")
    @classmethod
    def unwrap_tax_ids(cls, v: Any) -> Any:
        return _unwrap_list(v)

    @property
    def tax_id(self) -> Optional[StripeTaxId]:
        """The customer's tax id; only the first one is mirrored to SevDesk"""
        return self.tax_ids[0] if self.tax_ids else None


class StripeTaxRate(BaseModel):
    """Stripe tax rate"""

    model_config = ConfigDict(extra="ignore")

    id: str
    percentage: float
    display_name: Optional[str] = None
    inclusive: Optional[bool] = None


class StripeTaxAmount(BaseModel):
    """Tax applied to an invoice line"""

    model_config = ConfigDict(extra="ignore")

    amount: int = 0
    tax_rate: Union[str, StripeTaxRate] = Field(description="Tax rate ID or expanded tax rate")


class StripeInvoiceLineItem(BaseModel):
    """Invoice line item"""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    quantity: Optional[int] = 1
    amount: int = Field(description="Line total in the smallest currency unit")
    description: Optional[str] = None
    tax_amounts: List[StripeTaxAmount] = Field(default_factory=list)

    @field_validator("tax_amounts", mode="before")
    @classmethod
    def default_tax_amounts(cls, v: Any) -> Any:
        return v or []


class StripeInvoice(StripeLinkedObject):
    """Stripe invoice"""

    number: Optional[str] = None
    created: int = Field(description="Unix timestamp when created")
    currency: str = Field(description="Three-letter ISO currency code")
    customer: Union[str, StripeCustomer] = Field(description="Customer ID or expanded customer")
    customer_tax_exempt: Optional[Literal["none", "exempt", "reverse"]] = None
    amount_paid: int = 0
    lines: List[StripeInvoiceLineItem] = Field(default_factory=list)
    has_more_lines: bool = Field(
        default=False, description="lines only holds the first page of line items"
    )

    @model_validator(mode="before")
    @classmethod
    def read_lines_paging(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("lines"), dict):
            data = {**data, "has_more_lines": bool(data["lines"].get("has_more"))}
        return data

    @field_validator("lines", mode="before")
    @classmethod
    def unwrap_lines(cls, v: Any) -> Any:
        return _unwrap_list(v)

    @property
    def customer_id(self) -> str:
        if isinstance(self.customer, StripeCustomer):
            return self.customer.id
        return self.customer


class StripeEventData(BaseModel):
    """Stripe event data wrapper"""

    object: Dict[str, Any] = Field(description="The Stripe object")


class StripeEvent(BaseModel):
    """
    Stripe webhook event model.
    Represents the complete webhook payload from Stripe.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(description="Unique event identifier")
    type: str = Field(description="Event type (e.g., invoice.finalized)")
    created: int = Field(description="Unix timestamp of event creation")
    livemode: bool = Field(default=False, description="Whether in live mode")
    data: StripeEventData = Field(description="Event data")
    api_version: Optional[str] = Field(None)

    @property
    def event_object(self) -> Dict[str, Any]:
        """Get the main event object"""
        return self.data.object

    def as_invoice(self) -> StripeInvoice:
        return StripeInvoice.model_validate(self.event_object)

    def as_customer(self) -> StripeCustomer:
        return StripeCustomer.model_validate(self.event_object)
