"""
SevDesk Record Models

Pydantic models for SevDesk API payloads. Field names are snake_case in
Python and serialized to SevDesk's camelCase via aliases.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SevDeskModel(BaseModel):
    """Base model serializing to SevDesk's camelCase JSON"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class SevDeskReference(SevDeskModel):
    """Reference to another SevDesk object, e.g. {"id": 1, "objectName": "Contact"}"""

    id: Any
    object_name: str


class SevDeskContact(SevDeskModel):
    """SevDesk Contact (organisation) mirrored from a Stripe customer"""

    name: Optional[str] = None
    category: SevDeskReference
    description: str = Field(description="Stripe customer id")
    exempt_vat: bool = False
    vat_number: Optional[str] = None
    tax_type: Optional[Literal["eu", "noteu", "default"]] = None

    def to_payload(self) -> Dict[str, Any]:
        # vatNumber/taxType are only sent when explicitly set, null included
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class SevDeskInvoicePosition(SevDeskModel):
    """SevDesk InvoicePos"""

    quantity: float
    price: float = Field(description="Unit price in major currency units")
    name: Optional[str] = None
    text: Optional[str] = None
    discount: Optional[float] = None
    tax_rate: Optional[float] = Field(None, description="Tax rate in percent")
    price_gross: Optional[float] = None
    price_tax: Optional[float] = None
    map_all: bool = True
    object_name: str = "InvoicePos"


class SevDeskInvoice(SevDeskModel):
    """SevDesk Invoice header for Invoice/Factory/saveInvoice"""

    invoice_number: Optional[str] = None
    contact: SevDeskReference
    invoice_date: str
    delivery_date: int = 0
    delivery_date_until: int = 0
    discount: int = 0
    status: int = Field(default=200, description="200 = open / delivered")
    contact_person: Optional[SevDeskReference] = None
    small_settlement: bool = False
    tax_type: Literal["eu", "noteu", "default"] = "default"
    currency: str
    invoice_type: str = "RE"
    send_type: str = "VM"


class SevDeskInvoiceSave(SevDeskModel):
    """Request body for Invoice/Factory/saveInvoice"""

    invoice: SevDeskInvoice
    invoice_pos_save: List[SevDeskInvoicePosition] = Field(default_factory=list)


class SevDeskBooking(SevDeskModel):
    """Request body for Invoice/{id}/bookAmount"""

    amount: float
    date: str = Field(description="Booking date, d.m.yyyy")
    type: str = Field(default="N", description="N = normal booking")
    check_account: SevDeskReference
