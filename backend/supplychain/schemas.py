from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, computed_field


def format_minor_units(value: int) -> str:
    return f"{Decimal(value) / 100:.2f}"


class Money(BaseModel):
    value: int = 0
    currency: str = "USD"

    @computed_field
    @property
    def display_value(self) -> str:
        return format_minor_units(self.value)


class ItemCreate(BaseModel):
    name: str = ""
    description: str = ""
    quantity: int = 0
    unit_price: Money = Field(default_factory=Money)


class ItemUpdate(ItemCreate):
    id: str = ""


class ItemDelete(BaseModel):
    id: str = ""


class ItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str
    quantity: int
    unit_price: Money
    updated_at: datetime


class ItemQuery(BaseModel):
    name_filter: str = ""
    page: int = 1
    page_size: int = 10


class ItemPage(BaseModel):
    items: list[ItemOut]
    total: int


class OrderLine(BaseModel):
    item_id: str = ""
    quantity: int = 0


class OrderCreate(BaseModel):
    customer_id: str = ""
    lines: list[OrderLine] = []


class OrderRef(BaseModel):
    order_id: str = ""


class OrderOut(BaseModel):
    id: str
    customer_id: str
    lines: list[OrderLine]
    total: Money
    status: str
    created_at: datetime


class ShipmentCreate(BaseModel):
    order_id: str = ""
    tracking_number: str = ""


class ShipmentUpdate(BaseModel):
    id: str = ""
    status: str = ""
    tracking_number: str = ""


class ShipmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    order_id: str
    status: str
    tracking_number: str
    updated_at: datetime


class ShipmentQuery(BaseModel):
    order_id: str = ""
    page: int = 1
    page_size: int = 10


class ShipmentPage(BaseModel):
    shipments: list[ShipmentOut]
    total: int


class AuditLogQuery(BaseModel):
    api_key: str = ""
    page: int = 1
    page_size: int = 10


class AuditLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    api_key: str
    method: str
    request_data: str
    status: str
    timestamp: datetime


class AuditLogPage(BaseModel):
    logs: list[AuditLogOut]
    total: int


class DeleteResult(BaseModel):
    success: bool
