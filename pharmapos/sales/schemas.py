from pydantic import BaseModel, ConfigDict, field_validator
from typing import List, Optional
from datetime import datetime


# ---------- Sale Item ----------
class SaleItemData(BaseModel):
    product_id: Optional[int] = None
    name: str
    quantity: int
    price: float
    unit: str = "pcs"

    @field_validator("quantity", mode="after")
    @classmethod
    def clamp_quantity(cls, value):
        return max(0, value)

    @field_validator("price", mode="after")
    @classmethod
    def clamp_price(cls, value):
        return max(0.0, value)

    @field_validator("unit", mode="after")
    @classmethod
    def default_unit(cls, value):
        return value or "pcs"


class SaleItemOut(BaseModel):
    id: int
    sale_id: int
    product_id: Optional[int] = None
    quantity: int
    price: float
    name: str
    unit: str

    model_config = ConfigDict(from_attributes=True)


# ---------- Sale ----------
class SaleFullCreate(BaseModel):
    items: List[SaleItemData] = []

    # client-side figures; the server derives its own from the items
    subtotal: Optional[float] = None
    discount: Optional[float] = 0
    total: Optional[float] = None


class SaleCreated(BaseModel):
    success: bool = True
    message: str = "Sale created successfully"
    id: int


class SaleOut(BaseModel):
    id: int
    total: float
    subtotal: float
    discount: float
    date: datetime
    items: List[SaleItemOut] = []

    model_config = ConfigDict(from_attributes=True)
