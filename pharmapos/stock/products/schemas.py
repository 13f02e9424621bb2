from pydantic import BaseModel, ConfigDict, Field, AliasChoices, field_validator
from typing import Optional
from datetime import date


UNCATEGORIZED = "Uncategorized"


def _to_int(value):
    # "12", 12.0 and "12.7" all arrive from the dashboard forms
    if isinstance(value, (str, float)) and value != "":
        try:
            return int(float(value))
        except ValueError:
            return value
    return value


# -------------------------------
# Create / full update
# -------------------------------
class ProductCreate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = None
    stock: Optional[int] = 0
    unit: Optional[str] = "pcs"
    default_qty: Optional[int] = Field(
        default=1,
        validation_alias=AliasChoices("default_qty", "defaultQty"),
    )
    photo: Optional[str] = None
    expiry_date: Optional[date] = None

    @field_validator("name", "category", mode="after")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if value is not None else None

    @field_validator("price", mode="before")
    @classmethod
    def blank_price(cls, value):
        return None if value == "" else value

    @field_validator("price", mode="after")
    @classmethod
    def clamp_price(cls, value):
        return max(0.0, value) if value is not None else None

    @field_validator("stock", "default_qty", mode="before")
    @classmethod
    def coerce_int(cls, value):
        return _to_int(value)

    @field_validator("stock", mode="after")
    @classmethod
    def clamp_stock(cls, value):
        return max(0, value or 0)

    @field_validator("default_qty", mode="after")
    @classmethod
    def floor_default_qty(cls, value):
        return max(1, value or 1)

    @field_validator("unit", mode="after")
    @classmethod
    def default_unit(cls, value):
        return value.strip() if value and value.strip() else "pcs"

    @field_validator("expiry_date", mode="before")
    @classmethod
    def blank_expiry(cls, value):
        return None if value == "" else value


class ProductUpdate(ProductCreate):
    pass


# -------------------------------
# Stock: absolute set vs. relative adjust
# -------------------------------
class StockSet(BaseModel):
    stock: Optional[int] = None

    @field_validator("stock", mode="before")
    @classmethod
    def coerce_int(cls, value):
        return _to_int(value)

    @field_validator("stock", mode="after")
    @classmethod
    def clamp_stock(cls, value):
        return max(0, value) if value is not None else None


class StockAdjust(BaseModel):
    delta: int


# -------------------------------
# Output
# -------------------------------
class ProductOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    category: str = UNCATEGORIZED
    price: float
    stock: int
    unit: str
    default_qty: int
    photo: Optional[str] = None
    expiry_date: Optional[date] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, value):
        return value or UNCATEGORIZED
