from pydantic import BaseModel
from typing import List, Optional
from datetime import date

from pharmapos.stock.products.schemas import ProductOut


class SalesSummary(BaseModel):
    total_sales: int
    total_revenue: float
    average_order_value: float
    todays_sales: int
    weekly_change: float


class DailySales(BaseModel):
    date: date
    orders: int
    revenue: float


class CategoryBreakdown(BaseModel):
    category: str
    products: int
    stock_value: float


class TopProduct(BaseModel):
    id: Optional[int] = None
    name: str
    quantity: int
    revenue: float


class ExpiringProductOut(ProductOut):
    days_until_expiry: int


class InventoryAlertsOut(BaseModel):
    out_of_stock: List[ProductOut]
    expired: List[ProductOut]
    expiring_soon: List[ExpiringProductOut]
