from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from pharmapos.config import settings
from pharmapos.database import get_db
from pharmapos.reports import schemas, service
from pharmapos.sales import service as sales_service
from pharmapos.sales.schemas import SaleOut
from pharmapos.stock.products import service as product_service
from pharmapos.stock.products.schemas import ProductOut
from pharmapos.time_utils import shop_now, shop_today


router = APIRouter()


def _product_rows(db: Session):
    return [
        ProductOut.model_validate(p).model_dump()
        for p in product_service.list_products(db)
    ]


def _sale_rows(db: Session):
    return [
        SaleOut.model_validate(s).model_dump()
        for s in sales_service.list_sales(db)
    ]


@router.get("/summary", response_model=schemas.SalesSummary)
def sales_summary(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    return service.sales_summary(
        _sale_rows(db),
        start_date=start_date,
        end_date=end_date,
        now=shop_now(),
    )


@router.get("/sales-by-date", response_model=List[schemas.DailySales])
def sales_by_date(db: Session = Depends(get_db)):
    return service.sales_by_date(_sale_rows(db))


@router.get("/categories", response_model=List[schemas.CategoryBreakdown])
def inventory_by_category(db: Session = Depends(get_db)):
    return service.inventory_by_category(_product_rows(db))


@router.get("/top-products", response_model=List[schemas.TopProduct])
def top_selling_products(limit: int = 5, db: Session = Depends(get_db)):
    return service.top_selling_products(_sale_rows(db), _product_rows(db), limit=limit)


@router.get("/low-stock", response_model=List[ProductOut])
def low_stock_products(
    threshold: Optional[int] = None,
    limit: int = 5,
    db: Session = Depends(get_db),
):
    if threshold is None:
        threshold = settings.LOW_STOCK_THRESHOLD
    return service.low_stock_products(_product_rows(db), threshold=threshold, limit=limit)


@router.get("/alerts", response_model=schemas.InventoryAlertsOut)
def inventory_alerts(
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """
    Out-of-stock, expired and soon-to-expire products for the alerts tab.
    """
    return service.inventory_alerts(
        _product_rows(db),
        today=shop_today(),
        window_days=settings.EXPIRY_WARNING_DAYS,
        search=search,
    )
