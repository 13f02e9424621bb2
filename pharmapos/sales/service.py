from typing import List, Tuple

from sqlalchemy.orm import Session, selectinload
from fastapi import HTTPException, status
from loguru import logger

from pharmapos.sales import models, schemas
from pharmapos.stock.products import models as product_models
from pharmapos.time_utils import shop_now


def compute_totals(
    items: List[schemas.SaleItemData],
    discount: float | None,
) -> Tuple[float, float, float]:
    """
    Returns (subtotal, discount, total) for a cart.
    Discount is clamped into [0, subtotal]; total never goes below zero.
    """
    subtotal = round(sum(item.quantity * item.price for item in items), 2)
    discount = round(min(max(0.0, discount or 0.0), subtotal), 2)
    total = round(max(0.0, subtotal - discount), 2)
    return subtotal, discount, total


def _differs(client_value: float | None, server_value: float) -> bool:
    return client_value is not None and abs(client_value - server_value) > 0.01


def create_sale_full(db: Session, sale_data: schemas.SaleFullCreate):
    """
    Create a sale with all items in one transaction.
    Stock is left alone here: the till sets it per item after commit.
    """
    if not sale_data.items:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Sale must contain at least one item"
        )

    subtotal, discount, total = compute_totals(sale_data.items, sale_data.discount)

    if (
        _differs(sale_data.subtotal, subtotal)
        or _differs(sale_data.discount, discount)
        or _differs(sale_data.total, total)
    ):
        logger.warning(
            f"Client sale totals ({sale_data.subtotal}, {sale_data.discount}, "
            f"{sale_data.total}) replaced by ({subtotal}, {discount}, {total})"
        )

    try:
        # products deleted while the cart was open keep their snapshot only
        requested_ids = {i.product_id for i in sale_data.items if i.product_id is not None}
        known_ids = set()
        if requested_ids:
            known_ids = {
                row.id
                for row in db.query(product_models.Product.id)
                .filter(product_models.Product.id.in_(requested_ids))
                .all()
            }

        # 1️⃣ Sale header
        sale = models.Sale(
            total=total,
            subtotal=subtotal,
            discount=discount,
            date=shop_now(),
        )
        db.add(sale)
        db.flush()  # get sale.id without committing

        # 2️⃣ Line items
        for item in sale_data.items:
            db.add(models.SaleItem(
                sale_id=sale.id,
                product_id=item.product_id if item.product_id in known_ids else None,
                quantity=item.quantity,
                price=item.price,
                name=item.name,
                unit=item.unit,
            ))

        db.commit()

    except Exception as e:
        db.rollback()
        logger.exception("Error creating sale")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create sale: {str(e)}"
        )

    db.refresh(sale)
    logger.info(f"Sale {sale.id} committed: {len(sale_data.items)} item(s), total {total}")
    return sale


def list_sales(db: Session):
    return (
        db.query(models.Sale)
        .options(selectinload(models.Sale.items))
        .order_by(models.Sale.date.desc(), models.Sale.id.desc())
        .all()
    )


def get_sale(db: Session, sale_id: int):
    sale = (
        db.query(models.Sale)
        .options(selectinload(models.Sale.items))
        .filter(models.Sale.id == sale_id)
        .first()
    )

    if not sale:
        raise HTTPException(status_code=404, detail="Sale not found")

    return sale
