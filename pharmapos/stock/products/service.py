from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from fastapi import HTTPException, status
from loguru import logger

from pharmapos.stock.products import models, schemas


def _require_name_and_price(product: schemas.ProductCreate):
    if not product.name or product.price is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Name and price are required"
        )


def _commit(db: Session, action: str):
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Failed to {action}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action}: {str(e)}"
        )


def list_products(db: Session):
    return db.query(models.Product).order_by(models.Product.id.asc()).all()


def get_product_by_id(db: Session, product_id: int):
    return (
        db.query(models.Product)
        .filter(models.Product.id == product_id)
        .first()
    )


def create_product(db: Session, product: schemas.ProductCreate):
    _require_name_and_price(product)

    db_product = models.Product(**product.model_dump())
    db.add(db_product)
    _commit(db, "add product")
    db.refresh(db_product)

    logger.info(f"Product created: {db_product.name} (id={db_product.id})")
    return db_product


def update_product(
    db: Session,
    product_id: int,
    product: schemas.ProductUpdate
):
    _require_name_and_price(product)

    db_product = get_product_by_id(db, product_id)
    if not db_product:
        return None

    # fields the caller left out keep their stored value
    for field, value in product.model_dump(exclude_unset=True).items():
        setattr(db_product, field, value)

    _commit(db, "update product")
    db.refresh(db_product)

    logger.info(f"Product updated: {db_product.name} (id={db_product.id})")
    return db_product


def set_stock(db: Session, product_id: int, payload: schemas.StockSet):
    """Overwrite stock with an absolute value. Retrying is harmless."""
    if payload.stock is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Stock quantity is required"
        )

    db_product = get_product_by_id(db, product_id)
    if not db_product:
        return None

    db_product.stock = payload.stock
    _commit(db, "update product stock")
    db.refresh(db_product)

    logger.info(f"Stock set for product {product_id}: {db_product.stock}")
    return db_product


def adjust_stock(db: Session, product_id: int, payload: schemas.StockAdjust):
    """Apply a relative change in one UPDATE so concurrent deltas add up."""
    db_product = get_product_by_id(db, product_id)
    if not db_product:
        return None

    updated = (
        db.query(models.Product)
        .filter(
            models.Product.id == product_id,
            models.Product.stock + payload.delta >= 0
        )
        .update(
            {models.Product.stock: models.Product.stock + payload.delta},
            synchronize_session=False
        )
    )

    if not updated:
        db.rollback()
        logger.warning(
            f"Rejected stock adjustment of {payload.delta} for product {product_id}"
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Adjustment would result in negative stock"
        )

    _commit(db, "adjust product stock")
    db.refresh(db_product)

    logger.info(
        f"Stock adjusted for product {product_id} by {payload.delta}: {db_product.stock}"
    )
    return db_product


def delete_product(db: Session, product_id: int):
    db_product = get_product_by_id(db, product_id)
    if not db_product:
        return False

    db.delete(db_product)
    _commit(db, "delete product")

    logger.info(f"Product deleted: id={product_id}")
    return True
