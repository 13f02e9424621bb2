from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from pharmapos.database import get_db
from pharmapos.events.broadcaster import Broadcaster, get_broadcaster
from pharmapos.events.schemas import EventType
from pharmapos.stock.products import schemas, service


router = APIRouter()


def _publish(broadcaster: Broadcaster, product) -> schemas.ProductOut:
    product_out = schemas.ProductOut.model_validate(product)
    broadcaster.notify(
        EventType.PRODUCT_UPDATE,
        {"product": product_out.model_dump(mode="json")}
    )
    return product_out


def _not_found():
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Product not found"
    )


@router.get("", response_model=List[schemas.ProductOut])
def list_products(db: Session = Depends(get_db)):
    return service.list_products(db)


@router.post(
    "",
    response_model=schemas.ProductOut,
    status_code=status.HTTP_201_CREATED
)
def create_product(
    product: schemas.ProductCreate,
    db: Session = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    db_product = service.create_product(db, product)
    return _publish(broadcaster, db_product)


@router.get("/{product_id}", response_model=schemas.ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = service.get_product_by_id(db, product_id)
    if not product:
        raise _not_found()
    return product


@router.put("/{product_id}", response_model=schemas.ProductOut)
def update_product(
    product_id: int,
    product: schemas.ProductUpdate,
    db: Session = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    updated_product = service.update_product(db, product_id, product)
    if not updated_product:
        raise _not_found()
    return _publish(broadcaster, updated_product)


@router.put("/{product_id}/stock", response_model=schemas.ProductOut)
def set_product_stock(
    product_id: int,
    payload: schemas.StockSet,
    db: Session = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """
    Set stock to an absolute value. Callers compute ``old + delta``
    themselves; use ``/stock/adjust`` to send a delta instead.
    """
    product = service.set_stock(db, product_id, payload)
    if not product:
        raise _not_found()
    return _publish(broadcaster, product)


@router.post("/{product_id}/stock/adjust", response_model=schemas.ProductOut)
def adjust_product_stock(
    product_id: int,
    payload: schemas.StockAdjust,
    db: Session = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """
    Positive delta = increase stock
    Negative delta = decrease stock
    """
    product = service.adjust_stock(db, product_id, payload)
    if not product:
        raise _not_found()
    return _publish(broadcaster, product)


@router.delete("/{product_id}")
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    if not service.delete_product(db, product_id):
        raise _not_found()

    broadcaster.notify(EventType.PRODUCT_DELETED, {"id": product_id})
    return {"success": True, "message": "Product deleted successfully"}
