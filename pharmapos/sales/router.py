from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from pharmapos.database import get_db
from pharmapos.sales import schemas, service


router = APIRouter()


@router.post("", response_model=schemas.SaleCreated, status_code=status.HTTP_201_CREATED)
def create_sale_endpoint(
    sale_data: schemas.SaleFullCreate,
    db: Session = Depends(get_db),
):
    """
    Create a sale + all items in a single transaction.
    The returned id is the order number for the receipt.
    """
    sale = service.create_sale_full(db, sale_data)
    return schemas.SaleCreated(id=sale.id)


@router.get("", response_model=List[schemas.SaleOut])
def list_sales(db: Session = Depends(get_db)):
    return service.list_sales(db)


@router.get("/{sale_id}", response_model=schemas.SaleOut)
def get_sale(sale_id: int, db: Session = Depends(get_db)):
    return service.get_sale(db, sale_id)
