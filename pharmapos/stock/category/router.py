from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from pharmapos.database import get_db
from pharmapos.stock.category import schemas, service


router = APIRouter()

# ================= CREATE =================
@router.post(
    "",
    response_model=schemas.CategoryOut,
    status_code=status.HTTP_201_CREATED
)
def create_category(
    category: schemas.CategoryCreate,
    db: Session = Depends(get_db)
):
    return service.create_category(db, category)


# ================= LIST =================
@router.get(
    "",
    response_model=List[schemas.CategoryOut]
)
def list_categories(db: Session = Depends(get_db)):
    return service.list_categories(db)


# ================= DELETE =================
@router.delete("/{category_id}")
def delete_category(
    category_id: int,
    db: Session = Depends(get_db)
):
    return service.delete_category(db, category_id)
