from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from fastapi import HTTPException, status
from loguru import logger

from pharmapos.stock.category import models, schemas
from pharmapos.stock.products import models as product_models

# ================= CREATE =================
def create_category(db: Session, category: schemas.CategoryCreate):
    name = (category.name or "").strip()
    if not name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Category name is required"
        )

    existing = (
        db.query(models.Category)
        .filter(models.Category.name == name)
        .first()
    )

    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Category '{name}' already exists"
        )

    db_category = models.Category(
        name=name,
        description=category.description
    )

    try:
        db.add(db_category)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Failed to create category: {str(e)}"
        )

    db.refresh(db_category)
    logger.info(f"Category created: {name}")
    return db_category


# ================= LIST =================
def list_categories(db: Session):
    return db.query(models.Category).order_by(models.Category.name).all()


# ================= DELETE =================
def count_products_in_category(db: Session, name: str) -> int:
    return (
        db.query(product_models.Product)
        .filter(product_models.Product.category == name)
        .count()
    )


def delete_category(db: Session, category_id: int):
    db_category = (
        db.query(models.Category)
        .filter(models.Category.id == category_id)
        .first()
    )

    if not db_category:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Category not found"
        )

    # products point at categories by name, not by key
    if count_products_in_category(db, db_category.name) > 0:
        logger.warning(f"Refused to delete category in use: {db_category.name}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete category with associated products"
        )

    try:
        db.delete(db_category)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to delete category")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete category: {str(e)}"
        )

    logger.info(f"Category deleted: {db_category.name}")
    return {"success": True, "message": "Category deleted successfully"}
