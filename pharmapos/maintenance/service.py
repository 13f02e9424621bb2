from typing import List

from sqlalchemy import bindparam, text
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from loguru import logger

from pharmapos.maintenance.schemas import RESET_SCOPES
from pharmapos.sales import models as sales_models
from pharmapos.stock.products import models as product_models


_MESSAGES = {
    "all": "All data has been cleared",
    "sales": "Sales data has been cleared",
    "inventory": "Inventory data has been cleared",
    "reports": "Report settings have been reset",
}


def _reset_sequences(db: Session, tables: List[str]):
    dialect = db.get_bind().dialect.name

    if dialect == "sqlite":
        # only present once an AUTOINCREMENT table has held a row
        has_sequence_table = db.execute(
            text("SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'sqlite_sequence'")
        ).first()
        if has_sequence_table:
            db.execute(
                text("DELETE FROM sqlite_sequence WHERE name IN :names")
                .bindparams(bindparam("names", expanding=True)),
                {"names": tables},
            )

    elif dialect == "postgresql":
        for table in tables:
            db.execute(text(f"ALTER SEQUENCE {table}_id_seq RESTART WITH 1"))


def reset_data(db: Session, scope: str | None) -> str:
    """
    Clear the tables behind a dashboard tab and restart their ids.
    Returns the normalised scope: "all", "sales", "inventory" or "reports";
    the last deletes nothing.
    """
    target = RESET_SCOPES.get(scope or "")
    if target is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid tab type. Must be one of: " + ", ".join(RESET_SCOPES)
        )

    tables = []
    try:
        if target in ("all", "sales"):
            db.query(sales_models.SaleItem).delete(synchronize_session=False)
            db.query(sales_models.Sale).delete(synchronize_session=False)
            tables += ["sales", "sale_items"]

        if target in ("all", "inventory"):
            db.query(product_models.Product).delete(synchronize_session=False)
            tables.append("products")

        if tables:
            _reset_sequences(db, tables)
        db.commit()

    except Exception as e:
        db.rollback()
        logger.exception("Error resetting database")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to clear data: {str(e)}"
        )

    logger.warning(f"Data reset requested for '{scope}': cleared {', '.join(tables) or 'nothing'}")
    return target


def reset_message(target: str) -> str:
    return _MESSAGES[target]
