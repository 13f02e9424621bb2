#!/usr/bin/env python3
import argparse
import sys
from datetime import date

from loguru import logger

from pharmapos.database import Base, SessionLocal, engine
from pharmapos.sales import models as sales_models  # noqa: F401
from pharmapos.stock.category import models as category_models  # noqa: F401
from pharmapos.stock.products.models import Product


SAMPLE_PRODUCTS = [
    dict(name="Paracetamol", description="Pain reliever 500mg", category="Analgesics",
         price=10.99, stock=100, unit="tabs", default_qty=10, expiry_date=date(2025, 12, 31)),
    dict(name="Ibuprofen", description="Anti-inflammatory 400mg", category="Analgesics",
         price=15.50, stock=50, unit="tabs", default_qty=10, expiry_date=date(2024, 8, 15)),
    dict(name="Amoxicillin", description="Antibiotic 250mg", category="Antibiotics",
         price=25.00, stock=30, unit="caps", default_qty=1, expiry_date=date(2025, 6, 30)),
    dict(name="Cetirizine", description="Antihistamine 10mg", category="Allergy",
         price=8.75, stock=40, unit="tabs", default_qty=10, expiry_date=date(2026, 3, 25)),
    dict(name="Vitamin C", description="Supplement 1000mg", category="Vitamins",
         price=12.99, stock=80, unit="tabs", default_qty=5, expiry_date=date(2027, 1, 10)),
]


def seed(drop: bool = False) -> int:
    """Create the schema and insert the sample catalogue. Returns rows added."""
    if drop:
        logger.info("Dropping tables...")
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        db.add_all(Product(**fields) for fields in SAMPLE_PRODUCTS)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    return len(SAMPLE_PRODUCTS)


def main():
    parser = argparse.ArgumentParser(
        description="Create the pharmacy database and load sample products."
    )
    parser.add_argument(
        "--drop", action="store_true",
        help="Drop existing tables first (destroys all products and sales)."
    )
    args = parser.parse_args()

    if args.drop:
        confirm = input("Type YES to drop every table: ").strip()
        if confirm != "YES":
            print("Aborted.")
            sys.exit(1)

    try:
        added = seed(drop=args.drop)
    except Exception as exc:
        logger.error(f"Database seed failed: {exc}")
        sys.exit(1)

    logger.info(f"Database seeded with {added} sample products")


if __name__ == "__main__":
    main()
