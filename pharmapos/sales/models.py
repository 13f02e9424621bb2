from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from pharmapos.database import Base
from pharmapos.time_utils import shop_now


class Sale(Base):
    __tablename__ = "sales"
    __table_args__ = {"sqlite_autoincrement": True}

    # doubles as the order number printed on the receipt
    id = Column(Integer, primary_key=True, index=True)

    total = Column(Float, nullable=False)
    subtotal = Column(Float, nullable=False)
    discount = Column(Float, nullable=False, default=0)

    date = Column(DateTime, nullable=False, default=shop_now, index=True)

    items = relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SaleItem.id"
    )


class SaleItem(Base):
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    sale_id = Column(
        Integer,
        ForeignKey("sales.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    product_id = Column(
        Integer,
        ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True
    )

    quantity = Column(Integer, nullable=False)

    # copied at sale time so receipts survive later product edits
    price = Column(Float, nullable=False)
    name = Column(String, nullable=False)
    unit = Column(String, nullable=False)

    sale = relationship("Sale", back_populates="items")
