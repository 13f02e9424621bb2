from sqlalchemy import Column, Integer, String, Float, Date, Text
from pharmapos.database import Base


class Product(Base):
    __tablename__ = "products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    # free-text label, matched against Category.name by value only
    category = Column(String, nullable=True, index=True)

    price = Column(Float, nullable=False, default=0)
    stock = Column(Integer, nullable=False, default=0)
    unit = Column(String, nullable=False, default="pcs")
    default_qty = Column(Integer, nullable=False, default=1)

    # data URL or plain URL
    photo = Column(Text, nullable=True)
    expiry_date = Column(Date, nullable=True)
