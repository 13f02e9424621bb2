from sqlalchemy import Column, Integer, String, DateTime, Text
from pharmapos.time_utils import shop_now
from pharmapos.database import Base


class Category(Base):
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime, default=shop_now)
