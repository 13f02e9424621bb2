from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

# ================= CREATE =================
class CategoryCreate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


# ================= RESPONSE =================
class CategoryOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
