from pydantic import BaseModel, Field, AliasChoices
from typing import Optional


# dashboard tab -> what gets cleared ("reports" holds no stored rows)
RESET_SCOPES = {
    "overview": "all",
    "all": "all",
    "sales": "sales",
    "reports": "reports",
    "inventory": "inventory",
    "stock": "inventory",
    "alerts": "inventory",
}


class ResetRequest(BaseModel):
    scope: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("scope", "tabType"),
    )


class ResetResult(BaseModel):
    success: bool = True
    message: str
    type: str
