from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pharmapos.database import get_db
from pharmapos.events.broadcaster import Broadcaster, get_broadcaster
from pharmapos.events.schemas import EventType
from pharmapos.maintenance import schemas, service


router = APIRouter()


@router.post("/reset-data", response_model=schemas.ResetResult)
def reset_data(
    payload: schemas.ResetRequest,
    db: Session = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """
    Bulk clear by dashboard tab. Destructive: clients confirm before calling.
    """
    target = service.reset_data(db, payload.scope)
    message = service.reset_message(target)

    if target != "reports":
        broadcaster.notify(EventType.DATA_RESET, {"message": message, "type": target})

    label = "All" if payload.scope == "all" else payload.scope
    return schemas.ResetResult(
        message=f"{label} data has been cleared successfully",
        type=target,
    )
