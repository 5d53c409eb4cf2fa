from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import Actor, get_current_actor, get_db
from app.schemas.conflict import ConflictReport
from app.services.conflict_service import scan_conflicts

router = APIRouter()


@router.get("/timetable/conflicts", response_model=ConflictReport)
def get_conflict_report(
    school_id: str,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> ConflictReport:
    return scan_conflicts(db, school_id)
