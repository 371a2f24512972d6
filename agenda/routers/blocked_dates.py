from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from agenda.database import get_session
from agenda.models.blocked_date import BlockedDateCreate
from agenda.models.user import User
from agenda.core.security import get_current_admin
from agenda.repositories.blocked_date import BlockedDateRepository

router = APIRouter(prefix="/blocked-dates", tags=["blocked-dates"])


@router.get("/")
def list_blocked_dates(
    calendar_id: Optional[int] = None,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    return BlockedDateRepository(session).list_for_calendar(calendar_id)


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_blocked_date(
    block: BlockedDateCreate,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    if block.end_date and block.end_date < block.start_date:
        raise HTTPException(status_code=400, detail="end_date deve ser maior ou igual a start_date")

    if block.block_type == "time_range":
        if not block.start_time or not block.end_time or block.end_time <= block.start_time:
            raise HTTPException(status_code=400, detail="end_time deve ser maior que start_time")

    if block.block_type == "recurring" and not block.recurring_pattern:
        raise HTTPException(status_code=400, detail="recurring_pattern é obrigatório")

    try:
        return BlockedDateRepository(session).create(block, created_by=current_admin.id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{block_id}")
def delete_blocked_date(
    block_id: int,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    if not BlockedDateRepository(session).delete(block_id):
        raise HTTPException(status_code=404, detail="Bloqueio não encontrado")

    return {"message": "Bloqueio removido"}
