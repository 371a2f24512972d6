from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlmodel import Session

from agenda.database import get_session
from agenda.models.calendar import CALENDAR_STATUSES, VISIBILITIES, CalendarCreate
from agenda.models.user import User
from agenda.core.errors import is_error
from agenda.core.security import AuthorizationContext, get_authorization_context, get_current_admin
from agenda.repositories.calendar import CalendarRepository
from agenda.scheduling.handler import AppointmentHandler

router = APIRouter(prefix="/calendars", tags=["calendars"])


# =========================
# LISTAR CALENDÁRIOS ATIVOS
# =========================
@router.get("/")
def list_calendars(
    limit: int = 50,
    offset: int = 0,
    session: Session = Depends(get_session),
):
    return CalendarRepository(session).get_active_calendars(limit=limit, offset=offset)


# =========================
# HORÁRIOS DISPONÍVEIS
# GET /calendars/1/slots?day=2030-01-15
# =========================
@router.get("/{calendar_id}/slots")
def get_available_slots(
    calendar_id: int,
    day: str,
    session: Session = Depends(get_session),
    auth: AuthorizationContext = Depends(get_authorization_context),
):
    handler = AppointmentHandler.from_session(session, auth)
    result = handler.get_available_slots(calendar_id, day)
    if is_error(result):
        raise result.to_http()

    return {"calendar_id": calendar_id, "day": day, "slots": result}


# =========================
# CRIAR CALENDÁRIO (ADMIN)
# =========================
@router.post("/", status_code=status.HTTP_201_CREATED)
def create_calendar(
    payload: CalendarCreate,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    if payload.visibility not in VISIBILITIES or payload.scheduling_visibility not in VISIBILITIES:
        raise HTTPException(status_code=400, detail="visibility deve ser public ou private")

    if payload.status not in CALENDAR_STATUSES:
        raise HTTPException(status_code=400, detail=f"status deve ser um de {', '.join(CALENDAR_STATUSES)}")

    return CalendarRepository(session).create(payload, created_by=current_admin.id)


# =========================
# HORÁRIO DE FUNCIONAMENTO (ADMIN)
# =========================
@router.put("/{calendar_id}/working-hours")
def update_working_hours(
    calendar_id: int,
    working_hours: Any = Body(...),
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    repo = CalendarRepository(session)
    if not repo.update_working_hours(calendar_id, working_hours):
        raise HTTPException(status_code=404, detail="Calendário não encontrado")

    return repo.get_row(calendar_id)


# =========================
# STATUS (ADMIN) - calendário nunca é apagado, só arquivado
# =========================
@router.patch("/{calendar_id}/status")
def update_status(
    calendar_id: int,
    new_status: str = Body(..., embed=True, alias="status"),
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    repo = CalendarRepository(session)
    try:
        updated = repo.update_status(calendar_id, new_status)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not updated:
        raise HTTPException(status_code=404, detail="Calendário não encontrado")

    return repo.get_row(calendar_id)
