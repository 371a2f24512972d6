from fastapi import APIRouter, Depends, Request, status
from sqlmodel import Session

from agenda.database import get_session
from agenda.models.appointment import AppointmentCancel, AppointmentCreate
from agenda.core.errors import SchedulingError, is_error
from agenda.core.security import AuthorizationContext, get_authorization_context
from agenda.scheduling.handler import AppointmentHandler

router = APIRouter(prefix="/appointments", tags=["appointments"])


# =========================
# CRIAR AGENDAMENTO
# - visitante: email + CPF/RF, recebe o token de cancelamento
# - logado: vinculado ao usuário
# =========================
@router.post("/", status_code=status.HTTP_201_CREATED)
def create_appointment(
    payload: AppointmentCreate,
    request: Request,
    session: Session = Depends(get_session),
    auth: AuthorizationContext = Depends(get_authorization_context),
):
    data = payload.model_dump()
    data["user_ip"] = request.client.host if request.client else None

    result = AppointmentHandler.from_session(session, auth).process_appointment(data)
    if is_error(result):
        raise result.to_http()

    return result


# =========================
# MEUS AGENDAMENTOS
# =========================
@router.get("/me")
def my_appointments(
    session: Session = Depends(get_session),
    auth: AuthorizationContext = Depends(get_authorization_context),
):
    result = AppointmentHandler.from_session(session, auth).get_user_appointments()
    if is_error(result):
        raise result.to_http()

    return result


# =========================
# CANCELAR
# - admin / bypass: sempre
# - dono logado ou quem tem o token: respeitando a política do calendário
# =========================
@router.patch("/{appointment_id}/cancel")
def cancel_appointment(
    appointment_id: int,
    payload: AppointmentCancel,
    session: Session = Depends(get_session),
    auth: AuthorizationContext = Depends(get_authorization_context),
):
    handler = AppointmentHandler.from_session(session, auth)
    result = handler.cancel_appointment(appointment_id, payload.token, payload.reason)
    if is_error(result):
        raise result.to_http()

    # outra requisição cancelou entre a leitura e o update
    if not result:
        raise SchedulingError("already_cancelled").to_http()

    return {"success": True, "appointment_id": appointment_id, "status": "cancelled"}


# =========================
# APROVAR (ADMIN / BYPASS)
# =========================
@router.patch("/{appointment_id}/approve")
def approve_appointment(
    appointment_id: int,
    session: Session = Depends(get_session),
    auth: AuthorizationContext = Depends(get_authorization_context),
):
    result = AppointmentHandler.from_session(session, auth).approve_appointment(appointment_id)
    if is_error(result):
        raise result.to_http()

    if not result:
        raise SchedulingError("invalid_status").to_http()

    return {"success": True, "appointment_id": appointment_id, "status": "confirmed"}
