import os

from sqlmodel import Session, select

from agenda.database import create_db_and_tables, engine
from agenda.models.calendar import Calendar, CalendarCreate
from agenda.models.user import User
from agenda.core.security import get_password_hash
from agenda.repositories.calendar import CalendarRepository


ADMIN_EMAIL = os.getenv("SEED_ADMIN_EMAIL", "admin@agenda.local")
ADMIN_PASSWORD = os.getenv("SEED_ADMIN_PASSWORD", "admin123")

CALENDAR_TITLE = "Atendimento"


def main():
    create_db_and_tables()

    with Session(engine) as session:
        # 1) admin
        admin = session.exec(select(User).where(User.email == ADMIN_EMAIL)).first()
        if not admin:
            admin = User(
                name="Administrador",
                email=ADMIN_EMAIL,
                role="admin",
                password_hash=get_password_hash(ADMIN_PASSWORD),
            )
            session.add(admin)
            session.commit()
            session.refresh(admin)

        # 2) calendário de exemplo: seg-sex 09-12 e 13-17, sábado 09-12, domingo fechado
        calendar = session.exec(select(Calendar).where(Calendar.title == CALENDAR_TITLE)).first()
        if not calendar:
            working_hours = {
                "sun": {"closed": True},
                "sat": {"start": "09:00", "end": "12:00"},
            }
            for day in ("mon", "tue", "wed", "thu", "fri"):
                working_hours[day] = [{"start": "09:00", "end": "12:00"}, {"start": "13:00", "end": "17:00"}]

            calendar = CalendarRepository(session).create(
                CalendarCreate(
                    title=CALENDAR_TITLE,
                    description="Calendário criado pelo seed",
                    slot_duration=30,
                    max_appointments_per_slot=2,
                    working_hours=working_hours,
                ),
                created_by=admin.id,
            )

        print("✅ Seed concluído!")
        print(f"Admin: {admin.id} ({admin.email})")
        print(f"Calendário: {calendar.id} ({calendar.title})")
        print("Horários: seg-sex 09-12 e 13-17; sábado 09-12; domingo fechado")


if __name__ == "__main__":
    main()
