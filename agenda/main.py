import logging

from fastapi import FastAPI

from agenda.config import LOG_LEVEL
from agenda.database import create_db_and_tables
from agenda.routers import appointments, auth, blocked_dates, calendars

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(title="Agenda")
app.include_router(auth.router)
app.include_router(calendars.router)
app.include_router(appointments.router)
app.include_router(blocked_dates.router)


@app.on_event("startup")
def on_startup():
    create_db_and_tables()


@app.get("/")
def root():
    return {"message": "API agenda funcionando 🚀"}
