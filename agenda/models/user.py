from typing import Optional
from sqlmodel import SQLModel, Field


class UserBase(SQLModel):
    name: str
    email: str = Field(index=True, unique=True)
    role: str = "user"  # "admin" ou "user"


class User(UserBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    password_hash: str

    # ignora feriados/bloqueios e limites de reserva (nunca a capacidade do horário)
    scheduling_bypass: bool = False

    @property
    def has_scheduling_bypass(self) -> bool:
        return self.role == "admin" or self.scheduling_bypass
