import os
from pathlib import Path

from dotenv import load_dotenv

# .env na raiz do projeto
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./agenda.db")
DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"
DB_SLOW_QUERY_THRESHOLD = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))

# =========================
# JWT
# =========================

SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

# =========================
# AGENDA
# =========================

# fuso único usado em todas as comparações com "agora"
TIMEZONE = os.getenv("TIMEZONE", "America/Sao_Paulo")

# feriados globais (YYYY-MM-DD separados por vírgula), valem para todos os calendários
GLOBAL_HOLIDAYS = [d.strip() for d in os.getenv("GLOBAL_HOLIDAYS", "").split(",") if d.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
