from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlmodel import Session, select

from agenda.config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY
from agenda.database import get_session
from agenda.models.user import User
from agenda.scheduling.times import utc_now


# =========================
# HASH DE SENHA
# =========================

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# =========================
# TOKEN JWT
# =========================

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()

    if expires_delta:
        expire = utc_now() + expires_delta
    else:
        expire = utc_now() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def _user_from_token(token: str, session: Session) -> Optional[User]:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None

    email = payload.get("sub")
    if email is None:
        return None

    return session.exec(select(User).where(User.email == email)).first()


# =========================
# USUÁRIO AUTENTICADO
# =========================

def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> User:
    user = _user_from_token(token, session)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_optional_user(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    session: Session = Depends(get_session),
) -> Optional[User]:
    """Visitante sem token segue anônimo; token inválido é recusado."""
    if not token:
        return None
    return get_current_user(token, session)


# =========================
# SOMENTE ADMIN
# =========================

def get_current_admin(
    current_user: User = Depends(get_current_user),
) -> User:

    if current_user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only administrators can access this route",
        )

    return current_user


# =========================
# CONTEXTO DE AUTORIZAÇÃO (um por requisição)
# =========================

@dataclass(frozen=True)
class AuthorizationContext:
    """Who is calling, resolved once per request and passed down explicitly."""

    user_id: Optional[int] = None
    email: Optional[str] = None
    bypass: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def has_scheduling_bypass(self) -> bool:
        return self.bypass

    @classmethod
    def anonymous(cls) -> "AuthorizationContext":
        return cls()

    @classmethod
    def for_user(cls, user: Optional[User]) -> "AuthorizationContext":
        if user is None:
            return cls.anonymous()
        return cls(user_id=user.id, email=user.email, bypass=user.has_scheduling_bypass)


def get_authorization_context(
    user: Optional[User] = Depends(get_optional_user),
) -> AuthorizationContext:
    return AuthorizationContext.for_user(user)
