from core.database import SessionLocal
from typing import Annotated
from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from jose import JWTError, jwt
from starlette import status
from core.config import settings
from core.clock import system_clock
from services.access_token_service import AccessTokenIssuer
from services.audit_service import AuditService
from services.refresh_token_store import SqlAlchemyRefreshTokenStore
from services.session_service import SessionService
from services.user_service import UserService


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

db_dependency = Annotated[Session, Depends(get_db)]


def get_session_service(db: db_dependency) -> SessionService:
    """Request-scoped composition of the session service and its collaborators."""
    return SessionService(
        store=SqlAlchemyRefreshTokenStore(db),
        access_tokens=AccessTokenIssuer(),
        users=UserService(db),
        audit=AuditService(db, clock=system_clock),
        clock=system_clock
    )

session_service_dependency = Annotated[SessionService, Depends(get_session_service)]


def get_current_user(token: Annotated[str, Depends(OAuth2PasswordBearer(tokenUrl="auth/token"))]):
    credentials_error = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials.",
        headers={"WWW-Authenticate": "Bearer"}
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise credentials_error

    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        raise credentials_error

    if payload.get("type") != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail="Invalid token type. Access token required.")

    return {"user_id": int(subject), "email": payload.get("email"), "user_role": payload.get("role")}


user_dependency = Annotated[dict, Depends(get_current_user)]
