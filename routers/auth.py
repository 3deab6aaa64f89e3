from fastapi import APIRouter, HTTPException, Depends, Request
from fastapi.security import OAuth2PasswordRequestForm
from starlette import status
from utils.deps import db_dependency, user_dependency, session_service_dependency
from schemas.auth_schemas import Token, RefreshTokenRequest, RevokeTokenRequest, MessageResponse, LogoutAllResponse
from services.user_service import UserService
from middleware.rate_limiter import limiter
from utils.logger import get_logger

logger = get_logger(__name__)


router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


@router.post("/token", response_model=Token)
@limiter.limit("5/minute")
async def login_for_access_token(request: Request, db: db_dependency, sessions: session_service_dependency,
                                 form_data: OAuth2PasswordRequestForm = Depends()):
    user = UserService(db).authenticate(form_data.username, form_data.password)

    if not user:
        logger.warning("Login failed - invalid credentials")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail="Could not validate user.")

    if not user.is_active:
        logger.warning("Login failed - inactive account", extra={"user_id": user.id})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN,
                            detail="Account is inactive")

    tokens = sessions.issue(user.id, user.display_name, user.claims)

    logger.info("User logged in successfully", extra={"user_id": user.id})

    return Token(access_token=tokens.access_token, refresh_token=tokens.refresh_token,
                 token_type=tokens.token_type)


@router.post("/refresh", response_model=Token)
@limiter.limit("10/minute")
async def refresh_token(request: Request, body: RefreshTokenRequest, sessions: session_service_dependency):
    """
    Exchange a refresh token for a new token pair (the old one stops working).
    """
    result = sessions.rotate(body.refresh_token)

    if not result.ok:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail="Invalid or expired refresh token",
                            headers={"WWW-Authenticate": "Bearer"})

    tokens = result.tokens
    return Token(access_token=tokens.access_token, refresh_token=tokens.refresh_token,
                 token_type=tokens.token_type)


@router.post("/logout", response_model=MessageResponse)
@limiter.limit("10/minute")
async def logout(request: Request, body: RevokeTokenRequest, sessions: session_service_dependency):
    """
    Revoke a refresh token. Succeeds whether or not the token was still live.
    """
    sessions.revoke(body.refresh_token)

    return {"message": "Logged out successfully"}


@router.post("/logout-all", response_model=LogoutAllResponse)
@limiter.limit("5/minute")
async def logout_all(request: Request, user: user_dependency, sessions: session_service_dependency):
    """
    Revoke every refresh token of the authenticated user.
    """
    count = sessions.revoke_all_for_subject(user["user_id"])

    return {"message": "Logged out from all sessions", "sessions_revoked": count}
