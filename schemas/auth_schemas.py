from pydantic import BaseModel, field_validator

class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str


class RefreshTokenRequest(BaseModel):
    """Body of /auth/refresh: the refresh token to exchange."""

    refresh_token: str

    @field_validator('refresh_token')
    @classmethod
    def validate_token(cls, value):
        if not value or not value.strip():
            raise ValueError('Refresh token cannot be empty')
        return value


class RevokeTokenRequest(RefreshTokenRequest):
    """
    Body of /auth/logout.

    Accepted whatever state the token is in; unknown, expired or already
    revoked tokens still log out successfully.
    """


class MessageResponse(BaseModel):
    message: str


class LogoutAllResponse(MessageResponse):
    sessions_revoked: int
