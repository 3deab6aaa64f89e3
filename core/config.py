from pydantic_settings import BaseSettings
from pydantic import ConfigDict, field_validator

class Settings(BaseSettings):
    model_config = ConfigDict(env_file=".env")

    ENV: str = "development"

    DATABASE_URL: str
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    REFRESH_TOKEN_BYTES: int = 64
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    @field_validator('REFRESH_TOKEN_BYTES')
    @classmethod
    def validate_token_bytes(cls, value):
        # Refuse to start with a weak refresh token entropy setting
        if value < 32:
            raise ValueError('REFRESH_TOKEN_BYTES must be at least 32 (256 bits)')
        return value

    @field_validator('ACCESS_TOKEN_EXPIRE_MINUTES', 'REFRESH_TOKEN_EXPIRE_DAYS')
    @classmethod
    def validate_positive(cls, value):
        if value <= 0:
            raise ValueError('Token lifetimes must be positive')
        return value


settings = Settings()
