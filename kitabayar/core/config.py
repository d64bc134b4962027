from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    DATABASE_URL: str
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # Connection pool (ignored for sqlite)
    DB_POOL_SIZE: int = 5
    DB_POOL_TIMEOUT: int = 30

    # Auth (tokens are issued by /api/auth/login)
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 720

    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Billing
    DUE_SOON_DAYS: int = 7
    RECEIPT_PREFIX: str = "KBR"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
