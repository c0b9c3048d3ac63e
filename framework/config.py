from typing import Optional
from urllib.parse import quote_plus
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # --- Basic configuration ---
    APP_NAME: str = "Bank Gateway"
    APP_DESCRIPTION: str = "Mobile-banking gateway: partner bank login, card listing and OAuth token storage"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = "development"  # development, production, testing
    DEBUG: bool = True

    # --- Database (MySQL/SQLModel) ---
    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_USER: str = "root"
    DB_PASSWORD: str = "root"
    DB_NAME: str = "bank_gateway"
    DB_URL_OVERRIDE: Optional[str] = None  # e.g. sqlite+aiosqlite:///./gateway.db for local runs

    @property
    def DATABASE_URL(self) -> str:
        if self.DB_URL_OVERRIDE:
            return self.DB_URL_OVERRIDE
        # Build async MySQL connection URL
        safe_password = quote_plus(self.DB_PASSWORD)
        return f"mysql+aiomysql://{self.DB_USER}:{safe_password}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # --- Token cache (Redis) ---
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    TOKEN_CACHE_PREFIX: str = "bank:token"
    TOKEN_CACHE_DEFAULT_TTL: int = 300  # seconds, used when the bank omits expires_in

    # --- Partner bank ---
    AUTH_ADDRESS: str = "https://partner-bank.example"
    APP_KEY: str = ""
    APP_SECRET: str = ""
    BANK_ID: str = "69"
    ACCEPTOR_CODE: str = "6901000000"
    CLIENT_ADDRESS: str = "127.0.0.1"
    CARD_CHANNEL: str = "WEB"
    CARD_PAGE_LENGTH: int = 10
    HTTP_TIMEOUT_SECONDS: float = 30.0

    @property
    def BANK_ID_VALUE(self) -> int:
        # Non-numeric values fall back to the partner's own bank id
        try:
            return int(self.BANK_ID)
        except (TypeError, ValueError):
            return 69

    # --- RSA keys (PEM) ---
    PUBLIC_KEY_PATH: Optional[str] = None

    # --- Logging ---
    LOG_DIR: str = "logs"

    # --- API route prefixes (optional, overridable in private projects) ---
    API_V1_BANKING_PREFIX: str = "/api/v1/bank"

    # --- Pydantic ---
    # Load env from project root .env; priority: env vars > .env > defaults
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )


# Singleton settings instance
settings = Settings()
