"""Application configuration"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # API
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Helpdesk API"
    VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Sessions
    # WHY: The secret signs the session token; the session row itself is what
    # keeps the token alive, so the TTL only bounds the worst case.
    SESSION_SECRET: str
    SESSION_ALGORITHM: str = "HS256"
    SESSION_TTL_MINUTES: int = 480  # 8 hours

    # Password hashing
    # WHY: Tests lower the rounds to keep bcrypt fast; production keeps 12.
    BCRYPT_ROUNDS: int = 12

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    LOGIN_RATE_LIMIT: int = 10
    LOGIN_RATE_WINDOW_SECONDS: int = 900  # 15 minutes
    SUBMIT_RATE_LIMIT: int = 20
    SUBMIT_RATE_WINDOW_SECONDS: int = 60

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @property
    def async_database_url(self) -> str:
        """Get async database URL"""
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

    @property
    def is_sqlite(self) -> bool:
        """
        Check whether the configured database is SQLite.

        WHY: SQLite engines reject connection pool sizing arguments.
        """
        return self.async_database_url.startswith("sqlite")


settings = Settings()
