"""Application configuration, read from the environment and ``.env``."""
import sys
from typing import Optional
from pydantic_settings import BaseSettings

DEV_SECRET_KEY = "dev-secret-key-change-in-production"


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "postgresql://risk_user:risk_pass@db:5432/risk_db"

    # Bearer tokens are issued by the identity service; these verify them
    SECRET_KEY: str = DEV_SECRET_KEY
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440
    JWT_ISSUER: Optional[str] = None
    JWT_AUDIENCE: Optional[str] = None

    ENVIRONMENT: str = "development"  # "development" or "production"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "http://localhost:5173"  # comma-separated

    # Risk register
    RISK_CODE_PREFIX: str = "R"  # codes look like R-001
    UPCOMING_REVIEW_DAYS: int = 30  # default window for /risks/upcoming-reviews

    class Config:
        env_file = ".env"

    def get_cors_origins(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    def validate_settings(self) -> None:
        """Refuse to start with settings that would corrupt data or leak access.

        Raises SystemExit on a fatal misconfiguration.
        """
        problems = []
        if not self.RISK_CODE_PREFIX.isalnum():
            problems.append("RISK_CODE_PREFIX must be alphanumeric (e.g. R, RSK).")
        if self.UPCOMING_REVIEW_DAYS < 0:
            problems.append("UPCOMING_REVIEW_DAYS cannot be negative.")
        if self.ENVIRONMENT == "production":
            if self.SECRET_KEY == DEV_SECRET_KEY:
                problems.append("SECRET_KEY must be changed in production.")
            if "*" in self.get_cors_origins():
                problems.append("CORS_ORIGINS cannot be '*' in production.")

        if problems:
            for problem in problems:
                print(f"FATAL: {problem}", file=sys.stderr)
            sys.exit(1)


settings = Settings()
# Validate on startup
settings.validate_settings()
