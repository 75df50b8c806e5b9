"""
Application configuration from environment variables (and an optional .env).
"""
import warnings
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

WEAK_SECRET_KEYS = {
    "your-secret-key-change-in-production",
    "change-me-in-production",
    "secret",
    "changeme",
}
WEAK_DB_PASSWORDS = {"vendorbid", "postgres", "password", "changeme", ""}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Vendor Bidding Platform"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    SECRET_KEY: str = "your-secret-key-change-in-production"

    # Database; DATABASE_URL wins over the POSTGRES_* parts
    POSTGRES_USER: str = "vendorbid"
    POSTGRES_PASSWORD: str = "vendorbid"
    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: str = "5432"
    POSTGRES_DB: str = "vendorbid"
    DATABASE_URL: Optional[str] = Field(None, validate_default=True)

    # Auth
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    BCRYPT_ROUNDS: int = Field(12, ge=4, le=31)
    ALLOW_PUBLIC_REGISTRATION: bool = True
    ADMIN_BOOTSTRAP_EMAIL: Optional[str] = None
    ADMIN_BOOTSTRAP_PASSWORD: Optional[str] = None

    # Bid photos
    UPLOAD_DIR: str = "/code/uploads"
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # per photo
    MAX_BID_PHOTOS: int = 5
    ALLOWED_PHOTO_EXTENSIONS: List[str] = [".jpg", ".jpeg", ".png", ".gif", ".webp"]

    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Requirement listing
    DEFAULT_PAGE_SIZE: int = Field(10, ge=1)
    MAX_PAGE_SIZE: int = Field(100, ge=1)

    # Analytics
    LOW_MARGIN_THRESHOLD: float = 15.0
    TOP_PRODUCTS_LIMIT: int = Field(5, ge=1)

    # Demo accounts with known passwords; DEBUG only
    SEED_DEMO: bool = False

    @field_validator('DATABASE_URL', mode='before')
    @classmethod
    def assemble_db_url(cls, v: Optional[str], info) -> str:
        if isinstance(v, str) and v:
            return v
        data = info.data
        return (
            f"postgresql://{data.get('POSTGRES_USER')}:{data.get('POSTGRES_PASSWORD')}"
            f"@{data.get('POSTGRES_HOST')}:{data.get('POSTGRES_PORT')}/{data.get('POSTGRES_DB')}"
        )

    @field_validator('ALLOWED_PHOTO_EXTENSIONS')
    @classmethod
    def normalise_extensions(cls, v: List[str]) -> List[str]:
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]

    @model_validator(mode='after')
    def check_production_safety(self) -> "Settings":
        """
        Refuse to start outside DEBUG with settings that are only fit for
        a developer machine; under DEBUG the same findings are warnings.
        """
        problems = []
        if self.SECRET_KEY in WEAK_SECRET_KEYS or len(self.SECRET_KEY) < 32:
            problems.append("SECRET_KEY is weak or default. Generate one with: openssl rand -hex 32")
        if self.SEED_DEMO:
            problems.append("SEED_DEMO=true creates accounts with predictable passwords")
        uses_default_password = (
            self.DATABASE_URL.startswith("postgresql")
            and self.POSTGRES_PASSWORD in WEAK_DB_PASSWORDS
            and f":{self.POSTGRES_PASSWORD}@" in self.DATABASE_URL
        )
        if uses_default_password:
            problems.append("POSTGRES_PASSWORD is set to a default value")
        if self.DEFAULT_PAGE_SIZE > self.MAX_PAGE_SIZE:
            problems.append("DEFAULT_PAGE_SIZE exceeds MAX_PAGE_SIZE")

        if problems and not self.DEBUG:
            raise ValueError("Unsafe configuration: " + "; ".join(problems))
        for problem in problems:
            warnings.warn(problem, UserWarning, stacklevel=2)
        return self


settings = Settings()
