from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from typing import Annotated, List, Literal

class Settings(BaseSettings):
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # Blob storage for uploaded PDFs
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_MB: int = 20

    # Entity store: "memory" keeps everything in a dict, "sql" goes through SQLAlchemy
    STORAGE_BACKEND: Literal["memory", "sql"] = "memory"
    DATABASE_URL: str = "sqlite://"

    DEFAULT_CATEGORIES: Annotated[List[str], NoDecode] = ["Academic", "Business", "Personal"]

    CORS_ORIGINS: Annotated[List[str], NoDecode] = [
        "http://localhost:3000",
        "http://localhost:5000",
        "http://localhost:5173",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("DEFAULT_CATEGORIES", "CORS_ORIGINS", mode="before")
    @classmethod
    def _split_csv(cls, v):
        """Accept a comma-separated string from the environment as well as a list."""
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @property
    def max_upload_bytes(self) -> int:
        return self.MAX_UPLOAD_MB * 1024 * 1024

settings = Settings()
