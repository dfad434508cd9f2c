from pydantic_settings import BaseSettings, NoDecode
from pydantic import field_validator
from typing import List, Union
from typing_extensions import Annotated
import json

class Settings(BaseSettings):
    PROJECT_NAME: str = "Cleaning Inspection API"
    API_V1_STR: str = "/api"

    # Database - SQLite for a single school server, PostgreSQL also supported
    DATABASE_URL: str = "sqlite:///./cleaning.db"

    # CORS Configuration
    # BACKEND_CORS_ORIGINS=https://cleaning.example.edu (single URL)
    # OR: BACKEND_CORS_ORIGINS=https://url1.com,https://url2.com (comma-separated)
    # OR: BACKEND_CORS_ORIGINS=["https://url1.com"] (JSON array)
    # NoDecode prevents pydantic-settings from JSON-parsing before our validator runs
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse CORS origins from various formats: JSON array, comma-separated, or single URL."""
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            if v.startswith("["):
                try:
                    parsed = json.loads(v)
                    if isinstance(parsed, list):
                        return parsed
                except json.JSONDecodeError:
                    pass
            if "," in v:
                return [url.strip() for url in v.split(",") if url.strip()]
            if v.strip():
                return [v.strip()]
        return []

    @property
    def is_production(self) -> bool:
        return not self.DATABASE_URL.startswith("sqlite") and "localhost" not in self.DATABASE_URL

    # Public site, used for the QR link printed on notification slips
    FRONTEND_URL: str = "http://localhost:3000"

    # JWT Authentication
    JWT_SECRET_KEY: str = "cleaning-jwt-secret-change-in-production-min-32-chars"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Google OAuth (administrators sign in with their school account)
    GOOGLE_CLIENT_ID: str = ""

    # Object storage for photo evidence
    STORAGE_BACKEND: str = "minio"         # "minio" or "r2"
    STORAGE_BUCKET: str = "bjjh-cleaning"

    MINIO_ENDPOINT: str = ""
    MINIO_PORT: int = 9000
    MINIO_ACCESS_KEY: str = ""
    MINIO_SECRET_KEY: str = ""
    MINIO_USE_SSL: bool = False
    MINIO_REGION: str = "us-east-1"        # Set explicitly so presigning never needs a network lookup

    R2_ACCOUNT_ID: str = ""
    R2_ACCESS_KEY_ID: str = ""
    R2_SECRET_ACCESS_KEY: str = ""

    # Evidence URLs
    EVIDENCE_UPLOAD_URL_COUNT: int = 10
    EVIDENCE_UPLOAD_EXPIRE_SECONDS: int = 60 * 60       # 1 hour
    EVIDENCE_VIEW_EXPIRE_SECONDS: int = 24 * 60 * 60    # 24 hours

    class Config:
        case_sensitive = True
        env_file = ".env"

settings = Settings()
