from pydantic_settings import BaseSettings
from typing import List, Any
import json


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "IFQE Portal"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    API_VERSION: str = "v1"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_ECHO: bool = False

    # ==========================================
    # Auth
    # ==========================================
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # ==========================================
    # AWS S3 / MinIO
    # ==========================================
    USE_MINIO: bool = False
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_REGION: str = "ap-south-1"
    S3_BUCKET_NAME: str = ""  # Primary bucket name
    S3_BUCKET: str = ""  # Alias for S3_BUCKET_NAME
    MINIO_ENDPOINT: str = "localhost:9000"
    MINIO_SECURE: bool = False

    @property
    def effective_bucket_name(self) -> str:
        """Get the effective S3 bucket name (supports both S3_BUCKET and S3_BUCKET_NAME)"""
        return self.S3_BUCKET or self.S3_BUCKET_NAME or "ifqe-portal"

    # ==========================================
    # Submission Archives
    # ==========================================
    ARCHIVE_KEY_PREFIX: str = "archives"
    ARCHIVE_COMPRESSION_LEVEL: int = 9
    ARCHIVE_PART_SIZE_MB: int = 8  # S3 rejects non-final parts under 5MB
    ARCHIVE_CHUNK_SIZE_KB: int = 256
    ARCHIVE_QUEUE_DEPTH: int = 16
    ARCHIVE_DOWNLOAD_URL_EXPIRY: int = 300  # seconds

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/ifqe.log"

    # ==========================================
    # HTTP
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173"
    MAX_REQUEST_SIZE: int = 1048576  # 1MB, uploads go straight to S3

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    def is_dev_mode(self) -> bool:
        """Check if running in development mode"""
        return self.ENVIRONMENT == "development" or self.DEBUG


# Create settings instance
settings = Settings()
