"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"
    VERSION: str = "0.01.00"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+pysqlite:///./approvals.db"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Object storage (S3 or S3-compatible, e.g. OSS/GCS XML API)
    S3_BUCKET: str = "approval-attachments"
    S3_REGION: str = ""
    S3_ENDPOINT_URL: str = ""
    S3_URL_STYLE: str = "virtual"  # path | virtual
    S3_PUBLIC_BASE_URL: str = ""
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    ATTACHMENT_KEY_PREFIX: str = "approvals/uploads"
    PRESIGNED_UPLOAD_EXPIRY_SECONDS: int = 600

    # Attachment upload saga
    ATTACHMENT_UPLOAD_TIMEOUT_SECONDS: float = 30.0
    ATTACHMENT_MAX_FILE_SIZE_BYTES: int = 20 * 1024 * 1024
    IMAGE_MAX_BYTES: int = 1024 * 1024
    IMAGE_MAX_DIMENSION: int = 1920

    # Table attachments (comma-separated headers that must appear in the header row)
    TABLE_REQUIRED_HEADERS: str = "Project Name,Requested Amount,Applicant"
    TABLE_HEADER_SCAN_ROWS: int = 5

    # Approval workflow
    APPROVAL_CONTENT_MAX_LENGTH: int = 300
    APPROVAL_DELETE_REQUIRES_DRAFT: bool = True
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def table_required_headers_list(self) -> list[str]:
        """Parse TABLE_REQUIRED_HEADERS into a list."""
        return [h.strip() for h in self.TABLE_REQUIRED_HEADERS.split(",") if h.strip()]


settings = Settings()
