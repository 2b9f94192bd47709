# backend/homeskillet/config.py
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

_DEV_JWT_SECRET = "dev-change-me"
_DEV_RESET_PEPPER = "dev-pepper-change-me"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_name: str = "Home Skillet API"
    app_version: str = "1.0.0"
    api_prefix: str = "/api/v1"
    database_url: str = "sqlite:///./homeskillet.db"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- JWT ----
    jwt_secret: str = _DEV_JWT_SECRET
    jwt_exp_minutes: int = 60 * 24 * 7  # 7 days

    # ---- Password reset ----
    password_reset_exp_minutes: int = 60
    reset_token_pepper: str = _DEV_RESET_PEPPER

    # ---- Uploads ----
    max_document_bytes: int = 50 * 1024 * 1024
    max_photo_bytes: int = 25 * 1024 * 1024
    max_photos_per_upload: int = 10

    # ---- Object storage (S3 compatible) ----
    storage_endpoint_url: str | None = None
    storage_region: str = "us-east-1"
    storage_access_key_id: str | None = None
    storage_secret_access_key: str | None = None
    storage_public_base_url: str | None = None
    documents_bucket: str = "documents"
    insurance_photos_bucket: str = "insurance-photos"
    signed_url_expiry_seconds: int = 3600

    # ---- Pagination ----
    default_page_limit: int = 20
    max_page_limit: int = 100

    @property
    def is_prod(self) -> bool:
        return (self.app_env or "local").strip().lower() in ("prod", "production")

    def model_post_init(self, __context) -> None:
        if self.is_prod:
            if self.jwt_secret == _DEV_JWT_SECRET:
                raise ValueError("SECURITY: jwt_secret must be set in prod")
            if self.reset_token_pepper == _DEV_RESET_PEPPER:
                raise ValueError("SECURITY: reset_token_pepper must be set in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
