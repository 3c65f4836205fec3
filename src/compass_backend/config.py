from __future__ import annotations

from typing import ClassVar, final

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [x.strip() for x in value.split(",") if x.strip()]


@final
class Settings(BaseSettings):
    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )
    app_name: str = "College Compass API"
    api_prefix: str = "/api/v1"

    # Environment (ENVIRONMENT): development | production
    environment: str = "development"

    database_url: str = "sqlite:///./dev.db"
    log_level: str = "INFO"

    # Primary env: CORS_ALLOW_ORIGINS; also accept FRONTEND_URL as alias.
    cors_allow_origins: str = Field(
        default="*",
        validation_alias=AliasChoices("CORS_ALLOW_ORIGINS", "FRONTEND_URL"),
    )

    # Used to build retrieval URLs for blobs kept on local disk.
    public_base_url: str = "http://localhost:5000"

    # Uploads
    upload_max_size_bytes: int = 100 * 1024 * 1024
    duplicate_window_seconds: int = 5 * 60
    local_storage_dir: str = ".data/uploads"

    # Documents backend (S3-compatible cloud drive)
    drive_endpoint_url: str = ""
    drive_region: str = ""
    drive_bucket: str = ""
    drive_access_key_id: str = ""
    drive_secret_access_key: str = ""
    drive_force_path_style: bool = False
    # When set, retrieval URLs are {drive_public_base_url}/{key}; otherwise presigned.
    drive_public_base_url: str = ""
    drive_link_expires_seconds: int = 7 * 24 * 60 * 60

    # Images backend
    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    cloudinary_folder: str = "lms-images"

    # Bearer tokens
    token_ttl_seconds: int = 7 * 24 * 60 * 60

    # Validate production settings early to fail fast on unsafe defaults.
    @model_validator(mode="after")
    def _validate_production_settings(self) -> "Settings":  # pyright: ignore[reportUnusedFunction]
        if self.environment.strip().lower() != "production":
            return self

        errors: list[str] = []

        cors_v = self.cors_allow_origins.strip()
        if not cors_v or cors_v == "*":
            errors.append("CORS_ALLOW_ORIGINS must be explicit (not '*') in production")

        # If any backend setting is provided, require the full set to avoid silently
        # falling back to local storage.
        drive_fields = {
            "DRIVE_BUCKET": self.drive_bucket.strip(),
            "DRIVE_ENDPOINT_URL": self.drive_endpoint_url.strip(),
            "DRIVE_ACCESS_KEY_ID": self.drive_access_key_id.strip(),
            "DRIVE_SECRET_ACCESS_KEY": self.drive_secret_access_key.strip(),
        }
        if any(drive_fields.values()) and not all(drive_fields.values()):
            missing = ",".join([k for k, v in drive_fields.items() if not v])
            errors.append(f"drive config incomplete in production; missing: {missing}")

        cloudinary_fields = {
            "CLOUDINARY_CLOUD_NAME": self.cloudinary_cloud_name.strip(),
            "CLOUDINARY_API_KEY": self.cloudinary_api_key.strip(),
            "CLOUDINARY_API_SECRET": self.cloudinary_api_secret.strip(),
        }
        if any(cloudinary_fields.values()) and not all(cloudinary_fields.values()):
            missing = ",".join([k for k, v in cloudinary_fields.items() if not v])
            errors.append(f"cloudinary config incomplete in production; missing: {missing}")

        if errors:
            raise ValueError("Invalid production settings: " + "; ".join(errors))
        return self

    def cors_origins_list(self) -> list[str]:
        v = self.cors_allow_origins.strip()
        if not v:
            return []
        if v == "*":
            return ["*"]
        return _split_csv(v)

    def drive_configured(self) -> bool:
        return bool(
            self.drive_bucket.strip()
            and self.drive_endpoint_url.strip()
            and self.drive_access_key_id.strip()
            and self.drive_secret_access_key.strip()
        )

    def cloudinary_configured(self) -> bool:
        return bool(
            self.cloudinary_cloud_name.strip()
            and self.cloudinary_api_key.strip()
            and self.cloudinary_api_secret.strip()
        )

    def security_warnings(self) -> list[str]:
        warnings: list[str] = []
        if self.cors_allow_origins.strip() == "*":
            warnings.append("CORS_ALLOW_ORIGINS='*' is permissive")
        if not self.drive_configured():
            warnings.append("drive backend not configured; documents go to local storage")
        if not self.cloudinary_configured():
            warnings.append("cloudinary not configured; images go to local storage")
        return warnings


settings = Settings()
