from pathlib import Path
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from functools import lru_cache

SUPPORTED_PROVIDERS = ("disk", "s3", "dropbox", "gdrive")


class Settings(BaseSettings):
    """
    Centralized application configuration with type validation.
    Automatically reads variables from the environment and an optional .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- General Settings ---
    STORAGE_PROVIDER: str = "disk"  # "disk", "s3", "dropbox" or "gdrive"
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[Path] = None

    # --- Local Disk Settings (optional) ---
    DISK_ROOT_DIR: Optional[str] = None

    # --- Amazon S3 Settings (optional) ---
    S3_BUCKET: Optional[str] = None
    AWS_REGION: str = "us-east-1"
    S3_ENDPOINT_URL: Optional[str] = None  # LocalStack / MinIO override
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_SESSION_TOKEN: Optional[str] = None
    S3_CONTENT_TYPE: str = "text/plain"
    S3_MAX_ATTEMPTS: int = 3
    S3_CONNECT_TIMEOUT: int = 10
    S3_READ_TIMEOUT: int = 60

    # --- Dropbox Settings (optional) ---
    DROPBOX_APP_KEY: Optional[str] = None
    DROPBOX_APP_SECRET: Optional[str] = None
    DROPBOX_REFRESH_TOKEN: Optional[str] = None
    DROPBOX_ROOT_DIR: str = ""
    DROPBOX_UPLOAD_CHUNK_SIZE: int = Field(
        128 * 1024 * 1024, gt=0, validation_alias="DROPBOX_UPLOAD_CHUNK_SIZE"
    )  # 128 MB default

    # --- Google Drive Settings (optional) ---
    GDRIVE_CREDENTIALS_JSON: Optional[str] = None
    GDRIVE_TOKEN_JSON: Optional[str] = None
    GDRIVE_ROOT_FOLDER_ID: str = "root"

    @model_validator(mode="before")
    @classmethod
    def validate_storage_provider_settings(cls, values):
        if not isinstance(values, dict):
            return values

        provider = values.get("STORAGE_PROVIDER")
        if not provider:
            # Let BaseSettings fall back to the default provider.
            return values

        if provider == "disk":
            required_keys = ["DISK_ROOT_DIR"]
        elif provider == "s3":
            required_keys = ["S3_BUCKET"]
        elif provider == "dropbox":
            required_keys = [
                "DROPBOX_APP_KEY",
                "DROPBOX_APP_SECRET",
                "DROPBOX_REFRESH_TOKEN",
            ]
        elif provider == "gdrive":
            required_keys = ["GDRIVE_CREDENTIALS_JSON", "GDRIVE_TOKEN_JSON"]
        else:
            raise ValueError(
                f"Invalid STORAGE_PROVIDER. Must be one of: {', '.join(SUPPORTED_PROVIDERS)}."
            )

        for key in required_keys:
            if not values.get(key) or not str(values.get(key)).strip():
                raise ValueError(
                    f"{key} is required and cannot be empty when STORAGE_PROVIDER is '{provider}'"
                )

        return values


@lru_cache()
def get_settings() -> Settings:
    """
    Returns a cached instance of the application settings.
    The first call to this function will initialize the settings.
    """
    return Settings()
