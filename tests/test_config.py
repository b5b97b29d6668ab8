# tests/test_config.py
import pytest
from pydantic import ValidationError

from filemanager.config import Settings, get_settings


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keeps real environment variables from leaking into the settings under test."""
    for key in (
        "STORAGE_PROVIDER",
        "DISK_ROOT_DIR",
        "S3_BUCKET",
        "DROPBOX_APP_KEY",
        "DROPBOX_APP_SECRET",
        "DROPBOX_REFRESH_TOKEN",
        "GDRIVE_CREDENTIALS_JSON",
        "GDRIVE_TOKEN_JSON",
    ):
        monkeypatch.delenv(key, raising=False)


def test_settings_defaults():
    settings = Settings(_env_file=None)

    assert settings.STORAGE_PROVIDER == "disk"
    assert settings.LOG_LEVEL == "INFO"
    assert settings.AWS_REGION == "us-east-1"
    assert settings.S3_CONTENT_TYPE == "text/plain"
    assert settings.DROPBOX_UPLOAD_CHUNK_SIZE == 128 * 1024 * 1024
    assert settings.GDRIVE_ROOT_FOLDER_ID == "root"


def test_settings_s3_valid_config_succeeds():
    try:
        settings = Settings(_env_file=None, STORAGE_PROVIDER="s3", S3_BUCKET="bucket")
    except ValidationError as e:
        pytest.fail(f"Valid S3 configuration failed validation: {e}")
    assert settings.S3_BUCKET == "bucket"


def test_settings_s3_missing_bucket_raises_error():
    with pytest.raises(ValueError, match="S3_BUCKET is required"):
        Settings(_env_file=None, STORAGE_PROVIDER="s3")


def test_settings_disk_missing_root_raises_error():
    with pytest.raises(ValueError, match="DISK_ROOT_DIR is required"):
        Settings(_env_file=None, STORAGE_PROVIDER="disk")


@pytest.mark.parametrize(
    "missing", ["DROPBOX_APP_KEY", "DROPBOX_APP_SECRET", "DROPBOX_REFRESH_TOKEN"]
)
def test_settings_dropbox_requires_credentials(missing):
    data = {
        "STORAGE_PROVIDER": "dropbox",
        "DROPBOX_APP_KEY": "key",
        "DROPBOX_APP_SECRET": "secret",
        "DROPBOX_REFRESH_TOKEN": "token",
    }
    data[missing] = "   "

    with pytest.raises(ValueError, match=f"{missing} is required"):
        Settings(_env_file=None, **data)


def test_settings_gdrive_requires_token():
    with pytest.raises(ValueError, match="GDRIVE_TOKEN_JSON is required"):
        Settings(_env_file=None, STORAGE_PROVIDER="gdrive", GDRIVE_CREDENTIALS_JSON="{}")


def test_settings_invalid_provider_raises_error():
    with pytest.raises(ValueError, match="Invalid STORAGE_PROVIDER"):
        Settings(_env_file=None, STORAGE_PROVIDER="ftp")


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("STORAGE_PROVIDER", "s3")
    monkeypatch.setenv("S3_BUCKET", "env-bucket")
    monkeypatch.setenv("S3_MAX_ATTEMPTS", "7")

    settings = Settings(_env_file=None)

    assert settings.STORAGE_PROVIDER == "s3"
    assert settings.S3_BUCKET == "env-bucket"
    assert settings.S3_MAX_ATTEMPTS == 7


def test_get_settings_is_cached(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)  # no .env file here
    assert get_settings() is get_settings()


@pytest.mark.parametrize("chunk_size", ["0", "-1"])
def test_settings_rejects_non_positive_dropbox_chunk_size(monkeypatch, chunk_size):
    monkeypatch.setenv("DROPBOX_UPLOAD_CHUNK_SIZE", chunk_size)

    with pytest.raises(ValidationError, match="DROPBOX_UPLOAD_CHUNK_SIZE"):
        Settings(_env_file=None)
