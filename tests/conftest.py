# tests/conftest.py
import boto3
import pytest
from unittest.mock import MagicMock
from moto import mock_aws

from filemanager.config import Settings, get_settings
from filemanager.disk import LocalDirectoryProvider, LocalFileProvider
from filemanager.s3 import S3BucketProvider, S3ObjectProvider

BUCKET = "test-filemanager-bucket"


@pytest.fixture
def mock_settings():
    """
    Provides a mock of the application settings for testing.
    This avoids the need for environment variables during tests.
    """
    settings = MagicMock(spec=Settings)
    settings.STORAGE_PROVIDER = "disk"
    settings.LOG_LEVEL = "INFO"
    settings.LOG_FILE = None
    settings.DISK_ROOT_DIR = "/tmp"
    settings.S3_BUCKET = BUCKET
    settings.AWS_REGION = "us-east-1"
    settings.S3_ENDPOINT_URL = None
    settings.AWS_ACCESS_KEY_ID = None
    settings.AWS_SECRET_ACCESS_KEY = None
    settings.AWS_SESSION_TOKEN = None
    settings.S3_CONTENT_TYPE = "text/plain"
    settings.S3_MAX_ATTEMPTS = 3
    settings.S3_CONNECT_TIMEOUT = 10
    settings.S3_READ_TIMEOUT = 60
    settings.DROPBOX_APP_KEY = "test_key"
    settings.DROPBOX_APP_SECRET = "test_secret"
    settings.DROPBOX_REFRESH_TOKEN = "test_token"
    settings.DROPBOX_ROOT_DIR = ""
    settings.DROPBOX_UPLOAD_CHUNK_SIZE = 1024
    settings.GDRIVE_CREDENTIALS_JSON = '{"client_id": "id", "client_secret": "secret"}'
    settings.GDRIVE_TOKEN_JSON = '{"refresh_token": "token"}'
    settings.GDRIVE_ROOT_FOLDER_ID = "root"
    return settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """get_settings() is cached; every test starts without a cached instance."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials so boto3 never picks up a real AWS profile."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def s3_client(aws_credentials):
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket=BUCKET)
        yield client


@pytest.fixture
def s3_provider(s3_client):
    bucket_provider = S3BucketProvider(bucket=BUCKET, region="us-east-1")
    return S3ObjectProvider(bucket_provider)


@pytest.fixture
def disk_provider(tmp_path):
    return LocalFileProvider(LocalDirectoryProvider(str(tmp_path)))
