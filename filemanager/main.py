# main.py
import argparse
import io
import logging
import shutil
import sys
from typing import Optional

from .config import get_settings
from .dbox import DropboxFileProvider, DropboxFolderProvider
from .disk import LocalDirectoryProvider, LocalFileProvider
from .exceptions import OperationNotSupportedError
from .gdrive import GoogleDriveFileProvider, GoogleDriveFolderProvider
from .s3 import S3BucketProvider, S3ObjectProvider
from .storage.base import FileProvider


def setup_logging(settings=None):
    """Configures logging to console and, optionally, a file."""
    settings = settings or get_settings()
    log_level_name = settings.LOG_LEVEL.upper()

    # Get the root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level_name)

    # Clear any existing handlers to prevent duplicate logs on re-runs or implicit configs
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Log to stderr so that `cat` output on stdout stays clean
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    if settings.LOG_FILE:
        try:
            file_handler = logging.FileHandler(settings.LOG_FILE)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except IOError as e:
            # Log to console if file logging fails (e.g., permissions)
            root_logger.error(
                f"Failed to set up file logging to {settings.LOG_FILE}: {e}"
            )

    # Reducing "noise" from third-party libraries
    for name in ("boto3", "botocore", "urllib3", "dropbox", "googleapiclient"):
        logging.getLogger(name).setLevel(logging.WARNING)


def _init_disk_provider(settings) -> LocalFileProvider:
    root = settings.DISK_ROOT_DIR or "."
    return LocalFileProvider(LocalDirectoryProvider(root))


def _init_s3_provider(settings):
    bucket_provider = S3BucketProvider(
        bucket=settings.S3_BUCKET,
        region=settings.AWS_REGION,
        endpoint_url=settings.S3_ENDPOINT_URL,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        aws_session_token=settings.AWS_SESSION_TOKEN,
        max_attempts=settings.S3_MAX_ATTEMPTS,
        connect_timeout=settings.S3_CONNECT_TIMEOUT,
        read_timeout=settings.S3_READ_TIMEOUT,
    )
    return S3ObjectProvider(bucket_provider, content_type=settings.S3_CONTENT_TYPE)


def _init_dropbox_provider(settings):
    folder_provider = DropboxFolderProvider(
        app_key=settings.DROPBOX_APP_KEY,
        app_secret=settings.DROPBOX_APP_SECRET,
        refresh_token=settings.DROPBOX_REFRESH_TOKEN,
        root=settings.DROPBOX_ROOT_DIR,
    )
    return DropboxFileProvider(
        folder_provider, chunk_size=settings.DROPBOX_UPLOAD_CHUNK_SIZE
    )


def _init_gdrive_provider(settings):
    folder_provider = GoogleDriveFolderProvider(
        credentials_json=settings.GDRIVE_CREDENTIALS_JSON,
        token_json=settings.GDRIVE_TOKEN_JSON,
        root=settings.GDRIVE_ROOT_FOLDER_ID,
    )
    return GoogleDriveFileProvider(folder_provider)


PROVIDER_FACTORIES = {
    "disk": _init_disk_provider,
    "s3": _init_s3_provider,
    "dropbox": _init_dropbox_provider,
    "gdrive": _init_gdrive_provider,
}


def initialize_file_provider(settings) -> Optional[FileProvider]:
    """
    Initializes and returns the file provider selected by STORAGE_PROVIDER.
    Returns None when the provider is unknown or cannot be initialized.
    """
    factory = PROVIDER_FACTORIES.get(settings.STORAGE_PROVIDER)
    if factory is None:
        logging.critical(f"Unknown STORAGE_PROVIDER: {settings.STORAGE_PROVIDER}")
        return None

    logging.info(f"Using {settings.STORAGE_PROVIDER} storage provider.")
    try:
        return factory(settings)
    except Exception as e:
        logging.error(
            f"Failed to initialize {settings.STORAGE_PROVIDER} storage provider. Error: {e}",
            exc_info=True,
        )
        return None


def _cmd_create(provider: FileProvider, args) -> int:
    file = provider.create_file(args.path)
    print(file.full_path)
    return 0


def _cmd_delete(provider: FileProvider, args) -> int:
    deleted = provider.delete_file(args.path)
    print("deleted" if deleted else "not deleted")
    return 0 if deleted else 1


def _cmd_exists(provider: FileProvider, args) -> int:
    exists = provider.file_exists(args.path)
    print("true" if exists else "false")
    return 0 if exists else 1


def _cmd_cat(provider: FileProvider, args) -> int:
    stream = provider.open_file(args.path)
    try:
        shutil.copyfileobj(stream, sys.stdout.buffer)
        sys.stdout.buffer.flush()
    finally:
        stream.close()
    return 0


def _cmd_truncate(provider: FileProvider, args) -> int:
    provider.truncate_file(args.path)
    return 0


def _cmd_write(provider: FileProvider, args) -> int:
    if args.source == "-":
        # Some backends need a seekable stream to size the upload.
        provider.write_stream_to_file(args.path, io.BytesIO(sys.stdin.buffer.read()))
    else:
        with open(args.source, "rb") as f:
            provider.write_stream_to_file(args.path, f)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="filemanager",
        description="Work with files on the configured storage provider.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    commands = [
        ("create", _cmd_create, "Create an empty file."),
        ("delete", _cmd_delete, "Delete a file."),
        ("exists", _cmd_exists, "Check whether a file exists."),
        ("cat", _cmd_cat, "Write the content of a file to stdout."),
        ("truncate", _cmd_truncate, "Set the length of a file to zero."),
        ("write", _cmd_write, "Replace the content of a file."),
    ]
    for name, handler, help_text in commands:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("path", help="Logical path of the file.")
        if name == "write":
            sub.add_argument(
                "source",
                nargs="?",
                default="-",
                help="Local file to upload ('-' or omitted reads stdin).",
            )
        sub.set_defaults(handler=handler)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_settings()
    setup_logging(settings)

    provider = initialize_file_provider(settings)
    if provider is None:
        logging.critical(
            f"Could not establish a connection to {settings.STORAGE_PROVIDER}."
        )
        return 1

    try:
        return args.handler(provider, args)
    except OperationNotSupportedError as e:
        logging.error(str(e))
        return 2
    except Exception as e:
        logging.critical(
            f"'{args.command}' failed for '{args.path}': {e}", exc_info=True
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
