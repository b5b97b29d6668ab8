# dbox.py
import io
import logging
from typing import BinaryIO

import dropbox
from dropbox.exceptions import ApiError
from dropbox.files import (
    CommitInfo,
    FileMetadata as DropboxFileMetadata,
    FolderMetadata as DropboxFolderMetadata,
    WriteMode,
)

from .exceptions import DirectoryNotEmptyError, PermanentError
from .storage.base import DirectoryProvider, FileProvider
from .storage.dto import DirectoryDetail, FileDetail

DEFAULT_UPLOAD_CHUNK_SIZE = 128 * 1024 * 1024


def _is_not_found(error: ApiError) -> bool:
    """True when a Dropbox ApiError reports a missing path."""
    err = error.error
    if err is None:
        return False
    if hasattr(err, "is_path") and err.is_path():
        return err.get_path().is_not_found()
    if hasattr(err, "is_path_lookup") and err.is_path_lookup():
        return err.get_path_lookup().is_not_found()
    return False


class DropboxFolderProvider(DirectoryProvider):
    """
    Directory provider for Dropbox. Paths are resolved under the configured
    root folder; an empty root is the Dropbox root itself.
    """

    def __init__(self, app_key, app_secret, refresh_token, root: str = ""):
        super().__init__(root)
        try:
            self.dbx = dropbox.Dropbox(
                app_key=app_key,
                app_secret=app_secret,
                oauth2_refresh_token=refresh_token,
            )
            # Verify successful authentication by requesting current user info
            self.dbx.users_get_current_account()
            logging.info("Dropbox client initialized successfully.")
        except Exception as e:
            logging.error(
                f"Failed to initialize Dropbox client. Check your credentials. Error: {e}"
            )
            raise

    def resolve_path(self, path: str) -> str:
        root = self.path_provider.combine("/", self.root)
        normalized = self.path_provider.combine("/", path)
        if root != "/" and (normalized == root or normalized.startswith(root + "/")):
            # Already resolved, e.g. the full_path of a FileDetail.
            resolved = normalized
        else:
            resolved = self.path_provider.combine(root, normalized)
        # Dropbox addresses its root folder with an empty string.
        return "" if resolved == "/" else resolved

    def create_directory(self, path: str) -> DirectoryDetail:
        folder_path = self.resolve_path(path)
        try:
            logging.info(f"Creating Dropbox folder '{folder_path}'...")
            self.dbx.files_create_folder_v2(folder_path)
        except ApiError as e:
            logging.error(f"Failed to create folder '{folder_path}': {e}")
            raise
        return self.get_directory(folder_path)

    def directory_exists(self, path: str) -> bool:
        folder_path = self.resolve_path(path)
        if folder_path == "":
            return True
        try:
            metadata = self.dbx.files_get_metadata(folder_path)
            return isinstance(metadata, DropboxFolderMetadata)
        except ApiError as e:
            if _is_not_found(e):
                return False
            logging.error(f"Error accessing Dropbox folder '{folder_path}': {e}")
            raise

    def delete_directory(self, path: str, recursive: bool = False) -> bool:
        folder_path = self.resolve_path(path)
        if folder_path == "":
            raise PermanentError("Refusing to delete the Dropbox root folder.")
        if not self.directory_exists(path):
            logging.warning(f"Dropbox folder '{folder_path}' not found. Nothing to delete.")
            return False

        try:
            if not recursive:
                result = self.dbx.files_list_folder(folder_path)
                if result.entries:
                    raise DirectoryNotEmptyError(
                        f"Dropbox folder '{folder_path}' is not empty."
                    )
            logging.info(f"Deleting Dropbox folder '{folder_path}'...")
            self.dbx.files_delete_v2(folder_path)
            return True
        except ApiError as e:
            logging.error(f"Failed to delete folder '{folder_path}': {e}")
            raise


class DropboxFileProvider(FileProvider):
    """
    File provider for Dropbox, implementing the FileProvider interface.
    """

    def __init__(
        self,
        directory_provider: DropboxFolderProvider,
        chunk_size: int = DEFAULT_UPLOAD_CHUNK_SIZE,
    ):
        if chunk_size <= 0:
            raise ValueError(f"Upload chunk size must be positive, got {chunk_size}.")
        super().__init__(directory_provider)
        self.dbx = directory_provider.dbx
        self.chunk_size = chunk_size

    def resolve_path(self, path: str) -> str:
        return self.directory_provider.resolve_path(path)

    def create_file(self, path: str) -> FileDetail:
        file = self.get_file(path)
        remote_path = self.resolve_path(path)
        try:
            logging.info(f"Creating empty file {remote_path}...")
            self.dbx.files_upload(b"", remote_path, mode=WriteMode("overwrite"))
        except ApiError as e:
            logging.error(f"Failed to create file '{remote_path}': {e}")
            raise
        return file

    def delete_file(self, path: str) -> bool:
        remote_path = self.resolve_path(path)
        try:
            logging.info(f"Deleting {remote_path}...")
            self.dbx.files_delete_v2(remote_path)
            return True
        except ApiError as e:
            if _is_not_found(e):
                logging.warning(f"File '{remote_path}' not found. Nothing to delete.")
                return False
            logging.error(f"Failed to delete path '{remote_path}': {e}")
            raise

    def file_exists(self, path: str) -> bool:
        remote_path = self.resolve_path(path)
        try:
            metadata = self.dbx.files_get_metadata(remote_path)
            return isinstance(metadata, DropboxFileMetadata)
        except ApiError as e:
            if _is_not_found(e):
                return False
            logging.error(f"Failed to get metadata for '{remote_path}': {e}")
            raise

    def open_file(self, path: str) -> BinaryIO:
        remote_path = self.resolve_path(path)
        try:
            logging.info(f"Downloading {remote_path}...")
            _, response = self.dbx.files_download(remote_path)
        except ApiError as e:
            logging.error(f"Failed to download file '{remote_path}': {e}")
            raise
        try:
            return io.BytesIO(response.content)
        finally:
            response.close()

    def truncate_file(self, path: str):
        remote_path = self.resolve_path(path)
        if not self.file_exists(path):
            raise FileNotFoundError(f"File '{remote_path}' not found in Dropbox.")
        try:
            logging.info(f"Truncating {remote_path}...")
            self.dbx.files_upload(b"", remote_path, mode=WriteMode("overwrite"))
        except ApiError as e:
            logging.error(f"Failed to truncate file '{remote_path}': {e}")
            raise

    def write_stream_to_file(self, path: str, stream: BinaryIO):
        """Uploads a stream to Dropbox using chunked uploading for large content."""
        remote_path = self.resolve_path(path)
        chunk_size = self.chunk_size

        first_chunk = stream.read(chunk_size)
        if len(first_chunk) < chunk_size:
            # If the stream is smaller than chunk size, use a single upload
            try:
                logging.info(f"Uploading to {remote_path} (single upload)...")
                self.dbx.files_upload(
                    first_chunk, remote_path, mode=WriteMode("overwrite")
                )
            except ApiError as e:
                logging.error(f"Failed to upload file to '{remote_path}': {e}")
                raise
            return

        # Use chunked upload for larger streams
        try:
            logging.info(f"Starting chunked upload to {remote_path}...")
            upload_session_start_result = self.dbx.files_upload_session_start(
                first_chunk
            )
            cursor = dropbox.files.UploadSessionCursor(
                session_id=upload_session_start_result.session_id,
                offset=len(first_chunk),
            )
            commit_info = CommitInfo(path=remote_path, mode=WriteMode("overwrite"))

            chunk = stream.read(chunk_size)
            while True:
                next_chunk = stream.read(chunk_size)
                if not next_chunk:
                    # Last chunk
                    logging.info(f"Uploading final chunk for {remote_path}...")
                    self.dbx.files_upload_session_finish(chunk, cursor, commit_info)
                    break
                # Middle chunk
                logging.info(
                    f"Uploading chunk for {remote_path} (offset: {cursor.offset})..."
                )
                self.dbx.files_upload_session_append_v2(chunk, cursor)
                cursor.offset += len(chunk)
                chunk = next_chunk
            logging.info(f"Chunked upload completed for {remote_path}.")
        except ApiError as e:
            logging.error(
                f"Failed to upload file to '{remote_path}' using chunked upload: {e}"
            )
            raise
