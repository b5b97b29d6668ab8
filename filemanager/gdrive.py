# gdrive.py
import logging
import json
import io
from typing import BinaryIO, Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload, MediaIoBaseUpload

from .exceptions import DirectoryNotEmptyError, PermanentError
from .storage.base import DirectoryProvider, FileProvider
from .storage.dto import DirectoryDetail, FileDetail

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
DEFAULT_MIME_TYPE = "application/octet-stream"


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class GoogleDriveFolderProvider(DirectoryProvider):
    """
    Directory provider for Google Drive. Folder paths are resolved to folder
    IDs below the configured root folder and cached.
    """

    def __init__(self, credentials_json: str, token_json: str, root: str = "root"):
        super().__init__(root)
        try:
            token_info = json.loads(token_json)

            # The credentials_json can come from a file or environment variable.
            # It should contain the client_id and client_secret.
            credentials_data = json.loads(credentials_json)
            credentials_data = credentials_data.get("installed", credentials_data)

            creds = Credentials.from_authorized_user_info(info=token_info)

            if "client_id" in credentials_data and "client_secret" in credentials_data:
                creds.client_id = credentials_data["client_id"]
                creds.client_secret = credentials_data["client_secret"]
            else:
                logging.warning(
                    "client_id or client_secret not found in GDRIVE_CREDENTIALS_JSON. Using existing from token_json if available."
                )

            self.service = build("drive", "v3", credentials=creds)
            self.folder_ids_cache = {}
            logging.info("Google Drive client initialized successfully.")
        except Exception as e:
            logging.error(f"Failed to initialize Google Drive client. Error: {e}")
            raise

    def _get_folder_id_by_name(self, name: str, parent_id: str) -> Optional[str]:
        """
        Retrieves the ID of a folder by its name within a parent folder.
        """
        query = (
            f"name='{_quote(name)}' and mimeType='{FOLDER_MIME_TYPE}' and "
            f"'{parent_id}' in parents and trashed=false"
        )
        try:
            response = self.service.files().list(q=query, fields="files(id)").execute()
        except HttpError as e:
            logging.error(f"Failed to search for folder '{name}': {e}")
            raise
        files = response.get("files", [])
        return files[0]["id"] if files else None

    def resolve_folder_id(self, folder_path: str, create: bool = False) -> Optional[str]:
        """
        Walks a folder path from the root folder and returns the final folder's ID.
        Missing folders are created when `create` is set; otherwise None is returned.
        """
        folder_path = self.path_provider.normalize(folder_path).strip("/")
        if not folder_path:
            return self.root
        if folder_path in self.folder_ids_cache:
            return self.folder_ids_cache[folder_path]

        parts = folder_path.split("/")
        current_parent_id = self.root

        for i, part in enumerate(parts):
            current_path = "/".join(parts[: i + 1])
            if current_path in self.folder_ids_cache:
                current_parent_id = self.folder_ids_cache[current_path]
                continue

            folder_id = self._get_folder_id_by_name(part, current_parent_id)
            if not folder_id:
                if not create:
                    return None
                folder_metadata = {
                    "name": part,
                    "mimeType": FOLDER_MIME_TYPE,
                    "parents": [current_parent_id],
                }
                try:
                    folder = (
                        self.service.files()
                        .create(body=folder_metadata, fields="id")
                        .execute()
                    )
                    folder_id = folder.get("id")
                    logging.info(f"Created folder '{part}' with ID: {folder_id}")
                except HttpError as e:
                    logging.error(f"Failed to create folder '{part}': {e}")
                    raise PermanentError(
                        f"Could not create folder '{part}' in Google Drive."
                    ) from e

            self.folder_ids_cache[current_path] = folder_id
            current_parent_id = folder_id

        return current_parent_id

    def create_directory(self, path: str) -> DirectoryDetail:
        self.resolve_folder_id(path, create=True)
        return self.get_directory(path)

    def directory_exists(self, path: str) -> bool:
        return self.resolve_folder_id(path) is not None

    def delete_directory(self, path: str, recursive: bool = False) -> bool:
        folder_path = self.path_provider.normalize(path).strip("/")
        if not folder_path:
            raise PermanentError("Refusing to delete the Google Drive root folder.")

        folder_id = self.resolve_folder_id(folder_path)
        if folder_id is None:
            logging.warning(f"Folder '{folder_path}' not found. Nothing to delete.")
            return False

        try:
            if not recursive:
                response = (
                    self.service.files()
                    .list(
                        q=f"'{folder_id}' in parents and trashed=false",
                        fields="files(id)",
                        pageSize=1,
                    )
                    .execute()
                )
                if response.get("files"):
                    raise DirectoryNotEmptyError(f"Folder '{folder_path}' is not empty.")
            logging.info(f"Deleting folder '{folder_path}' (ID '{folder_id}')...")
            self.service.files().delete(fileId=folder_id).execute()
        except HttpError as e:
            logging.error(f"Failed to delete folder '{folder_path}': {e}")
            raise

        for cached_path in list(self.folder_ids_cache):
            if cached_path == folder_path or cached_path.startswith(folder_path + "/"):
                del self.folder_ids_cache[cached_path]
        return True


class GoogleDriveFileProvider(FileProvider):
    """
    File provider for Google Drive, implementing the FileProvider interface.
    """

    def __init__(self, directory_provider: GoogleDriveFolderProvider):
        super().__init__(directory_provider)
        self.service = directory_provider.service

    def resolve_path(self, path: str) -> str:
        return self.path_provider.normalize(path).strip("/")

    def _find_file_id_by_name(self, filename: str, folder_id: str) -> Optional[str]:
        """
        Finds a file's ID by its name in a specific folder.
        """
        query = (
            f"name='{_quote(filename)}' and '{folder_id}' in parents and "
            f"mimeType!='{FOLDER_MIME_TYPE}' and trashed=false"
        )
        try:
            response = (
                self.service.files().list(q=query, fields="files(id, name)").execute()
            )
        except HttpError as e:
            logging.error(f"Error finding file '{filename}': {e}")
            raise
        files = response.get("files", [])
        return files[0]["id"] if files else None

    def _find_file_id(self, path: str) -> Optional[str]:
        file = self.get_file(path)
        folder_id = self.directory_provider.resolve_folder_id(file.directory_path)
        if folder_id is None:
            return None
        return self._find_file_id_by_name(file.name, folder_id)

    def create_file(self, path: str) -> FileDetail:
        self.write_stream_to_file(path, io.BytesIO(b""))
        return self.get_file(path)

    def delete_file(self, path: str) -> bool:
        file_id = self._find_file_id(path)
        if not file_id:
            logging.warning(f"File '{path}' not found. Nothing to delete.")
            return False

        try:
            logging.info(f"Deleting file with ID '{file_id}'...")
            self.service.files().delete(fileId=file_id).execute()
            return True
        except HttpError as e:
            if e.resp.status == 404:
                logging.warning(f"File with ID '{file_id}' not found. Nothing to delete.")
                return False
            logging.error(f"Failed to delete file with ID '{file_id}': {e}")
            raise

    def file_exists(self, path: str) -> bool:
        return self._find_file_id(path) is not None

    def open_file(self, path: str) -> BinaryIO:
        file_id = self._find_file_id(path)
        if not file_id:
            raise FileNotFoundError(f"File '{path}' not found in Google Drive.")

        try:
            logging.info(f"Downloading file with ID '{file_id}'...")
            request = self.service.files().get_media(fileId=file_id)
            buffer = io.BytesIO()
            downloader = MediaIoBaseDownload(buffer, request)
            done = False
            while not done:
                status, done = downloader.next_chunk()
        except HttpError as e:
            if e.resp.status == 404:
                raise FileNotFoundError(
                    f"File with ID '{file_id}' not found in Google Drive."
                ) from e
            logging.error(f"Failed to download file with ID '{file_id}': {e}")
            raise
        buffer.seek(0)
        return buffer

    def truncate_file(self, path: str):
        file_id = self._find_file_id(path)
        if not file_id:
            raise FileNotFoundError(f"File '{path}' not found in Google Drive.")

        try:
            logging.info(f"Truncating file with ID '{file_id}'...")
            media = MediaIoBaseUpload(io.BytesIO(b""), mimetype=DEFAULT_MIME_TYPE)
            self.service.files().update(fileId=file_id, media_body=media).execute()
        except HttpError as e:
            logging.error(f"Failed to truncate file with ID '{file_id}': {e}")
            raise

    def write_stream_to_file(self, path: str, stream: BinaryIO):
        """
        Uploads a stream to Google Drive, replacing the content of an existing
        file with the same name or creating a new one.
        """
        file = self.get_file(path)
        folder_id = self.directory_provider.resolve_folder_id(
            file.directory_path, create=True
        )
        existing_file_id = self._find_file_id_by_name(file.name, folder_id)

        try:
            media = MediaIoBaseUpload(stream, mimetype=DEFAULT_MIME_TYPE, resumable=True)
            if existing_file_id:
                logging.info(f"Updating content of '{file.name}' (ID '{existing_file_id}')...")
                self.service.files().update(
                    fileId=existing_file_id, media_body=media
                ).execute()
            else:
                logging.info(f"Uploading '{file.name}' to folder ID {folder_id}...")
                file_metadata = {"name": file.name, "parents": [folder_id]}
                self.service.files().create(
                    body=file_metadata, media_body=media, fields="id"
                ).execute()
        except HttpError as e:
            logging.error(f"Failed to upload file to '{path}': {e}")
            raise
