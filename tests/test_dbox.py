# tests/test_dbox.py
import io

import pytest
from unittest.mock import patch, MagicMock, ANY
from dropbox.exceptions import ApiError
from dropbox.files import (
    DeleteError,
    FileMetadata,
    FolderMetadata,
    GetMetadataError,
    ListFolderResult,
    LookupError as DropboxLookupError,
)

from filemanager.dbox import DropboxFileProvider, DropboxFolderProvider
from filemanager.exceptions import DirectoryNotEmptyError, PermanentError


def _not_found_on_metadata():
    return ApiError(
        "req", GetMetadataError.path(DropboxLookupError.not_found), None, None
    )


def _not_found_on_delete():
    return ApiError(
        "req", DeleteError.path_lookup(DropboxLookupError.not_found), None, None
    )


@patch("filemanager.dbox.dropbox.Dropbox")
def test_dropbox_provider_init_success(MockDropbox):
    """The SDK client is built from the credentials and the account is verified."""
    mock_dbx_instance = MockDropbox.return_value

    provider = DropboxFolderProvider("key", "secret", "token")

    MockDropbox.assert_called_once_with(
        app_key="key", app_secret="secret", oauth2_refresh_token="token"
    )
    mock_dbx_instance.users_get_current_account.assert_called_once()
    assert provider.dbx == mock_dbx_instance


@patch("filemanager.dbox.dropbox.Dropbox", side_effect=Exception("Auth failed"))
def test_dropbox_provider_init_failure(MockDropbox):
    with pytest.raises(Exception, match="Auth failed"):
        DropboxFolderProvider("key", "secret", "token")


@pytest.fixture
def folders():
    """A folder provider rooted at /app with a mocked SDK."""
    with patch("filemanager.dbox.dropbox.Dropbox") as MockDropbox:
        provider = DropboxFolderProvider("key", "secret", "token", root="/app")
        # Reset call counters after initialization
        MockDropbox.return_value.reset_mock()
        yield provider


@pytest.fixture
def client(folders):
    return DropboxFileProvider(folders, chunk_size=4)


class TestPaths:
    def test_paths_are_resolved_under_root(self, folders):
        assert folders.resolve_path("docs/a.txt") == "/app/docs/a.txt"
        assert folders.resolve_path("/docs/a.txt") == "/app/docs/a.txt"

    def test_resolved_paths_are_not_prefixed_twice(self, folders):
        assert folders.resolve_path("/app/docs/a.txt") == "/app/docs/a.txt"

    def test_root_folder_is_empty_string(self):
        with patch("filemanager.dbox.dropbox.Dropbox"):
            provider = DropboxFolderProvider("key", "secret", "token")
        assert provider.resolve_path("") == ""
        assert provider.resolve_path("a.txt") == "/a.txt"


def test_create_file_uploads_empty_content(client):
    file = client.create_file("docs/new.txt")

    client.dbx.files_upload.assert_called_once_with(b"", "/app/docs/new.txt", mode=ANY)
    assert file.name == "new.txt"
    assert file.directory_path == "/app/docs"


def test_delete_file_success(client):
    assert client.delete_file("docs/a.txt") is True
    client.dbx.files_delete_v2.assert_called_once_with("/app/docs/a.txt")


def test_delete_file_not_found_returns_false(client):
    client.dbx.files_delete_v2.side_effect = _not_found_on_delete()
    assert client.delete_file("docs/a.txt") is False


def test_delete_file_api_error(client):
    client.dbx.files_delete_v2.side_effect = ApiError(None, None, None, None)
    with pytest.raises(ApiError):
        client.delete_file("docs/a.txt")


def test_file_exists(client):
    client.dbx.files_get_metadata.return_value = FileMetadata(name="a.txt")
    assert client.file_exists("a.txt") is True
    client.dbx.files_get_metadata.assert_called_once_with("/app/a.txt")


def test_file_exists_false_for_folder(client):
    client.dbx.files_get_metadata.return_value = FolderMetadata(name="a")
    assert client.file_exists("a") is False


def test_file_exists_false_when_not_found(client):
    client.dbx.files_get_metadata.side_effect = _not_found_on_metadata()
    assert client.file_exists("a.txt") is False


def test_open_file_returns_content_stream(client):
    response = MagicMock(content=b"file_content")
    client.dbx.files_download.return_value = (FileMetadata(name="a.txt"), response)

    stream = client.open_file("a.txt")

    client.dbx.files_download.assert_called_once_with("/app/a.txt")
    assert stream.read() == b"file_content"
    response.close.assert_called_once()


def test_open_file_api_error(client):
    client.dbx.files_download.side_effect = ApiError(None, None, None, None)
    with pytest.raises(ApiError):
        client.open_file("a.txt")


def test_truncate_file_overwrites_with_empty_content(client):
    client.dbx.files_get_metadata.return_value = FileMetadata(name="a.txt")

    client.truncate_file("a.txt")

    client.dbx.files_upload.assert_called_once_with(b"", "/app/a.txt", mode=ANY)


def test_truncate_missing_file_raises(client):
    client.dbx.files_get_metadata.side_effect = _not_found_on_metadata()
    with pytest.raises(FileNotFoundError):
        client.truncate_file("a.txt")
    client.dbx.files_upload.assert_not_called()


def test_write_stream_small_content_single_upload(client):
    """Content smaller than the chunk size goes up in one request."""
    client.write_stream_to_file("a.txt", io.BytesIO(b"abc"))

    client.dbx.files_upload.assert_called_once_with(b"abc", "/app/a.txt", mode=ANY)
    client.dbx.files_upload_session_start.assert_not_called()


def test_write_stream_large_content_uses_upload_session(client):
    client.dbx.files_upload_session_start.return_value = MagicMock(session_id="sid")

    client.write_stream_to_file("a.txt", io.BytesIO(b"aaaabbbbcc"))

    client.dbx.files_upload.assert_not_called()
    client.dbx.files_upload_session_start.assert_called_once_with(b"aaaa")
    client.dbx.files_upload_session_append_v2.assert_called_once_with(b"bbbb", ANY)
    finish_args = client.dbx.files_upload_session_finish.call_args.args
    assert finish_args[0] == b"cc"
    cursor, commit_info = finish_args[1], finish_args[2]
    assert cursor.session_id == "sid"
    assert cursor.offset == 8
    assert commit_info.path == "/app/a.txt"


def test_write_stream_exact_chunk_multiple_finishes_with_empty_chunk(client):
    client.dbx.files_upload_session_start.return_value = MagicMock(session_id="sid")

    client.write_stream_to_file("a.txt", io.BytesIO(b"aaaa"))

    client.dbx.files_upload_session_append_v2.assert_not_called()
    finish_args = client.dbx.files_upload_session_finish.call_args.args
    assert finish_args[0] == b""
    assert finish_args[1].offset == 4


@pytest.mark.parametrize("chunk_size", [0, -1])
def test_non_positive_chunk_size_is_rejected(folders, chunk_size):
    with pytest.raises(ValueError, match="chunk size must be positive"):
        DropboxFileProvider(folders, chunk_size=chunk_size)


class TestDropboxFolderProvider:
    @pytest.mark.parametrize("path", ["", "/"])
    def test_delete_root_is_refused(self, path):
        with patch("filemanager.dbox.dropbox.Dropbox"):
            provider = DropboxFolderProvider("key", "secret", "token")

        with pytest.raises(PermanentError):
            provider.delete_directory(path)
        provider.dbx.files_delete_v2.assert_not_called()

    def test_delete_configured_root_folder(self, folders):
        """The configured root folder itself is deletable; only the Dropbox root is not."""
        folders.dbx.files_get_metadata.return_value = FolderMetadata(name="app")
        folders.dbx.files_list_folder.return_value = ListFolderResult(
            entries=[], has_more=False, cursor=None
        )

        assert folders.delete_directory("") is True
        folders.dbx.files_delete_v2.assert_called_once_with("/app")

    def test_create_directory(self, folders):
        directory = folders.create_directory("reports")

        folders.dbx.files_create_folder_v2.assert_called_once_with("/app/reports")
        assert directory.name == "reports"
        assert directory.parent_path == "/app"

    def test_directory_exists(self, folders):
        folders.dbx.files_get_metadata.return_value = FolderMetadata(name="reports")
        assert folders.directory_exists("reports") is True

    def test_directory_exists_not_found(self, folders):
        folders.dbx.files_get_metadata.side_effect = _not_found_on_metadata()
        assert folders.directory_exists("reports") is False

    def test_delete_directory_not_empty_requires_recursive(self, folders):
        folders.dbx.files_get_metadata.return_value = FolderMetadata(name="reports")
        folders.dbx.files_list_folder.return_value = ListFolderResult(
            entries=[FileMetadata(name="a.txt")], has_more=False, cursor=None
        )

        with pytest.raises(DirectoryNotEmptyError):
            folders.delete_directory("reports")
        folders.dbx.files_delete_v2.assert_not_called()

        assert folders.delete_directory("reports", recursive=True) is True
        folders.dbx.files_delete_v2.assert_called_once_with("/app/reports")

    def test_delete_missing_directory_returns_false(self, folders):
        folders.dbx.files_get_metadata.side_effect = _not_found_on_metadata()
        assert folders.delete_directory("reports") is False
