# storage/base.py
import io
from abc import ABC, abstractmethod
from typing import BinaryIO, Optional

from .dto import DirectoryDetail, FileDetail
from .paths import PathProvider


class DirectoryProvider(ABC):
    """
    Abstract base class for the directory side of a storage backend.
    For object stores a "directory" is a bucket; for file systems and
    cloud drives it is a folder.
    """

    def __init__(self, root: str, path_provider: Optional[PathProvider] = None):
        self.root = root
        self.path_provider = path_provider or PathProvider()

    def get_directory(self, path: str) -> DirectoryDetail:
        """
        Describes a directory without contacting the backend.

        :param path: The path of the directory.
        :return: A DirectoryDetail owned by this provider.
        """
        path = self.path_provider.normalize(path)
        return DirectoryDetail(
            name=self.path_provider.get_object_name(path),
            parent_path=self.path_provider.get_object_parent_path(path),
            provider=self,
        )

    @abstractmethod
    def create_directory(self, path: str) -> DirectoryDetail:
        """
        Creates a directory.

        :param path: The path of the directory to create.
        :return: The DirectoryDetail of the new directory.
        """
        pass

    @abstractmethod
    def directory_exists(self, path: str) -> bool:
        """
        Checks whether a directory exists.

        :param path: The path of the directory to check.
        """
        pass

    @abstractmethod
    def delete_directory(self, path: str, recursive: bool = False) -> bool:
        """
        Deletes a directory.

        :param path: The path of the directory to delete.
        :param recursive: Delete the directory content as well.
        :return: False when there was nothing to delete.
        """
        pass


class FileProvider(ABC):
    """
    Abstract base class for a file provider.
    Defines the common interface that all specific storage backends
    (e.g., local disk, S3, Dropbox, Google Drive) must implement.
    """

    def __init__(self, directory_provider: DirectoryProvider):
        self.directory_provider = directory_provider
        self.path_provider = directory_provider.path_provider

    def resolve_path(self, path: str) -> str:
        """Maps a logical path onto the path the backend uses."""
        return self.path_provider.normalize(path)

    def get_file(self, path: str) -> FileDetail:
        """
        Describes a file without contacting the backend.

        :param path: The logical path of the file.
        :return: A FileDetail owned by this provider.
        """
        resolved = self.resolve_path(path)
        return FileDetail(
            name=self.path_provider.get_object_name(resolved),
            directory_path=self.path_provider.get_object_parent_path(resolved),
            provider=self,
        )

    @abstractmethod
    def create_file(self, path: str) -> FileDetail:
        """
        Creates an empty file.

        :param path: The logical path of the file to create.
        :return: The FileDetail of the created file.
        """
        pass

    @abstractmethod
    def delete_file(self, path: str) -> bool:
        """
        Deletes a file.

        :param path: The logical path of the file to delete.
        :return: True if the backend confirmed the deletion.
        """
        pass

    @abstractmethod
    def file_exists(self, path: str) -> bool:
        """
        Checks whether a file exists.

        :param path: The logical path of the file.
        """
        pass

    @abstractmethod
    def open_file(self, path: str) -> BinaryIO:
        """
        Opens a file for reading.

        :param path: The logical path of the file.
        :return: A readable binary stream. The caller is responsible for closing it.
        """
        pass

    @abstractmethod
    def truncate_file(self, path: str):
        """
        Sets the length of a file to zero.

        :param path: The logical path of the file.
        """
        pass

    @abstractmethod
    def write_stream_to_file(self, path: str, stream: BinaryIO):
        """
        Replaces the content of a file with everything read from a stream.

        :param path: The logical path of the file.
        :param stream: A readable binary stream.
        """
        pass

    def read_all_bytes(self, path: str) -> bytes:
        stream = self.open_file(path)
        try:
            return stream.read()
        finally:
            stream.close()

    def read_all_text(self, path: str, encoding: str = "utf-8") -> str:
        return self.read_all_bytes(path).decode(encoding)

    def write_all_bytes(self, path: str, data: bytes):
        self.write_stream_to_file(path, io.BytesIO(data))

    def write_all_text(self, path: str, text: str, encoding: str = "utf-8"):
        self.write_all_bytes(path, text.encode(encoding))
