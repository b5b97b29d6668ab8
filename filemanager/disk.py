# disk.py
import logging
import os
import shutil
from pathlib import Path
from typing import BinaryIO

from .exceptions import DirectoryNotEmptyError
from .storage.base import DirectoryProvider, FileProvider
from .storage.dto import DirectoryDetail, FileDetail
from .storage.paths import DiskPathProvider

COPY_BUFFER_SIZE = 1024 * 1024


class LocalDirectoryProvider(DirectoryProvider):
    """
    Directory provider for the local filesystem. Every path is resolved
    under the configured root directory.
    """

    def __init__(self, root: str):
        super().__init__(os.path.abspath(root), DiskPathProvider())
        logging.info(f"Local disk provider rooted at '{self.root}'.")

    def resolve_path(self, path: str) -> str:
        """
        Resolves a path under the root. Absolute paths are accepted only
        when they already point inside it.
        """
        if path and os.path.isabs(path):
            resolved = self.path_provider.normalize(path)
        else:
            resolved = self.path_provider.combine(self.root, path)
        if os.path.commonpath([self.root, resolved]) != self.root:
            raise ValueError(f"Path '{path}' resolves outside of '{self.root}'.")
        return resolved

    def get_directory(self, path: str) -> DirectoryDetail:
        return super().get_directory(self.resolve_path(path))

    def create_directory(self, path: str) -> DirectoryDetail:
        full_path = self.resolve_path(path)
        logging.info(f"Creating directory {full_path}...")
        Path(full_path).mkdir(parents=True, exist_ok=True)
        return self.get_directory(full_path)

    def directory_exists(self, path: str) -> bool:
        return Path(self.resolve_path(path)).is_dir()

    def delete_directory(self, path: str, recursive: bool = False) -> bool:
        directory = Path(self.resolve_path(path))
        if not directory.is_dir():
            logging.warning(f"Directory '{directory}' not found. Nothing to delete.")
            return False

        if recursive:
            logging.info(f"Deleting directory {directory} and its content...")
            shutil.rmtree(directory)
        else:
            if any(directory.iterdir()):
                raise DirectoryNotEmptyError(f"Directory '{directory}' is not empty.")
            logging.info(f"Deleting directory {directory}...")
            directory.rmdir()
        return True


class LocalFileProvider(FileProvider):
    """
    File provider for the local filesystem. Supports every operation of
    the FileProvider interface.
    """

    def resolve_path(self, path: str) -> str:
        return self.directory_provider.resolve_path(path)

    def create_file(self, path: str) -> FileDetail:
        file = self.get_file(path)
        full_path = Path(file.full_path)
        logging.info(f"Creating file {full_path}...")
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.touch()
        return file

    def delete_file(self, path: str) -> bool:
        full_path = Path(self.resolve_path(path))
        if not full_path.is_file():
            logging.warning(f"File '{full_path}' not found. Nothing to delete.")
            return False
        logging.info(f"Deleting {full_path}...")
        full_path.unlink()
        return True

    def file_exists(self, path: str) -> bool:
        return Path(self.resolve_path(path)).is_file()

    def open_file(self, path: str) -> BinaryIO:
        full_path = Path(self.resolve_path(path))
        logging.info(f"Opening {full_path} for reading...")
        return open(full_path, "rb")

    def truncate_file(self, path: str):
        full_path = Path(self.resolve_path(path))
        if not full_path.is_file():
            raise FileNotFoundError(f"File '{full_path}' not found.")
        logging.info(f"Truncating {full_path}...")
        with open(full_path, "r+b") as f:
            f.truncate(0)

    def write_stream_to_file(self, path: str, stream: BinaryIO):
        full_path = Path(self.resolve_path(path))
        full_path.parent.mkdir(parents=True, exist_ok=True)
        logging.info(f"Writing stream to {full_path}...")
        with open(full_path, "wb") as f:
            shutil.copyfileobj(stream, f, COPY_BUFFER_SIZE)
