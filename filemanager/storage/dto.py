# storage/dto.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional


class FileDetail(BaseModel):
    """
    A standardized Data Transfer Object describing a file, independent of
    the backend that stores it. The owning provider is kept so the record
    can be used to act on the file again.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    directory_path: str = ""
    provider: Optional[Any] = Field(default=None, exclude=True, repr=False)

    @property
    def full_path(self) -> str:
        if self.provider is None:
            return f"{self.directory_path}/{self.name}" if self.directory_path else self.name
        return self.provider.path_provider.combine(self.directory_path, self.name)

    def _require_provider(self):
        if self.provider is None:
            raise ValueError(f"File '{self.name}' is not attached to a file provider.")
        return self.provider

    def exists(self) -> bool:
        return self._require_provider().file_exists(self.full_path)

    def open(self):
        return self._require_provider().open_file(self.full_path)

    def delete(self) -> bool:
        return self._require_provider().delete_file(self.full_path)

    def truncate(self):
        self._require_provider().truncate_file(self.full_path)

    def write_stream(self, stream):
        self._require_provider().write_stream_to_file(self.full_path, stream)

    def read_all_bytes(self) -> bytes:
        return self._require_provider().read_all_bytes(self.full_path)


class DirectoryDetail(BaseModel):
    """
    A standardized Data Transfer Object describing a directory
    (a folder, or a bucket for object stores).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    parent_path: str = ""
    provider: Optional[Any] = Field(default=None, exclude=True, repr=False)

    @property
    def full_path(self) -> str:
        if self.provider is None:
            return f"{self.parent_path}/{self.name}" if self.parent_path else self.name
        return self.provider.path_provider.combine(self.parent_path, self.name)
