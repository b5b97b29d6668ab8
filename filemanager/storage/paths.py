# storage/paths.py
import os
import posixpath


class PathProvider:
    """
    Path arithmetic for backends that address objects with '/'-separated keys
    (object stores, Dropbox, Google Drive folder paths).
    """

    separator = "/"

    def normalize(self, path: str) -> str:
        if not path:
            return ""
        path = path.replace("\\", self.separator)
        is_absolute = path.startswith(self.separator)
        parts = [part for part in path.split(self.separator) if part and part != "."]
        normalized = self.separator.join(parts)
        if is_absolute:
            return self.separator + normalized
        return normalized

    def combine(self, *parts: str) -> str:
        non_empty = [part for part in parts if part]
        if not non_empty:
            return ""
        joined = self.separator.join(
            part.strip("/\\") if i else part.rstrip("/\\")
            for i, part in enumerate(non_empty)
        )
        return self.normalize(joined) or self.separator

    def get_object_name(self, path: str) -> str:
        return posixpath.basename(self.normalize(path))

    def get_object_parent_path(self, path: str) -> str:
        return posixpath.dirname(self.normalize(path))


class DiskPathProvider(PathProvider):
    """PathProvider using the host operating system's conventions."""

    separator = os.sep

    def normalize(self, path: str) -> str:
        if not path:
            return ""
        return os.path.normpath(path)

    def combine(self, *parts: str) -> str:
        non_empty = [part for part in parts if part]
        if not non_empty:
            return ""
        return os.path.normpath(os.path.join(*non_empty))

    def get_object_name(self, path: str) -> str:
        return os.path.basename(self.normalize(path))

    def get_object_parent_path(self, path: str) -> str:
        return os.path.dirname(self.normalize(path))
