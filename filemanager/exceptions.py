# exceptions.py


class FileManagerError(Exception):
    """Base class for errors raised by the file providers themselves."""
    pass


class OperationNotSupportedError(FileManagerError, NotImplementedError):
    """The operation exists in the provider contract but this backend cannot perform it."""

    def __init__(self, operation: str, backend: str):
        self.operation = operation
        self.backend = backend
        super().__init__(f"'{operation}' is not supported by the {backend} provider.")


class DirectoryNotEmptyError(FileManagerError):
    """A non-recursive delete was requested for a directory that still has content."""
    pass


class PermanentError(FileManagerError):
    """An error that will not be fixed by a retry (e.g., a folder that cannot be created)."""
    pass
