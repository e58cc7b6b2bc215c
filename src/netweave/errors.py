class NetweaveError(Exception):
    """Base class for every error raised by netweave."""


class ConfigurationError(NetweaveError, ValueError):
    """A required option is missing or an argument is invalid."""


class UnsupportedExtensionError(ConfigurationError):
    def __init__(self, extension: str | None):
        self.extension = extension
        super().__init__(f"Unsupported file extension: {extension}")


class FileTooLargeError(ConfigurationError):
    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Attempted to load a {size / 1024 / 1024:.1f}MB file into memory (limit {limit / 1024 / 1024:.1f}MB)")


class InUseError(NetweaveError):
    """Raised when deleting something that other tables or classes still reference."""

    in_use = True


class ParentTableError(NetweaveError):
    """A single-parent table was found with zero or several parents."""


class UnknownModelError(NetweaveError, KeyError):
    pass
