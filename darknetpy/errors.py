"""Exceptions raised by darknetpy."""


class DarknetError(Exception):
    """Base class for all darknetpy errors."""


class ConfigurationError(DarknetError):
    """Missing or invalid network config, weights, or class names."""


class LayoutError(DarknetError):
    """A mirrored struct does not match the native library's layout."""


class DisposedError(DarknetError):
    """A detector was used after dispose()."""


class NativeCallError(DarknetError):
    """A call into libdarknet failed.

    Attributes:
        entry_point: Name of the native function that failed.
        cause: Underlying error, if any.
    """

    def __init__(self, entry_point: str, cause=None, message: str = None):
        self.entry_point = entry_point
        self.cause = cause
        if message is None:
            message = f"{entry_point} failed"
            if cause is not None:
                message = f"{message}: {cause}"
        super().__init__(message)
