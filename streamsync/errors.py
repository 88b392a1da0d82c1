"""
Exception Types

Failures raised by stream handles, the master selector and the
configuration loaders. The controller absorbs the first three locally;
only ConfigError reaches the command line.
"""


class StreamSyncError(Exception):
    """Base class for all StreamSync errors."""


class StreamUnready(StreamSyncError):
    """Position unavailable or not enough data buffered."""

    def __init__(self, name: str, reason: str = "not ready"):
        self.name = name
        self.reason = reason
        super().__init__(f"{name}: {reason}")


class CorrectionApplyFailure(StreamSyncError):
    """The underlying player rejected a rate change or seek."""

    def __init__(self, name: str, operation: str, cause: Exception = None):
        self.name = name
        self.operation = operation
        self.cause = cause
        message = f"{name}: {operation} failed"
        if cause is not None:
            message += f" ({cause})"
        super().__init__(message)


class InvalidMasterIndex(StreamSyncError):
    """Master assignment outside the valid handle range."""

    def __init__(self, index, count: int):
        self.index = index
        self.count = count
        super().__init__(f"master index {index!r} out of range [0, {count})")


class ConfigError(StreamSyncError):
    """Invalid configuration or stream registry file."""
