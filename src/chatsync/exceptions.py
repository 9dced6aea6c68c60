class SyncError(Exception):
    """Base exception for all expected chatsync errors."""

    message: str
    exit_code: int

    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code


class ConfigurationError(SyncError):
    """Configuration related errors (env vars, settings file)."""


class TransportError(SyncError):
    """Network or status-level failures talking to the remote backend."""


class MalformedRemoteStateError(SyncError):
    """Remote payload could not be decoded into an app state."""


class ImportParseError(SyncError):
    """User-supplied backup document does not deserialize."""


class StoreIntegrityError(SyncError):
    """A persisted local store file is corrupt."""


class SyncInProgressError(SyncError):
    """Another sync or import cycle is already running."""
