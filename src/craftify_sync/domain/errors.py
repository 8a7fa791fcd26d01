"""Error taxonomy for catalog and favorites sync."""

from enum import Enum


class ErrorKind(Enum):
    """User-facing classification of a sync failure."""

    NETWORK = "Network issue, please check your connection and try again."
    PERMISSIONS = "Permission denied, please check your account access."
    DATA_CORRUPTION = "Data error, please try refreshing."
    UNKNOWN = "An unexpected error occurred."


class SyncError(Exception):
    """Base class for sync engine failures."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    @property
    def user_message(self) -> str:
        """Return the message shown next to the sync indicator."""
        return self.kind.value


class NetworkError(SyncError):
    """Transient failure reaching a remote service; safe to retry."""

    kind = ErrorKind.NETWORK


class RemoteError(SyncError):
    """The remote service rejected the request."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.UNKNOWN) -> None:
        super().__init__(message)
        self.kind = kind


class StorageError(SyncError):
    """Local persistence failed; prior state is left intact."""

    kind = ErrorKind.DATA_CORRUPTION


class RecipeNotFoundError(SyncError):
    """The recipe id is not part of the current catalog."""

    def __init__(self, recipe_id: int) -> None:
        super().__init__(f"Recipe {recipe_id} is not in the catalog")
        self.recipe_id = recipe_id
