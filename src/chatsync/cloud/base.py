from abc import ABC, abstractmethod


class SyncClient(ABC):
    """Remote key/value contract shared by every sync backend."""

    @abstractmethod
    async def check(self) -> bool:
        """Probes the backend. Never raises; any failure is reported as False."""
        ...

    @abstractmethod
    async def get(self) -> str | None:
        """Returns the stored document, or None when nothing has been stored yet."""
        ...

    @abstractmethod
    async def set(self, value: str) -> None:
        """Stores the document, replacing whatever was there."""
        ...
