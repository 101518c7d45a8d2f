"""Abstract tracking provider — lifecycle plus a single lookup operation."""

from __future__ import annotations

import abc
from types import TracebackType

from portsense.core.types import ProviderSnapshot


class TrackingProvider(abc.ABC):
    """Source of current position / status / ETA for a container.

    Subclasses implement ``track()``; ``connect()`` and ``close()`` are
    no-ops unless the provider holds a connection.

    Usage::

        async with MyProvider() as provider:
            snapshot = await provider.track("MSCU1234567")
    """

    async def connect(self) -> None:
        """Open any connection the provider needs."""

    async def close(self) -> None:
        """Release the provider's connection."""

    @abc.abstractmethod
    async def track(self, container_id: str) -> ProviderSnapshot | None:
        """Return the latest snapshot, or None if the container is unknown.

        Raises:
            TrackingError: The provider failed to answer.
        """

    async def __aenter__(self) -> TrackingProvider:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
