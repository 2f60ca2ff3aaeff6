"""Channel registry keyed by destination, one lock per channel."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, KeysView
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from line_gateway.channels.channel import Channel
from line_gateway.errors import DestinationError

logger = logging.getLogger(__name__)


@dataclass
class _ChannelSlot:
    channel: Channel
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class ChannelRegistry:
    """Maps destination user ids to channels.

    Built once at startup through ``register`` and read-only for key
    membership afterwards, so lookups take no registry-wide lock. Mutable
    channel state (the cached access token) is only touched inside
    ``resolve``, which holds that channel's lock.
    """

    def __init__(self) -> None:
        self._slots: dict[str, _ChannelSlot] = {}

    def register(self, channel: Channel) -> ChannelRegistry:
        """Add a channel, replacing any channel already registered under its key."""
        if channel.user_id in self._slots:
            logger.warning("Replacing channel registered for %s", channel.user_id)
        self._slots[channel.user_id] = _ChannelSlot(channel)
        return self

    def _slot(self, key: str) -> _ChannelSlot:
        try:
            return self._slots[key]
        except KeyError:
            raise DestinationError(key) from None

    def get(self, key: str) -> Channel:
        """Unlocked lookup; do not mutate the returned channel."""
        return self._slot(key).channel

    @asynccontextmanager
    async def resolve(self, key: str) -> AsyncIterator[Channel]:
        """Hold exclusive access to the channel for the duration of the block.

        Raises DestinationError before any lock is taken if ``key`` is unknown.
        """
        slot = self._slot(key)
        async with slot.lock:
            yield slot.channel

    def keys(self) -> KeysView[str]:
        return self._slots.keys()

    def __contains__(self, key: object) -> bool:
        return key in self._slots

    def __len__(self) -> int:
        return len(self._slots)
