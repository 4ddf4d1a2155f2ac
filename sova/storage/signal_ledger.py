"""Bounded, append-only signal ledger.

Keeps the most recent ``capacity`` signals; older ones are evicted FIFO
right after the append that overflows the bound. Sequence ids are never
reused, even after eviction.
"""

import asyncio
import itertools
import logging
from collections import Counter, deque
from typing import Awaitable, Callable

from sova.errors import ValidationError
from sova.models import Clock, IngressPolicy, Signal, utcnow

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1000

# Callback for newly appended signals
SignalCallback = Callable[[Signal], Awaitable[None]]


class SignalLedger:
    """Append-only bounded log of trading signals."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY, clock: Clock = utcnow):
        self.capacity = capacity
        self._clock = clock
        self._signals: deque[Signal] = deque()
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()
        self._callbacks: list[SignalCallback] = []

    def __len__(self) -> int:
        return len(self._signals)

    def on_signal(self, callback: SignalCallback) -> None:
        """Register callback for appended signals.

        Note: Duplicate callbacks are ignored.
        """
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def off_signal(self, callback: SignalCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    async def append(self, asset: str, direction: str, policy: IngressPolicy) -> Signal:
        """Record a signal from one ingress path.

        Args:
            asset: Instrument symbol, e.g. EURUSD
            direction: Action, e.g. buy / sell
            policy: Provenance tag and casing rule of the ingress path

        Raises:
            ValidationError: asset or direction missing/blank
        """
        if not isinstance(asset, str) or not asset.strip():
            raise ValidationError("Missing asset or signal")
        if not isinstance(direction, str) or not direction.strip():
            raise ValidationError("Missing asset or signal")

        asset, direction = policy.apply(asset, direction)

        async with self._lock:
            signal = Signal(
                id=next(self._ids),
                asset=asset,
                signal=direction,
                timestamp=self._clock(),
                source=policy.source,
            )
            self._signals.append(signal)
            evicted = 0
            while len(self._signals) > self.capacity:
                self._signals.popleft()
                evicted += 1

        if evicted:
            logger.debug(f"Evicted {evicted} oldest signal(s)")
        logger.info(
            f"Received signal #{signal.id}: {signal.asset} {signal.signal} ({signal.source})"
        )

        for callback in list(self._callbacks):
            try:
                await callback(signal)
            except Exception as e:
                logger.warning(f"Signal callback failed: {e}")

        return signal

    def list_all(self) -> list[Signal]:
        """All retained signals, most recent first."""
        return list(reversed(self._signals))

    def list_recent(self, k: int) -> list[Signal]:
        """At most ``k`` signals, most recent first."""
        if k <= 0:
            return []
        return list(itertools.islice(reversed(self._signals), k))

    def latest(self) -> Signal | None:
        return self._signals[-1] if self._signals else None

    def stats(self, recent: int = 10) -> dict:
        """Aggregate counts over the retained signals.

        Returns:
            Dict with total, by_direction and the ``recent`` newest signals
        """
        snapshot = list(self._signals)
        by_direction = Counter(s.signal for s in snapshot)
        return {
            "total": len(snapshot),
            "by_direction": dict(by_direction),
            "recent": list(itertools.islice(reversed(snapshot), recent)),
        }
