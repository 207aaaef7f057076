"""Fixed-capacity FIFO buffers for serial bytes, samples and RSSI readings."""

from __future__ import annotations

from collections import deque
from typing import Deque, Generic, Optional, Tuple, TypeVar

SERIAL_RINGBUFFER_SIZE = 370

_T = TypeVar("_T")


class _BoundedFIFO(Generic[_T]):
    """A FIFO that refuses new items once it holds ``length`` of them."""

    def __init__(self, length: int) -> None:
        if length <= 0:
            raise ValueError("ring buffer length must be positive")
        self._length = length
        self._items: Deque[_T] = deque()

    @property
    def capacity(self) -> int:
        """Total number of items the buffer can hold."""
        return self._length

    def __len__(self) -> int:
        return len(self._items)

    def space(self) -> int:
        """Number of items that can still be stored."""
        return self._length - len(self._items)

    def _push(self, item: _T) -> bool:
        if len(self._items) >= self._length:
            return False
        self._items.append(item)
        return True


class ByteRingBuffer(_BoundedFIFO[int]):
    """Byte FIFO used for outgoing serial data and transmit frames."""

    def __init__(self, length: int = SERIAL_RINGBUFFER_SIZE) -> None:
        super().__init__(length)

    def __len__(self) -> int:
        return len(self._items)

    def space(self) -> int:
        return self._length - len(self._items)

    def reset(self) -> None:
        """Discard everything held in the buffer."""
        self._items.clear()

    def put(self, value: int) -> bool:
        """Append a byte; return False if the buffer is full."""
        return self._push(value & 0xFF)

    def peek(self) -> int:
        """Return the oldest byte without removing it."""
        if not self._items:
            raise IndexError("peek from an empty ring buffer")
        return self._items[0]

    def get(self) -> int:
        """Remove and return the oldest byte."""
        if not self._items:
            raise IndexError("get from an empty ring buffer")
        return self._items.popleft()


class _OverflowTracking(_BoundedFIFO[_T]):
    def __init__(self, length: int) -> None:
        super().__init__(length)
        self._overflow = False

    def _store(self, item: _T) -> bool:
        if not self._push(item):
            self._overflow = True
            return False
        return True

    def _take(self) -> Optional[_T]:
        if not self._items:
            return None
        return self._items.popleft()

    def has_overflowed(self) -> bool:
        """Report whether a put was refused since the last call, then clear the flag."""
        overflow = self._overflow
        self._overflow = False
        return overflow


class SampleRingBuffer(_OverflowTracking[Tuple[int, int]]):
    """FIFO of (sample, control) pairs between the DSP code and the converters."""

    def __init__(self, length: int) -> None:
        super().__init__(length)

    def __len__(self) -> int:
        return len(self._items)

    def space(self) -> int:
        return self._length - len(self._items)

    def put(self, sample: int, control: int) -> bool:
        """Append a sample and its control marker; return False on overflow."""
        return self._store((sample & 0xFFFF, control & 0xFF))

    def get(self) -> Optional[Tuple[int, int]]:
        """Remove and return the oldest (sample, control) pair, or None if empty."""
        return self._take()

    def has_overflowed(self) -> bool:
        return super().has_overflowed()


class RSSIRingBuffer(_OverflowTracking[int]):
    """FIFO of RSSI readings."""

    def __init__(self, length: int) -> None:
        super().__init__(length)

    def __len__(self) -> int:
        return len(self._items)

    def space(self) -> int:
        return self._length - len(self._items)

    def put(self, rssi: int) -> bool:
        """Append an RSSI reading; return False on overflow."""
        return self._store(rssi & 0xFFFF)

    def get(self) -> Optional[int]:
        """Remove and return the oldest reading, or None if empty."""
        return self._take()

    def has_overflowed(self) -> bool:
        return super().has_overflowed()