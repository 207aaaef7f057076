"""System Fusion transmitter: frame queue, 4FSK symbol mapping and RRC shaping."""

from __future__ import annotations

from typing import List, Protocol, Sequence

from hotspotmodem.defines import YSF_FRAME_LENGTH_BYTES, YSF_RADIO_SYMBOL_LENGTH
from hotspotmodem.fir import FIRInterpolator
from hotspotmodem.modes import TX_BUFFER_LEN, ModemState
from hotspotmodem.ringbuffer import ByteRingBuffer

# Root raised cosine, alpha 0.2, span 8 symbols, 5 samples per symbol.
RRC_0_2_FILTER = (
    0, 0, 0, 0, 850, 219, -720, -1548, -1795, -1172, 237, 1927, 3120, 3073, 1447, -1431, -4544, -6442,
    -5735, -1633, 5651, 14822, 23810, 30367, 32767, 30367, 23810, 14822, 5651, -1633, -5735, -6442,
    -4544, -1431, 1447, 3073, 3120, 1927, 237, -1172, -1795, -1548, -720, 219, 850,
)

_LEVELS_HI = {0xC0: 1893, 0x80: 631, 0x00: -631, 0x40: -1893}
_LEVELS_LO = {0xC0: 948, 0x80: 316, 0x00: -316, 0x40: -948}

YSF_START_SYNC = 0x77
YSF_END_SYNC = 0xFF
YSF_HANG = 0x00

_BLOCK_SAMPLES = 4 * YSF_RADIO_SYMBOL_LENGTH
_MAX_TX_DELAY = 1200


class SampleSink(Protocol):
    """Destination for modulated samples, normally the DAC output queue."""

    def space(self) -> int:
        """Number of samples that can currently be accepted."""
        ...

    def write(self, state: ModemState, samples: Sequence[int]) -> None:
        """Queue ``samples`` for transmission in the given mode."""
        ...


class YSFTX:
    """Queues YSF frames from the host and modulates them for the transmitter."""

    def __init__(self, sink: SampleSink) -> None:
        self._sink = sink
        self._buffer = ByteRingBuffer(TX_BUFFER_LEN)
        self._filter = FIRInterpolator(RRC_0_2_FILTER, YSF_RADIO_SYMBOL_LENGTH)
        self._po: List[int] = []
        self._po_ptr = 0
        self._tx_delay = 240  # 200 ms
        self._lo_dev = False
        self._tx_hang = 4800  # 4 s
        self._tx_count = 0

    def write_data(self, data: Sequence[int]) -> None:
        """Queue one frame: a leading control byte followed by the frame body.

        Raises ValueError for a frame of the wrong length and OverflowError
        when there is no room for another frame.
        """
        if len(data) != YSF_FRAME_LENGTH_BYTES + 1:
            raise ValueError(f"YSF frame must be {YSF_FRAME_LENGTH_BYTES + 1} bytes, got {len(data)}")
        if self._buffer.space() < YSF_FRAME_LENGTH_BYTES:
            raise OverflowError("no space for another YSF frame")
        for value in data[1:]:
            self._buffer.put(value)

    def process(self, transmitting: bool, duplex: bool) -> None:
        """Move as much queued data to the sink as it has room for.

        ``transmitting`` tells whether the transmitter is already keyed; if
        not, a preamble of start-sync bytes is sent first. In ``duplex`` mode
        silence is sent for the hang time after the last frame.
        """
        if not self._po and len(self._buffer) > 0:
            if not transmitting:
                self._po = [YSF_START_SYNC] * self._tx_delay
            else:
                self._po = [self._buffer.get() for _ in range(YSF_FRAME_LENGTH_BYTES)]
            self._po_ptr = 0

        if self._po:
            space = self._sink.space()
            while space > _BLOCK_SAMPLES:
                self._write_byte(self._po[self._po_ptr])
                self._po_ptr += 1

                space -= _BLOCK_SAMPLES
                if duplex:
                    self._tx_count = self._tx_hang

                if self._po_ptr >= len(self._po):
                    self._po = []
                    self._po_ptr = 0
                    return
        elif self._tx_count > 0:
            space = self._sink.space()
            while space > _BLOCK_SAMPLES:
                self._write_silence()

                space -= _BLOCK_SAMPLES
                self._tx_count -= 1

                if self._tx_count == 0:
                    return

    def set_tx_delay(self, delay: int) -> None:
        """Set the preamble length from the host's TX delay (10 ms units)."""
        self._tx_delay = min(600 + delay * 12, _MAX_TX_DELAY)

    def space(self) -> int:
        """Number of whole frames that can still be queued."""
        return self._buffer.space() // YSF_FRAME_LENGTH_BYTES

    def set_params(self, lo_dev: bool, tx_hang: int) -> None:
        """Select low deviation and set the hang time in seconds."""
        self._lo_dev = lo_dev
        self._tx_hang = tx_hang * 1200

    def _write_byte(self, value: int) -> None:
        levels = _LEVELS_LO if self._lo_dev else _LEVELS_HI
        symbols = [levels[(value << shift) & 0xC0] for shift in (0, 2, 4, 6)]
        self._sink.write(ModemState.YSF, self._filter.process(symbols))

    def _write_silence(self) -> None:
        self._sink.write(ModemState.YSF, self._filter.process([0, 0, 0, 0]))