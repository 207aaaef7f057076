"""System Fusion receiver: sync search, level tracking and frame slicing."""

from __future__ import annotations

import enum
import logging
from typing import List, Optional, Protocol, Sequence

from hotspotmodem.bits import count_bits8, count_bits32
from hotspotmodem.defines import (
    YSF_FRAME_LENGTH_BYTES,
    YSF_FRAME_LENGTH_SAMPLES,
    YSF_FRAME_LENGTH_SYMBOLS,
    YSF_RADIO_SYMBOL_LENGTH,
    YSF_SYNC_BYTES,
    YSF_SYNC_BYTES_LENGTH,
    YSF_SYNC_LENGTH_SAMPLES,
    YSF_SYNC_LENGTH_SYMBOLS,
    YSF_SYNC_SYMBOLS,
    YSF_SYNC_SYMBOLS_MASK,
    YSF_SYNC_SYMBOLS_VALUES,
)

_log = logging.getLogger(__name__)

SCALING_FACTOR = 18750  # Q15(0.55)

MAX_SYNC_BIT_START_ERRS = 2
MAX_SYNC_BIT_RUN_ERRS = 4
MAX_SYNC_SYMBOLS_ERRS = 3

MAX_SYNC_FRAMES = 1 + 1

_AVERAGE_LENGTH = 16


def _q15(value: int) -> int:
    """Wrap an integer to a signed 16-bit value."""
    return ((value + 0x8000) & 0xFFFF) - 0x8000


def _wrap(ptr: int) -> int:
    return ptr % YSF_FRAME_LENGTH_SAMPLES


def _write_bit(buffer: bytearray, index: int, bit: bool) -> None:
    mask = 0x80 >> (index & 7)
    if bit:
        buffer[index >> 3] |= mask
    else:
        buffer[index >> 3] &= ~mask & 0xFF


class YSFRXState(enum.Enum):
    """Receiver state: searching for sync, or locked on to frames."""

    NONE = enum.auto()
    DATA = enum.auto()


class DecoderControl(Protocol):
    """Hardware hooks toggled when the receiver gains or loses lock."""

    def set_decode(self, on: bool) -> None:
        """Signal that a digital signal is being decoded."""
        ...

    def set_adc_detection(self, on: bool) -> None:
        """Enable or disable carrier detection on the ADC input."""
        ...


class FrameSink(Protocol):
    """Destination for decoded frames, normally the host serial link."""

    def write_ysf_data(self, data: bytes) -> None:
        """Deliver a decoded frame preceded by its control byte."""
        ...

    def write_ysf_lost(self) -> None:
        """Report that the receiver has lost lock."""
        ...


class YSFRX:
    """Finds YSF frames in a stream of Q15 samples and slices them into bytes."""

    def __init__(self, control: DecoderControl, sink: FrameSink, send_rssi: bool = False) -> None:
        self._control = control
        self._sink = sink
        self._send_rssi = send_rssi
        self._bit_buffer: List[int] = [0] * YSF_RADIO_SYMBOL_LENGTH
        self._buffer: List[int] = [0] * YSF_FRAME_LENGTH_SAMPLES
        self._centre: List[int] = [0] * _AVERAGE_LENGTH
        self._threshold: List[int] = [0] * _AVERAGE_LENGTH
        self.reset()

    @property
    def state(self) -> YSFRXState:
        """Current receiver state."""
        return self._state

    def reset(self) -> None:
        """Drop any lock and return to searching for sync."""
        self._state = YSFRXState.NONE
        self._data_ptr = 0
        self._bit_ptr = 0
        self._max_corr = 0
        self._average_ptr: Optional[int] = None
        self._start_ptr = 0
        self._end_ptr: Optional[int] = None
        self._sync_ptr = 0
        self._min_sync_ptr = 0
        self._max_sync_ptr = 0
        self._centre_val = 0
        self._threshold_val = 0
        self._lost_count = 0
        self._countdown = 0
        self._rssi_accum = 0
        self._rssi_count = 0

    def samples(self, samples: Sequence[int], rssi: Sequence[int]) -> None:
        """Process a block of samples together with one RSSI reading per sample."""
        if len(samples) != len(rssi):
            raise ValueError("samples and rssi must have the same length")

        for sample, level in zip(samples, rssi):
            sample = _q15(int(sample))

            self._rssi_accum = (self._rssi_accum + level) & 0xFFFFFFFF
            self._rssi_count += 1

            bits = (self._bit_buffer[self._bit_ptr] << 1) & 0xFFFFFFFF
            if sample < 0:
                bits |= 0x01
            self._bit_buffer[self._bit_ptr] = bits

            self._buffer[self._data_ptr] = sample

            if self._state is YSFRXState.DATA:
                self._process_data()
            else:
                self._process_none()

            self._data_ptr = (self._data_ptr + 1) % YSF_FRAME_LENGTH_SAMPLES
            self._bit_ptr = (self._bit_ptr + 1) % YSF_RADIO_SYMBOL_LENGTH

    def _set_sync_window(self) -> None:
        self._min_sync_ptr = _wrap(self._sync_ptr + YSF_FRAME_LENGTH_SAMPLES - 1)
        self._max_sync_ptr = _wrap(self._sync_ptr + 1)

    def _process_none(self) -> None:
        if self._correlate_sync() and self._countdown == 0:
            # On the first sync, start the countdown to the state change.
            self._rssi_accum = 0
            self._rssi_count = 0

            self._control.set_decode(True)
            self._control.set_adc_detection(True)

            self._average_ptr = None
            self._countdown = 5

        if self._countdown > 0:
            self._countdown -= 1

        if self._countdown == 1:
            self._set_sync_window()
            self._state = YSFRXState.DATA
            self._countdown = 0

    def _process_data(self) -> None:
        if self._min_sync_ptr < self._max_sync_ptr:
            if self._min_sync_ptr <= self._data_ptr <= self._max_sync_ptr:
                self._correlate_sync()
        elif self._data_ptr >= self._min_sync_ptr or self._data_ptr <= self._max_sync_ptr:
            self._correlate_sync()

        if self._data_ptr != self._end_ptr:
            return

        # Only move the sync window if it comes from a good sync.
        if self._lost_count == MAX_SYNC_FRAMES:
            self._set_sync_window()

        self._calculate_levels(self._start_ptr, YSF_FRAME_LENGTH_SYMBOLS)

        _log.debug(
            "YSFRX: sync found pos/centre/threshold %d %d %d",
            self._sync_ptr, self._centre_val, self._threshold_val,
        )

        frame = bytearray(YSF_FRAME_LENGTH_BYTES + 3)
        self._samples_to_bits(
            self._start_ptr, YSF_FRAME_LENGTH_SYMBOLS, frame, 8, self._centre_val, self._threshold_val
        )

        self._lost_count -= 1
        if self._lost_count == 0:
            _log.debug("YSFRX: sync timed out, lost lock")

            self._control.set_decode(False)
            self._control.set_adc_detection(False)

            self._sink.write_ysf_lost()

            self._state = YSFRXState.NONE
            self._end_ptr = None
            self._average_ptr = None
            self._countdown = 0
            self._max_corr = 0
        else:
            frame[0] = 0x01 if self._lost_count == MAX_SYNC_FRAMES - 1 else 0x00
            self._write_rssi_data(frame)
            self._max_corr = 0

    def _correlate_sync(self) -> bool:
        pattern = (self._bit_buffer[self._bit_ptr] & YSF_SYNC_SYMBOLS_MASK) ^ YSF_SYNC_SYMBOLS
        if count_bits32(pattern) > MAX_SYNC_SYMBOLS_ERRS:
            return False

        start_ptr = _wrap(
            self._data_ptr + YSF_FRAME_LENGTH_SAMPLES - YSF_SYNC_LENGTH_SAMPLES + YSF_RADIO_SYMBOL_LENGTH
        )

        corr = 0
        low = 16000
        high = -16000
        ptr = start_ptr
        for symbol in YSF_SYNC_SYMBOLS_VALUES:
            val = self._buffer[ptr]
            high = max(high, val)
            low = min(low, val)
            # Positive symbol values correspond to negative sample levels.
            corr -= symbol * val
            ptr = _wrap(ptr + YSF_RADIO_SYMBOL_LENGTH)

        if corr <= self._max_corr:
            return False

        if self._average_ptr is None:
            self._centre_val = _q15((high + low) >> 1)
            self._threshold_val = _q15(((high - self._centre_val) * SCALING_FACTOR) >> 15)

        sync = bytearray(YSF_SYNC_BYTES_LENGTH)
        self._samples_to_bits(start_ptr, YSF_SYNC_LENGTH_SYMBOLS, sync, 0, self._centre_val, self._threshold_val)

        max_errs = MAX_SYNC_BIT_START_ERRS if self._state is YSFRXState.NONE else MAX_SYNC_BIT_RUN_ERRS
        errs = sum(count_bits8(got ^ want) for got, want in zip(sync, YSF_SYNC_BYTES))
        if errs > max_errs:
            return False

        self._max_corr = corr
        self._lost_count = MAX_SYNC_FRAMES
        self._sync_ptr = self._data_ptr
        self._start_ptr = start_ptr
        self._end_ptr = _wrap(self._data_ptr + YSF_FRAME_LENGTH_SAMPLES - YSF_SYNC_LENGTH_SAMPLES - 1)
        return True

    def _calculate_levels(self, start: int, count: int) -> None:
        max_pos = -16000
        min_pos = 16000
        max_neg = 16000
        min_neg = -16000

        for _ in range(count):
            sample = self._buffer[start]
            if sample > 0:
                max_pos = max(max_pos, sample)
                min_pos = min(min_pos, sample)
            else:
                max_neg = min(max_neg, sample)
                min_neg = max(min_neg, sample)
            start = _wrap(start + YSF_RADIO_SYMBOL_LENGTH)

        pos_thresh = _q15((max_pos + min_pos) >> 1)
        neg_thresh = _q15((max_neg + min_neg) >> 1)
        centre = _q15((pos_thresh + neg_thresh) >> 1)
        threshold = _q15(pos_thresh - centre)

        _log.debug(
            "YSFRX: pos/neg/centre/threshold %d %d %d %d", pos_thresh, neg_thresh, centre, threshold
        )

        if self._average_ptr is None:
            self._centre = [centre] * _AVERAGE_LENGTH
            self._threshold = [threshold] * _AVERAGE_LENGTH
            self._average_ptr = 0
        else:
            self._centre[self._average_ptr] = centre
            self._threshold[self._average_ptr] = threshold
            self._average_ptr = (self._average_ptr + 1) % _AVERAGE_LENGTH

        centre_sum = 0
        threshold_sum = 0
        for c, t in zip(self._centre, self._threshold):
            centre_sum = _q15(centre_sum + c)
            threshold_sum = _q15(threshold_sum + t)

        self._centre_val = centre_sum >> 4
        self._threshold_val = threshold_sum >> 4

    def _samples_to_bits(
        self, start: int, count: int, buffer: bytearray, offset: int, centre: int, threshold: int
    ) -> None:
        for _ in range(count):
            sample = _q15(self._buffer[start] - centre)

            if sample < -threshold:
                first, second = False, True
            elif sample < 0:
                first, second = False, False
            elif sample < threshold:
                first, second = True, False
            else:
                first, second = True, True

            _write_bit(buffer, offset, first)
            _write_bit(buffer, offset + 1, second)
            offset += 2

            start = _wrap(start + YSF_RADIO_SYMBOL_LENGTH)

    def _write_rssi_data(self, frame: bytearray) -> None:
        if self._send_rssi and self._rssi_count > 0:
            rssi = (self._rssi_accum // self._rssi_count) & 0xFFFF
            frame[121] = (rssi >> 8) & 0xFF
            frame[122] = rssi & 0xFF
            self._sink.write_ysf_data(bytes(frame[: YSF_FRAME_LENGTH_BYTES + 3]))
        else:
            self._sink.write_ysf_data(bytes(frame[: YSF_FRAME_LENGTH_BYTES + 1]))

        self._rssi_accum = 0
        self._rssi_count = 0