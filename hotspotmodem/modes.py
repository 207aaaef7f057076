"""Modem operating states and shared buffer sizes."""

from __future__ import annotations

import enum

MARK_SLOT1 = 0x08
MARK_SLOT2 = 0x04
MARK_NONE = 0x00

RX_BLOCK_SIZE = 2

TX_RINGBUFFER_SIZE = 500
RX_RINGBUFFER_SIZE = 600

TX_BUFFER_LEN = 4000


class ModemState(enum.IntEnum):
    """Operating state of the modem as carried in protocol bytes."""

    IDLE = 0
    DSTAR = 1
    DMR = 2
    YSF = 3
    P25 = 4
    NXDN = 5
    POCSAG = 6
    FM = 10

    # Dummy states start at 90
    NXDNCAL1K = 91
    DMRDMO1K = 92
    P25CAL1K = 93
    DMRCAL1K = 94
    LFCAL = 95
    RSSICAL = 96
    CWID = 97
    DMRCAL = 98
    DSTARCAL = 99
    INTCAL = 100
    POCSAGCAL = 101
    FMCAL10K = 102
    FMCAL12K = 103
    FMCAL15K = 104
    FMCAL20K = 105
    FMCAL25K = 106
    FMCAL30K = 107

    def is_calibration(self) -> bool:
        """True for the calibration states (dummy states other than CW ID)."""
        return self.value >= 90 and self is not ModemState.CWID

    @classmethod
    def from_byte(cls, value: int) -> "ModemState":
        """Convert a protocol byte into a state, raising ValueError if unknown."""
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"unknown modem state {value}") from None