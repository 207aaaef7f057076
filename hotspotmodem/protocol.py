"""Host serial protocol: frame layout, command codes and payload parsing."""

from __future__ import annotations

import datetime
import enum
from dataclasses import dataclass
from typing import Collection, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from hotspotmodem.modes import ModemState

# Build options
EXTERNAL_OSC = 12000000
USE_DCBLOCKER = True
SEND_RSSI_DATA = False
SERIAL_REPEATER = False

FRAME_START = 0xE0
PROTOCOL_VERSION = 1

DEFAULT_HARDWARE_TYPE = "MMDVM"
DEFAULT_BUILD_ID = "0000000"
DESCRIPTION = "20210101 (D-Star/DMR/System Fusion/P25/NXDN/POCSAG/FM)"

_TCXO_NAMES = {
    12000000: "12.0000 MHz",
    12288000: "12.2880 MHz",
    14400000: "14.4000 MHz",
    19200000: "19.2000 Mhz",
}

# NAK reason codes
ERR_UNKNOWN_COMMAND = 1
ERR_GENERIC = 2
ERR_INVALID = 4
ERR_WRONG_STATE = 5

_MAX_FRAME_LENGTH = 0xFF
_MAX_DEBUG_VALUES = 4


class Command(enum.IntEnum):
    """Message type carried in the third byte of every frame."""

    GET_VERSION = 0x00
    GET_STATUS = 0x01
    SET_CONFIG = 0x02
    SET_MODE = 0x03
    SET_FREQ = 0x04

    CAL_DATA = 0x08
    RSSI_DATA = 0x09

    SEND_CWID = 0x0A

    DSTAR_HEADER = 0x10
    DSTAR_DATA = 0x11
    DSTAR_LOST = 0x12
    DSTAR_EOT = 0x13

    DMR_DATA1 = 0x18
    DMR_LOST1 = 0x19
    DMR_DATA2 = 0x1A
    DMR_LOST2 = 0x1B
    DMR_SHORTLC = 0x1C
    DMR_START = 0x1D
    DMR_ABORT = 0x1E

    YSF_DATA = 0x20
    YSF_LOST = 0x21

    P25_HDR = 0x30
    P25_LDU = 0x31
    P25_LOST = 0x32

    NXDN_DATA = 0x40
    NXDN_LOST = 0x41

    POCSAG_DATA = 0x50

    FM_PARAMS1 = 0x60
    FM_PARAMS2 = 0x61
    FM_PARAMS3 = 0x62

    ACK = 0x70
    NAK = 0x7F

    SERIAL = 0x80

    TRANSPARENT = 0x90
    QSO_INFO = 0x91

    DEBUG1 = 0xF1
    DEBUG2 = 0xF2
    DEBUG3 = 0xF3
    DEBUG4 = 0xF4
    DEBUG5 = 0xF5


# Bit in the enable byte (and status byte) for each mode.
ENABLE_FLAGS: Tuple[Tuple[ModemState, int], ...] = (
    (ModemState.DSTAR, 0x01),
    (ModemState.DMR, 0x02),
    (ModemState.YSF, 0x04),
    (ModemState.P25, 0x08),
    (ModemState.NXDN, 0x10),
    (ModemState.POCSAG, 0x20),
    (ModemState.FM, 0x40),
)

_SETTABLE_STATES = frozenset(
    {
        ModemState.IDLE,
        ModemState.DSTAR,
        ModemState.DMR,
        ModemState.YSF,
        ModemState.P25,
        ModemState.NXDN,
        ModemState.POCSAG,
        ModemState.FM,
        ModemState.DSTARCAL,
        ModemState.DMRCAL,
        ModemState.RSSICAL,
        ModemState.LFCAL,
        ModemState.DMRCAL1K,
        ModemState.P25CAL1K,
        ModemState.DMRDMO1K,
        ModemState.NXDNCAL1K,
        ModemState.POCSAGCAL,
        ModemState.FMCAL10K,
        ModemState.FMCAL12K,
        ModemState.FMCAL15K,
        ModemState.FMCAL20K,
        ModemState.FMCAL25K,
        ModemState.FMCAL30K,
    }
)

_MODES_NEEDING_ENABLE = frozenset(state for state, _ in ENABLE_FLAGS)


class ProtocolError(Exception):
    """A request the modem rejects; ``code`` is the reason sent in the NAK."""

    def __init__(self, code: int, message: str = "") -> None:
        super().__init__(message or f"protocol error {code}")
        self.code = code


@dataclass(frozen=True)
class ModemConfig:
    """Settings carried by a SET_CONFIG request."""

    rx_invert: bool
    tx_invert: bool
    ptt_invert: bool
    ysf_lo_dev: bool
    debug: bool
    use_cos_as_lockout: bool
    duplex: bool
    enabled: FrozenSet[ModemState]
    tx_delay: int
    modem_state: ModemState
    rx_level: int
    cw_id_tx_level: int
    color_code: int
    dmr_delay: int
    dstar_tx_level: int
    dmr_tx_level: int
    ysf_tx_level: int
    p25_tx_level: int
    tx_dc_offset: int
    rx_dc_offset: int
    nxdn_tx_level: int
    ysf_tx_hang: int
    pocsag_tx_level: int
    fm_tx_level: int
    p25_tx_hang: int
    nxdn_tx_hang: int


@dataclass(frozen=True)
class FMCallsignParams:
    """FM callsign identification settings (FM_PARAMS1)."""

    speed: int
    frequency: int
    time: int
    holdoff: int
    high_level: int
    low_level: int
    call_at_start: bool
    call_at_end: bool
    call_at_latch: bool
    callsign: str


@dataclass(frozen=True)
class FMAckParams:
    """FM courtesy acknowledgement settings (FM_PARAMS2)."""

    speed: int
    frequency: int
    min_time: int
    delay: int
    level: int
    ack: str


@dataclass(frozen=True)
class FMMiscParams:
    """FM timeout, CTCSS and access settings (FM_PARAMS3)."""

    timeout: int
    timeout_level: int
    ctcss_frequency: int
    ctcss_high_threshold: int
    ctcss_low_threshold: int
    ctcss_level: int
    kerchunk_time: int
    hang_time: int
    access_mode: int
    cos_invert: bool
    rf_audio_boost: int
    max_dev: int
    rx_level: int


class FrameReader:
    """Reassembles frames from a byte stream.

    Bytes before a frame start marker are discarded. A frame whose length
    byte is too short to hold a command is dropped.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._length = 0

    def reset(self) -> None:
        """Discard any partly received frame."""
        self._buffer.clear()
        self._length = 0

    def feed(self, data: Iterable[int]) -> List[bytes]:
        """Consume bytes and return every frame completed by them, header included."""
        frames: List[bytes] = []
        for value in data:
            value &= 0xFF
            if not self._buffer:
                if value == FRAME_START:
                    self._buffer.append(value)
                    self._length = 0
            elif len(self._buffer) == 1:
                if value < 3:
                    self.reset()
                    continue
                self._length = value
                self._buffer.append(value)
            else:
                self._buffer.append(value)
                if len(self._buffer) == self._length:
                    frames.append(bytes(self._buffer))
                    self.reset()
        return frames


def build_frame(command: int, payload: Iterable[int] = b"") -> bytes:
    """Wrap ``payload`` in a frame header for ``command``."""
    body = bytes(payload)
    length = len(body) + 3
    if length > _MAX_FRAME_LENGTH:
        raise ValueError(f"frame of {length} bytes does not fit the length byte")
    return bytes((FRAME_START, length, int(command) & 0xFF)) + body


def build_ack(command: int) -> bytes:
    """Acknowledge the request of type ``command``."""
    return build_frame(Command.ACK, (int(command) & 0xFF,))


def build_nak(command: int, error: int) -> bytes:
    """Reject the request of type ``command`` with reason ``error``."""
    return build_frame(Command.NAK, (int(command) & 0xFF, int(error) & 0xFF))


def build_version(hardware: str) -> bytes:
    """Reply to GET_VERSION with the protocol version and hardware description."""
    return build_frame(
        Command.GET_VERSION, bytes((PROTOCOL_VERSION,)) + hardware.encode("latin-1", errors="replace")
    )


def build_debug(text: str, *args: int) -> bytes:
    """Debug message with up to four signed 16-bit values appended."""
    if len(args) > _MAX_DEBUG_VALUES:
        raise ValueError(f"at most {_MAX_DEBUG_VALUES} debug values are allowed")
    payload = bytearray(text.encode("latin-1", errors="replace"))
    for value in args:
        payload += (int(value) & 0xFFFF).to_bytes(2, "big")
    return build_frame(Command.DEBUG1 + len(args), payload)


def hardware_description(
    oscillator: int = EXTERNAL_OSC,
    hardware_type: str = DEFAULT_HARDWARE_TYPE,
    build_id: Optional[str] = DEFAULT_BUILD_ID,
) -> str:
    """Text reported in the version reply.

    Without a build id the current time and date stand in for it.
    """
    tcxo = _TCXO_NAMES.get(oscillator, "NO TCXO")
    if build_id is not None:
        return f"{hardware_type} {DESCRIPTION} {tcxo} GitID #{build_id}"
    now = datetime.datetime.now()
    date = f"{now:%b} {now.day:2d} {now.year}"
    return f"{hardware_type} {DESCRIPTION} {tcxo} (Build: {now:%H:%M:%S} {date})"


def check_mode(state: int, enabled: Collection[ModemState]) -> ModemState:
    """Validate a requested modem state against the set of enabled modes."""
    try:
        mode = ModemState.from_byte(int(state))
    except ValueError:
        raise ProtocolError(ERR_INVALID, f"unknown modem state {state}") from None
    if mode not in _SETTABLE_STATES:
        raise ProtocolError(ERR_INVALID, f"modem state {mode.name} cannot be selected")
    if mode in _MODES_NEEDING_ENABLE and mode not in enabled:
        raise ProtocolError(ERR_INVALID, f"mode {mode.name} is not enabled")
    return mode


def _require(data: Sequence[int], length: int) -> None:
    if len(data) < length:
        raise ProtocolError(ERR_INVALID, f"payload needs {length} bytes, got {len(data)}")


def _flag(value: int, mask: int) -> bool:
    return (value & mask) == mask


def _text(data: Sequence[int]) -> str:
    return bytes(data).decode("latin-1")


def parse_config(data: Sequence[int]) -> ModemConfig:
    """Decode a SET_CONFIG payload, raising ProtocolError if it is invalid."""
    _require(data, 21)

    flags = data[0]
    enabled = frozenset(state for state, mask in ENABLE_FLAGS if _flag(data[1], mask))

    tx_delay = data[2]
    if tx_delay > 50:
        raise ProtocolError(ERR_INVALID, f"TX delay {tx_delay} out of range")

    modem_state = check_mode(data[3], enabled)

    color_code = data[6]
    if color_code > 15:
        raise ProtocolError(ERR_INVALID, f"colour code {color_code} out of range")

    return ModemConfig(
        rx_invert=_flag(flags, 0x01),
        tx_invert=_flag(flags, 0x02),
        ptt_invert=_flag(flags, 0x04),
        ysf_lo_dev=_flag(flags, 0x08),
        debug=_flag(flags, 0x10),
        use_cos_as_lockout=_flag(flags, 0x20),
        duplex=not _flag(flags, 0x80),
        enabled=enabled,
        tx_delay=tx_delay,
        modem_state=modem_state,
        rx_level=data[4],
        cw_id_tx_level=data[5],
        color_code=color_code,
        dmr_delay=data[7],
        dstar_tx_level=data[9],
        dmr_tx_level=data[10],
        ysf_tx_level=data[11],
        p25_tx_level=data[12],
        tx_dc_offset=data[13] - 128,
        rx_dc_offset=data[14] - 128,
        nxdn_tx_level=data[15],
        ysf_tx_hang=data[16],
        pocsag_tx_level=data[17],
        fm_tx_level=data[18],
        p25_tx_hang=data[19],
        nxdn_tx_hang=data[20],
    )


def parse_fm_params1(data: Sequence[int]) -> FMCallsignParams:
    """Decode an FM_PARAMS1 payload."""
    _require(data, 8)
    return FMCallsignParams(
        speed=data[0],
        frequency=data[1] * 10,
        time=data[2],
        holdoff=data[3],
        high_level=data[4],
        low_level=data[5],
        call_at_start=_flag(data[6], 0x01),
        call_at_end=_flag(data[6], 0x02),
        call_at_latch=_flag(data[6], 0x04),
        callsign=_text(data[7:]),
    )


def parse_fm_params2(data: Sequence[int]) -> FMAckParams:
    """Decode an FM_PARAMS2 payload."""
    _require(data, 6)
    return FMAckParams(
        speed=data[0],
        frequency=data[1] * 10,
        min_time=data[2],
        delay=data[3] * 10,
        level=data[4],
        ack=_text(data[5:]),
    )


def parse_fm_params3(data: Sequence[int]) -> FMMiscParams:
    """Decode an FM_PARAMS3 payload."""
    _require(data, 12)
    return FMMiscParams(
        timeout=data[0] * 5,
        timeout_level=data[1],
        ctcss_frequency=data[2],
        ctcss_high_threshold=data[3],
        ctcss_low_threshold=data[4],
        ctcss_level=data[5],
        kerchunk_time=data[6],
        hang_time=data[7],
        access_mode=data[8] & 0x7F,
        cos_invert=_flag(data[8], 0x80),
        rf_audio_boost=data[9],
        max_dev=data[10],
        rx_level=data[11],
    )