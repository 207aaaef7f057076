"""Host-facing modem controller: dispatches requests and reports received traffic."""

from __future__ import annotations

import logging
from typing import Callable, Collection, Dict, FrozenSet, Iterable, Optional, Protocol, Set, Tuple

from hotspotmodem.modes import ModemState
from hotspotmodem.protocol import (
    ENABLE_FLAGS,
    ERR_GENERIC,
    ERR_INVALID,
    ERR_UNKNOWN_COMMAND,
    ERR_WRONG_STATE,
    Command,
    FMAckParams,
    FMCallsignParams,
    FMMiscParams,
    FrameReader,
    ModemConfig,
    ProtocolError,
    build_ack,
    build_debug,
    build_frame,
    build_nak,
    build_version,
    check_mode,
    hardware_description,
    parse_config,
    parse_fm_params1,
    parse_fm_params2,
    parse_fm_params3,
)

_log = logging.getLogger(__name__)

WATCHDOG_TIMEOUT = 48000

_MODE_NAMES = {
    ModemState.DMR: "DMR",
    ModemState.DSTAR: "D-Star",
    ModemState.YSF: "System Fusion",
    ModemState.P25: "P25",
    ModemState.NXDN: "NXDN",
    ModemState.POCSAG: "POCSAG",
    ModemState.FM: "FM",
    ModemState.DSTARCAL: "D-Star Calibrate",
    ModemState.DMRCAL: "DMR Calibrate",
    ModemState.RSSICAL: "RSSI Calibrate",
    ModemState.LFCAL: "80 Hz Calibrate",
    ModemState.FMCAL10K: "FM 10Khz Calibrate",
    ModemState.FMCAL12K: "FM 12.5Khz Calibrate",
    ModemState.FMCAL15K: "FM 15Khz Calibrate",
    ModemState.FMCAL20K: "FM 20Khz Calibrate",
    ModemState.FMCAL25K: "FM 25Khz Calibrate",
    ModemState.FMCAL30K: "FM 30Khz Calibrate",
    ModemState.P25CAL1K: "P25 1011 Hz Calibrate",
    ModemState.DMRDMO1K: "DMR MS 1031 Hz Calibrate",
    ModemState.NXDNCAL1K: "NXDN 1031 Hz Calibrate",
    ModemState.POCSAGCAL: "POCSAG Calibrate",
}

# Transmit requests and the mode each belongs to.
_DATA_COMMANDS: Dict[Command, ModemState] = {
    Command.DSTAR_HEADER: ModemState.DSTAR,
    Command.DSTAR_DATA: ModemState.DSTAR,
    Command.DSTAR_EOT: ModemState.DSTAR,
    Command.DMR_DATA1: ModemState.DMR,
    Command.DMR_DATA2: ModemState.DMR,
    Command.YSF_DATA: ModemState.YSF,
    Command.P25_HDR: ModemState.P25,
    Command.P25_LDU: ModemState.P25,
    Command.NXDN_DATA: ModemState.NXDN,
    Command.POCSAG_DATA: ModemState.POCSAG,
}

# States in which CAL_DATA requests are accepted.
_CAL_DATA_STATES: FrozenSet[ModemState] = frozenset(
    {
        ModemState.DSTARCAL,
        ModemState.DMRCAL,
        ModemState.LFCAL,
        ModemState.DMRCAL1K,
        ModemState.DMRDMO1K,
        ModemState.FMCAL10K,
        ModemState.FMCAL12K,
        ModemState.FMCAL15K,
        ModemState.FMCAL20K,
        ModemState.FMCAL25K,
        ModemState.FMCAL30K,
        ModemState.P25CAL1K,
        ModemState.NXDNCAL1K,
        ModemState.POCSAGCAL,
    }
)


class Transport(Protocol):
    """Byte link to the host."""

    def read(self) -> bytes:
        """Return every byte received so far and not yet read."""
        ...

    def write(self, data: bytes, flush: bool = False) -> None:
        """Send ``data``; with ``flush`` wait until it has left the link."""
        ...


class ModemBackend(Protocol):
    """The radio side of the modem: transmitters, calibration and I/O status.

    Request handlers raise ProtocolError to have the host's request rejected.
    """

    def reset_watchdog(self) -> None:
        """Restart the host watchdog."""
        ...

    def watchdog(self) -> int:
        """Samples elapsed since the watchdog was last restarted."""
        ...

    def overflow(self) -> Tuple[bool, bool]:
        """Return and clear the ADC and DAC overflow flags."""
        ...

    def has_rx_overflow(self) -> bool:
        """Whether the receive sample buffer has overflowed."""
        ...

    def has_tx_overflow(self) -> bool:
        """Whether the transmit sample buffer has overflowed."""
        ...

    def has_lockout(self) -> bool:
        """Whether transmission is locked out."""
        ...

    def is_transmitting(self) -> bool:
        """Whether the transmitter is keyed."""
        ...

    def carrier_detected(self) -> bool:
        """Whether a carrier is present on the receiver."""
        ...

    def tx_space(self, mode: ModemState, slot: int) -> int:
        """Free frames in a transmitter; ``slot`` is 1 or 2 for duplex DMR, else 0."""
        ...

    def change_mode(self, state: ModemState) -> None:
        """Reset receivers outside ``state`` and switch the I/O to it."""
        ...

    def apply_config(self, config: ModemConfig) -> None:
        """Apply a validated configuration and start the I/O."""
        ...

    def set_fm_callsign(self, params: FMCallsignParams) -> None:
        """Apply FM callsign settings."""
        ...

    def set_fm_ack(self, params: FMAckParams) -> None:
        """Apply FM acknowledgement settings."""
        ...

    def set_fm_misc(self, params: FMMiscParams) -> None:
        """Apply FM timeout, CTCSS and access settings."""
        ...

    def write_calibration(self, state: ModemState, payload: bytes) -> None:
        """Pass calibration data to the calibrator of ``state``."""
        ...

    def send_cw_id(self, payload: bytes) -> None:
        """Queue a CW identification."""
        ...

    def transmit(self, command: Command, payload: bytes, duplex: bool) -> None:
        """Queue traffic from the host for transmission."""
        ...

    def set_dmr_start(self, start: bool) -> None:
        """Start or stop the duplex DMR transmitter."""
        ...


class SerialPort:
    """Handles requests from the host and sends it received traffic and status."""

    def __init__(self, transport: Transport, backend: ModemBackend, hardware: Optional[str] = None) -> None:
        self._transport = transport
        self._backend = backend
        self._hardware = hardware if hardware is not None else hardware_description()
        self._reader = FrameReader()
        self._state = ModemState.IDLE
        self._enabled: Set[ModemState] = set()
        self._duplex = True
        self._debug = False

        self._handlers: Dict[Command, Callable[[Command, bytes], None]] = {
            Command.GET_STATUS: lambda c, p: self._send_status(),
            Command.GET_VERSION: lambda c, p: self._transport.write(build_version(self._hardware)),
            Command.SET_CONFIG: lambda c, p: self._acked(c, self._set_config, p),
            Command.SET_MODE: lambda c, p: self._acked(c, self._set_mode_request, p),
            Command.SET_FREQ: lambda c, p: self._transport.write(build_ack(c)),
            Command.FM_PARAMS1: lambda c, p: self._acked(
                c, lambda d: self._backend.set_fm_callsign(parse_fm_params1(d)), p
            ),
            Command.FM_PARAMS2: lambda c, p: self._acked(
                c, lambda d: self._backend.set_fm_ack(parse_fm_params2(d)), p
            ),
            Command.FM_PARAMS3: lambda c, p: self._acked(
                c, lambda d: self._backend.set_fm_misc(parse_fm_params3(d)), p
            ),
            Command.CAL_DATA: lambda c, p: self._acked(c, self._calibration, p),
            Command.SEND_CWID: lambda c, p: self._nak_on_error(c, self._cw_id, p),
            Command.DMR_START: lambda c, p: self._nak_on_error(c, self._dmr_start, p),
            Command.DMR_SHORTLC: lambda c, p: self._nak_on_error(c, self._dmr_control, c, p),
            Command.DMR_ABORT: lambda c, p: self._nak_on_error(c, self._dmr_control, c, p),
            Command.TRANSPARENT: lambda c, p: None,
            Command.QSO_INFO: lambda c, p: None,
        }
        for command in _DATA_COMMANDS:
            self._handlers[command] = lambda c, p: self._nak_on_error(c, self._transmit, c, p)

    @property
    def state(self) -> ModemState:
        """Current operating state."""
        return self._state

    @property
    def enabled(self) -> FrozenSet[ModemState]:
        """Modes the host has enabled."""
        return frozenset(self._enabled)

    @property
    def duplex(self) -> bool:
        """Whether the modem runs as a duplex repeater."""
        return self._duplex

    @property
    def debug(self) -> bool:
        """Whether debug messages are sent to the host."""
        return self._debug

    def process(self) -> None:
        """Handle every complete request received from the host."""
        for frame in self._reader.feed(self._transport.read()):
            self._handle(frame)

        if self._backend.watchdog() >= WATCHDOG_TIMEOUT:
            self._reader.reset()

    def set_mode(self, state: ModemState) -> None:
        """Switch the modem to ``state`` without checking whether it is allowed."""
        _log.debug("Mode set to %s", _MODE_NAMES.get(state, "Idle"))
        self._state = state
        self._backend.change_mode(state)

    def write_dstar_header(self, header: Iterable[int]) -> None:
        """Send a received D-Star header to the host."""
        self._report(ModemState.DSTAR, Command.DSTAR_HEADER, header)

    def write_dstar_data(self, data: Iterable[int]) -> None:
        """Send received D-Star data to the host."""
        self._report(ModemState.DSTAR, Command.DSTAR_DATA, data)

    def write_dstar_lost(self) -> None:
        """Tell the host the D-Star signal was lost."""
        self._report(ModemState.DSTAR, Command.DSTAR_LOST)

    def write_dstar_eot(self) -> None:
        """Tell the host a D-Star transmission ended."""
        self._report(ModemState.DSTAR, Command.DSTAR_EOT)

    def write_dmr_data(self, slot: bool, data: Iterable[int]) -> None:
        """Send a received DMR burst; ``slot`` True means slot 2."""
        self._report(ModemState.DMR, Command.DMR_DATA2 if slot else Command.DMR_DATA1, data)

    def write_dmr_lost(self, slot: bool) -> None:
        """Tell the host the DMR signal in a slot was lost."""
        self._report(ModemState.DMR, Command.DMR_LOST2 if slot else Command.DMR_LOST1)

    def write_ysf_data(self, data: Iterable[int]) -> None:
        """Send a received System Fusion frame to the host."""
        self._report(ModemState.YSF, Command.YSF_DATA, data)

    def write_ysf_lost(self) -> None:
        """Tell the host the System Fusion signal was lost."""
        self._report(ModemState.YSF, Command.YSF_LOST)

    def write_p25_hdr(self, data: Iterable[int]) -> None:
        """Send a received P25 header to the host."""
        self._report(ModemState.P25, Command.P25_HDR, data)

    def write_p25_ldu(self, data: Iterable[int]) -> None:
        """Send a received P25 LDU to the host."""
        self._report(ModemState.P25, Command.P25_LDU, data)

    def write_p25_lost(self) -> None:
        """Tell the host the P25 signal was lost."""
        self._report(ModemState.P25, Command.P25_LOST)

    def write_nxdn_data(self, data: Iterable[int]) -> None:
        """Send a received NXDN frame to the host."""
        self._report(ModemState.NXDN, Command.NXDN_DATA, data)

    def write_nxdn_lost(self) -> None:
        """Tell the host the NXDN signal was lost."""
        self._report(ModemState.NXDN, Command.NXDN_LOST)

    def write_cal_data(self, data: Iterable[int]) -> None:
        """Send D-Star calibration results, only while calibrating D-Star."""
        if self._state is ModemState.DSTARCAL:
            self._transport.write(build_frame(Command.CAL_DATA, data))

    def write_rssi_data(self, data: Iterable[int]) -> None:
        """Send RSSI readings, only while calibrating RSSI."""
        if self._state is ModemState.RSSICAL:
            self._transport.write(build_frame(Command.RSSI_DATA, data))

    def write_debug(self, text: str, *args: int) -> None:
        """Send a debug message with up to four values when debugging is on."""
        if self._debug:
            self._transport.write(build_debug(text, *args), True)

    def _report(self, mode: ModemState, command: Command, payload: Iterable[int] = b"") -> None:
        if self._state not in (mode, ModemState.IDLE) or mode not in self._enabled:
            return
        self._transport.write(build_frame(command, payload))

    def _handle(self, frame: bytes) -> None:
        payload = frame[3:]
        try:
            command = Command(frame[2])
        except ValueError:
            self._transport.write(build_nak(frame[2], ERR_UNKNOWN_COMMAND))
            return
        handler = self._handlers.get(command)
        if handler is None:
            self._transport.write(build_nak(command, ERR_UNKNOWN_COMMAND))
            return
        handler(command, payload)

    def _acked(self, command: Command, action: Callable[..., None], *args: object) -> None:
        if self._nak_on_error(command, action, *args):
            self._transport.write(build_ack(command))

    def _nak_on_error(self, command: Command, action: Callable[..., None], *args: object) -> bool:
        try:
            action(*args)
        except ProtocolError as error:
            _log.debug("Rejected %s request: %s", command.name, error)
            self._transport.write(build_nak(command, error.code))
            return False
        return True

    def _send_status(self) -> None:
        backend = self._backend
        backend.reset_watchdog()

        enable_bits = 0
        for mode, mask in ENABLE_FLAGS:
            if mode in self._enabled:
                enable_bits |= mask

        adc_overflow, dac_overflow = backend.overflow()
        flags = 0x01 if backend.is_transmitting() else 0x00
        if adc_overflow:
            flags |= 0x02
        if backend.has_rx_overflow():
            flags |= 0x04
        if backend.has_tx_overflow():
            flags |= 0x08
        if backend.has_lockout():
            flags |= 0x10
        if dac_overflow:
            flags |= 0x20
        if backend.carrier_detected():
            flags |= 0x40

        def space(mode: ModemState, slot: int = 0) -> int:
            return backend.tx_space(mode, slot) & 0xFF if mode in self._enabled else 0

        if ModemState.DMR not in self._enabled:
            dmr = (0, 0)
        elif self._duplex:
            dmr = (space(ModemState.DMR, 1), space(ModemState.DMR, 2))
        else:
            dmr = (10, space(ModemState.DMR, 0))

        payload = bytes(
            (
                enable_bits,
                int(self._state),
                flags,
                space(ModemState.DSTAR),
                *dmr,
                space(ModemState.YSF),
                space(ModemState.P25),
                space(ModemState.NXDN),
                space(ModemState.POCSAG),
            )
        )
        self._transport.write(build_frame(Command.GET_STATUS, payload))

    def _set_config(self, payload: bytes) -> None:
        if len(payload) >= 21:
            # The debug flag takes effect even if the rest is rejected.
            self._debug = (payload[0] & 0x10) == 0x10
        config = parse_config(payload)

        self.set_mode(config.modem_state)
        self._enabled = set(config.enabled)
        self._duplex = config.duplex
        self._backend.apply_config(config)

    def _set_mode_request(self, payload: bytes) -> None:
        if not payload:
            raise ProtocolError(ERR_INVALID, "missing modem state")
        if payload[0] == int(self._state):
            return
        self.set_mode(check_mode(payload[0], self._enabled))

    def _calibration(self, payload: bytes) -> None:
        if self._state not in _CAL_DATA_STATES:
            raise ProtocolError(ERR_GENERIC, "not in a calibration mode")
        self._backend.write_calibration(self._state, payload)

    def _cw_id(self, payload: bytes) -> None:
        if self._state is not ModemState.IDLE:
            raise ProtocolError(ERR_WRONG_STATE, "CW ID only allowed when idle")
        self._backend.send_cw_id(payload)

    def _require_enabled(self, mode: ModemState) -> None:
        if mode not in self._enabled:
            raise ProtocolError(ERR_GENERIC, f"mode {mode.name} is not enabled")

    def _transmit(self, command: Command, payload: bytes) -> None:
        mode = _DATA_COMMANDS[command]
        self._require_enabled(mode)
        if self._state not in (ModemState.IDLE, mode):
            raise ProtocolError(ERR_GENERIC, f"cannot send {mode.name} in {self._state.name}")
        if command is Command.DMR_DATA1 and not self._duplex:
            raise ProtocolError(ERR_GENERIC, "slot 1 needs duplex operation")

        self._backend.transmit(command, payload, self._duplex)

        if self._state is ModemState.IDLE:
            self.set_mode(mode)

    def _dmr_start(self, payload: bytes) -> None:
        self._require_enabled(ModemState.DMR)
        if len(payload) != 1 or self._state is not ModemState.DMR:
            raise ProtocolError(ERR_INVALID, "invalid DMR start")
        if payload[0] == 0x01:
            if not self._backend.is_transmitting():
                self._backend.set_dmr_start(True)
        elif payload[0] == 0x00:
            if self._backend.is_transmitting():
                self._backend.set_dmr_start(False)
        else:
            raise ProtocolError(ERR_INVALID, "invalid DMR start")

    def _dmr_control(self, command: Command, payload: bytes) -> None:
        self._require_enabled(ModemState.DMR)
        self._backend.transmit(command, payload, self._duplex)


def _enabled_of(states: Collection[ModemState]) -> FrozenSet[ModemState]:
    return frozenset(states)