import pytest

from hotspotmodem.modem import SerialPort
from hotspotmodem.modes import ModemState
from hotspotmodem.protocol import (
    Command,
    ProtocolError,
    build_ack,
    build_debug,
    build_frame,
    build_nak,
    build_version,
    parse_fm_params3,
)


class FakeTransport:
    def __init__(self):
        self.incoming = bytearray()
        self.sent = []

    def read(self):
        data = bytes(self.incoming)
        self.incoming.clear()
        return data

    def write(self, data, flush=False):
        self.sent.append((bytes(data), flush))


class FakeBackend:
    def __init__(self):
        self.watchdog_value = 0
        self.watchdog_resets = 0
        self.tx = False
        self.dcd = False
        self.spaces = {}
        self.modes = []
        self.configs = []
        self.fm = []
        self.calibration = []
        self.cwids = []
        self.transmitted = []
        self.starts = []
        self.error = None

    def _maybe_fail(self):
        if self.error is not None:
            raise self.error

    def reset_watchdog(self):
        self.watchdog_resets += 1

    def watchdog(self):
        return self.watchdog_value

    def overflow(self):
        return (False, False)

    def has_rx_overflow(self):
        return False

    def has_tx_overflow(self):
        return False

    def has_lockout(self):
        return False

    def is_transmitting(self):
        return self.tx

    def carrier_detected(self):
        return self.dcd

    def tx_space(self, mode, slot):
        return self.spaces.get((mode, slot), 0)

    def change_mode(self, state):
        self.modes.append(state)

    def apply_config(self, config):
        self.configs.append(config)

    def set_fm_callsign(self, params):
        self._maybe_fail()
        self.fm.append(params)

    def set_fm_ack(self, params):
        self._maybe_fail()
        self.fm.append(params)

    def set_fm_misc(self, params):
        self._maybe_fail()
        self.fm.append(params)

    def write_calibration(self, state, payload):
        self._maybe_fail()
        self.calibration.append((state, payload))

    def send_cw_id(self, payload):
        self._maybe_fail()
        self.cwids.append(payload)

    def transmit(self, command, payload, duplex):
        self._maybe_fail()
        self.transmitted.append((command, payload, duplex))

    def set_dmr_start(self, start):
        self.starts.append(start)


@pytest.fixture
def rig():
    transport = FakeTransport()
    backend = FakeBackend()
    port = SerialPort(transport, backend, "Test modem")
    return port, transport, backend


def send(port, transport, *frames):
    transport.sent.clear()
    transport.incoming += b"".join(frames)
    port.process()
    return [data for data, _ in transport.sent]


def config_payload(enable=0x04, state=0, flags=0x00, tx_delay=10, color=1):
    data = bytearray(21)
    data[0] = flags
    data[1] = enable
    data[2] = tx_delay
    data[3] = state
    data[6] = color
    data[13] = 128
    data[14] = 128
    return bytes(data)


def configure(port, transport, **kwargs):
    replies = send(port, transport, build_frame(Command.SET_CONFIG, config_payload(**kwargs)))
    assert replies == [build_ack(Command.SET_CONFIG)]


def test_version_reply(rig):
    port, transport, _ = rig
    replies = send(port, transport, build_frame(Command.GET_VERSION))
    assert replies == [build_version("Test modem")]
    assert replies[0][2] == 0x00
    assert replies[0][3] == 0x01


def test_status_with_nothing_enabled(rig):
    port, transport, backend = rig
    replies = send(port, transport, build_frame(Command.GET_STATUS))
    assert replies == [bytes([0xE0, 0x0D, 0x01] + [0] * 10)]
    assert backend.watchdog_resets == 1


def test_status_reports_flags_and_space(rig):
    port, transport, backend = rig
    configure(port, transport, enable=0x04)
    backend.tx = True
    backend.dcd = True
    backend.spaces[(ModemState.YSF, 0)] = 3
    status = send(port, transport, build_frame(Command.GET_STATUS))[0]
    assert status[3] == 0x04
    assert status[5] == 0x41
    assert status[9] == 3


def test_status_simplex_dmr(rig):
    port, transport, backend = rig
    configure(port, transport, enable=0x02, flags=0x80)
    backend.spaces[(ModemState.DMR, 0)] = 7
    status = send(port, transport, build_frame(Command.GET_STATUS))[0]
    assert status[7] == 10
    assert status[8] == 7


def test_config_accepted(rig):
    port, transport, backend = rig
    replies = send(port, transport, build_frame(Command.SET_CONFIG, config_payload()))
    assert replies == [bytes([0xE0, 0x04, 0x70, 0x02])]
    assert port.enabled == frozenset({ModemState.YSF})
    assert port.duplex is True
    assert backend.configs[0].color_code == 1


def test_config_too_short(rig):
    port, transport, backend = rig
    replies = send(port, transport, build_frame(Command.SET_CONFIG, bytes(10)))
    assert replies == [bytes([0xE0, 0x05, 0x7F, 0x02, 0x04])]
    assert backend.configs == []


def test_config_debug_flag_set_even_when_rejected(rig):
    port, transport, backend = rig
    replies = send(port, transport, build_frame(Command.SET_CONFIG, config_payload(flags=0x10, tx_delay=60)))
    assert replies == [build_nak(Command.SET_CONFIG, 4)]
    assert port.debug is True
    assert backend.configs == []


def test_unknown_command(rig):
    port, transport, _ = rig
    replies = send(port, transport, build_frame(0x55))
    assert replies == [build_nak(0x55, 1)]


def test_serial_command_rejected_without_repeater(rig):
    port, transport, _ = rig
    replies = send(port, transport, build_frame(Command.SERIAL, b"abc"))
    assert replies == [build_nak(Command.SERIAL, 1)]


def test_set_mode_not_enabled(rig):
    port, transport, _ = rig
    configure(port, transport, enable=0x04)
    replies = send(port, transport, build_frame(Command.SET_MODE, bytes([2])))
    assert replies == [build_nak(Command.SET_MODE, 4)]
    assert port.state is ModemState.IDLE


def test_set_mode_same_state_acks_without_change(rig):
    port, transport, backend = rig
    configure(port, transport)
    count = len(backend.modes)
    replies = send(port, transport, build_frame(Command.SET_MODE, bytes([0])))
    assert replies == [build_ack(Command.SET_MODE)]
    assert len(backend.modes) == count


def test_set_mode_valid(rig):
    port, transport, backend = rig
    configure(port, transport)
    replies = send(port, transport, build_frame(Command.SET_MODE, bytes([3])))
    assert replies == [build_ack(Command.SET_MODE)]
    assert port.state is ModemState.YSF
    assert backend.modes[-1] is ModemState.YSF


def test_set_mode_empty_payload(rig):
    port, transport, _ = rig
    replies = send(port, transport, build_frame(Command.SET_MODE))
    assert replies == [build_nak(Command.SET_MODE, 4)]


def test_ysf_data_switches_mode(rig):
    port, transport, backend = rig
    configure(port, transport)
    payload = bytes(range(121))
    replies = send(port, transport, build_frame(Command.YSF_DATA, payload))
    assert replies == []
    assert backend.transmitted == [(Command.YSF_DATA, payload, True)]
    assert port.state is ModemState.YSF


def test_ysf_data_when_disabled(rig):
    port, transport, backend = rig
    replies = send(port, transport, build_frame(Command.YSF_DATA, b"x"))
    assert replies == [build_nak(Command.YSF_DATA, 2)]
    assert backend.transmitted == []


def test_backend_error_becomes_nak(rig):
    port, transport, backend = rig
    configure(port, transport)
    backend.error = ProtocolError(5)
    replies = send(port, transport, build_frame(Command.YSF_DATA, b"x"))
    assert replies == [build_nak(Command.YSF_DATA, 5)]
    assert port.state is ModemState.IDLE


def test_dmr_slot1_needs_duplex(rig):
    port, transport, _ = rig
    configure(port, transport, enable=0x02, flags=0x80)
    replies = send(port, transport, build_frame(Command.DMR_DATA1, b"abc"))
    assert replies == [build_nak(Command.DMR_DATA1, 2)]


def test_dmr_slot2_simplex_transmits(rig):
    port, transport, backend = rig
    configure(port, transport, enable=0x02, flags=0x80)
    send(port, transport, build_frame(Command.DMR_DATA2, b"abc"))
    assert backend.transmitted == [(Command.DMR_DATA2, b"abc", False)]
    assert port.state is ModemState.DMR


def test_dmr_start(rig):
    port, transport, backend = rig
    configure(port, transport, enable=0x02, state=2)
    replies = send(port, transport, build_frame(Command.DMR_START, bytes([1])))
    assert replies == []
    assert backend.starts == [True]


def test_dmr_start_bad_value(rig):
    port, transport, backend = rig
    configure(port, transport, enable=0x02, state=2)
    replies = send(port, transport, build_frame(Command.DMR_START, bytes([7])))
    assert replies == [build_nak(Command.DMR_START, 4)]
    assert backend.starts == []


def test_cw_id_wrong_state(rig):
    port, transport, backend = rig
    configure(port, transport, state=3)
    replies = send(port, transport, build_frame(Command.SEND_CWID, b"CALL"))
    assert replies == [build_nak(Command.SEND_CWID, 5)]
    assert backend.cwids == []


def test_cw_id_when_idle(rig):
    port, transport, backend = rig
    replies = send(port, transport, build_frame(Command.SEND_CWID, b"CALL"))
    assert replies == []
    assert backend.cwids == [b"CALL"]


def test_cal_data(rig):
    port, transport, backend = rig
    replies = send(port, transport, build_frame(Command.CAL_DATA, b"\x01"))
    assert replies == [build_nak(Command.CAL_DATA, 2)]
    configure(port, transport, enable=0x00, state=99)
    replies = send(port, transport, build_frame(Command.CAL_DATA, b"\x01"))
    assert replies == [build_ack(Command.CAL_DATA)]
    assert backend.calibration == [(ModemState.DSTARCAL, b"\x01")]


def test_fm_params3_forwarded(rig):
    port, transport, backend = rig
    payload = bytes(range(1, 13))
    replies = send(port, transport, build_frame(Command.FM_PARAMS3, payload))
    assert replies == [build_ack(Command.FM_PARAMS3)]
    assert backend.fm == [parse_fm_params3(payload)]


def test_fm_params_too_short(rig):
    port, transport, backend = rig
    replies = send(port, transport, build_frame(Command.FM_PARAMS1, bytes(3)))
    assert replies == [build_nak(Command.FM_PARAMS1, 4)]
    assert backend.fm == []


def test_transparent_ignored(rig):
    port, transport, _ = rig
    replies = send(port, transport, build_frame(Command.TRANSPARENT, b"data"))
    assert replies == []


def test_garbage_before_frame_ignored(rig):
    port, transport, _ = rig
    replies = send(port, transport, b"\x01\x02\x03" + build_frame(Command.GET_VERSION))
    assert replies == [build_version("Test modem")]


def test_frame_split_across_reads(rig):
    port, transport, _ = rig
    frame = build_frame(Command.GET_VERSION)
    assert send(port, transport, frame[:2]) == []
    assert send(port, transport, frame[2:]) == [build_version("Test modem")]


def test_watchdog_discards_partial_frame(rig):
    port, transport, backend = rig
    frame = build_frame(Command.GET_VERSION)
    backend.watchdog_value = 48000
    assert send(port, transport, frame[:2]) == []
    backend.watchdog_value = 0
    assert send(port, transport, frame[2:]) == []
    assert send(port, transport, frame) == [build_version("Test modem")]


def test_write_ysf_data_reported_when_enabled(rig):
    port, transport, _ = rig
    port.write_ysf_data(b"abc")
    assert transport.sent == []
    configure(port, transport)
    transport.sent.clear()
    port.write_ysf_data(b"abc")
    assert transport.sent == [(build_frame(Command.YSF_DATA, b"abc"), False)]


def test_write_dmr_lost_slot2(rig):
    port, transport, _ = rig
    configure(port, transport, enable=0x02)
    transport.sent.clear()
    port.write_dmr_lost(True)
    assert transport.sent == [(bytes([0xE0, 0x03, 0x1B]), False)]


def test_write_rssi_data_only_in_rssi_calibration(rig):
    port, transport, _ = rig
    port.write_rssi_data(b"\x01\x02")
    assert transport.sent == []
    configure(port, transport, enable=0x00, state=96)
    transport.sent.clear()
    port.write_rssi_data(b"\x01\x02")
    assert transport.sent == [(build_frame(Command.RSSI_DATA, b"\x01\x02"), False)]


def test_write_debug(rig):
    port, transport, _ = rig
    port.write_debug("hello", 1)
    assert transport.sent == []
    configure(port, transport, flags=0x10)
    transport.sent.clear()
    port.write_debug("hello", 1, -2)
    assert transport.sent == [(build_debug("hello", 1, -2), True)]