import pytest

from hotspotmodem.modes import ModemState
from hotspotmodem.protocol import (
    DESCRIPTION,
    FRAME_START,
    PROTOCOL_VERSION,
    Command,
    FrameReader,
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


def _config_payload(**overrides):
    data = bytearray(21)
    data[1] = 0x04  # YSF enabled
    data[3] = ModemState.YSF
    data[13] = 128
    data[14] = 128
    for index, value in overrides.items():
        data[int(index[1:])] = value
    return bytes(data)


def test_ack_wire_bytes():
    assert build_ack(Command.SET_CONFIG) == bytes([0xE0, 0x04, 0x70, 0x02])


def test_nak_wire_bytes():
    assert build_nak(Command.SET_MODE, 4) == bytes([0xE0, 0x05, 0x7F, 0x03, 0x04])


def test_build_frame_header_and_payload():
    frame = build_frame(Command.YSF_LOST)
    assert frame == bytes([FRAME_START, 3, Command.YSF_LOST])
    payload = bytes(range(10))
    frame = build_frame(Command.YSF_DATA, payload)
    assert frame[1] == len(frame)
    assert frame[3:] == payload


def test_build_frame_too_long():
    with pytest.raises(ValueError):
        build_frame(Command.YSF_DATA, bytes(253))


def test_build_version():
    frame = build_version("MMDVM")
    assert frame[2] == Command.GET_VERSION
    assert frame[3] == PROTOCOL_VERSION
    assert frame[4:] == b"MMDVM"
    assert frame[1] == len(frame)


def test_build_debug_values_round_trip():
    frame = build_debug("ab", 1, -2, 300)
    assert frame[2] == Command.DEBUG4
    assert frame[3:5] == b"ab"
    values = [int.from_bytes(frame[i:i + 2], "big", signed=True) for i in (5, 7, 9)]
    assert values == [1, -2, 300]
    assert build_debug("x")[2] == Command.DEBUG1


def test_build_debug_too_many_values():
    with pytest.raises(ValueError):
        build_debug("x", 1, 2, 3, 4, 5)


def test_hardware_description_default():
    text = hardware_description()
    assert text == f"MMDVM {DESCRIPTION} 12.0000 MHz GitID #0000000"


def test_hardware_description_unknown_oscillator():
    assert "NO TCXO" in hardware_description(oscillator=10000000)
    assert "14.4000 MHz" in hardware_description(oscillator=14400000)


def test_hardware_description_without_build_id():
    text = hardware_description(hardware_type="MMDVM DRCC_DVM_NQF", build_id=None)
    assert text.startswith("MMDVM DRCC_DVM_NQF ")
    assert "(Build: " in text


def test_frame_reader_skips_noise_and_splits():
    reader = FrameReader()
    ack = build_ack(Command.SET_MODE)
    status = build_frame(Command.GET_STATUS)
    stream = b"\x01\x02" + ack + status
    assert reader.feed(stream[:4]) == []
    assert reader.feed(stream[4:]) == [ack, status]


def test_frame_reader_reset_drops_partial():
    reader = FrameReader()
    frame = build_frame(Command.SET_MODE, b"\x03")
    reader.feed(frame[:3])
    reader.reset()
    assert reader.feed(frame) == [frame]


def test_frame_reader_drops_short_length():
    reader = FrameReader()
    good = build_frame(Command.GET_VERSION)
    assert reader.feed(bytes([FRAME_START, 1]) + good) == [good]


def test_check_mode_accepts_enabled():
    assert check_mode(ModemState.YSF, {ModemState.YSF}) is ModemState.YSF
    assert check_mode(0, set()) is ModemState.IDLE
    assert check_mode(ModemState.DSTARCAL, set()) is ModemState.DSTARCAL


@pytest.mark.parametrize("state", [ModemState.DMR, ModemState.CWID, ModemState.INTCAL, 42])
def test_check_mode_rejects(state):
    with pytest.raises(ProtocolError) as info:
        check_mode(state, {ModemState.YSF})
    assert info.value.code == 4


def test_parse_config_fields():
    config = parse_config(_config_payload(d0=0x80 | 0x08 | 0x10, d2=20, d6=7, d13=138, d14=118, d16=3))
    assert config.modem_state is ModemState.YSF
    assert config.enabled == frozenset({ModemState.YSF})
    assert config.duplex is False
    assert config.ysf_lo_dev is True
    assert config.debug is True
    assert config.rx_invert is False
    assert config.tx_delay == 20
    assert config.color_code == 7
    assert config.tx_dc_offset == 138 - 128
    assert config.rx_dc_offset == 118 - 128
    assert config.ysf_tx_hang == 3


@pytest.mark.parametrize(
    "payload",
    [
        bytes(20),
        _config_payload(d2=51),
        _config_payload(d6=16),
        _config_payload(d3=ModemState.DMR),
    ],
)
def test_parse_config_errors(payload):
    with pytest.raises(ProtocolError) as info:
        parse_config(payload)
    assert info.value.code == 4


def test_parse_fm_params1():
    params = parse_fm_params1(bytes([20, 100, 10, 1, 80, 40, 0x05]) + b"N0CALL")
    assert params.callsign == "N0CALL"
    assert params.frequency == 100 * 10
    assert params.call_at_start and params.call_at_latch
    assert not params.call_at_end
    with pytest.raises(ProtocolError):
        parse_fm_params1(bytes(7))


def test_parse_fm_params2():
    params = parse_fm_params2(bytes([20, 88, 5, 30, 50]) + b"K")
    assert params.ack == "K"
    assert params.delay == 30 * 10
    assert params.frequency == 88 * 10
    with pytest.raises(ProtocolError):
        parse_fm_params2(bytes(5))


def test_parse_fm_params3():
    params = parse_fm_params3(bytes([36, 1, 2, 3, 4, 5, 6, 7, 0x82, 9, 10, 11]))
    assert params.timeout == 36 * 5
    assert params.access_mode == 0x82 & 0x7F
    assert params.cos_invert is True
    assert params.rx_level == 11
    with pytest.raises(ProtocolError):
        parse_fm_params3(bytes(11))