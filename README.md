# hotspotmodem

`hotspotmodem` is the modem side of a digital-voice hotspot as a plain Python library. It needs nothing outside the standard library.

## What is in it

### Host protocol: `hotspotmodem.protocol`

Every frame starts with the byte `0xE0`. The second byte is the frame length and the third is a `Command`.

- `FrameReader.feed(data)` reassembles frames from a byte stream and returns each complete frame, header included. Bytes before a start marker are dropped. `reset()` discards a partly received frame.
- The reply builders are `build_frame(command, payload)`, `build_ack(command)`, `build_nak(command, error)`, `build_version(hardware)` and `build_debug(text, *args)`. `build_debug` takes up to four values, each sent as a signed 16-bit big-endian number.
- The parsers turn host requests into frozen dataclasses:

  | Parser | Result |
  | --- | --- |
  | `parse_config` | `ModemConfig` |
  | `parse_fm_params1` | `FMCallsignParams` |
  | `parse_fm_params2` | `FMAckParams` |
  | `parse_fm_params3` | `FMMiscParams` |

  An invalid request raises `ProtocolError`. Its `code` attribute holds the reason sent in a NAK.
- `check_mode(state, enabled)` checks that a requested state may be selected and that its mode is enabled.
- `hardware_description(oscillator, hardware_type, build_id)` builds the text reported in the version reply.

### Modem dispatcher: `hotspotmodem.modem`

`SerialPort(transport, backend, hardware=None)` handles requests from the host.

- Each call to `process()` reads pending bytes from a `Transport` and handles every complete request.
- It answers status, version, configuration, mode and FM parameter requests itself, with an ACK or a NAK as the request calls for.
- Calibration data, CW ID, transmit traffic and DMR control go to a `ModemBackend`. A backend method rejects a request by raising `ProtocolError`.
- The `write_dstar_*`, `write_dmr_*`, `write_ysf_*`, `write_p25_*` and `write_nxdn_*` methods send received traffic to the host. Each sends only when the modem is idle or in that mode, and the mode is enabled.
- `write_cal_data` and `write_rssi_data` send only in their calibration states.
- `write_debug` sends only when the host has switched debugging on.

### Modem states: `hotspotmodem.modes`

- `ModemState` lists the operating and calibration states.
- `ModemState.from_byte` converts a protocol byte into a state.
- `ModemState.is_calibration` reports whether a state is a calibration state.

### Ring buffers: `hotspotmodem.ringbuffer`

These are fixed-capacity FIFOs.

| Class | Holds | `put` when full | `get` when empty |
| --- | --- | --- | --- |
| `ByteRingBuffer` | bytes | returns `False` | raises `IndexError` |
| `SampleRingBuffer` | `(sample, control)` pairs | returns `False` | returns `None` |
| `RSSIRingBuffer` | readings | returns `False` | returns `None` |

`ByteRingBuffer` also has `peek` and `reset`. `SampleRingBuffer` and `RSSIRingBuffer` remember a refused `put`. `has_overflowed()` reports this and then clears the flag.

### System Fusion

- `YSFTX` (`hotspotmodem.ysftx`) queues 121-byte frames from the host with `write_data`. A frame of the wrong length raises `ValueError`, and a full queue raises `OverflowError`. The frames are mapped to 4FSK levels, shaped by a root-raised-cosine `FIRInterpolator` (`hotspotmodem.fir`) and written to a `SampleSink`.
- `YSFRX(control, sink, send_rssi=False)` (`hotspotmodem.ysfrx`) searches Q15 samples for the sync pattern and tracks signal levels. It slices each frame into bytes and passes it to a `FrameSink`. Gaining and losing lock are reported through a `DecoderControl`.

### Helpers

- `hotspotmodem.bits` has `count_bits8`, `count_bits32` and `count_bits64`.
- `hotspotmodem.defines` holds the YSF and DMR frame and sync constants.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Example: decoding host frames

```python
from hotspotmodem.protocol import FrameReader, build_ack

reader = FrameReader()
for frame in reader.feed(b"\xe0\x03\x01"):
    print(frame)          # b'\xe0\x03\x01' (a GET_STATUS request)

reply = build_ack(0x03)   # b'\xe0\x04\x70\x03'
```

## Example: transmitting System Fusion

```python
from hotspotmodem.modes import ModemState
from hotspotmodem.ysftx import YSFTX


class ListSink:
    def __init__(self):
        self.samples = []

    def space(self):
        return 1000

    def write(self, state: ModemState, samples):
        self.samples.extend(samples)


sink = ListSink()
tx = YSFTX(sink)
tx.write_data(bytes(121))   # one control byte followed by 120 bytes of frame data
tx.process(transmitting=True, duplex=True)
```

Call `process` regularly so that queued frames reach the sink. While the transmitter is not yet keyed (`transmitting=False`), `process` first sends a preamble. In duplex mode it sends silence for the hang time after the last frame.

## What it does not do

- **No serial port or hardware I/O.** `SerialPort` works through a `Transport` and a `ModemBackend` that you supply. There is no ADC or DAC handling, no LEDs and no watchdog timer.
- **System Fusion is the only mode with a transmitter and receiver.**
  - D-Star, DMR, P25, NXDN, POCSAG and FM traffic, calibration and CW ID are passed to the backend as they are.
  - Only their protocol handling and constants are here.
- **No command-line program.** The package installs no command.