"""Frame, sync and data-type constants for the YSF and DMR air interfaces."""

from __future__ import annotations

# System Fusion

YSF_RADIO_SYMBOL_LENGTH = 5  # samples per symbol at 24 kHz

YSF_FRAME_LENGTH_BYTES = 120
YSF_FRAME_LENGTH_BITS = YSF_FRAME_LENGTH_BYTES * 8
YSF_FRAME_LENGTH_SYMBOLS = YSF_FRAME_LENGTH_BYTES * 4
YSF_FRAME_LENGTH_SAMPLES = YSF_FRAME_LENGTH_SYMBOLS * YSF_RADIO_SYMBOL_LENGTH

YSF_SYNC_LENGTH_BYTES = 5
YSF_SYNC_LENGTH_BITS = YSF_SYNC_LENGTH_BYTES * 8
YSF_SYNC_LENGTH_SYMBOLS = YSF_SYNC_LENGTH_BYTES * 4
YSF_SYNC_LENGTH_SAMPLES = YSF_SYNC_LENGTH_SYMBOLS * YSF_RADIO_SYMBOL_LENGTH

YSF_FICH_LENGTH_BITS = 200
YSF_FICH_LENGTH_SYMBOLS = 100
YSF_FICH_LENGTH_SAMPLES = YSF_FICH_LENGTH_SYMBOLS * YSF_RADIO_SYMBOL_LENGTH

YSF_SYNC_BYTES = bytes((0xD4, 0x71, 0xC9, 0x63, 0x4D))
YSF_SYNC_BYTES_LENGTH = 5

YSF_SYNC_BITS = 0x000000D471C9634D
YSF_SYNC_BITS_MASK = 0x000000FFFFFFFFFF

YSF_SYNC_SYMBOLS_VALUES = (
    -3, +3, +3, +1, +3, -3, +1, +3, -3, +1,
    -1, +3, +3, -1, +3, -3, +3, +1, -3, +3,
)

YSF_SYNC_SYMBOLS = 0x0007B5AD
YSF_SYNC_SYMBOLS_MASK = 0x000FFFFF

# DMR

DMR_RADIO_SYMBOL_LENGTH = 5  # samples per symbol at 24 kHz

DMR_FRAME_LENGTH_BYTES = 33
DMR_FRAME_LENGTH_BITS = DMR_FRAME_LENGTH_BYTES * 8
DMR_FRAME_LENGTH_SYMBOLS = DMR_FRAME_LENGTH_BYTES * 4
DMR_FRAME_LENGTH_SAMPLES = DMR_FRAME_LENGTH_SYMBOLS * DMR_RADIO_SYMBOL_LENGTH

DMR_SYNC_LENGTH_BYTES = 6
DMR_SYNC_LENGTH_BITS = DMR_SYNC_LENGTH_BYTES * 8
DMR_SYNC_LENGTH_SYMBOLS = DMR_SYNC_LENGTH_BYTES * 4
DMR_SYNC_LENGTH_SAMPLES = DMR_SYNC_LENGTH_SYMBOLS * DMR_RADIO_SYMBOL_LENGTH

DMR_EMB_LENGTH_BITS = 16
DMR_EMB_LENGTH_SYMBOLS = 8
DMR_EMB_LENGTH_SAMPLES = DMR_EMB_LENGTH_SYMBOLS * DMR_RADIO_SYMBOL_LENGTH

DMR_EMBSIG_LENGTH_BITS = 32
DMR_EMBSIG_LENGTH_SYMBOLS = 16
DMR_EMBSIG_LENGTH_SAMPLES = DMR_EMBSIG_LENGTH_SYMBOLS * DMR_RADIO_SYMBOL_LENGTH

DMR_SLOT_TYPE_LENGTH_BITS = 20
DMR_SLOT_TYPE_LENGTH_SYMBOLS = 10
DMR_SLOT_TYPE_LENGTH_SAMPLES = DMR_SLOT_TYPE_LENGTH_SYMBOLS * DMR_RADIO_SYMBOL_LENGTH

DMR_INFO_LENGTH_BITS = 196
DMR_INFO_LENGTH_SYMBOLS = 98
DMR_INFO_LENGTH_SAMPLES = DMR_INFO_LENGTH_SYMBOLS * DMR_RADIO_SYMBOL_LENGTH

DMR_AUDIO_LENGTH_BITS = 216
DMR_AUDIO_LENGTH_SYMBOLS = 108
DMR_AUDIO_LENGTH_SAMPLES = DMR_AUDIO_LENGTH_SYMBOLS * DMR_RADIO_SYMBOL_LENGTH

DMR_CACH_LENGTH_BYTES = 3
DMR_CACH_LENGTH_BITS = DMR_CACH_LENGTH_BYTES * 8
DMR_CACH_LENGTH_SYMBOLS = DMR_CACH_LENGTH_BYTES * 4
DMR_CACH_LENGTH_SAMPLES = DMR_CACH_LENGTH_SYMBOLS * DMR_RADIO_SYMBOL_LENGTH

DMR_SYNC_BYTES_LENGTH = 7
DMR_MS_DATA_SYNC_BYTES = bytes((0x0D, 0x5D, 0x7F, 0x77, 0xFD, 0x75, 0x70))
DMR_MS_VOICE_SYNC_BYTES = bytes((0x07, 0xF7, 0xD5, 0xDD, 0x57, 0xDF, 0xD0))
DMR_BS_DATA_SYNC_BYTES = bytes((0x0D, 0xFF, 0x57, 0xD7, 0x5D, 0xF5, 0xD0))
DMR_BS_VOICE_SYNC_BYTES = bytes((0x07, 0x55, 0xFD, 0x7D, 0xF7, 0x5F, 0x70))
DMR_SYNC_BYTES_MASK = bytes((0x0F, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xF0))

DMR_MS_DATA_SYNC_BITS = 0x0000D5D7F77FD757
DMR_MS_VOICE_SYNC_BITS = 0x00007F7D5DD57DFD
DMR_BS_DATA_SYNC_BITS = 0x0000DFF57D75DF5D
DMR_BS_VOICE_SYNC_BITS = 0x0000755FD7DF75F7
DMR_SYNC_BITS_MASK = 0x0000FFFFFFFFFFFF

DMR_MS_DATA_SYNC_SYMBOLS = 0x0076286E
DMR_MS_VOICE_SYNC_SYMBOLS = 0x0089D791
DMR_BS_DATA_SYNC_SYMBOLS = 0x00439B4D
DMR_BS_VOICE_SYNC_SYMBOLS = 0x00BC64B2
DMR_SYNC_SYMBOLS_MASK = 0x00FFFFFF

DMR_MS_DATA_SYNC_SYMBOLS_VALUES = (
    -3, +3, +3, +3, -3, +3, +3, -3, -3, -3, +3, -3,
    +3, -3, -3, -3, -3, +3, +3, -3, +3, +3, +3, -3,
)

DMR_MS_VOICE_SYNC_SYMBOLS_VALUES = (
    +3, -3, -3, -3, +3, -3, -3, +3, +3, +3, -3, +3,
    -3, +3, +3, +3, +3, -3, -3, +3, -3, -3, -3, +3,
)

DT_VOICE_PI_HEADER = 0
DT_VOICE_LC_HEADER = 1
DT_TERMINATOR_WITH_LC = 2
DT_CSBK = 3
DT_DATA_HEADER = 6
DT_RATE_12_DATA = 7
DT_RATE_34_DATA = 8
DT_IDLE = 9
DT_RATE_1_DATA = 10