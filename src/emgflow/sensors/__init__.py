"""Sensor-specific payload decoders.

Each supported sensor exposes a decoder that turns raw notification bytes into
float sample vectors. Currently :mod:`emg_payload` covers the packed
fixed-point formats used by single-channel EMG amplitude sensors.
"""

from .emg_payload import PAYLOAD_DTYPES, SampleDecoder, decode_payload

__all__ = ["PAYLOAD_DTYPES", "SampleDecoder", "decode_payload"]
