"""
EMG notification payloads carry one or more amplitude readings as packed
little-endian numbers, for example::

  - int16le  : signed 16-bit fixed point, multiplied by ``scale``
  - uint16le : unsigned 16-bit fixed point (raw ADC counts)
  - float32le: IEEE-754 single precision

``decode_payload()`` turns a payload into a float32 vector. Malformed payloads
raise :class:`~emgflow.errors.DecodeError` so the caller can drop them
without touching any pipeline state.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..errors import DecodeError


PAYLOAD_DTYPES: dict[str, np.dtype] = {
    "int16le": np.dtype("<i2"),
    "uint16le": np.dtype("<u2"),
    "float32le": np.dtype("<f4"),
}


def decode_payload(payload: bytes, *, fmt: str = "int16le", scale: float = 1.0) -> np.ndarray:
    """
    Decode a notification payload into a float32 sample vector.

    Parameters
    ----------
    payload:
        Raw bytes as delivered by the transport.
    fmt:
        One of :data:`PAYLOAD_DTYPES`.
    scale:
        Fixed-point scale applied to integer formats.

    Returns
    -------
    numpy.ndarray
        1-D float32 array with one entry per packed value.
    """
    try:
        dtype = PAYLOAD_DTYPES[fmt]
    except KeyError:
        raise ValueError(f"Unknown payload format {fmt!r}") from None

    data = bytes(payload)
    if not data:
        raise DecodeError("empty payload")
    if len(data) % dtype.itemsize:
        raise DecodeError(
            f"payload length {len(data)} is not a multiple of {dtype.itemsize} ({fmt})"
        )

    values = np.frombuffer(data, dtype=dtype).astype(np.float32)
    if dtype.kind in "iu" and scale != 1.0:
        values = values * np.float32(scale)
    return values


@dataclass(frozen=True)
class SampleDecoder:
    """Decoder bound to one device's payload format."""

    fmt: str = "int16le"
    scale: float = 1.0

    def __post_init__(self) -> None:
        if self.fmt not in PAYLOAD_DTYPES:
            raise ValueError(f"Unknown payload format {self.fmt!r}")

    def decode(self, payload: bytes) -> np.ndarray:
        return decode_payload(payload, fmt=self.fmt, scale=self.scale)


__all__ = ["PAYLOAD_DTYPES", "SampleDecoder", "decode_payload"]
