"""Silent placeholder recordings.

The fallback artifact is the canonical 44-byte PCM WAV header with an empty
data chunk, so anything that validates WAV structure accepts it.
"""

import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from ...utils.logger import get_logger

logger = get_logger(__name__)

SAMPLE_RATE = 44100
CHANNELS = 1
BITS_PER_SAMPLE = 16
PCM_FORMAT = 1

BLOCK_ALIGN = CHANNELS * BITS_PER_SAMPLE // 8
BYTE_RATE = SAMPLE_RATE * BLOCK_ALIGN
HEADER_SIZE = 44

_HEADER_STRUCT = struct.Struct("<4sI4s4sIHHIIHH4sI")


@dataclass(frozen=True)
class WavHeader:
    audio_format: int
    channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    data_size: int
    riff_size: int


def build_wav_header(data_size: int = 0) -> bytes:
    return _HEADER_STRUCT.pack(
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT,
        CHANNELS,
        SAMPLE_RATE,
        BYTE_RATE,
        BLOCK_ALIGN,
        BITS_PER_SAMPLE,
        b"data",
        data_size,
    )


def synthesize(path: Union[str, Path]) -> None:
    """Write an empty but valid WAV file to ``path``. Raises ``OSError``."""
    path = Path(path)
    path.write_bytes(build_wav_header())
    logger.info(f"Simulated recording written: {path}")


def read_wav_header(path: Union[str, Path]) -> WavHeader:
    data = Path(path).read_bytes()[:HEADER_SIZE]
    if len(data) < HEADER_SIZE:
        raise ValueError(f"File too short for a WAV header: {len(data)} bytes")

    (
        riff,
        riff_size,
        wave,
        fmt,
        fmt_size,
        audio_format,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        data_id,
        data_size,
    ) = _HEADER_STRUCT.unpack(data)

    if riff != b"RIFF" or wave != b"WAVE" or fmt != b"fmt " or data_id != b"data":
        raise ValueError("Not a canonical PCM WAV header")
    if fmt_size != 16:
        raise ValueError(f"Unexpected fmt chunk size: {fmt_size}")

    return WavHeader(
        audio_format=audio_format,
        channels=channels,
        sample_rate=sample_rate,
        byte_rate=byte_rate,
        block_align=block_align,
        bits_per_sample=bits_per_sample,
        data_size=data_size,
        riff_size=riff_size,
    )
