import struct
import subprocess
from typing import List, Optional

import numpy as np

TARGET_SAMPLE_RATE = 16000
CHUNK_DURATION_SEC = 150

WAV_HEADER_BYTES = 44
BITS_PER_SAMPLE = 16


def probe_channel_count(audio_path: str) -> Optional[int]:
    """Return the channel count of the first audio stream via ffprobe; None if unavailable."""
    try:
        result = subprocess.run(
            [
                "ffprobe", "-v", "error", "-select_streams", "a:0",
                "-show_entries", "stream=channels",
                "-of", "default=nw=1:nk=1", audio_path,
            ],
            capture_output=True, text=True, check=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    val = result.stdout.strip().splitlines()
    if not val or not val[0].strip().isdigit():
        return None
    channels = int(val[0].strip())
    return channels if channels > 0 else None


def quantize_to_int16(samples: np.ndarray) -> np.ndarray:
    """Clamp float samples to [-1, 1] and scale to signed 16-bit.

    Negative values scale by 32768 and non-negative ones by 32767, so -1.0
    maps to -32768 and +1.0 to 32767. Fractions truncate toward zero.
    """
    clamped = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(clamped < 0, clamped * 32768.0, clamped * 32767.0)
    return np.trunc(scaled).astype("<i2")


def encode_wav(samples: np.ndarray, sample_rate: int = TARGET_SAMPLE_RATE) -> bytes:
    """Encode mono float samples as a standalone 16-bit PCM WAV file."""
    num_channels = 1
    block_align = num_channels * BITS_PER_SAMPLE // 8
    pcm = quantize_to_int16(samples).tobytes()
    data_len = len(pcm)
    header = struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        WAV_HEADER_BYTES - 8 + data_len,
        b"WAVE",
        b"fmt ",
        16,  # fmt chunk length
        1,  # PCM
        num_channels,
        sample_rate,
        sample_rate * block_align,
        block_align,
        BITS_PER_SAMPLE,
        b"data",
        data_len,
    )
    return header + pcm


def split_pcm_by_duration(
    samples: np.ndarray,
    sample_rate: int = TARGET_SAMPLE_RATE,
    chunk_duration_sec: int = CHUNK_DURATION_SEC,
) -> List[np.ndarray]:
    """Split mono PCM into fixed-duration windows without overlap.

    The final window may be shorter; nothing is padded.
    """
    if chunk_duration_sec <= 0:
        raise ValueError("chunk_duration_sec must be > 0")
    if sample_rate <= 0:
        raise ValueError("sample_rate must be > 0")

    samples_per_chunk = int(chunk_duration_sec * sample_rate)
    total = len(samples)
    chunks: List[np.ndarray] = []
    for start in range(0, total, samples_per_chunk):
        end = min(start + samples_per_chunk, total)
        if end <= start:
            break
        chunks.append(samples[start:end])
    return chunks
