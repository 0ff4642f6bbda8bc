import logging
import os
import subprocess
from dataclasses import dataclass
from typing import List

import numpy as np

from .audio_utils import (
    CHUNK_DURATION_SEC,
    TARGET_SAMPLE_RATE,
    encode_wav,
    probe_channel_count,
    split_pcm_by_duration,
)
from .exceptions import AudioDecodeError, AudioTooLargeError

logger = logging.getLogger(__name__)

# Rough safety limit for materializing a decoded file in memory.
MAX_LOCAL_DECODE_BYTES = 500 * 1024 * 1024


@dataclass
class PcmBuffer:
    """Mono float32 samples at a fixed sample rate."""
    samples: np.ndarray
    sample_rate: int

    @property
    def duration_ms(self) -> int:
        return len(self.samples) * 1000 // self.sample_rate


def downmix_to_mono(interleaved: np.ndarray, channels: int) -> np.ndarray:
    """Average interleaved channels sample by sample into one channel."""
    if channels <= 0:
        raise ValueError("channels must be > 0")
    frames = len(interleaved) // channels
    if channels == 1:
        return np.asarray(interleaved[:frames], dtype=np.float32)
    shaped = np.asarray(interleaved[: frames * channels], dtype=np.float32).reshape(frames, channels)
    return shaped.mean(axis=1, dtype=np.float64).astype(np.float32)


def check_local_decode_size(path: str, limit_bytes: int = MAX_LOCAL_DECODE_BYTES) -> int:
    """Return the file size, raising AudioTooLargeError above the ceiling."""
    size = os.path.getsize(path)
    if size > limit_bytes:
        raise AudioTooLargeError(size, limit_bytes)
    return size


def decode_to_mono_pcm(
    input_path: str,
    target_sample_rate: int = TARGET_SAMPLE_RATE,
    limit_bytes: int = MAX_LOCAL_DECODE_BYTES,
) -> PcmBuffer:
    """Decode any ffmpeg-readable media into mono float PCM at the target rate.

    ffmpeg resamples while keeping the probed channel count; the channels
    are then averaged into one.
    """
    if not os.path.exists(input_path):
        raise FileNotFoundError(f"Input media not found: {input_path}")
    if os.path.isdir(input_path):
        raise ValueError(f"Input '{input_path}' is a directory; please provide a media file path.")

    check_local_decode_size(input_path, limit_bytes)

    channels = probe_channel_count(input_path)
    if channels is None:
        raise AudioDecodeError(f"No decodable audio stream found in {input_path}")

    cmd = [
        "ffmpeg", "-nostdin", "-loglevel", "error",
        "-i", input_path,
        "-vn", "-sn", "-dn",
        "-map", "0:a:0",
        "-ac", str(channels),
        "-ar", str(target_sample_rate),
        "-f", "f32le", "-acodec", "pcm_f32le",
        "pipe:1",
    ]
    try:
        result = subprocess.run(cmd, check=True, capture_output=True)
    except subprocess.CalledProcessError as e:
        stderr = e.stderr.decode("utf-8", errors="replace") if isinstance(e.stderr, bytes) else e.stderr
        raise AudioDecodeError((stderr or str(e)).strip()) from e
    except OSError as e:
        raise AudioDecodeError(f"ffmpeg unavailable: {e}") from e

    interleaved = np.frombuffer(result.stdout, dtype="<f4")
    samples = downmix_to_mono(interleaved, channels)
    logger.debug(
        "Decoded %s: %d channel(s) -> %d mono samples at %d Hz",
        input_path, channels, len(samples), target_sample_rate,
    )
    return PcmBuffer(samples=samples, sample_rate=target_sample_rate)


def extract_audio_chunks(
    input_path: str,
    chunk_duration_sec: int = CHUNK_DURATION_SEC,
    target_sample_rate: int = TARGET_SAMPLE_RATE,
    limit_bytes: int = MAX_LOCAL_DECODE_BYTES,
) -> List[bytes]:
    """Decode a media file and return its WAV-encoded chunks in time order."""
    pcm = decode_to_mono_pcm(input_path, target_sample_rate, limit_bytes)
    windows = split_pcm_by_duration(pcm.samples, pcm.sample_rate, chunk_duration_sec)
    return [encode_wav(w, pcm.sample_rate) for w in windows]
