"""PCM framing helpers for the realtime voice channel."""

from __future__ import annotations

import io
import wave
from typing import Tuple

import numpy as np

TARGET_SAMPLE_RATE = 16000
FRAME_SIZE = 4096


def to_mono(samples: np.ndarray) -> np.ndarray:
    """Average channels of a ``(frames, channels)`` block into one."""
    samples = np.asarray(samples, dtype=np.float32)
    if samples.ndim == 2:
        return samples.mean(axis=1)
    return samples


def resample(samples: np.ndarray, source_rate: int, target_rate: int = TARGET_SAMPLE_RATE) -> np.ndarray:
    """Linear-interpolation resample of a mono float block."""
    if source_rate == target_rate or samples.size == 0:
        return samples.astype(np.float32, copy=False)
    target_len = max(1, int(round(samples.size * target_rate / source_rate)))
    source_positions = np.arange(samples.size, dtype=np.float64)
    target_positions = np.linspace(0, samples.size - 1, num=target_len)
    return np.interp(target_positions, source_positions, samples).astype(np.float32)


def float_to_pcm16(samples: np.ndarray) -> bytes:
    """Convert float32 [-1.0, 1.0] to little-endian 16-bit PCM bytes."""
    pcm = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    return (pcm * 32767).astype("<i2").tobytes()


def encode_frame(block: np.ndarray, source_rate: int, target_rate: int = TARGET_SAMPLE_RATE) -> bytes:
    """One capture callback block to one outbound binary frame."""
    return float_to_pcm16(resample(to_mono(block), source_rate, target_rate))


def pcm16_to_float(data: bytes) -> np.ndarray:
    return np.frombuffer(data, dtype="<i2").astype(np.float32) / 32768.0


def decode_audio(data: bytes, default_rate: int = TARGET_SAMPLE_RATE) -> Tuple[np.ndarray, int]:
    """
    Decode a synthesized-speech payload into float samples and a sample rate.

    WAV (RIFF) payloads are parsed for their rate and channels; anything else
    is treated as raw 16-bit mono PCM at ``default_rate``.
    """
    if data.startswith(b"RIFF"):
        with wave.open(io.BytesIO(data), "rb") as wav:
            rate = wav.getframerate()
            channels = wav.getnchannels()
            width = wav.getsampwidth()
            frames = wav.readframes(wav.getnframes())
        if width != 2:
            raise ValueError(f"Unsupported WAV sample width: {width * 8} bits")
        samples = pcm16_to_float(frames)
        if channels > 1:
            samples = samples.reshape(-1, channels).mean(axis=1)
        return samples, rate
    return pcm16_to_float(data[: len(data) - len(data) % 2]), default_rate


def pcm_to_wav(pcm_data: bytes, sample_rate: int, channels: int = 1) -> bytes:
    """Wrap raw 16-bit PCM in a WAV container."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm_data)
    return buffer.getvalue()
