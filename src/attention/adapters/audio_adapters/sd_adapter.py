import os
import wave
from typing import Optional

import numpy as np
import sounddevice as sd

from attention.core.ports.notification_port import SpeakerPort
from attention.utils.logging_handler import setup_logger

logger = setup_logger(__name__)

CHIME_FREQUENCIES = (880.0, 660.0)


class SoundDeviceSpeaker(SpeakerPort):
    """
    Plays sounds on the local output device using sounddevice.
    Works natively with NumPy arrays; 16-bit PCM wav files are decoded
    directly, anything else falls back to a short synthesized chime.
    """
    def __init__(self, rate=44100, device: Optional[int] = None):
        self.rate = rate
        self.device = device
        self._cache: dict[str, tuple[np.ndarray, int]] = {}

    def play(self, resource: str, volume: float, loop: bool = False) -> None:
        data, rate = self._load(resource)
        scaled = np.clip(data * float(volume), -1.0, 1.0).astype(np.float32)
        try:
            sd.play(scaled, samplerate=rate, loop=loop, device=self.device)
        except Exception as e:
            logger.error("Audio playback error", exc_info=e)

    def stop(self) -> None:
        sd.stop()

    def _load(self, resource: str) -> tuple[np.ndarray, int]:
        if resource not in self._cache:
            self._cache[resource] = self._read_wav(resource) or (self._chime(), self.rate)
        return self._cache[resource]

    def _read_wav(self, path: str) -> Optional[tuple[np.ndarray, int]]:
        if not path.lower().endswith(".wav") or not os.path.exists(path):
            return None
        try:
            with wave.open(path, "rb") as wav:
                if wav.getsampwidth() != 2:
                    logger.warning(f"{path}: only 16-bit PCM wav is supported")
                    return None
                frames = wav.readframes(wav.getnframes())
                channels = wav.getnchannels()
                rate = wav.getframerate()
        except (wave.Error, OSError) as e:
            logger.warning(f"Could not read {path}: {e}")
            return None
        samples = np.frombuffer(frames, dtype=np.int16).astype(np.float32) / 32768.0
        return samples.reshape(-1, channels), rate

    def _chime(self, seconds: float = 0.6) -> np.ndarray:
        t = np.linspace(0, seconds, int(self.rate * seconds), endpoint=False)
        envelope = np.exp(-4.0 * t)
        tone = sum(np.sin(2 * np.pi * freq * t) for freq in CHIME_FREQUENCIES) / len(CHIME_FREQUENCIES)
        return (tone * envelope).astype(np.float32)
