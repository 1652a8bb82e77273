from __future__ import annotations

from typing import Callable, Optional, Protocol

import numpy as np


SAMPLE_RATE = 22050

# C major arpeggio: C5, E5, G5
CHIME_NOTES = (523.25, 659.25, 783.99)
NOTE_STAGGER = 0.07   # seconds between note onsets
NOTE_LENGTH = 0.15
PEAK_GAIN = 0.1
ATTACK = 0.01
DECAY_END = 0.4       # envelope reaches ~0 here


class AudioFeedback(Protocol):
    def play_success_sound(self) -> None: ...


class SilentAudio:
    def play_success_sound(self) -> None:
        return None


def _triangle(freq: float, t: np.ndarray) -> np.ndarray:
    phase = (t * freq) % 1.0
    return 4.0 * np.abs(phase - 0.5) - 1.0


def success_chime(sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    """Mono float32 samples in [-1, 1] for the "task completed" chime."""
    n = int(DECAY_END * sample_rate)
    t = np.arange(n) / sample_rate

    # linear attack to PEAK_GAIN, exponential decay to 1e-4 at DECAY_END
    envelope = np.empty(n)
    rising = t < ATTACK
    envelope[rising] = PEAK_GAIN * t[rising] / ATTACK
    decay_t = (t[~rising] - ATTACK) / (DECAY_END - ATTACK)
    envelope[~rising] = PEAK_GAIN * (1e-4 / PEAK_GAIN) ** decay_t

    signal = np.zeros(n)
    for i, freq in enumerate(CHIME_NOTES):
        start = i * NOTE_STAGGER
        active = (t >= start) & (t < start + NOTE_LENGTH)
        signal[active] += _triangle(freq, t[active] - start)

    return np.clip(signal * envelope, -1.0, 1.0).astype(np.float32)


class ChimePlayer:
    """Hands the chime to a front-end ``sink(samples, sample_rate)``."""

    def __init__(self, sink: Callable[[np.ndarray, int], None], sample_rate: int = SAMPLE_RATE) -> None:
        self.sink = sink
        self.sample_rate = sample_rate
        self._samples: Optional[np.ndarray] = None

    def play_success_sound(self) -> None:
        if self._samples is None:
            self._samples = success_chime(self.sample_rate)
        self.sink(self._samples, self.sample_rate)
