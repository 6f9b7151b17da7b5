"""Audio output for Morset.

ToneAudio is the live sidetone followed by the keying engine: a continuous
sine rendered in a sounddevice callback and gated by play()/pause().
PhrasePlayer plays pre-rendered listening phrases through an AudioThread
consumer thread fed from a bounded queue.
"""
import logging
import math
import queue
import threading
from typing import Optional, Protocol, runtime_checkable

try:
    import numpy as np
    import sounddevice as sd
except (ImportError, OSError):
    np = None
    sd = None

from morset_utils import (DEFAULT_FREQUENCY, DEFAULT_SAMPLE_RATE, DEFAULT_VOLUME, MAX_FREQUENCY,
                          MIN_FREQUENCY, clamp, env_approach)

logger = logging.getLogger(__name__)

# Audio processing constants
AUDIO_CHUNK_SIZE = 4096
AUDIO_QUEUE_MAX_SIZE = 8
QUEUE_PUT_TIMEOUT = 0.5
SIDETONE_BLOCK_SIZE = 256
ATTACK_SECONDS = 0.003
RELEASE_SECONDS = 0.005


@runtime_checkable
class AudioDriver(Protocol):
    """Fire-and-forget tone output used by the engine.

    ``set_volume`` takes a linear level in [0, 1].
    """

    def play(self) -> None: ...
    def pause(self) -> None: ...
    def set_frequency(self, hz: float) -> None: ...
    def set_volume(self, level: float) -> None: ...


def audio_available() -> bool:
    """Return True if numpy and sounddevice (PortAudio) could be imported."""
    return sd is not None and np is not None


class ToneAudio:
    """Continuous sidetone with click-free keying.

    The stream runs from start() until close(); play() and pause() only move
    the envelope target, so keying never opens or closes the device.
    """

    def __init__(self, frequency: float = DEFAULT_FREQUENCY, volume: float = DEFAULT_VOLUME * 0.01,
                 sample_rate: int = DEFAULT_SAMPLE_RATE):
        self._sr = float(sample_rate)
        self._freq = float(clamp(frequency, MIN_FREQUENCY, MAX_FREQUENCY))
        self._gain = float(clamp(volume, 0.0, 1.0))
        self._phase = 0.0
        self._env = 0.0
        self._target = 0.0
        self._attack_k = self._coef(ATTACK_SECONDS)
        self._release_k = self._coef(RELEASE_SECONDS)
        self._stream = None
        self.is_playing = False

    @property
    def enabled(self) -> bool:
        return self._stream is not None

    def start(self) -> bool:
        """Open the output stream. Returns False if audio is unavailable."""
        if self._stream is not None:
            return True
        if not audio_available():
            logger.warning("sounddevice is not available; sidetone disabled")
            return False
        try:
            self._stream = sd.OutputStream(
                samplerate=int(self._sr), channels=1, dtype='float32',
                blocksize=SIDETONE_BLOCK_SIZE, latency='low', callback=self._callback)
            self._stream.start()
        except Exception as e:
            logger.warning("Failed to open audio output stream: %s", e)
            self._stream = None
            return False
        return True

    def close(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.stop()
            self._stream.close()
        except Exception as e:
            logger.warning("Error closing audio stream: %s", e)
        self._stream = None

    def play(self) -> None:
        self.is_playing = True
        self._target = 1.0

    def pause(self) -> None:
        self.is_playing = False
        self._target = 0.0

    def set_frequency(self, hz: float) -> None:
        hz = float(clamp(hz, MIN_FREQUENCY, MAX_FREQUENCY))
        if abs(self._freq - hz) < 0.1:
            return
        logger.debug("Updating frequency to %s", hz)
        self._freq = hz

    def set_volume(self, level: float) -> None:
        self._gain = float(clamp(level, 0.0, 1.0))

    def _coef(self, tau_s: float) -> float:
        return 1.0 - math.exp(-1.0 / (max(1e-4, tau_s) * self._sr))

    def _callback(self, outdata, frames, time_info, status):
        if status:
            logger.debug("Audio callback status: %s", status)
        step = 2.0 * math.pi * self._freq / self._sr
        idx = np.arange(frames, dtype=np.float32)
        wave = np.sin(self._phase + step * idx).astype(np.float32)
        self._phase = float((self._phase + step * frames) % (2.0 * math.pi))

        target = self._target
        k = self._attack_k if target > self._env else self._release_k
        env = env_approach(self._env, target, k, frames)
        if frames:
            self._env = float(env[-1])

        outdata[:, 0] = wave * env * self._gain


class AudioThread(threading.Thread):
    """Background thread that pulls frames from a queue and writes them.

    The thread exits gracefully on receipt of None or when stop_flag is set.
    """
    def __init__(self, q_frames: queue.Queue, stop_flag: threading.Event,
                 sample_rate: int = DEFAULT_SAMPLE_RATE):
        super().__init__(daemon=True)
        self.q_frames = q_frames
        self.stop_flag = stop_flag
        self.sample_rate = sample_rate

    def run(self):
        """Continuously read frames and write to sound device output stream."""
        if not audio_available():
            return
        try:
            with sd.OutputStream(channels=1, dtype='float32', samplerate=self.sample_rate) as stream:
                while not self.stop_flag.is_set():
                    try:
                        frame = self.q_frames.get(timeout=0.1)
                    except queue.Empty:
                        continue
                    if frame is None:
                        break
                    stream.write(frame.reshape(-1, 1))
        except Exception as e:
            logger.warning("Audio error: %s", e)


class PhrasePlayer(threading.Thread):
    """Play one rendered phrase buffer, interruptible through stop()."""

    def __init__(self, audio: 'np.ndarray', sample_rate: int = DEFAULT_SAMPLE_RATE):
        super().__init__(daemon=True)
        self.audio = audio
        self.stop_flag = threading.Event()
        self.q_frames: 'queue.Queue' = queue.Queue(maxsize=AUDIO_QUEUE_MAX_SIZE)
        self._audio_thr = AudioThread(self.q_frames, self.stop_flag, sample_rate)

    def stop(self):
        """Signal the player to stop and attempt to unblock the audio thread."""
        self.stop_flag.set()
        try:
            self.q_frames.put(None, timeout=0.1)
        except queue.Full:
            pass  # Queue is full, thread will exit via stop_flag

    def run(self):
        if not audio_available():
            logger.warning("sounddevice is not available; cannot play phrase")
            return
        self._audio_thr.start()
        for i in range(0, len(self.audio), AUDIO_CHUNK_SIZE):
            placed = False
            while not placed:
                if self.stop_flag.is_set():
                    return
                try:
                    # small timeout to remain interruptible
                    self.q_frames.put(self.audio[i:i+AUDIO_CHUNK_SIZE], timeout=QUEUE_PUT_TIMEOUT)
                    placed = True
                except queue.Full:
                    continue
        try:
            self.q_frames.put(None, timeout=QUEUE_PUT_TIMEOUT)
        except queue.Full:
            pass  # Audio thread will exit naturally
        self._audio_thr.join()


def play_buffer(audio: 'np.ndarray', previous: Optional[PhrasePlayer] = None) -> PhrasePlayer:
    """Stop ``previous`` (if any) and start playing ``audio``."""
    if previous is not None and previous.is_alive():
        previous.stop()
    player = PhrasePlayer(audio)
    player.start()
    return player
