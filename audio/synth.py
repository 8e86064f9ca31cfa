# audio/synth.py
import heapq
import itertools
import logging

import numpy as np
import pygame

from config import AudioConfig
from music.chords import midi_to_frequency, note_to_midi

CACHE_LIMIT = 512
# Schroeder 梳狀濾波器延遲（秒）
REVERB_DELAYS = (0.0297, 0.0371, 0.0411, 0.0437)

class AudioUnavailableError(RuntimeError):
    """The mixer could not be opened (no device, driver refused, ...)."""

def db_to_linear(db: float) -> float:
    return 10.0 ** (db / 20.0)

def _triangle(phase: np.ndarray) -> np.ndarray:
    return 2.0 * np.abs(2.0 * (phase - np.floor(phase + 0.5))) - 1.0

def _square(phase: np.ndarray) -> np.ndarray:
    return np.where((phase % 1.0) < 0.5, 1.0, -1.0)

def envelope(gate: float, sample_rate: int, cfg: AudioConfig) -> np.ndarray:
    """ADSR over gate + release seconds; release starts from the level at gate end."""
    total = max(1, int((gate + cfg.release) * sample_rate))
    t = np.arange(total) / sample_rate
    a, d, s = max(cfg.attack, 1e-4), max(cfg.decay, 1e-4), cfg.sustain
    env = np.where(t < a, t / a, np.where(t < a + d, 1.0 - (t - a) / d * (1.0 - s), s))
    gate_n = min(int(gate * sample_rate), total - 1)
    level = env[gate_n]
    tail = t >= gate
    env[tail] = level * np.clip(1.0 - (t[tail] - gate) / max(cfg.release, 1e-4), 0.0, 1.0)
    return env

def _comb(x: np.ndarray, delay_n: int, g: float) -> np.ndarray:
    # y[n] = x[n] + g * y[n - D]，以 D 為區塊向量化
    y = x.astype(np.float64)
    for start in range(delay_n, len(y), delay_n):
        end = min(start + delay_n, len(y))
        y[start:end] += g * y[start - delay_n:end - delay_n]
    return y

def reverb(x: np.ndarray, sample_rate: int, decay: float, mix: float) -> np.ndarray:
    """Parallel feedback combs, -60 dB after `decay` seconds; never louder than the input."""
    if decay <= 0 or mix <= 0 or len(x) == 0:
        return x
    wet = np.zeros(len(x))
    for d in REVERB_DELAYS:
        n = max(1, int(d * sample_rate))
        g = 10.0 ** (-3.0 * d / decay)
        wet += (1.0 - g) * _comb(x, n, g)
    wet /= len(REVERB_DELAYS)
    return (1.0 - mix) * x + mix * wet

def render_note(freq: float, duration: float, sample_rate: int, cfg: AudioConfig) -> np.ndarray:
    """Mono float samples of one AM-triangle note (duration is the gate length)."""
    env = envelope(duration, sample_rate, cfg)
    t = np.arange(len(env)) / sample_rate
    carrier = _triangle(freq * t)
    # 調變包絡 attack 0.5s，讓方波 AM 慢慢加入
    mod_depth = np.clip(t / 0.5, 0.0, 1.0)
    mod = 0.5 * (1.0 + _square(freq * cfg.harmonicity * t))
    am = 1.0 - mod_depth * 0.5 * (1.0 - mod)
    gain = db_to_linear(cfg.volume_db) / 3.0   # three notes per strum
    voiced = reverb(carrier * am * env, sample_rate, cfg.reverb_decay, cfg.reverb_mix)
    return (voiced * gain).astype(np.float32)

class Synth:
    """
    pygame.mixer 音源：
    - trigger(pitch, duration, time) 只排入佇列（音訊時鐘上的絕對秒數）
    - pump(now) 由主迴圈每幀呼叫，把到點的音播出
    - 晚於 cfg.late_drop 秒的音直接丟掉，不補播
    - cancel_pending() 停止播放時清掉尚未播出的音
    - ensure_ready() 開啟 mixer；失敗丟 AudioUnavailableError
    """
    def __init__(self, cfg: AudioConfig):
        self.cfg = cfg
        self.ready = False
        self.sample_rate = cfg.sample_rate
        self.channels = 2
        self._pending: list[tuple[float, int, str, float]] = []
        self._seq = itertools.count()
        self._sounds: dict[tuple[str, float], "pygame.mixer.Sound"] = {}

    def ensure_ready(self):
        if self.ready:
            return
        try:
            if not pygame.mixer.get_init():
                pygame.mixer.init(frequency=self.cfg.sample_rate, size=-16, channels=2,
                                  buffer=self.cfg.buffer_size)
            pygame.mixer.set_num_channels(self.cfg.mixer_channels)
            self.sample_rate, _, self.channels = pygame.mixer.get_init()
        except pygame.error as e:
            logging.error("Audio mixer unavailable: %s", e)
            raise AudioUnavailableError(str(e)) from e
        self.ready = True
        logging.info("Mixer ready: %d Hz, %d channels", self.sample_rate, self.cfg.mixer_channels)

    def trigger(self, pitch: str, duration: float, time: float):
        heapq.heappush(self._pending, (time, next(self._seq), pitch, duration))

    def pump(self, now: float) -> int:
        if not self.ready:
            self._pending.clear()
            return 0
        played = dropped = 0
        while self._pending and self._pending[0][0] <= now:
            time, _, pitch, duration = heapq.heappop(self._pending)
            if now - time > self.cfg.late_drop:
                dropped += 1
                continue
            self._play(pitch, duration)
            played += 1
        if dropped:
            logging.debug("Dropped %d late note(s)", dropped)
        return played

    def cancel_pending(self) -> int:
        dropped = len(self._pending)
        self._pending.clear()
        return dropped

    def _play(self, pitch: str, duration: float):
        # force=True：通道用完時搶最舊的那一個
        channel = pygame.mixer.find_channel(True)
        if channel is None:
            logging.debug("No mixer channel for %s", pitch)
            return
        channel.play(self._sound(pitch, duration))

    def _sound(self, pitch: str, duration: float) -> "pygame.mixer.Sound":
        key = (pitch, round(duration, 4))
        sound = self._sounds.get(key)
        if sound is None:
            if len(self._sounds) >= CACHE_LIMIT:
                self._sounds.clear()
            mono = render_note(midi_to_frequency(note_to_midi(pitch)), duration,
                               self.sample_rate, self.cfg)
            pcm = (np.clip(mono, -1.0, 1.0) * 32767).astype(np.int16)
            frames = pcm if self.channels == 1 else np.column_stack([pcm] * self.channels)
            sound = pygame.sndarray.make_sound(np.ascontiguousarray(frames))
            self._sounds[key] = sound
        return sound

    def all_notes_off(self):
        self.cancel_pending()
        if self.ready:
            pygame.mixer.stop()

    def close(self):
        self.all_notes_off()
        self._sounds.clear()
        if self.ready:
            pygame.mixer.quit()
        self.ready = False
