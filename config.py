# ========================= config.py =========================
from dataclasses import dataclass, field

@dataclass
class RenderConfig:
    window_w: int = 1280
    window_h: int = 720
    fps: int = 60
    cell_w: int = 150
    cell_h: int = 110
    cell_gap: int = 14
    palette_h: int = 64

@dataclass
class AudioConfig:
    sample_rate: int = 44100
    buffer_size: int = 512
    mixer_channels: int = 64       # 16 strums x 3 notes + release tails
    volume_db: float = -6.0
    strum_offset: float = 0.03     # seconds between notes of one strum
    attack: float = 0.01
    decay: float = 0.3
    sustain: float = 0.8
    release: float = 1.5
    harmonicity: float = 3.0
    reverb_decay: float = 1.5      # seconds to -60 dB
    reverb_mix: float = 0.3
    late_drop: float = 0.25        # notes later than this are skipped, not burst

@dataclass
class TransportConfig:
    bpm: int = 80
    bpm_min: int = 40
    bpm_max: int = 220
    looping: bool = True
    lookahead: float = 0.1         # seconds ticks are scheduled ahead of the audio clock

@dataclass
class KeyConfig:
    root: str = "C"
    mode: str = "major"

@dataclass
class AppConfig:
    render: RenderConfig = field(default_factory=RenderConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    key: KeyConfig = field(default_factory=KeyConfig)
