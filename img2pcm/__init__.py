"""img2pcm - Play images as sound, one sine oscillator per row."""

__version__ = "0.1.0"

from img2pcm.core.frequency import compute_frequency_table
from img2pcm.core.sine_table import build_sine_table
from img2pcm.core.synth import synthesize
from img2pcm.core.session import SessionConfig, SonificationSession

__all__ = [
    "compute_frequency_table",
    "build_sine_table",
    "synthesize",
    "SessionConfig",
    "SonificationSession",
]
