"""Core sonification engine."""

from img2pcm.core.frequency import compute_frequency_table
from img2pcm.core.sine_table import SineTable, build_sine_table, samples_per_frame
from img2pcm.core.synth import synthesize, validate_matrix
from img2pcm.core.playback import (
    PcmFormat,
    PlaybackOutcome,
    PlaybackSink,
    SoundDeviceSink,
    AudioLine,
    Player,
    play_buffer,
)
from img2pcm.core.session import SessionConfig, SessionState, SonificationSession
from img2pcm.core.audio import write_wav, read_wav_pcm8

__all__ = [
    "compute_frequency_table",
    "SineTable",
    "build_sine_table",
    "samples_per_frame",
    "synthesize",
    "validate_matrix",
    "PcmFormat",
    "PlaybackOutcome",
    "PlaybackSink",
    "SoundDeviceSink",
    "AudioLine",
    "Player",
    "play_buffer",
    "SessionConfig",
    "SessionState",
    "SonificationSession",
    "write_wav",
    "read_wav_pcm8",
]
