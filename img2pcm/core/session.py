"""Sonification session: configuration, cached tables and the play cycle."""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

from img2pcm.core.frequency import compute_frequency_table
from img2pcm.core.sine_table import SineTable, build_sine_table, samples_per_frame
from img2pcm.core.synth import synthesize
from img2pcm.core.playback import PcmFormat, PlaybackOutcome, Player
from img2pcm.utils.helpers import DeviceUnavailableError, InvalidConfigurationError, ProcessingError

logger = logging.getLogger(__name__)

DEFAULT_NUM_ROWS = 64
DEFAULT_NUM_COLS = 64
DEFAULT_MIN_FREQUENCY = 200.0
DEFAULT_MAX_FREQUENCY = 4000.0
DEFAULT_SAMPLE_RATE = 44100
DEFAULT_LEVELS = 16


@dataclass(frozen=True)
class SessionConfig:
    """
    Parameters fixed for the lifetime of a set of tables.

    levels declares the quantization range of incoming matrices
    (values in [0, levels - 1]); level_scale multiplies every value
    before it weights its row's sinusoid.
    """

    num_rows: int
    num_cols: int
    min_frequency: float
    max_frequency: float
    sample_rate: int
    levels: int = DEFAULT_LEVELS
    level_scale: float = 1.0

    def validate(self) -> None:
        if self.num_rows < 2:
            raise InvalidConfigurationError(f"num_rows must be at least 2, got {self.num_rows}")
        if self.num_cols < 1:
            raise InvalidConfigurationError(f"num_cols must be positive, got {self.num_cols}")
        if self.min_frequency < 0:
            raise InvalidConfigurationError(f"min_frequency must be >= 0, got {self.min_frequency}")
        if self.max_frequency < self.min_frequency:
            raise InvalidConfigurationError(
                f"max_frequency ({self.max_frequency}) is below min_frequency ({self.min_frequency})"
            )
        if self.sample_rate <= 0:
            raise InvalidConfigurationError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.sample_rate // self.num_rows == 0:
            raise InvalidConfigurationError(
                f"sample_rate ({self.sample_rate}) is below num_rows ({self.num_rows}): "
                f"no samples per frame"
            )
        if self.levels < 2:
            raise InvalidConfigurationError(f"levels must be at least 2, got {self.levels}")

    @property
    def samples_per_frame(self) -> int:
        return samples_per_frame(self.sample_rate, self.num_rows)

    @property
    def n_samples(self) -> int:
        return self.num_cols * self.samples_per_frame

    @property
    def duration(self) -> float:
        """Playback length in seconds."""
        return self.n_samples / self.sample_rate

    @property
    def pcm_format(self) -> PcmFormat:
        return PcmFormat(sample_rate=self.sample_rate)


class SessionState(Enum):
    IDLE = "idle"
    CONFIGURED = "configured"
    SYNTHESIZING = "synthesizing"
    BUFFERED = "buffered"
    PLAYING = "playing"
    DRAINED = "drained"
    CLOSED = "closed"


class SonificationSession:
    """
    Builds the frequency and sine tables once per configuration and
    reuses them for every matrix synthesized and played.

    Usage:
        session = SonificationSession(config, Player(SoundDeviceSink()))
        outcome = session.generate_and_play(matrix)
    """

    def __init__(self, config: SessionConfig, player: Optional[Player] = None):
        self.player = player
        self.state = SessionState.IDLE
        self.config: Optional[SessionConfig] = None
        self.frequency_table: Optional[np.ndarray] = None
        self.sine_table: Optional[SineTable] = None
        self.last_buffer: Optional[np.ndarray] = None
        self._state_lock = threading.Lock()
        self.configure(config)

    def _set_state(self, state: SessionState) -> None:
        with self._state_lock:
            logger.debug("Session state %s -> %s", self.state.value, state.value)
            self.state = state

    def configure(self, config: SessionConfig) -> None:
        """
        Validate parameters and build the tables.

        Calling again with an equal config keeps the current tables; any
        change discards them and rebuilds from scratch.

        Raises:
            InvalidConfigurationError: If parameters are invalid (nothing is built)
        """
        if config == self.config and self.sine_table is not None:
            return

        self._set_state(SessionState.IDLE)
        self.config = None
        self.frequency_table = None
        self.sine_table = None

        config.validate()

        frequency_table = compute_frequency_table(
            config.num_rows, config.min_frequency, config.max_frequency
        )
        sine_table = build_sine_table(
            frequency_table, config.num_cols, config.samples_per_frame, config.sample_rate
        )

        self.config = config
        self.frequency_table = frequency_table
        self.sine_table = sine_table
        logger.info(
            "Configured %dx%d session: %.1f-%.1f Hz at %d Hz, %d samples/frame (%.2fs)",
            config.num_rows, config.num_cols, config.min_frequency, config.max_frequency,
            config.sample_rate, config.samples_per_frame, config.duration,
        )
        self._set_state(SessionState.CONFIGURED)

    def _require_tables(self) -> None:
        if self.sine_table is None:
            raise InvalidConfigurationError("Session has no valid configuration")

    def synthesize(self, matrix) -> np.ndarray:
        """
        Synthesize one matrix into a fresh int8 buffer.

        Raises:
            InvalidMatrixError: If the matrix does not match the session dimensions
        """
        self._require_tables()
        self._set_state(SessionState.SYNTHESIZING)
        try:
            buffer = synthesize(matrix, self.sine_table, self.config.level_scale)
        except Exception:
            self._set_state(SessionState.CONFIGURED)
            raise

        self.last_buffer = buffer
        self._set_state(SessionState.BUFFERED)
        return buffer

    def play(self, buffer: Optional[np.ndarray] = None, cancel: Optional[threading.Event] = None) -> PlaybackOutcome:
        """
        Hand a buffer (default: the last one synthesized) to the player.

        On DeviceUnavailableError the buffer is kept in last_buffer and
        the session returns to BUFFERED so playback can be retried.
        """
        self._require_tables()
        if self.player is None:
            raise ProcessingError("No playback device configured for this session")

        if buffer is None:
            buffer = self.last_buffer
        if buffer is None:
            raise ProcessingError("Nothing to play: no buffer has been synthesized")

        self._set_state(SessionState.PLAYING)
        try:
            outcome = self.player.play(
                buffer,
                self.config.pcm_format,
                cancel=cancel,
                on_drained=lambda: self._set_state(SessionState.DRAINED),
            )
        except DeviceUnavailableError:
            self._set_state(SessionState.BUFFERED)
            raise

        self._set_state(SessionState.CLOSED)
        return outcome

    def generate_and_play(self, matrix, cancel: Optional[threading.Event] = None) -> PlaybackOutcome:
        """Synthesize a matrix and play it, returning once the line is closed."""
        buffer = self.synthesize(matrix)
        return self.play(buffer, cancel=cancel)
