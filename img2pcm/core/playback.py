"""Streaming signed 8-bit PCM buffers to an audio output device."""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol

import numpy as np

from img2pcm.utils.helpers import DeviceUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024


@dataclass(frozen=True)
class PcmFormat:
    """Raw PCM stream description handed to a sink when opening it."""

    sample_rate: int
    bits_per_sample: int = 8
    channels: int = 1
    signed: bool = True


class PlaybackOutcome(Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PlaybackSink(Protocol):
    """Audio output consumed by the player: open, write, drain, close."""

    def open(self, fmt: PcmFormat):
        ...

    def write(self, handle, buffer: bytes, offset: int, length: int) -> int:
        ...

    def drain(self, handle) -> None:
        ...

    def close(self, handle) -> None:
        ...


class SoundDeviceSink:
    """PlaybackSink backed by a sounddevice raw output stream."""

    def __init__(self, device=None, latency="high"):
        self.device = device
        self.latency = latency
        self._sd = None

    def open(self, fmt: PcmFormat):
        if fmt.bits_per_sample != 8 or not fmt.signed:
            raise DeviceUnavailableError(
                f"Unsupported PCM format: {fmt.bits_per_sample}-bit "
                f"{'signed' if fmt.signed else 'unsigned'}"
            )

        try:
            # Imported here: PortAudio is only needed once a device is opened
            import sounddevice as sd
        except OSError as e:
            logger.error("PortAudio library not found: %s", e)
            raise DeviceUnavailableError(f"Audio output unavailable: {e}") from e

        self._sd = sd
        try:
            stream = sd.RawOutputStream(
                samplerate=fmt.sample_rate,
                channels=fmt.channels,
                dtype="int8",
                device=self.device,
                latency=self.latency,
            )
        except (sd.PortAudioError, ValueError) as e:
            logger.error("Failed to open audio output: %s", e)
            raise DeviceUnavailableError(f"Audio output unavailable: {e}") from e

        try:
            stream.start()
        except sd.PortAudioError as e:
            logger.error("Failed to start audio output: %s", e)
            stream.close()
            raise DeviceUnavailableError(f"Audio output unavailable: {e}") from e

        logger.debug("Opened output stream (%d Hz, %d channel(s))", fmt.sample_rate, fmt.channels)
        return stream

    def write(self, handle, buffer: bytes, offset: int, length: int) -> int:
        try:
            underflowed = handle.write(buffer[offset:offset + length])
        except self._sd.PortAudioError as e:
            logger.error("Write to audio output failed: %s", e)
            raise DeviceUnavailableError(f"Audio output failed: {e}") from e
        if underflowed:
            logger.debug("Output underflow at offset %d", offset)
        return length

    def drain(self, handle) -> None:
        # stop() returns once pending buffers have been played
        try:
            handle.stop()
        except self._sd.PortAudioError as e:
            logger.error("Draining audio output failed: %s", e)
            raise DeviceUnavailableError(f"Audio output failed: {e}") from e

    def close(self, handle) -> None:
        try:
            handle.close()
        except self._sd.PortAudioError as e:
            logger.error("Closing audio output failed: %s", e)
            raise DeviceUnavailableError(f"Audio output failed: {e}") from e
        logger.debug("Closed output stream")


class AudioLine:
    """
    Scoped sink handle: opened on entry, drained then closed on every exit.

    Errors from drain or close are raised only when the block itself
    succeeded; otherwise the original exception propagates.

    Usage:
        with AudioLine(sink, fmt) as line:
            line.write(data, 0, len(data))
    """

    def __init__(self, sink: PlaybackSink, fmt: PcmFormat, on_drained: Optional[Callable[[], None]] = None):
        self.sink = sink
        self.fmt = fmt
        self.on_drained = on_drained
        self.handle = None

    def __enter__(self):
        self.handle = self.sink.open(self.fmt)
        return self

    def __exit__(self, exc_type, exc, tb):
        handle, self.handle = self.handle, None
        try:
            self.sink.drain(handle)
            if self.on_drained:
                self.on_drained()
        except DeviceUnavailableError as e:
            if exc_type is None:
                self._close_quietly(handle)
                raise
            logger.debug("Ignoring drain failure during error exit: %s", e)

        if exc_type is None:
            self.sink.close(handle)
        else:
            self._close_quietly(handle)
        return False

    def _close_quietly(self, handle) -> None:
        try:
            self.sink.close(handle)
        except DeviceUnavailableError as e:
            logger.debug("Ignoring close failure during error exit: %s", e)

    def write(self, buffer: bytes, offset: int, length: int) -> None:
        """Write buffer[offset:offset + length], retrying short writes."""
        written = 0
        while written < length:
            n = self.sink.write(self.handle, buffer, offset + written, length - written)
            if n <= 0:
                raise DeviceUnavailableError("Audio output accepted no data")
            written += n


def play_buffer(
    buffer,
    fmt: PcmFormat,
    sink: PlaybackSink,
    cancel: Optional[threading.Event] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    on_drained: Optional[Callable[[], None]] = None,
) -> PlaybackOutcome:
    """
    Stream a PCM buffer to a sink in chunks.

    The cancellation token is checked between chunks. Whether playback
    completes, is cancelled or fails, the line is drained and closed
    before this returns.

    Args:
        buffer: int8 numpy array or bytes
        fmt: PCM format to open the sink with
        sink: Audio output
        cancel: Optional event; once set, no further chunks are written
        chunk_size: Bytes per write
        on_drained: Optional callback run after the line is drained

    Returns:
        PlaybackOutcome.COMPLETED or PlaybackOutcome.CANCELLED

    Raises:
        DeviceUnavailableError: If the sink cannot be opened or written
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    if isinstance(buffer, np.ndarray):
        data = buffer.astype(np.int8, copy=False).tobytes()
    else:
        data = bytes(buffer)

    with AudioLine(sink, fmt, on_drained=on_drained) as line:
        for offset in range(0, len(data), chunk_size):
            if cancel is not None and cancel.is_set():
                logger.info("Playback cancelled after %d of %d bytes", offset, len(data))
                return PlaybackOutcome.CANCELLED
            line.write(data, offset, min(chunk_size, len(data) - offset))

    return PlaybackOutcome.COMPLETED


class Player:
    """
    Owns one sink and serializes playback on it.

    At most one buffer is streamed at a time; cancel() stops the cycle
    that is currently playing.
    """

    def __init__(self, sink: PlaybackSink, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.sink = sink
        self.chunk_size = chunk_size
        self._lock = threading.Lock()
        self._cancel: Optional[threading.Event] = None

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def play(
        self,
        buffer,
        fmt: PcmFormat,
        cancel: Optional[threading.Event] = None,
        on_drained: Optional[Callable[[], None]] = None,
    ) -> PlaybackOutcome:
        with self._lock:
            self._cancel = cancel if cancel is not None else threading.Event()
            try:
                return play_buffer(
                    buffer,
                    fmt,
                    self.sink,
                    cancel=self._cancel,
                    chunk_size=self.chunk_size,
                    on_drained=on_drained,
                )
            finally:
                self._cancel = None

    def cancel(self) -> None:
        event = self._cancel
        if event is not None:
            event.set()
