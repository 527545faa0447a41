"""
Audio loader and decoders.

Reads audio files into SampleStreams at their native sample rate. The
container format is sniffed from the file's leading bytes and dispatched
to a decoder: soundfile for WAV, AIFF and FLAC, librosa (audioread) for MP3.
Nothing is resampled.
"""

import io
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Set

import librosa
import numpy as np
import soundfile as sf

from bandstat.core.models import SampleStream
from bandstat.utils.errors import AudioLoadError, FileTooLargeError, UnsupportedFormatError


SUPPORTED_FORMATS: Dict[str, str] = {
    '.wav': 'WAV',
    '.aif': 'AIFF',
    '.aiff': 'AIFF',
    '.mp3': 'MP3',
    '.flac': 'FLAC',
}

MAX_FILE_SIZE: int = 1073741824  # 1 GB

# MPEG audio frame sync: 11 set bits.
_MPEG_SYNC_MASK = 0xFFE0

logger = logging.getLogger(__name__)


class Decoder(Protocol):
    """Turns encoded file bytes into a SampleStream."""

    def decode(self, data: bytes) -> SampleStream:
        ...


class SoundFileDecoder:
    """Decoder for formats libsndfile reads natively (WAV, AIFF, FLAC)."""

    def decode(self, data: bytes) -> SampleStream:
        samples, sample_rate = sf.read(io.BytesIO(data), dtype='float32', always_2d=True)
        return SampleStream(samples, int(sample_rate), int(samples.shape[1]))


class LibrosaDecoder:
    """
    Decoder for MP3 via librosa.

    audioread backends need a real file, so the bytes are spooled to a
    temporary file for the duration of the call.
    """

    def __init__(self, suffix: str = '.mp3'):
        self.suffix = suffix

    def decode(self, data: bytes) -> SampleStream:
        fd, tmp_path = tempfile.mkstemp(suffix=self.suffix)
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
            audio, sample_rate = librosa.load(tmp_path, sr=None, mono=False, dtype=np.float32)
        finally:
            os.unlink(tmp_path)
        return SampleStream.from_channels_first(audio, int(sample_rate))


DECODERS: Dict[str, Decoder] = {
    'WAV': SoundFileDecoder(),
    'AIFF': SoundFileDecoder(),
    'FLAC': SoundFileDecoder(),
    'MP3': LibrosaDecoder(),
}


def sniff_format(data: bytes) -> str:
    """
    Identify the container format from leading bytes.

    Args:
        data: File contents (at least the first 12 bytes)

    Returns:
        str: One of "WAV", "AIFF", "FLAC", "MP3"

    Raises:
        UnsupportedFormatError: If no known signature matches
    """
    if data[:4] in (b'RIFF', b'RF64') and data[8:12] == b'WAVE':
        return 'WAV'
    if data[:4] == b'FORM' and data[8:12] in (b'AIFF', b'AIFC'):
        return 'AIFF'
    if data[:4] == b'fLaC':
        return 'FLAC'
    if data[:3] == b'ID3':
        return 'MP3'
    if len(data) >= 2 and (int.from_bytes(data[:2], 'big') & _MPEG_SYNC_MASK) == _MPEG_SYNC_MASK:
        return 'MP3'
    raise UnsupportedFormatError(
        "Unrecognised audio data", format=data[:4].hex() if data else None
    )


class AudioLoader:
    """
    Loads audio files as SampleStreams.

    Stateless - can be shared between threads.
    """

    def __init__(
        self,
        max_file_size: int = MAX_FILE_SIZE,
        decoders: Optional[Dict[str, Decoder]] = None,
    ):
        """
        Initialize loader with configuration.

        Args:
            max_file_size: Maximum file size in bytes
            decoders: Format name to decoder mapping (defaults to DECODERS)
        """
        self.max_file_size = max_file_size
        self.decoders = dict(DECODERS if decoders is None else decoders)
        self.supported_suffixes: Set[str] = set(SUPPORTED_FORMATS)

    def load(self, file_path: Path) -> SampleStream:
        """
        Load an audio file.

        Args:
            file_path: Path to audio file

        Returns:
            SampleStream: Decoded samples named after the file

        Raises:
            FileNotFoundError: File doesn't exist
            UnsupportedFormatError: Suffix or content not a supported format
            FileTooLargeError: File exceeds size limit
            AudioLoadError: Decoding failed
        """
        file_path = Path(file_path)
        self._validate_file(file_path)

        data = file_path.read_bytes()
        fmt = sniff_format(data)
        expected = SUPPORTED_FORMATS[file_path.suffix.lower()]
        if fmt != expected:
            logger.warning(f"{file_path.name}: suffix says {expected}, content is {fmt}")

        try:
            stream = self.decoders[fmt].decode(data)
        except Exception as e:
            raise AudioLoadError(
                f"Failed to decode {file_path}: {e}", file_path=str(file_path)
            ) from e

        logger.info(
            f"Loaded {file_path.name}: {fmt}, {stream.sample_rate} Hz, "
            f"{stream.channels} ch, {stream.duration:.2f}s"
        )
        return SampleStream(stream.samples, stream.sample_rate, stream.channels, file_path.name)

    def _validate_file(self, file_path: Path) -> None:
        """Validate file exists, has supported suffix, and is within size limit."""
        if not file_path.exists():
            raise FileNotFoundError(f"Audio file not found: {file_path}")

        suffix = file_path.suffix.lower()
        if suffix not in self.supported_suffixes:
            raise UnsupportedFormatError(
                f"Format {suffix} not supported. "
                f"Supported formats: {', '.join(sorted(self.supported_suffixes))}",
                format=suffix
            )

        file_size = file_path.stat().st_size
        if file_size > self.max_file_size:
            raise FileTooLargeError(
                f"File too large: {file_size / 1024 / 1024:.1f} MB. "
                f"Maximum: {self.max_file_size / 1024 / 1024:.1f} MB",
                file_size=file_size,
                max_size=self.max_file_size
            )


def create_audio_loader(config: Optional[Dict[str, Any]] = None) -> AudioLoader:
    """
    Factory function to create AudioLoader with configuration.

    Args:
        config: Optional "audio" configuration section

    Returns:
        AudioLoader: Configured loader instance
    """
    if config is None:
        config = {}

    return AudioLoader(max_file_size=config.get('max_file_size', MAX_FILE_SIZE))
