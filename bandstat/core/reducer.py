"""
Channel reducer: validates a sample stream and downmixes it to mono.
"""

import numpy as np

from bandstat.core.models import SampleStream
from bandstat.utils.errors import UnsupportedInputError


def validate_stream(stream: SampleStream) -> None:
    """
    Check that a stream can be analyzed.

    Raises:
        UnsupportedInputError: On zero frames, zero channels, a non-positive
            sample rate, a channel count that disagrees with the samples,
            or non-finite sample values
    """
    source = stream.name
    if stream.channels <= 0:
        raise UnsupportedInputError("Stream has no channels", source=source)
    if stream.sample_rate <= 0:
        raise UnsupportedInputError(
            f"Invalid sample rate: {stream.sample_rate}", source=source
        )
    if stream.samples.ndim != 2 or stream.samples.shape[1] != stream.channels:
        raise UnsupportedInputError(
            f"Sample array of shape {stream.samples.shape} does not match "
            f"{stream.channels} channel(s)",
            source=source
        )
    if stream.frame_count == 0:
        raise UnsupportedInputError("Stream has no frames", source=source)
    if not np.all(np.isfinite(stream.samples)):
        raise UnsupportedInputError("Stream contains non-finite samples", source=source)


def downmix(stream: SampleStream) -> np.ndarray:
    """
    Average all channels into one float64 signal.

    Args:
        stream: Validated or unvalidated sample stream

    Returns:
        np.ndarray: Mono signal of length stream.frame_count

    Raises:
        UnsupportedInputError: If the stream cannot be analyzed
    """
    validate_stream(stream)
    return np.mean(stream.samples, axis=1, dtype=np.float64)
