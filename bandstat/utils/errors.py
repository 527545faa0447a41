"""
Custom exceptions for the band power analyzer.

Every failure the engine can report derives from BandStatError, so callers
can catch one type at the boundary. Non-fatal conditions are not exceptions:
they travel as advisories on the analysis result.
"""

from typing import Any, Optional


# Advisory kind attached to results computed at a sample rate the
# K-weighting coefficients were not validated for.
COMPUTATION_DEGRADED = "ComputationDegraded"


class BandStatError(Exception):
    """Base exception for all band analysis errors."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class UnsupportedInputError(BandStatError):
    """Raised when a sample stream cannot be analyzed (empty, no channels, bad rate)."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message, details={"source": source} if source else None)
        self.source = source


class InvalidConfigurationError(BandStatError):
    """Raised when analysis parameters or configuration values are invalid."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message)
        self.config_key = config_key
        self.details = {"config_key": config_key} if config_key else None


class AudioLoadError(BandStatError):
    """Raised when an audio file cannot be read or decoded."""

    def __init__(self, message: str, file_path: Optional[str] = None):
        super().__init__(message, details={"file_path": file_path} if file_path else None)
        self.file_path = file_path


class UnsupportedFormatError(AudioLoadError):
    """Raised when the container format is not recognised."""

    def __init__(self, message: str, format: Optional[str] = None):
        super().__init__(message)
        self.format = format
        self.details = {"format": format}


class FileTooLargeError(AudioLoadError):
    """Raised when an audio file exceeds the configured size limit."""

    def __init__(
        self,
        message: str,
        file_size: Optional[int] = None,
        max_size: Optional[int] = None,
    ):
        super().__init__(message)
        self.file_size = file_size
        self.max_size = max_size
        self.details = {"file_size": file_size, "max_size": max_size}


class ChartError(BandStatError):
    """Raised when a chart image cannot be rendered or written."""

    def __init__(self, message: str, output_path: Optional[str] = None):
        super().__init__(message, details={"output_path": output_path} if output_path else None)
        self.output_path = output_path
