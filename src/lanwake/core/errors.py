"""Error kinds raised by the lanwake core."""

from typing import Optional


class LanwakeError(Exception):
    """Base class for all lanwake core failures."""


class ValidationError(LanwakeError):
    """Raised for a missing or malformed input value."""


class NotFoundError(LanwakeError):
    """Raised when no device has the requested id."""


class TransmissionError(LanwakeError):
    """Raised when the magic packet could not be handed to the network stack."""


class UnsupportedPlatformError(LanwakeError):
    """Raised when network scanning is requested on an unsupported OS."""


class ScanFailedError(LanwakeError):
    """Raised when neither discovery command produced usable output."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        super().__init__(message)
