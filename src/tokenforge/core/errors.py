"""Error taxonomy for the token launch pipeline."""

from __future__ import annotations

from typing import Any


class LaunchpadError(RuntimeError):
    """Base class for every error raised by TokenForge."""


class ValidationError(LaunchpadError):
    """Raised when a launch request or metadata document is malformed."""


class ConfigurationError(LaunchpadError):
    """Raised when configuration or credential loading fails."""


class UploadError(LaunchpadError):
    """Raised when the metadata upload does not yield a URI."""


class RemoteError(UploadError):
    """The metadata store answered with a non-2xx status."""

    def __init__(self, status_code: int, body: Any) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Metadata store rejected upload: {status_code} - {body}")


class NetworkError(UploadError):
    """No response was received from the metadata store."""


class UploadTimeoutError(UploadError):
    """The metadata upload was aborted on timeout."""


class ProtocolError(UploadError):
    """The metadata store answered 2xx without a usable URI."""


class SizingError(LaunchpadError):
    """Raised when the rent-exempt balance could not be computed."""


class WalletNotConnectedError(LaunchpadError):
    """Raised when no signer public key is available."""


class SubmissionError(LaunchpadError):
    """Raised when signing, broadcast, or confirmation fails."""

    def __init__(self, message: str, *, signature: str | None = None) -> None:
        self.signature = signature
        super().__init__(message)


class AmbiguousOutcomeError(SubmissionError):
    """The transaction was broadcast but its fate could not be determined."""

    def __init__(self, message: str, *, signature: str, irreversible: bool = False) -> None:
        self.irreversible = irreversible
        super().__init__(message, signature=signature)


class ReadBackError(LaunchpadError):
    """Raised when post-confirmation verification fails."""


class LaunchFailedError(LaunchpadError):
    """A pipeline stage failed; wraps the narrow error with the stage name."""

    def __init__(self, stage: str, cause: LaunchpadError) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(f"Token launch failed during {stage}: {cause}")

    @property
    def outcome_unknown(self) -> bool:
        return isinstance(self.cause, AmbiguousOutcomeError)


__all__ = [
    "AmbiguousOutcomeError",
    "ConfigurationError",
    "LaunchFailedError",
    "LaunchpadError",
    "NetworkError",
    "ProtocolError",
    "ReadBackError",
    "RemoteError",
    "SizingError",
    "SubmissionError",
    "UploadError",
    "UploadTimeoutError",
    "ValidationError",
    "WalletNotConnectedError",
]
