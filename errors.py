from typing import Optional


class AssistantError(Exception):
    pass


class CapabilityUnavailable(AssistantError):
    """The call cannot start: no microphone, or the prompt is not ready yet."""


class RemoteServiceError(AssistantError):
    def __init__(self, message: str, status: Optional[int] = None, details: str = ""):
        super().__init__(message)
        self.status = status
        self.details = details


class UpstreamError(RemoteServiceError):
    """The text-generation endpoint failed."""


class SynthesisError(RemoteServiceError):
    """The speech-synthesis endpoint failed."""


class TransientRecognitionError(AssistantError):
    """Recognition produced nothing usable (e.g. no speech). Safe to ignore."""
