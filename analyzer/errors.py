from __future__ import annotations


class AnalyzerError(Exception):
    """Base class for errors surfaced as user-facing status text."""


class LoadError(AnalyzerError):
    """Dataset source is unreachable or yields no usable reviews. Fatal to the session."""


class NotReadyError(AnalyzerError):
    """Local mode is active but the local model has not finished loading."""

    def __init__(self, message: str = "Local model not loaded yet. Please wait."):
        super().__init__(message)


class MissingCredentialError(AnalyzerError):
    """Remote mode is active but no API key is stored."""

    def __init__(self, message: str = "API key not set. Save your OpenRouter key first."):
        super().__init__(message)


class BusyError(AnalyzerError):
    """A classification is already in flight; new calls are rejected, not queued."""

    def __init__(self, message: str = "Analysis already in progress."):
        super().__init__(message)


class InferenceError(AnalyzerError):
    """Local backend used out of order (classify before init)."""


class HttpError(AnalyzerError):
    """
    Remote endpoint returned a non-2xx response, or the request never completed.

    status is 0 when no response was received.
    """

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        if status:
            message = f"OpenRouter HTTP {status}: {body}"
        else:
            message = f"OpenRouter request failed: {body}"
        super().__init__(message)
