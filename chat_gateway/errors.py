"""
Error taxonomy for a single orchestration call.

Every failure that reaches the caller is one of these. The HTTP layer turns
them into `{"error": ..., "category": ...}` with `status_code`.
"""


class OrchestrationError(Exception):
    category = "orchestration"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {"error": self.message, "category": self.category}


class RequestError(OrchestrationError):
    """Empty or malformed message history. Raised before any network call."""
    category = "request"
    status_code = 400


class ConfigurationError(OrchestrationError):
    """Missing credential, malformed assistant id or unsupported forced mode. Never retried."""
    category = "configuration"


class BackendCallError(OrchestrationError):
    """Network or backend failure during an adapter call or a poll tick."""
    category = "backend"


class ExtractionError(OrchestrationError):
    """The backend answered but no usable text was found in the payload."""
    category = "extraction"
