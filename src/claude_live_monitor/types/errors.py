"""Error taxonomy for session monitoring and usage polling."""


class MonitorError(Exception):
    """Base class for all monitor errors."""


class NoLogFile(MonitorError):
    """The selected session has no log file yet. Retried on the next scan."""


class DecodeError(MonitorError):
    """A descriptor or payload could not be decoded."""


class UsageError(MonitorError):
    """A usage fetch failed."""

    description = "Usage request failed"

    def __str__(self) -> str:
        detail = super().__str__()
        return f"{self.description}: {detail}" if detail else self.description


class NoCredentials(UsageError):
    description = "Missing session key or organization ID"


class Unauthorized(UsageError):
    description = "Invalid session key"


class SessionExpired(UsageError):
    description = "Session expired. Please update your session key."


class Blocked(UsageError):
    description = "Request blocked by Cloudflare"


class RateLimited(UsageError):
    description = "Too many requests. Please wait."


class HttpError(UsageError):
    description = "HTTP error"

    def __init__(self, status_code: int):
        super().__init__(str(status_code))
        self.status_code = status_code


class NetworkError(UsageError):
    description = "Network error"


class UsageDecodeError(UsageError, DecodeError):
    description = "Failed to parse response"
