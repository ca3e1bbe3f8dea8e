"""
Exception classes for the registry client.
"""

from typing import Optional


class RegistryError(Exception):
    """Base exception for all module proxy errors."""

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        super().__init__(message)


class AdmissionCancelled(RegistryError):
    """Raised when the caller cancelled before a request slot was granted."""

    def __init__(self, url: Optional[str] = None):
        super().__init__("request cancelled before it was issued", url)


class TransportFailure(RegistryError):
    """Raised when the request failed at the network level or was cancelled in flight."""

    def __init__(self, url: str, cause: BaseException):
        self.cause = cause
        super().__init__(f"fetching {url}: {cause}", url)


class UpstreamStatus(RegistryError):
    """Raised when the proxy answers with a non-success status code."""

    def __init__(self, url: str, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"proxy returned {status_code}: {body}", url)


class DecodeFailure(RegistryError):
    """Raised when a response body is not the expected JSON document."""

    def __init__(self, url: str, cause: BaseException):
        self.cause = cause
        super().__init__(f"decoding response from {url}: {cause}", url)
