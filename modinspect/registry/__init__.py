"""Client for the Go module proxy protocol."""

from .client import CancelToken, RegistryClient, escape_path
from .exceptions import (
    AdmissionCancelled,
    DecodeFailure,
    RegistryError,
    TransportFailure,
    UpstreamStatus,
)
from .models import VersionInfo

__all__ = [
    "RegistryClient",
    "CancelToken",
    "escape_path",
    "VersionInfo",
    "RegistryError",
    "AdmissionCancelled",
    "TransportFailure",
    "UpstreamStatus",
    "DecodeFailure",
]
