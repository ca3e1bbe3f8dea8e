from enum import Enum


class UpdateType(str, Enum):
    none = "none"
    patch = "patch"
    minor = "minor"
    major = "major"


DEFAULT_PROXY_URL = "https://proxy.golang.org"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_CONCURRENT = 10

# Registry cache lifetimes, in seconds
SHORT_TTL = 5 * 60
LONG_TTL = 60 * 60
SWEEP_INTERVAL = 60.0

MAX_GRAPH_DEPTH = 10

SEVERITY_ORDER = ("CRITICAL", "HIGH", "MEDIUM", "LOW", "UNKNOWN")
