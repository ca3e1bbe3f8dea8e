"""modinspect: dependency intelligence for Go modules."""

__version__ = "0.4.1"
