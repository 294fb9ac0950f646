"""Control-plane API client for environments, hosting, and file uploads."""

from .client import (
    CloudAPIError,
    CloudClient,
    CloudConnectionError,
    CloudNotFoundError,
    CloudTimeoutError,
    HostingNotEnabledError,
)

__all__ = [
    "CloudAPIError",
    "CloudClient",
    "CloudConnectionError",
    "CloudNotFoundError",
    "CloudTimeoutError",
    "HostingNotEnabledError",
]
