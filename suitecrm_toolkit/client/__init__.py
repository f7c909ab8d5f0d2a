"""Transport, session client and toolkit builder."""

from .transport import HttpTransport, Transport, TransportResponse
from .rest_client import SuiteCRMClient
from .builder import SuiteCRM

__all__ = [
    "HttpTransport",
    "Transport",
    "TransportResponse",
    "SuiteCRMClient",
    "SuiteCRM",
]
