from .payloads import (
    AcceptedResponse,
    Credentials,
    ServiceOrder,
    ServiceRequest,
    ServiceStatus,
    TokenResponse,
)

__all__ = [
    "AcceptedResponse",
    "Credentials",
    "ServiceOrder",
    "ServiceRequest",
    "ServiceStatus",
    "TokenResponse",
]
