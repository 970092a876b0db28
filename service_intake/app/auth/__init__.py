"""
Authentication for the intake gateway: token minting and verification,
credential and identity checks, and the protected-route gate.
"""

from .credentials import CredentialVerifier, IdentityResolver
from .middleware import AuthContext, AuthMiddleware
from .tokens import IssuedToken, SigningConfig, TokenIssuer, TokenVerifier

__all__ = [
    "AuthContext",
    "AuthMiddleware",
    "CredentialVerifier",
    "IdentityResolver",
    "IssuedToken",
    "SigningConfig",
    "TokenIssuer",
    "TokenVerifier",
]
