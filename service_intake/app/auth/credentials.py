"""
Credential and identity checks delegated to the identity store.
"""

from shared.errors import AuthenticationFailed, IdentityNotFound
from ..store.interfaces import Identity, IdentityStore


class CredentialVerifier:
    """Checks a login/secret pair against stored identities."""

    def __init__(self, store: IdentityStore):
        self.store = store

    async def verify(self, login: str, secret: str) -> Identity:
        """Return the matching identity.

        An unknown login and a wrong secret raise the same
        ``AuthenticationFailed`` so callers cannot enumerate accounts.
        """
        identity = await self.store.find_identity_by_credentials(login, secret)
        if identity is None:
            raise AuthenticationFailed(
                "No identity matches the supplied credentials",
                details={"login": login},
            )
        return identity


class IdentityResolver:
    """Re-confirms that a token subject still exists."""

    def __init__(self, store: IdentityStore):
        self.store = store

    async def resolve(self, user_id: int) -> int:
        if not await self.store.identity_exists(user_id):
            raise IdentityNotFound(
                "Token subject does not match an existing account",
                details={"user_id": user_id},
            )
        return user_id
