"""
Token Generator

Produces the capability tokens that identify stored objects.
"""

import secrets

from .value_objects import AccessToken

# 32 random bytes = 256 bits of entropy, 43 URL-safe characters
TOKEN_BYTES = 32


class TokenGenerator:
    """
    Generates unguessable, URL-safe access tokens.

    Stateless: every call draws fresh bytes from the operating system's CSPRNG,
    so tokens are neither sequential nor predictable from earlier ones.
    """

    def __init__(self, nbytes: int = TOKEN_BYTES):
        if nbytes < 24:
            raise ValueError(f"Token entropy too low: {nbytes} bytes")
        self.nbytes = nbytes

    def generate(self) -> str:
        """
        Generate a new access token.

        Returns:
            URL-safe token string
        """
        return AccessToken(secrets.token_urlsafe(self.nbytes)).value
