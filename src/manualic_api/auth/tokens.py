"""RS256 bearer tokens identifying API callers.

A token names the user in ``sub`` and is bound to this API by ``iss`` and
``aud``. When no private key is configured a fresh RSA key is generated per
process, so tokens stop validating after a restart.
"""

import logging
import time
from dataclasses import dataclass

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from manualic_api.config import jwt_settings

logger = logging.getLogger(__name__)

ALGORITHM = "RS256"
REQUIRED_CLAIMS = ("sub", "iss", "aud", "exp", "iat")


class TokenError(Exception):
    """A bearer token was rejected."""


class TokenExpiredError(TokenError):
    pass


class TokenInvalidError(TokenError):
    pass


@dataclass(frozen=True)
class AccessTokenClaims:
    """Verified claims of an access token."""

    sub: str
    iss: str
    aud: str
    exp: int
    iat: int


class AccessTokenSigner:
    """Issues and verifies access tokens with one RSA key."""

    def __init__(
        self,
        private_key_pem: str | None = None,
        issuer: str = "manualic-api",
        audience: str = "manualic",
        ttl_minutes: int = 60,
    ):
        if private_key_pem:
            key = serialization.load_pem_private_key(
                private_key_pem.encode(), password=None
            )
        else:
            logger.info("No JWT private key configured, using a per-process key")
            key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

        self.issuer = issuer
        self.audience = audience
        self.ttl_seconds = ttl_minutes * 60
        self._signing_key = key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        ).decode()
        self._verifying_key = (
            key.public_key()
            .public_bytes(
                serialization.Encoding.PEM,
                serialization.PublicFormat.SubjectPublicKeyInfo,
            )
            .decode()
        )

    def issue(self, user_id: str) -> str:
        """Sign a token for ``user_id``."""
        issued_at = int(time.time())
        claims = {
            "sub": user_id,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": issued_at,
            "exp": issued_at + self.ttl_seconds,
        }
        return jwt.encode(claims, self._signing_key, algorithm=ALGORITHM)

    def verify(self, token: str) -> AccessTokenClaims:
        """Check signature, issuer, audience and expiry.

        Raises:
            TokenExpiredError: If the token is past its expiry
            TokenInvalidError: For any other defect
        """
        try:
            claims = jwt.decode(
                token,
                self._verifying_key,
                algorithms=[ALGORITHM],
                audience=self.audience,
                issuer=self.issuer,
            )
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except JWTError as e:
            raise TokenInvalidError(f"Invalid token: {e}") from e

        missing = [name for name in REQUIRED_CLAIMS if name not in claims]
        if missing:
            raise TokenInvalidError(f"Token missing claims: {', '.join(missing)}")
        return AccessTokenClaims(**{name: claims[name] for name in REQUIRED_CLAIMS})


_signer: AccessTokenSigner | None = None


def get_token_signer() -> AccessTokenSigner:
    """Get the process-wide signer built from JWT settings."""
    global _signer
    if _signer is None:
        _signer = AccessTokenSigner(
            private_key_pem=jwt_settings.private_key,
            issuer=jwt_settings.issuer,
            audience=jwt_settings.audience,
            ttl_minutes=jwt_settings.access_token_ttl_minutes,
        )
    return _signer


def create_access_token(user_id: str) -> str:
    return get_token_signer().issue(user_id)


def validate_token(token: str) -> AccessTokenClaims:
    return get_token_signer().verify(token)
