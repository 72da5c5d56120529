"""Authentication module for Manualic API.

Callers present RS256 bearer tokens whose subject is a user id.
"""

from manualic_api.auth.dependencies import get_current_user, get_token
from manualic_api.auth.tokens import (
    AccessTokenClaims,
    AccessTokenSigner,
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    create_access_token,
    get_token_signer,
    validate_token,
)

__all__ = [
    "AccessTokenClaims",
    "AccessTokenSigner",
    "TokenError",
    "TokenExpiredError",
    "TokenInvalidError",
    "create_access_token",
    "get_current_user",
    "get_token",
    "get_token_signer",
    "validate_token",
]
