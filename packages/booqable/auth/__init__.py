"""Authentication strategies.

- ApiKeyAuth: static API key bearer token
- OAuthAuth: OAuth2 access token with refresh
- SingleUseTokenAuth: per-request signed JWT
- AuthChain: runs the configured strategies in precedence order
"""

from booqable.auth.api_key import ApiKeyAuth
from booqable.auth.chain import AuthChain, build_auth_chain
from booqable.auth.oauth import OAuthAuth
from booqable.auth.single_use import SingleUseTokenAuth, request_fingerprint

__all__ = [
    "ApiKeyAuth",
    "AuthChain",
    "OAuthAuth",
    "SingleUseTokenAuth",
    "build_auth_chain",
    "request_fingerprint",
]
