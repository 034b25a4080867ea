"""Request signing with single use JWTs.

Every request gets its own short-lived token. The ``jti`` claim embeds a fingerprint
of the method, path with query and body, so a captured token cannot be replayed
against a different request.
"""

from __future__ import annotations

import base64
import hashlib
import time
import uuid
from collections.abc import Callable, Generator
from typing import Any

import httpx
from jose import jwk, jwt
from jose.exceptions import JOSEError

from booqable.auth.api_key import AUTHORIZATION
from booqable.config.models import PRODUCTION_DOMAIN, SINGLE_USE_TOKEN_ALGORITHMS
from booqable.errors import (
    PrivateKeyOrSecretRequired,
    SingleUseTokenAlgorithmRequired,
    SingleUseTokenCompanyIdRequired,
    SingleUseTokenUserIdRequired,
    UnsupportedSingleUseTokenAlgorithm,
)

KIND = "single_use"
DEFAULT_EXPIRATION_PERIOD = 10 * 60


def _b64_sha256(data: bytes) -> str:
    return base64.b64encode(hashlib.sha256(data).digest()).decode("ascii")


def request_fingerprint(method: str, full_path: str, body: bytes | None) -> str:
    """Hash identifying a request.

    ``base64(sha256("{METHOD}.{path?query}.{base64(sha256(body))}"))``; the body part
    is empty when the request has no body.

    Args:
        method: HTTP method
        full_path: Path including the query string
        body: Raw request body

    Returns:
        Base64 encoded SHA-256 digest
    """
    encoded_body = _b64_sha256(body) if body else ""
    return _b64_sha256(f"{method.upper()}.{full_path}.{encoded_body}".encode())


def parse_signing_key(algorithm: str, raw_key: str) -> Any:
    """Turn configured key material into a signing key.

    ES256 and RS256 expect a PEM private key; HS256 uses the secret as-is.

    Raises:
        UnsupportedSingleUseTokenAlgorithm: If the algorithm is not supported
        PrivateKeyOrSecretRequired: If the PEM key cannot be parsed
    """
    if algorithm not in SINGLE_USE_TOKEN_ALGORITHMS:
        raise UnsupportedSingleUseTokenAlgorithm(
            f"Unsupported single use token algorithm {algorithm!r}; "
            f"use one of {', '.join(SINGLE_USE_TOKEN_ALGORITHMS)}."
        )
    if algorithm == "HS256":
        return raw_key
    try:
        return jwk.construct(raw_key, algorithm)
    except JOSEError as e:
        raise PrivateKeyOrSecretRequired(
            f"Could not read the {algorithm} private key: {e}"
        ) from e


class SingleUseTokenAuth(httpx.Auth):
    """Sign each request with a single use JWT.

    Args:
        token: Key id sent in the ``kid`` header
        algorithm: HS256, RS256 or ES256
        private_key: PEM private key (RS256/ES256) or shared secret (HS256)
        company_id: Company UUID, sent as ``aud``
        user_id: User UUID, sent as ``sub``
        api_endpoint: API endpoint; its first host label is the company slug in ``iss``
        expiration_period: Token lifetime in seconds
        clock: Time source

    Raises:
        SingleUseTokenAlgorithmRequired: If no algorithm is configured
        SingleUseTokenCompanyIdRequired: If no company id is configured
        SingleUseTokenUserIdRequired: If no user id is configured
        PrivateKeyOrSecretRequired: If no key material is configured
        UnsupportedSingleUseTokenAlgorithm: If the algorithm is not supported
    """

    requires_request_body = True

    def __init__(
        self,
        *,
        token: str,
        algorithm: str | None,
        private_key: str | None,
        company_id: str | None,
        user_id: str | None,
        api_endpoint: str,
        expiration_period: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not algorithm:
            raise SingleUseTokenAlgorithmRequired()
        if not company_id:
            raise SingleUseTokenCompanyIdRequired()
        if not user_id:
            raise SingleUseTokenUserIdRequired()
        if not private_key:
            raise PrivateKeyOrSecretRequired()

        self.kid = token
        self.algorithm = algorithm
        self.company_id = company_id
        self.user_id = user_id
        self.api_endpoint = api_endpoint
        self.expiration_period = expiration_period or DEFAULT_EXPIRATION_PERIOD
        self._key = parse_signing_key(algorithm, private_key)
        self._clock = clock

    def __repr__(self) -> str:
        return f"SingleUseTokenAuth(kid='*****', algorithm={self.algorithm!r})"

    @property
    def issuer(self) -> str:
        slug = (httpx.URL(self.api_endpoint).host or "").split(".")[0]
        return f"https://{slug}.{PRODUCTION_DOMAIN}"

    def claims(self, request: httpx.Request) -> dict[str, Any]:
        """Claims for a token bound to ``request``."""
        now = int(self._clock())
        fingerprint = request_fingerprint(
            request.method, request.url.raw_path.decode("ascii"), request.content
        )
        return {
            "alg": self.algorithm,
            "iat": now,
            "exp": now + self.expiration_period,
            "aud": self.company_id,
            "sub": self.user_id,
            "iss": self.issuer,
            "jti": f"{uuid.uuid4()}.{fingerprint}",
        }

    def generate_token(self, request: httpx.Request) -> str:
        """Sign a new token for ``request``."""
        return jwt.encode(
            self.claims(request),
            self._key,
            algorithm=self.algorithm,
            headers={"kid": self.kid, "kind": KIND},
        )

    def apply(self, request: httpx.Request) -> None:
        if AUTHORIZATION in request.headers:
            return
        request.headers[AUTHORIZATION] = f"Bearer {self.generate_token(request)}"

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        self.apply(request)
        yield request
