"""Bearer token authentication against the token authority.

Two token flavours are accepted on the same ``Authorization`` header:

* JWT access tokens (anything containing a ``.``) are validated locally,
  either with the shared ``AUTH_JWT_SECRET`` (HS256) or with the signing keys
  published in the authority's JWKS;
* reference tokens are forwarded to the authority's OAuth2 introspection
  endpoint using the API's client credentials.

Every file route additionally requires the configured API scope.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import jwt
import structlog
from fastapi import Depends, Header, HTTPException, Request

from boards_core.config import Settings, parse_list
from boards_core.files.policy import Subject

logger = structlog.get_logger()

HS_ALGORITHMS = ["HS256"]
JWKS_ALGORITHMS = ["RS256", "RS384", "RS512", "PS256", "ES256", "ES384"]


def parse_scopes(claims: dict[str, Any]) -> frozenset[str]:
    """Read the ``scope`` claim, which may be space-separated or a list."""
    scope = claims.get("scope", "")
    if isinstance(scope, str):
        return frozenset(scope.split())
    return frozenset(str(s) for s in scope)


def subject_from_claims(claims: dict[str, Any]) -> Subject:
    sub = claims.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="Token has no subject")
    return Subject(id=str(sub), scopes=parse_scopes(claims), claims=claims)


class TokenValidator:
    """Validate JWT or reference access tokens and produce a :class:`Subject`."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.transport = transport
        self.valid_types = {t.lower() for t in parse_list(settings.auth_valid_token_types)}
        self._discovery: dict[str, Any] | None = None
        self._jwk_client: jwt.PyJWKClient | None = None

    @property
    def authority(self) -> str:
        return self.settings.auth_authority.rstrip("/")

    async def authenticate(self, token: str) -> Subject:
        if not self.settings.auth_configured:
            raise HTTPException(status_code=503, detail="Auth not configured")
        if "." in token:
            claims = await self._decode_jwt(token)
        else:
            claims = await self._introspect(token)
        return subject_from_claims(claims)

    # --------------- JWT ---------------

    async def _decode_jwt(self, token: str) -> dict[str, Any]:
        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError:
            raise HTTPException(status_code=401, detail="Invalid token")
        if self.valid_types and str(header.get("typ", "")).lower() not in self.valid_types:
            raise HTTPException(status_code=401, detail="Invalid token type")

        if self.settings.auth_jwt_secret:
            key: Any = self.settings.auth_jwt_secret
            algorithms = HS_ALGORITHMS
        else:
            jwk_client = await self._get_jwk_client()
            try:
                signing_key = await asyncio.to_thread(
                    jwk_client.get_signing_key_from_jwt, token
                )
            except jwt.PyJWKClientConnectionError as e:
                logger.error("jwks_fetch_failed", error=str(e))
                raise HTTPException(status_code=503, detail="Token authority unavailable")
            except jwt.PyJWKClientError:
                raise HTTPException(status_code=401, detail="Invalid token")
            key = signing_key.key
            algorithms = JWKS_ALGORITHMS

        audience = self.settings.auth_audience or None
        try:
            return jwt.decode(
                token,
                key,
                algorithms=algorithms,
                audience=audience,
                issuer=self.authority or None,
                options={"verify_aud": audience is not None, "require": ["exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise HTTPException(status_code=401, detail="Token expired")
        except jwt.InvalidTokenError:
            raise HTTPException(status_code=401, detail="Invalid token")

    async def _get_jwk_client(self) -> jwt.PyJWKClient:
        if self._jwk_client is None:
            discovery = await self._discover()
            jwks_uri = discovery.get("jwks_uri") or f"{self.authority}/.well-known/openid-configuration/jwks"
            self._jwk_client = jwt.PyJWKClient(jwks_uri)
        return self._jwk_client

    # --------------- Introspection ---------------

    async def _introspect(self, token: str) -> dict[str, Any]:
        if not self.authority:
            raise HTTPException(status_code=401, detail="Reference tokens not supported")
        discovery = await self._discover()
        endpoint = discovery.get("introspection_endpoint") or f"{self.authority}/connect/introspect"

        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self.transport) as client:
                resp = await client.post(
                    endpoint,
                    data={"token": token, "token_type_hint": "access_token"},
                    auth=(self.settings.auth_audience, self.settings.auth_secret),
                )
        except httpx.HTTPError as e:
            logger.error("introspection_request_failed", error=str(e))
            raise HTTPException(status_code=503, detail="Token authority unavailable")

        if resp.status_code != 200:
            logger.warning(
                "introspection_rejected", status=resp.status_code, body=resp.text[:200]
            )
            raise HTTPException(status_code=503, detail="Token authority unavailable")

        payload = resp.json()
        if not payload.get("active"):
            raise HTTPException(status_code=401, detail="Token inactive")
        return payload

    async def _discover(self) -> dict[str, Any]:
        """Fetch and cache the authority's OpenID configuration document."""
        if self._discovery is not None:
            return self._discovery
        url = f"{self.authority}/.well-known/openid-configuration"
        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self.transport) as client:
                resp = await client.get(url)
                resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("openid_discovery_failed", url=url, error=str(e))
            raise HTTPException(status_code=503, detail="Token authority unavailable")
        self._discovery = resp.json()
        return self._discovery


# --------------- FastAPI dependencies ---------------


async def require_subject(
    request: Request,
    authorization: str | None = Header(None),
) -> Subject:
    """FastAPI dependency: authenticate the bearer token.

    Expects: Authorization: Bearer <token>
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing Bearer token")
    token = authorization[7:].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing Bearer token")
    validator: TokenValidator = request.app.state.token_validator
    return await validator.authenticate(token)


async def require_api_scope(
    request: Request,
    subject: Subject = Depends(require_subject),
) -> Subject:
    """FastAPI dependency: authenticated subject holding the API scope."""
    required = request.app.state.settings.auth_required_scope
    if required and required not in subject.scopes:
        logger.warning("missing_scope", subject_id=subject.id, required=required)
        raise HTTPException(status_code=403, detail=f"Missing scope: {required}")
    return subject
