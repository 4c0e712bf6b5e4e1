"""
OAuth2 service-account token issuance for the indexing API.

A JWT assertion signed with the service account's RSA key is exchanged for a
short-lived bearer token. The token lives in an injected ``TokenCache`` scoped
to the issuer's owner (one sync run, one API process); it is never persisted.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jwt
import requests
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from app.indexing.errors import AuthError, ConfigError

logger = logging.getLogger(__name__)

JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME_SECONDS = 3600
TOKEN_CACHE_SECONDS = 3500
TOKEN_REFRESH_MARGIN_SECONDS = 100


@dataclass(frozen=True)
class ServiceAccountCredentials:
    """
    Issuer identity and PEM-encoded RSA private key.
    """

    client_email: str
    private_key: str

    @classmethod
    def from_file(cls, path: str | Path) -> "ServiceAccountCredentials":
        """
        Load credentials from a service account JSON key file.
        """

        key_path = Path(path)
        if not key_path.is_file():
            raise ConfigError(f"Service account JSON file not found at: {key_path}")
        try:
            payload = json.loads(key_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ConfigError(f"Invalid service account JSON file: {key_path}") from exc
        return cls.from_mapping(payload)

    @classmethod
    def from_mapping(cls, payload: Any) -> "ServiceAccountCredentials":
        if not isinstance(payload, dict):
            raise ConfigError("Service account JSON must be an object.")
        client_email = str(payload.get("client_email") or "").strip()
        private_key = str(payload.get("private_key") or "").strip()
        missing = [
            name
            for name, value in (("client_email", client_email), ("private_key", private_key))
            if not value
        ]
        if missing:
            raise ConfigError(
                f"Service account JSON is missing required field(s): {', '.join(missing)}."
            )
        return cls(client_email=client_email, private_key=private_key)


@dataclass
class TokenCache:
    """
    Holder for the most recent bearer token and its local expiry (epoch seconds).
    """

    value: str | None = None
    expires_at: float = 0.0

    def get(self, now: float) -> str | None:
        if self.value and now < self.expires_at - TOKEN_REFRESH_MARGIN_SECONDS:
            return self.value
        return None

    def store(self, value: str, expires_at: float) -> None:
        self.value = value
        self.expires_at = expires_at

    def clear(self) -> None:
        self.value = None
        self.expires_at = 0.0


class TokenIssuer:
    """
    Builds signed assertions and exchanges them for bearer tokens.
    """

    def __init__(
        self,
        *,
        credentials: ServiceAccountCredentials,
        token_url: str,
        scope: str,
        cache: TokenCache | None = None,
        session: requests.Session | None = None,
        timeout_seconds: float = 15.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._credentials = credentials
        self._token_url = token_url
        self._scope = scope
        self._cache = cache if cache is not None else TokenCache()
        self._session = session or requests.Session()
        self._timeout_seconds = timeout_seconds
        self._clock = clock
        self._signing_key: Any = None

    @property
    def issuer(self) -> str:
        return self._credentials.client_email

    def get_token(self) -> str:
        """
        Return a cached bearer token, refreshing it when close to expiry.
        """

        now = self._clock()
        cached = self._cache.get(now)
        if cached is not None:
            return cached

        assertion = self.build_assertion(now=int(now))
        token = self._exchange(assertion)
        self._cache.store(token, now + TOKEN_CACHE_SECONDS)
        logger.info("Indexing API access token refreshed issuer=%s", self.issuer)
        return token

    def build_assertion(self, *, now: int) -> str:
        """
        Sign ``{iss, scope, aud, iat, exp}`` with RS256.
        """

        claims = {
            "iss": self._credentials.client_email,
            "scope": self._scope,
            "aud": self._token_url,
            "iat": now,
            "exp": now + ASSERTION_LIFETIME_SECONDS,
        }
        try:
            return jwt.encode(
                claims,
                self._load_signing_key(),
                algorithm="RS256",
                headers={"typ": "JWT"},
            )
        except (jwt.PyJWTError, ValueError, TypeError) as exc:
            raise AuthError(f"Failed to sign token assertion: {exc}") from exc

    def _load_signing_key(self) -> Any:
        if self._signing_key is None:
            try:
                self._signing_key = serialization.load_pem_private_key(
                    self._credentials.private_key.encode("utf-8"),
                    password=None,
                )
            except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
                raise AuthError("Invalid private key in service account credentials.") from exc
        return self._signing_key

    def _exchange(self, assertion: str) -> str:
        try:
            response = self._session.post(
                self._token_url,
                data={"grant_type": JWT_BEARER_GRANT_TYPE, "assertion": assertion},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise AuthError(f"Token endpoint unreachable: {exc}") from exc

        if response.status_code != 200:
            logger.error(
                "Token exchange failed status=%s issuer=%s",
                response.status_code,
                self.issuer,
            )
            raise AuthError(
                f"Failed to obtain access token. HTTP {response.status_code}: {response.text}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise AuthError("Token endpoint response was not valid JSON.") from exc

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token:
            raise AuthError("Access token not found in response.")
        return token
