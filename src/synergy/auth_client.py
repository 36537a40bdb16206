"""Client for the external authentication HTTP service.

The service issues a signed bearer token valid for one hour. The token is
opaque here: it is kept and handed back, never decoded.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import httpx

from .constants import (
    AUTH_ERROR_INVALID_PASSWORD,
    AUTH_ERROR_MISSING_FIELDS,
    AUTH_ERROR_USER_EXISTS,
    AUTH_ERROR_USER_NOT_FOUND,
    AUTH_LOGIN_PATH,
    AUTH_SIGNUP_PATH,
    AUTH_TOKEN_TTL_SEC,
    DEFAULT_AUTH_TIMEOUT_SEC,
)
from .errors import (
    AuthServiceError,
    BadCredentialError,
    DuplicateEmailError,
    NotFoundError,
    SynergyError,
    ValidationError,
)
from .logging_utils import log_event
from .time_utils import utc_now


@dataclass(frozen=True)
class AuthToken:
    token: str
    message: str
    issued_at: datetime

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + timedelta(seconds=AUTH_TOKEN_TTL_SEC)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def __repr__(self) -> str:
        return f"AuthToken(token=[REDACTED], issued_at={self.issued_at.isoformat()})"


class AuthClient:
    """Synchronous client for ``/api/signup`` and ``/api/login``."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_AUTH_TIMEOUT_SEC,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> AuthClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def signup(self, first_name: str, last_name: str, email: str, password: str) -> str:
        """Register with the service. Returns its confirmation message."""
        body = self._post(
            "signup",
            AUTH_SIGNUP_PATH,
            {
                "firstName": first_name,
                "lastName": last_name,
                "email": email,
                "password": password,
            },
            email=email,
        )
        return str(body.get("message", ""))

    def login(self, email: str, password: str) -> AuthToken:
        body = self._post(
            "login",
            AUTH_LOGIN_PATH,
            {"email": email, "password": password},
            email=email,
        )
        token = body.get("token")
        if not isinstance(token, str) or not token:
            raise AuthServiceError("Login response did not include a token")
        return AuthToken(
            token=token,
            message=str(body.get("message", "")),
            issued_at=utc_now(),
        )

    def _post(
        self, operation: str, path: str, payload: dict[str, Any], *, email: str
    ) -> dict[str, Any]:
        started = time.monotonic()
        try:
            response = self._client.post(path, json=payload)
        except httpx.HTTPError as e:
            log_event(
                "auth_request_failed",
                level=logging.ERROR,
                operation=operation,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise AuthServiceError(f"Auth service unreachable: {e}") from e

        log_event(
            "auth_request",
            operation=operation,
            http_status=response.status_code,
            elapsed_ms=round((time.monotonic() - started) * 1000),
        )

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            raise AuthServiceError(
                f"Auth service returned a non-JSON response (HTTP {response.status_code})"
            )

        if response.status_code == 200:
            return body
        if response.status_code == 400:
            raise _map_service_error(str(body.get("error", "")), email)
        raise AuthServiceError(
            f"Auth service returned HTTP {response.status_code}: {body.get('error', '')}"
        )


def _map_service_error(error: str, email: str) -> SynergyError:
    if error == AUTH_ERROR_USER_EXISTS:
        return DuplicateEmailError(email)
    if error == AUTH_ERROR_USER_NOT_FOUND:
        return NotFoundError("User", email)
    if error == AUTH_ERROR_INVALID_PASSWORD:
        return BadCredentialError()
    if error == AUTH_ERROR_MISSING_FIELDS:
        return ValidationError(error)
    return AuthServiceError(error or "Auth service rejected the request")
