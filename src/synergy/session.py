"""Session strategies: who is logged in, checked locally or by the auth service."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

import httpx

from .auth_client import AuthClient, AuthToken
from .config import AppConfig
from .constants import SESSION_STRATEGY_LOCAL, SESSION_STRATEGY_REMOTE
from .errors import ConfigError
from .models import User
from .repository import Repository


@dataclass(frozen=True)
class SessionToken:
    user_id: str
    strategy: str
    bearer_token: str | None = None
    expires_at: datetime | None = None

    def __repr__(self) -> str:
        bearer = "[REDACTED]" if self.bearer_token else None
        return (
            f"SessionToken(user_id={self.user_id!r}, strategy={self.strategy!r}, "
            f"bearer_token={bearer}, expires_at={self.expires_at!r})"
        )


class SessionStrategy(Protocol):
    name: str

    def sign_up(self, email: str, name: str, credential: str) -> SessionToken: ...

    def log_in(self, email: str, credential: str) -> SessionToken: ...

    def log_out(self) -> None: ...

    def close(self) -> None: ...


class LocalSessionStrategy:
    """Credentials are checked against users in the local store."""

    name = SESSION_STRATEGY_LOCAL

    def __init__(self, repository: Repository) -> None:
        self._repo = repository

    def sign_up(self, email: str, name: str, credential: str) -> SessionToken:
        user = self._repo.create_user(email, name, credential)
        return self._start(user)

    def log_in(self, email: str, credential: str) -> SessionToken:
        user = self._repo.authenticate(email, credential)
        return self._start(user)

    def log_out(self) -> None:
        self._repo.sign_out()

    def close(self) -> None:
        pass

    def _start(self, user: User) -> SessionToken:
        self._repo.sign_in(user.id)
        return SessionToken(user_id=user.id, strategy=self.name)


class RemoteTokenSessionStrategy:
    """Credentials are checked by the auth service, which issues a bearer token.

    Users are mirrored into the local store with an empty credential so
    projects and tasks can reference them. The token lives only in memory.
    """

    name = SESSION_STRATEGY_REMOTE

    def __init__(self, repository: Repository, client: AuthClient) -> None:
        self._repo = repository
        self._client = client
        self.token: AuthToken | None = None

    def sign_up(self, email: str, name: str, credential: str) -> SessionToken:
        first_name, _, last_name = name.strip().partition(" ")
        self._client.signup(first_name, last_name.strip(), email, credential)
        self._mirror_user(email, name)
        return self.log_in(email, credential)

    def log_in(self, email: str, credential: str) -> SessionToken:
        token = self._client.login(email, credential)
        user = self._mirror_user(email, "")
        self._repo.sign_in(user.id)
        self.token = token
        return SessionToken(
            user_id=user.id,
            strategy=self.name,
            bearer_token=token.token,
            expires_at=token.expires_at,
        )

    def log_out(self) -> None:
        self.token = None
        self._repo.sign_out()

    def close(self) -> None:
        self._client.close()

    def _mirror_user(self, email: str, name: str) -> User:
        user = self._repo.find_user_by_email(email)
        if user is not None:
            return user
        return self._repo.create_user(email, name, credential="")


def build_session_strategy(
    config: AppConfig,
    repository: Repository,
    transport: httpx.BaseTransport | None = None,
) -> SessionStrategy:
    """Select the session strategy named by the configuration."""
    if config.session_strategy == SESSION_STRATEGY_LOCAL:
        return LocalSessionStrategy(repository)
    if config.session_strategy == SESSION_STRATEGY_REMOTE:
        client = AuthClient(
            config.auth_base_url,
            timeout=config.auth_timeout,
            transport=transport,
        )
        return RemoteTokenSessionStrategy(repository, client)
    raise ConfigError(f"Unknown session strategy: {config.session_strategy}")
