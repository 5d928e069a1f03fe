"""
IdentityGateway: the only way the rest of the back-office talks to the
identity provider.

The current principal is driven by the provider's auth-state events, not
by the sign_in/sign_out calls themselves, so a session that the provider
ends on its own (expiry, revocation) is reflected here as well.

Each successful login also opens a gateway session keyed by a random id.
HTTP clients carry that id inside their bearer token; a client without a
live session is not signed in, whatever other clients have done.
"""
from __future__ import annotations

import re
import secrets
import time
from typing import Callable, NamedTuple, Optional

from loguru import logger

from garage.auth.providers import AuthCallback, IdentityProvider
from garage.core.errors import FormValidationError

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")
MIN_PASSWORD_LENGTH = 6


def validate_credentials(email: Optional[str], password: Optional[str]) -> None:
    """Login-form checks, run before the provider is ever contacted."""
    errors: dict[str, str] = {}

    if not email or not email.strip():
        errors["email"] = "Email is required"
    elif not EMAIL_PATTERN.match(email.strip()):
        errors["email"] = "Email is invalid"

    if not password or not password.strip():
        errors["password"] = "Password is required"
    elif len(password) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"

    if errors:
        raise FormValidationError(errors)


class Session(NamedTuple):
    principal: str
    expires_at: float


class IdentityGateway:
    def __init__(
        self,
        provider: IdentityProvider,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self._clock = clock
        self._principal: Optional[str] = provider.current_principal
        self._listeners: list[AuthCallback] = []
        self._sessions: dict[str, Session] = {}
        self._detach = provider.subscribe(self._on_auth_state_changed)

    @property
    def current_principal(self) -> Optional[str]:
        return self._principal

    @property
    def is_authenticated(self) -> bool:
        return self._principal is not None

    def _on_auth_state_changed(self, principal: Optional[str]) -> None:
        previous = self._principal
        self._principal = principal
        if principal:
            logger.info(f"auth: signed in as {principal}")
        else:
            logger.info("auth: signed out")
            if previous:
                self._drop_sessions(previous)
        for callback in list(self._listeners):
            try:
                callback(principal)
            except Exception as exc:
                logger.error(f"auth: state listener {callback!r} failed: {exc}")

    def subscribe(self, callback: AuthCallback) -> Callable[[], None]:
        """Call ``callback(principal_or_None)`` on every auth-state change."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def sign_in(self, email: str, password: str) -> str:
        """Validate locally, then authenticate. Raises FormValidationError or AuthFailure."""
        validate_credentials(email, password)
        principal = await self.provider.sign_in(email.strip(), password)
        # The provider stays silent when its principal did not change
        if principal != self._principal:
            self._on_auth_state_changed(principal)
        return principal

    async def sign_out(self) -> None:
        """Always clears the local principal; provider errors are only logged."""
        try:
            await self.provider.sign_out()
        except Exception as exc:
            logger.error(f"auth: sign-out failed: {exc}")
        if self._principal is not None:
            self._on_auth_state_changed(None)

    def refresh(self) -> Optional[str]:
        """Let the provider re-check its session, then return the current principal."""
        self.provider.check_session()
        return self._principal

    # ── Per-client sessions ──────────────────────────────────────────────────

    def open_session(self, principal: str, ttl_seconds: float) -> str:
        self._prune()
        session_id = secrets.token_urlsafe(16)
        self._sessions[session_id] = Session(principal, self._clock() + ttl_seconds)
        logger.debug(f"auth: session opened for {principal}")
        return session_id

    def session_principal(self, session_id: Optional[str]) -> Optional[str]:
        """Principal of a live session, or None when it expired or was ended."""
        if not session_id:
            return None
        self.provider.check_session()
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if self._clock() >= session.expires_at:
            del self._sessions[session_id]
            return None
        return session.principal

    async def end_session(self, session_id: Optional[str]) -> None:
        """Close one session; the provider is signed out with its principal's last one."""
        session = self._sessions.pop(session_id, None) if session_id else None
        if session is None:
            return
        remaining = any(s.principal == session.principal for s in self._sessions.values())
        if not remaining and session.principal == self._principal:
            await self.sign_out()

    def _drop_sessions(self, principal: str) -> None:
        ended = [sid for sid, s in self._sessions.items() if s.principal == principal]
        for sid in ended:
            del self._sessions[sid]
        if ended:
            logger.info(f"auth: ended {len(ended)} session(s) for {principal}")

    def _prune(self) -> None:
        now = self._clock()
        for sid in [sid for sid, s in self._sessions.items() if now >= s.expires_at]:
            del self._sessions[sid]

    def close(self) -> None:
        self._detach()
