"""
Identity providers behind the IdentityGateway.

A provider owns the authoritative session: it signs users in and out and
notifies subscribers whenever the signed-in principal changes, including
changes it detects on its own (an expired token).

  LocalIdentityProvider     – in-process accounts, for single-machine use
  FirebaseIdentityProvider  – Firebase Identity Toolkit REST API over httpx
"""
from __future__ import annotations

import secrets
import time
from typing import Callable, Iterable, Optional

import httpx
from loguru import logger

from garage.core.errors import (
    AuthFailure,
    InvalidCredentials,
    InvalidEmail,
    UserDisabled,
    UserNotFound,
)

AuthCallback = Callable[[Optional[str]], None]


class IdentityProvider:
    def __init__(self) -> None:
        self._listeners: list[AuthCallback] = []
        self._principal: Optional[str] = None

    @property
    def current_principal(self) -> Optional[str]:
        return self._principal

    def subscribe(self, callback: AuthCallback) -> Callable[[], None]:
        """Register ``callback`` for auth-state changes; returns the unsubscribe handle."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set_principal(self, principal: Optional[str]) -> None:
        if principal == self._principal:
            return
        self._principal = principal
        for callback in list(self._listeners):
            callback(principal)

    async def sign_in(self, email: str, password: str) -> str:
        raise NotImplementedError

    async def sign_out(self) -> None:
        raise NotImplementedError

    def check_session(self) -> None:
        """Re-validate the current session, reporting a logout if it lapsed."""


class LocalIdentityProvider(IdentityProvider):
    def __init__(self, accounts: dict[str, str], disabled: Iterable[str] = ()):
        super().__init__()
        self._accounts = {email.strip().lower(): pw for email, pw in accounts.items()}
        self._disabled = {email.strip().lower() for email in disabled}

    async def sign_in(self, email: str, password: str) -> str:
        key = email.strip().lower()
        stored = self._accounts.get(key)
        if stored is None:
            raise UserNotFound()
        if key in self._disabled:
            raise UserDisabled()
        if not secrets.compare_digest(stored.encode(), password.encode()):
            raise InvalidCredentials()
        self._set_principal(key)
        return key

    async def sign_out(self) -> None:
        self._set_principal(None)

    def expire_session(self) -> None:
        """End the session from the provider side, as a revoked login would."""
        self._set_principal(None)


# ── Firebase ──────────────────────────────────────────────────────────────────

SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"

_FIREBASE_ERRORS: dict[str, type[AuthFailure]] = {
    "EMAIL_NOT_FOUND": UserNotFound,
    "INVALID_PASSWORD": InvalidCredentials,
    "INVALID_LOGIN_CREDENTIALS": InvalidCredentials,
    "USER_DISABLED": UserDisabled,
    "INVALID_EMAIL": InvalidEmail,
}


def _map_firebase_error(response: httpx.Response) -> AuthFailure:
    try:
        message = response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return AuthFailure(f"Identity provider error (HTTP {response.status_code})")
    # e.g. "TOO_MANY_ATTEMPTS_TRY_LATER : Access to this account has been …"
    code = message.split(":", 1)[0].strip()
    failure = _FIREBASE_ERRORS.get(code)
    return failure() if failure else AuthFailure(message)


class FirebaseIdentityProvider(IdentityProvider):
    def __init__(
        self,
        api_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__()
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self._clock = clock
        self._id_token: Optional[str] = None
        self._expires_at: Optional[float] = None

    async def sign_in(self, email: str, password: str) -> str:
        payload = {"email": email, "password": password, "returnSecureToken": True}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(SIGN_IN_URL, params={"key": self.api_key}, json=payload)
            except httpx.RequestError as exc:
                logger.error(f"firebase: sign-in request failed: {exc}")
                raise AuthFailure("Identity provider is unreachable") from exc

        if response.status_code >= 400:
            raise _map_firebase_error(response)

        data = response.json()
        principal = data.get("email") or data.get("localId")
        if not principal:
            raise AuthFailure("Identity provider returned no user")
        self._id_token = data.get("idToken")
        self._expires_at = self._clock() + float(data.get("expiresIn", 3600))
        self._set_principal(principal)
        return principal

    async def sign_out(self) -> None:
        # Firebase ID tokens are stateless; dropping ours ends the session.
        self._id_token = None
        self._expires_at = None
        self._set_principal(None)

    def check_session(self) -> None:
        if self._principal and self._expires_at is not None and self._clock() >= self._expires_at:
            logger.info(f"firebase: session for {self._principal} expired")
            self._id_token = None
            self._expires_at = None
            self._set_principal(None)


def build_identity_provider(settings) -> IdentityProvider:
    """Provider selected by ``settings.AUTH_PROVIDER``."""
    kind = settings.AUTH_PROVIDER
    if kind == "local":
        return LocalIdentityProvider({settings.AUTH_USERNAME: settings.AUTH_PASSWORD})
    if kind == "firebase":
        if not settings.FIREBASE_API_KEY:
            raise ValueError("AUTH_PROVIDER=firebase requires FIREBASE_API_KEY")
        return FirebaseIdentityProvider(
            settings.FIREBASE_API_KEY, timeout=settings.IDENTITY_TIMEOUT_SECONDS
        )
    raise ValueError(f"Unknown AUTH_PROVIDER '{kind}' (expected 'local' or 'firebase')")
