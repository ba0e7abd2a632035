# -*- coding: utf-8 -*-
"""
Authentication gate for the planner.

Only one email address may sign in, either with a password or through a
one-time email link. The signed-in user is remembered in storage so a later
process picks the session back up. Listeners registered with
``on_auth_state_changed`` decide whether the planner is shown.
"""
from __future__ import annotations

from datetime import datetime, timezone
import json
import secrets
import typing as t
import uuid

import jwt
from werkzeug.security import check_password_hash

from auth_server.models import AuthResult, AuthUser
from auth_server.tokens import (
    build_sign_in_link,
    create_sign_in_token,
    extract_link_code,
    verify_sign_in_token,
)
from planner_server.config import (
    PLANNER_AUTH_SECRET,
    PLANNER_AUTHORIZED_EMAIL,
    PLANNER_LINK_TTL_SECONDS,
    PLANNER_PASSWORD_HASH,
    PLANNER_SIGN_IN_URL,
)
from planner_server.errors import StorageReadError, StorageWriteError
from planner_server.log import get_logger
from planner_server.storage import KeyValueStorage

logger = get_logger("auth")

AUTH_USER_KEY = "teacherPlannerAuthUser"
EMAIL_FOR_SIGN_IN_KEY = "emailForSignIn"
SIGN_IN_CODE_KEY = "teacherPlannerSignInCode"

UNAUTHORIZED_MESSAGE = "Sorry, this sign-in option is only available for your authorized email."
LINK_SENT_MESSAGE = "Sign-in link sent to your email. Please check your inbox."
LINK_FAILED_MESSAGE = "Failed to send sign-in link. Please try again."
COMPLETE_FAILED_MESSAGE = "Failed to complete sign-in. Please try again."
BAD_PASSWORD_MESSAGE = "Incorrect password. Please try again."

# Used when PLANNER_AUTH_SECRET is unset; links then only verify in this process
_PROCESS_SECRET = secrets.token_urlsafe(32)

AuthListener = t.Callable[[t.Optional[AuthUser]], None]
LinkSender = t.Callable[[str, str], None]


def log_sign_in_link(email: str, link: str) -> None:
    """Default link delivery: writes the link to the log."""
    logger.info("Sign-in link for %s: %s", email, link)


class AuthGate:
    """Signs the single authorized principal in and out.

    :param storage: Where the session and the pending sign-in email are kept.
    :param authorized_email: The only email allowed to sign in.
    :param password_hash: Werkzeug password hash for credential sign-in
        ("" disables it).
    :param secret: Key signing the links ("" falls back to a random
        secret for this process).
    :param send_link: Delivers a sign-in link to an email address (None
        writes it to the log).
    """

    def __init__(
            self,
            storage: KeyValueStorage,
            authorized_email: str = PLANNER_AUTHORIZED_EMAIL,
            password_hash: str = PLANNER_PASSWORD_HASH,
            secret: str = PLANNER_AUTH_SECRET,
            continue_url: str = PLANNER_SIGN_IN_URL,
            link_ttl_seconds: int = PLANNER_LINK_TTL_SECONDS,
            send_link: t.Optional[LinkSender] = None,
    ) -> None:
        self._storage = storage
        self.authorized_email = authorized_email
        self._password_hash = password_hash
        if not secret:
            logger.warning(
                "PLANNER_AUTH_SECRET is not set. Sign-in links are signed with a random "
                "secret and only work within this process."
            )
            secret = _PROCESS_SECRET
        self._secret = secret
        self._continue_url = continue_url
        self._link_ttl_seconds = link_ttl_seconds
        self._send_link = send_link
        self._listeners: list[AuthListener] = []
        self.current_user: t.Optional[AuthUser] = self._restore_user()

    @property
    def signed_in(self) -> bool:
        return self.current_user is not None

    def is_authorized(self, email: t.Optional[str]) -> bool:
        return email == self.authorized_email

    def on_auth_state_changed(self, listener: AuthListener) -> t.Callable[[], None]:
        """Registers a listener; it is called now and after every sign-in/out.

        :return: A function that removes the listener.
        """
        self._listeners.append(listener)
        listener(self.current_user)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def sign_in(self, email: str, credential: str) -> AuthResult:
        """Signs in with the authorized email and its password."""
        if not self.is_authorized(email):
            logger.warning("Rejected password sign-in for %s", email)
            return AuthResult(ok=False, message=UNAUTHORIZED_MESSAGE)
        if not self._password_hash or not check_password_hash(self._password_hash, credential or ""):
            logger.warning("Password sign-in failed for %s", email)
            return AuthResult(ok=False, message=BAD_PASSWORD_MESSAGE)
        return self._set_user(AuthUser(email=email, signed_in_at=_now(), method="password"))

    def send_sign_in_link(self, email: str) -> AuthResult:
        """Sends a one-time sign-in link to the authorized email."""
        if not self.is_authorized(email):
            logger.warning("Rejected sign-in link request for %s", email)
            return AuthResult(ok=False, message=UNAUTHORIZED_MESSAGE)

        code_id = uuid.uuid4().hex
        token = create_sign_in_token(
            email, secret=self._secret, ttl_seconds=self._link_ttl_seconds, token_id=code_id
        )
        link = build_sign_in_link(self._continue_url, token)
        send_link = self._send_link or log_sign_in_link
        try:
            # a new link replaces any earlier one that was not used
            self._storage.set_item(SIGN_IN_CODE_KEY, code_id)
            self._storage.set_item(EMAIL_FOR_SIGN_IN_KEY, email)
            send_link(email, link)
        except (OSError, StorageReadError, StorageWriteError) as e:
            logger.error("Error sending sign-in link: %s", e)
            return AuthResult(ok=False, message=LINK_FAILED_MESSAGE)
        return AuthResult(ok=True, message=LINK_SENT_MESSAGE)

    def is_sign_in_link(self, link_url: str) -> bool:
        return extract_link_code(link_url) is not None

    def complete_sign_in_from_link(self, email: t.Optional[str], link_url: str) -> AuthResult:
        """Finishes an email-link sign-in.

        :param email: The email confirmed by the user; None falls back to the
            email remembered when the link was sent.
        :param link_url: The full link that was opened.
        """
        code = extract_link_code(link_url)
        if code is None:
            return AuthResult(ok=False, message=COMPLETE_FAILED_MESSAGE)

        if not email:
            email = self._read(EMAIL_FOR_SIGN_IN_KEY)
        if not self.is_authorized(email):
            logger.warning("Rejected link sign-in for %s", email)
            return AuthResult(ok=False, message=UNAUTHORIZED_MESSAGE)

        try:
            payload = verify_sign_in_token(code, secret=self._secret)
        except jwt.InvalidTokenError as e:
            logger.warning("Invalid sign-in link: %s", e)
            return AuthResult(ok=False, message=COMPLETE_FAILED_MESSAGE)
        if payload.get("email") != email:
            logger.warning("Sign-in link was issued for a different email")
            return AuthResult(ok=False, message=COMPLETE_FAILED_MESSAGE)
        pending = self._read(SIGN_IN_CODE_KEY)
        if not pending or payload.get("jti") != pending:
            logger.warning("Sign-in link was already used or replaced by a newer one")
            return AuthResult(ok=False, message=COMPLETE_FAILED_MESSAGE)

        self._forget(SIGN_IN_CODE_KEY)
        self._forget(EMAIL_FOR_SIGN_IN_KEY)
        return self._set_user(AuthUser(email=email, signed_in_at=_now(), method="email_link"))

    def sign_out(self) -> AuthResult:
        self.current_user = None
        self._forget(AUTH_USER_KEY)
        self._emit()
        return AuthResult(ok=True, message="Signed out.")

    def _set_user(self, user: AuthUser) -> AuthResult:
        try:
            self._storage.set_item(AUTH_USER_KEY, json.dumps(user.to_dict()))
        except (StorageReadError, StorageWriteError) as e:
            # the session still holds for this process
            logger.error("Failed to remember session: %s", e)
        self.current_user = user
        logger.info("Signed in as %s", user.email)
        self._emit()
        return AuthResult(ok=True, message=f"Signed in as {user.email}.", user=user)

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener(self.current_user)

    def _read(self, key: str) -> t.Optional[str]:
        try:
            return self._storage.get_item(key)
        except StorageReadError as e:
            logger.warning("Could not read %s: %s", key, e)
            return None

    def _forget(self, key: str) -> None:
        try:
            self._storage.remove_item(key)
        except (StorageReadError, StorageWriteError) as e:
            logger.error("Failed to clear %s: %s", key, e)

    def _restore_user(self) -> t.Optional[AuthUser]:
        try:
            raw = self._storage.get_item(AUTH_USER_KEY)
            if not raw:
                return None
            user = AuthUser.from_dict(json.loads(raw))
        except (StorageReadError, ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring stored session: %s", e)
            return None
        # a session for another principal does not carry over
        return user if self.is_authorized(user.email) else None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")
