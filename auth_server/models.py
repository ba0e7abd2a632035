"""
Data models for the authentication gate.

This module contains the dataclasses describing the signed-in user and the
outcome of a sign-in action.
"""
from __future__ import annotations

from dataclasses import dataclass
import typing as t


@dataclass(frozen=True)
class AuthUser:
    """The signed-in principal."""
    email: str
    signed_in_at: str
    method: str = "email_link"

    def to_dict(self) -> dict[str, str]:
        return {"email": self.email, "signed_in_at": self.signed_in_at, "method": self.method}

    @classmethod
    def from_dict(cls, data: t.Mapping[str, t.Any]) -> "AuthUser":
        return cls(
            email=str(data["email"]),
            signed_in_at=str(data.get("signed_in_at", "")),
            method=str(data.get("method", "email_link")),
        )


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a sign-in action, with the message to show the user."""
    ok: bool
    message: str = ""
    user: t.Optional[AuthUser] = None
