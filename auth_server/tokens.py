# auth_server/tokens.py
import uuid
import jwt
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from planner_server.config import PLANNER_LINK_TTL_SECONDS

JWT_ALGO = "HS256"
TOKEN_PURPOSE = "email_sign_in"
LINK_CODE_PARAM = "oobCode"


def create_sign_in_token(email: str, secret: str, ttl_seconds: int = PLANNER_LINK_TTL_SECONDS,
                         token_id: str = None) -> str:
    """
    Create a signed JWT for an email sign-in link. Contains:
      - email (str)
      - purpose ("email_sign_in")
      - jti (one-time code id)
      - iat, exp
    """
    now = datetime.now(timezone.utc)
    payload = {
        "email": email,
        "purpose": TOKEN_PURPOSE,
        "jti": token_id or uuid.uuid4().hex,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp())
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGO)


def verify_sign_in_token(token: str, secret: str) -> dict:
    """
    Returns decoded payload if valid, else raises jwt exceptions.
    """
    payload = jwt.decode(token, secret, algorithms=[JWT_ALGO])
    if payload.get("purpose") != TOKEN_PURPOSE:
        raise jwt.InvalidTokenError("Token was not issued for email sign-in")
    return payload


def build_sign_in_link(continue_url: str, token: str) -> str:
    """Appends the sign-in code to the continue URL, keeping its other parameters."""
    parts = urlsplit(continue_url)
    query = parse_qs(parts.query)
    query[LINK_CODE_PARAM] = [token]
    return urlunsplit(parts._replace(query=urlencode(query, doseq=True)))


def extract_link_code(link_url: str):
    """Returns the sign-in code carried by a link, or None."""
    values = parse_qs(urlsplit(link_url or "").query).get(LINK_CODE_PARAM)
    return values[0] if values else None
