"""
Caller identity.

A bearer token from the Authorization header is resolved into a
CallerIdentity by an IdentityVerifier (Firebase ID tokens in production).
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import firebase_admin
from fastapi import Header, Request
from firebase_admin import auth as fb_auth, credentials as fb_credentials

from errors import Unauthenticated

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallerIdentity:
    user_id: str


class IdentityVerifier(Protocol):
    def verify(self, token: str) -> Optional[str]:
        """Return the user id the token belongs to, or None if it is not valid."""


class FirebaseVerifier:
    """Verifies Firebase ID tokens with firebase-admin."""

    def __init__(self, service_account_json: Optional[str] = None):
        self.app = None
        if not service_account_json:
            logger.warning("FIREBASE_SERVICE_ACCOUNT_JSON not set; all bearer tokens will be rejected")
            return
        # Accept either the full JSON document or a path to it
        try:
            if service_account_json.strip().startswith("{"):
                cred = fb_credentials.Certificate(json.loads(service_account_json))
            else:
                cred = fb_credentials.Certificate(service_account_json)
        except (ValueError, OSError) as e:
            # json.JSONDecodeError is a ValueError
            logger.warning("Invalid FIREBASE_SERVICE_ACCOUNT_JSON (%s); all bearer tokens will be rejected", e)
            return
        try:
            self.app = firebase_admin.get_app()
        except ValueError:
            self.app = firebase_admin.initialize_app(cred)

    def verify(self, token: str) -> Optional[str]:
        if self.app is None:
            return None
        try:
            decoded = fb_auth.verify_id_token(token, app=self.app)
        except (
            ValueError,
            fb_auth.InvalidIdTokenError,
            fb_auth.ExpiredIdTokenError,
            fb_auth.RevokedIdTokenError,
            fb_auth.UserDisabledError,
            fb_auth.CertificateFetchError,
        ) as e:
            logger.warning("Rejected ID token: %s", type(e).__name__)
            return None
        return decoded.get("uid")


def parse_bearer(authorization: Optional[str]) -> str:
    if not authorization:
        raise Unauthenticated("Missing Authorization header")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise Unauthenticated("Invalid Authorization header")
    return parts[1]


def authenticate(verifier: IdentityVerifier, authorization: Optional[str]) -> CallerIdentity:
    token = parse_bearer(authorization)
    uid = verifier.verify(token)
    if not uid:
        raise Unauthenticated("Invalid token")
    return CallerIdentity(user_id=uid)


def get_caller(request: Request, authorization: Optional[str] = Header(None)) -> CallerIdentity:
    """FastAPI dependency for routes that require a signed-in caller."""
    return authenticate(request.app.state.verifier, authorization)
