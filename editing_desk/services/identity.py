from __future__ import annotations

import base64
import json
import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"


def _uid_from_id_token(id_token: str) -> Optional[str]:
    """Read the uid claim of a Firebase ID token (display only, not verified)."""
    try:
        payload = id_token.split(".")[1]
        payload += "=" * (-len(payload) % 4)
        claims = json.loads(base64.urlsafe_b64decode(payload.encode("ascii")))
    except (IndexError, ValueError, UnicodeError):
        return None
    return claims.get("user_id") or claims.get("sub")


class IdentityBootstrap:
    """
    Obtains the identity shown in the page header.

    Lifecycle: start() once after startup → ready / failed / disabled; teardown() on shutdown.
    Policy: sign in with the provided custom token if any; on failure or absence sign in anonymously.
    The analysis pipeline never reads this.
    """

    def __init__(
        self,
        firebase_config: Dict[str, Any],
        initial_auth_token: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: str = IDENTITY_TOOLKIT_URL,
    ):
        self.firebase_config = firebase_config or {}
        self.initial_auth_token = initial_auth_token
        self.base_url = base_url.rstrip("/")
        self._client = http_client
        self._owns_client = http_client is None
        self.state = "pending"
        self.current_identity: Optional[str] = None

    @classmethod
    def from_settings(cls, settings) -> "IdentityBootstrap":
        return cls(
            firebase_config=settings.firebase_config(),
            initial_auth_token=getattr(settings, "INITIAL_AUTH_TOKEN", None),
        )

    @property
    def ready(self) -> bool:
        return self.state == "ready"

    async def _post(self, method: str, body: Dict[str, Any]) -> Dict[str, Any]:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=15.0)
        r = await self._client.post(
            f"{self.base_url}/accounts:{method}",
            params={"key": self.firebase_config["apiKey"]},
            json=body,
        )
        r.raise_for_status()
        data = r.json()
        if not isinstance(data, dict):
            raise ValueError(f"unexpected {method} response body: {type(data).__name__}")
        return data

    async def _sign_in_with_custom_token(self, token: str) -> Optional[str]:
        data = await self._post("signInWithCustomToken", {"token": token, "returnSecureToken": True})
        return data.get("localId") or _uid_from_id_token(data.get("idToken") or "")

    async def _sign_in_anonymously(self) -> Optional[str]:
        data = await self._post("signUp", {"returnSecureToken": True})
        return data.get("localId") or _uid_from_id_token(data.get("idToken") or "")

    async def start(self) -> Optional[str]:
        if self.state != "pending":
            return self.current_identity

        if not self.firebase_config.get("apiKey"):
            logger.error("Firebase config is missing; running without an identity")
            self.state = "disabled"
            return None

        uid = None
        if self.initial_auth_token:
            try:
                uid = await self._sign_in_with_custom_token(self.initial_auth_token)
            except (httpx.HTTPError, ValueError) as e:
                logger.error("Error signing in with custom token: %s", e)

        if not uid:
            try:
                uid = await self._sign_in_anonymously()
            except (httpx.HTTPError, ValueError) as e:
                logger.error("Anonymous sign-in failed: %s", e)
                self.state = "failed"
                return None

        if not uid:
            logger.error("Sign-in succeeded but no user id was returned")
            self.state = "failed"
            return None

        self.current_identity = uid
        self.state = "ready"
        logger.info("Signed in as %s", uid)
        return uid

    async def teardown(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
        self.current_identity = None
        if self.state == "ready":
            self.state = "pending"
