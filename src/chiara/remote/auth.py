"""OAuth token acquisition for Podio apps."""

import time
from typing import Dict, Optional, Tuple

import requests

from chiara.errors import AuthError
from chiara.utils.logging import get_logger

logger = get_logger(__name__)

TOKEN_PATH = "/oauth/token"
# Refresh a little before the server-side expiry
EXPIRY_MARGIN_SECONDS = 60


class AuthManager:
    """Obtains and caches access tokens, one per app.

    Podio lets an integration authenticate *as an app* using that app's token
    (``grant_type=app``). Items of an app are only visible to that app's
    session, so every filter call asks for the token of the app it queries.
    Apps without a configured app token fall back to a user-level password
    grant when a username and password are configured.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        app_tokens: Optional[Dict[int, str]] = None,
        *,
        base_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 20,
        session: Optional[requests.Session] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.app_tokens = {int(k): v for k, v in (app_tokens or {}).items()}
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.timeout = timeout
        self.session = session or requests.Session()

        # cache key -> (access_token, expires_at monotonic)
        self._tokens: Dict[str, Tuple[str, float]] = {}

    @classmethod
    def from_settings(cls, auth_settings: Dict, *, base_url: str, timeout: float = 20,
                      session: Optional[requests.Session] = None) -> "AuthManager":
        """Build from the ``auth`` section of the config file."""
        app_tokens = {int(entry["app_id"]): str(entry["app_token"]) for entry in auth_settings.get("apps", [])}
        return cls(
            auth_settings.get("client_id", ""),
            auth_settings.get("client_secret", ""),
            app_tokens,
            base_url=base_url,
            username=auth_settings.get("username"),
            password=auth_settings.get("password"),
            timeout=timeout,
            session=session,
        )

    def token_for(self, app_id: Optional[int] = None) -> str:
        """
        Return a valid access token for the app, requesting one if needed.

        Args:
            app_id: App the next call targets. None means a user-level call.

        Returns:
            Access token string

        Raises:
            AuthError: If no credentials apply or the token request fails
        """
        if app_id is not None and int(app_id) in self.app_tokens:
            cache_key = f"app:{int(app_id)}"
            grant = {
                "grant_type": "app",
                "app_id": str(int(app_id)),
                "app_token": self.app_tokens[int(app_id)],
            }
        elif self.username and self.password:
            cache_key = "user"
            grant = {
                "grant_type": "password",
                "username": self.username,
                "password": self.password,
            }
        else:
            raise AuthError(f"No credentials configured for app {app_id}", path=TOKEN_PATH)

        cached = self._tokens.get(cache_key)
        if cached and cached[1] > time.monotonic():
            return cached[0]

        token, expires_in = self._request_token(grant)
        self._tokens[cache_key] = (token, time.monotonic() + max(0, expires_in - EXPIRY_MARGIN_SECONDS))
        return token

    def invalidate(self, app_id: Optional[int] = None) -> None:
        """Forget a cached token so the next call re-authenticates."""
        if app_id is not None and int(app_id) in self.app_tokens:
            self._tokens.pop(f"app:{int(app_id)}", None)
        else:
            self._tokens.pop("user", None)

    def _request_token(self, grant: Dict[str, str]) -> Tuple[str, int]:
        data = dict(grant)
        data["client_id"] = self.client_id
        data["client_secret"] = self.client_secret

        logger.debug(f"Requesting {grant['grant_type']} token")
        try:
            response = self.session.post(self.base_url + TOKEN_PATH, data=data, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            status_code = None
            if hasattr(e, "response") and e.response is not None:
                status_code = e.response.status_code
            raise AuthError(f"Token request failed: {e}", path=TOKEN_PATH, status_code=status_code) from e
        except ValueError as e:
            raise AuthError(f"Token response is not JSON: {e}", path=TOKEN_PATH) from e

        if not isinstance(body, dict) or "access_token" not in body:
            raise AuthError("Token response missing 'access_token'", path=TOKEN_PATH)
        return str(body["access_token"]), int(body.get("expires_in", 0) or 0)
