"""Blocking HTTP transport for the Podio API."""

from pathlib import Path
from typing import Any, Dict, Optional

import requests

from chiara.config.loader import get_api_settings, get_auth_settings, load_config
from chiara.errors import RemoteCallError
from chiara.remote.auth import AuthManager
from chiara.utils.logging import get_logger

logger = get_logger(__name__)

_default_remote: Optional["PodioRemote"] = None


class PodioRemote:
    """Executes one request per call and returns the decoded JSON body.

    No retries are attempted; every failure is raised as RemoteCallError so
    the caller decides whether to try again.
    """

    def __init__(
        self,
        base_url: str,
        *,
        auth: Optional[AuthManager] = None,
        timeout: float = 20,
        user_agent: str = "chiara/0.1",
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.auth = auth
        self.timeout = timeout
        self.user_agent = user_agent
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "PodioRemote":
        """Build a remote (and its auth manager) from a loaded config dict."""
        if config is None:
            config = load_config()
        api = get_api_settings(config)
        session = requests.Session()
        auth = None
        auth_settings = get_auth_settings(config)
        if auth_settings:
            auth = AuthManager.from_settings(
                auth_settings,
                base_url=api["base_url"],
                timeout=api["timeout_seconds"],
                session=session,
            )
        return cls(
            api["base_url"],
            auth=auth,
            timeout=api["timeout_seconds"],
            user_agent=api["user_agent"],
            session=session,
        )

    def post(self, path: str, body: Optional[Dict[str, Any]] = None, *, app_id: Optional[int] = None) -> Any:
        """POST a JSON body to ``path`` and return the decoded response."""
        return self._request("POST", path, app_id=app_id, json=body or {})

    def get(self, path: str, params: Optional[Dict[str, Any]] = None, *, app_id: Optional[int] = None) -> Any:
        """GET ``path`` with query parameters and return the decoded response."""
        return self._request("GET", path, app_id=app_id, params=params or {})

    def _make_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _get_headers(self, app_id: Optional[int]) -> Dict[str, str]:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
        }
        if self.auth is not None:
            headers["Authorization"] = f"OAuth2 {self.auth.token_for(app_id)}"
        return headers

    def _request(self, method: str, path: str, *, app_id: Optional[int] = None, **kwargs: Any) -> Any:
        url = self._make_url(path)
        headers = self._get_headers(app_id)
        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.RequestException as e:
            status_code = None
            if hasattr(e, "response") and e.response is not None:
                status_code = e.response.status_code
                if status_code == 401 and self.auth is not None:
                    # Expired or revoked; the next call requests a new token
                    self.auth.invalidate(app_id)
            raise RemoteCallError(f"{method} {path} failed: {e}", path=path, status_code=status_code) from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteCallError(
                f"{method} {path} returned a body that is not JSON",
                path=path,
                status_code=response.status_code,
            ) from e


def get_remote(config_path: Path | None = None) -> PodioRemote:
    """
    Return the process-wide remote, building it from config on first use.

    Args:
        config_path: Optional config file used when no remote is set yet

    Returns:
        The default PodioRemote
    """
    global _default_remote
    if _default_remote is None:
        _default_remote = PodioRemote.from_config(load_config(config_path))
    return _default_remote


def set_remote(remote: Optional[PodioRemote]) -> None:
    """Install (or with None, clear) the process-wide remote."""
    global _default_remote
    _default_remote = remote
