"""Caller identity resolution."""

import hmac
import logging
from typing import Dict, Optional

from fastapi import Request

from .config import AuthConfig

logger = logging.getLogger(__name__)


class ApiKeyAuthenticator:
    """Maps an API key presented in a request header to an opaque user id."""

    def __init__(self, auth_config: Optional[AuthConfig] = None):
        auth_config = auth_config or AuthConfig()
        self.header_name = auth_config.header_name
        self._keys: Dict[str, str] = dict(auth_config.api_keys)

    def has_keys(self) -> bool:
        return bool(self._keys)

    def authenticate(self, api_key: Optional[str]) -> Optional[str]:
        """Return the user id for ``api_key`` or None when it is unknown."""
        if not api_key:
            return None
        for known_key, user_id in self._keys.items():
            if hmac.compare_digest(known_key.encode(), api_key.encode()):
                return user_id
        logger.warning("Rejected request with unknown API key")
        return None


def get_current_user(request: Request) -> Optional[str]:
    """FastAPI dependency: the caller's user id, or None when unauthenticated."""
    authenticator: ApiKeyAuthenticator = request.app.state.authenticator
    return authenticator.authenticate(request.headers.get(authenticator.header_name))
