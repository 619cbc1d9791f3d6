"""
Secret Storage

Bearer tokens keyed by the authentication method that produced them.
"""

import logging
import threading
from enum import Enum
from typing import Dict, Optional, Protocol, Union


logger = logging.getLogger(__name__)


class AuthMethod(str, Enum):
    """How the user authenticated"""
    PAT = "pat"
    OAUTH = "oauth"


class SecretStore(Protocol):
    """Storage for bearer tokens"""

    def get_token(self, method: AuthMethod) -> Optional[str]:
        ...

    def set_token(self, method: AuthMethod, token: str) -> None:
        ...

    def delete_token(self, method: AuthMethod) -> None:
        ...


class InMemorySecretStore:
    """Process-local SecretStore; tokens never touch the disk."""

    def __init__(self, tokens: Optional[Dict[AuthMethod, str]] = None):
        self._lock = threading.Lock()
        self._tokens: Dict[AuthMethod, str] = dict(tokens or {})

    def get_token(self, method: AuthMethod) -> Optional[str]:
        with self._lock:
            return self._tokens.get(AuthMethod(method))

    def set_token(self, method: AuthMethod, token: str) -> None:
        if not token:
            raise ValueError("Token cannot be empty")
        with self._lock:
            self._tokens[AuthMethod(method)] = token
        logger.info(f"Stored {AuthMethod(method).value} token")

    def delete_token(self, method: AuthMethod) -> None:
        with self._lock:
            self._tokens.pop(AuthMethod(method), None)


def get_active_token(store: SecretStore, method: Union[AuthMethod, str, None] = None) -> Optional[str]:
    """
    Token for the chosen auth method.

    Without a chosen method, an OAuth token is preferred over a PAT.
    """
    if method:
        return store.get_token(AuthMethod(method))
    return store.get_token(AuthMethod.OAUTH) or store.get_token(AuthMethod.PAT)
