"""
Pluggable credential storage.

The workflow only needs `get(key)` and `set(key, value)`. Keys configured in
the environment take precedence; keys entered by the user are kept by the
provider for the rest of the session.
"""

from typing import Dict, Iterable, List, Optional, Protocol

from .config import get_env


class CredentialsProvider(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class InMemoryCredentials:
    """Credentials held in a plain dict."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        value = self._values.get(key)
        return value if value else None

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class EnvironmentCredentials(InMemoryCredentials):
    """Environment (and `.env`) first, then values saved during the session."""

    def get(self, key: str) -> Optional[str]:
        return get_env(key) or super().get(key)


def missing_credentials(provider: CredentialsProvider, keys: Iterable[str]) -> List[str]:
    """Keys from `keys` that the provider cannot supply, in order."""
    return [key for key in keys if not provider.get(key)]
