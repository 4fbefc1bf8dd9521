from __future__ import annotations

from typing import Any

from flask import session


class OneShotStore:
    """
    Short-lived values carried across one redirect in the browser session.

    ``take()`` reads and clears, so a value is seen by exactly one request.
    Values must be JSON-serializable (the session is a signed cookie).
    """

    def __init__(self, namespace: str):
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"_oneshot.{self.namespace}.{key}"

    def put(self, key: str, value: Any) -> None:
        session[self._key(key)] = value

    def take(self, key: str, default: Any = None) -> Any:
        return session.pop(self._key(key), default)

    def peek(self, key: str, default: Any = None) -> Any:
        return session.get(self._key(key), default)

    def clear(self) -> None:
        prefix = self._key("")
        for k in [k for k in session.keys() if k.startswith(prefix)]:
            session.pop(k, None)
