"""
Cookie stores used by the session layer.

The service only needs get/set/delete; FlaskCookieStore reads the incoming
request and queues writes until the response exists.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple


class CookieStore(ABC):
    @abstractmethod
    def get(self, name: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, name: str, value: str, *, max_age: int, secure: bool,
            httponly: bool, samesite: str, path: str) -> None:
        ...

    @abstractmethod
    def delete(self, name: str, *, path: str = '/') -> None:
        ...


class FlaskCookieStore(CookieStore):
    def __init__(self, request):
        self.request = request
        self._pending: List[Tuple[str, str, dict]] = []
        self._overrides = {}

    def get(self, name: str) -> Optional[str]:
        # Writes made earlier in the same request win over the inbound cookie
        if name in self._overrides:
            return self._overrides[name]
        return self.request.cookies.get(name)

    def set(self, name, value, *, max_age, secure, httponly, samesite, path):
        self._overrides[name] = value
        self._pending.append(('set', name, {
            'value': value,
            'max_age': max_age,
            'secure': secure,
            'httponly': httponly,
            'samesite': samesite,
            'path': path,
        }))

    def delete(self, name, *, path='/'):
        self._overrides[name] = None
        self._pending.append(('delete', name, {'path': path}))

    def apply(self, response):
        for action, name, options in self._pending:
            if action == 'set':
                response.set_cookie(name, **options)
            else:
                response.delete_cookie(name, **options)
        self._pending.clear()
        return response
