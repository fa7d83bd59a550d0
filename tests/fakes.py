"""
In-memory stand-ins for the aiohttp session used by SolanaTrackerClient
"""

from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse


class FakeResponse:
    """Minimal stand-in for aiohttp.ClientResponse"""

    def __init__(self, status: int = 200, body: Any = None, text: Any = ""):
        self.status = status
        self._body = body
        self._text = text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def json(self, content_type=None):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body

    async def text(self, encoding=None, errors="strict"):
        if isinstance(self._text, Exception):
            raise self._text
        return self._text


class FakeSession:
    """
    Records every GET and answers through a handler

    The handler gets (path, params) and returns a FakeResponse or raises.
    """

    def __init__(self, handler: Callable[[str, Dict[str, Any]], FakeResponse]):
        self.handler = handler
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def get(self, url, params=None, headers=None, timeout=None):
        path = urlparse(url).path
        self.calls.append({
            'path': path,
            'params': params,
            'headers': headers or {},
            'api_key': (headers or {}).get('x-api-key'),
            'timeout': timeout,
        })
        return self.handler(path, params or {})

    async def close(self):
        self.closed = True

    @property
    def paths(self) -> List[str]:
        return [c['path'] for c in self.calls]

    @property
    def api_keys(self) -> List[Optional[str]]:
        return [c['api_key'] for c in self.calls]


def routes(table: Dict[str, Any]) -> Callable[[str, Dict[str, Any]], FakeResponse]:
    """Handler answering from {path: body or FakeResponse}; unknown paths are 404"""
    def handler(path, params):
        if path not in table:
            return FakeResponse(404, text="not found")
        value = table[path]
        if isinstance(value, FakeResponse):
            return value
        return FakeResponse(200, value)
    return handler
