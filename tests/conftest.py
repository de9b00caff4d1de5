import json

import httpx
import pytest
from tenacity import retry_if_exception_type, stop_after_attempt, wait_none

from skyform.clients import ApiClient
from skyform.errors import TransportError
from skyform.polling import Backoff

NOT_FOUND = (404, {"status": 404, "error": "Not Found", "message": "not found"})


class FakeApi:
    """
    Canned responses per (method, path). Each route is a queue: responses
    are consumed in order and the last one repeats. Unknown routes are 404.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []
        self.requests = []

    def add(self, method, path, *responses):
        self.routes[(method, path)] = list(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.lstrip("/")
        body = json.loads(request.content) if request.content else None
        self.calls.append((request.method, path, body))
        self.requests.append(request)

        queue = self.routes.get((request.method, path))
        if not queue:
            status, payload = NOT_FOUND
            return httpx.Response(status, json=payload)

        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, httpx.Response):
            return response
        status, payload = response
        if payload is None:
            return httpx.Response(status)
        return httpx.Response(status, json=payload)

    def calls_to(self, method, path=None):
        return [
            c for c in self.calls if c[0] == method and (path is None or c[1] == path)
        ]


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def client(api):
    # Same retry policy as production, minus the waiting
    retry_config = {
        "stop": stop_after_attempt(3),
        "wait": wait_none(),
        "retry": retry_if_exception_type(TransportError),
        "reraise": True,
    }
    c = ApiClient(
        "https://api.test",
        "secret-key",
        transport=httpx.MockTransport(api.handler),
        retry_config=retry_config,
    )
    yield c
    c.close()


@pytest.fixture
def no_wait():
    return Backoff.fixed(0)
