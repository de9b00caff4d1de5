from __future__ import annotations

import copy
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from tenacity import retry, stop_before_delay

from .config import Settings, load_settings
from .core import API_KEY_HEADER, TRANSPORT_RETRY_CONFIG
from .errors import ApiError, ContractError, NotFoundError, TransportError
from .logger import logger
from .schemas.common import ApiErrorPayload, Page

ModelT = TypeVar("ModelT", bound=BaseModel)

# Methods that are safe to resend after a transport failure
IDEMPOTENT_METHODS = frozenset({"GET", "DELETE"})

VERIFY_PATH = "rest/v1/cluster"

# Floor for per-request timeouts of deadline-bound views
MIN_REQUEST_TIMEOUT = 0.1


class ApiClient:
    """
    Thin typed wrapper around the Symbiosis REST API.

    Holds nothing but the base address, the credentials and the underlying
    connection pool, so one instance can be shared by concurrent callers.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
        retry_config: dict[str, Any] | None = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/") + "/"
        self.timeout = timeout
        self._http = httpx.Client(
            base_url=self.endpoint,
            headers={
                API_KEY_HEADER: api_key,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )
        self._retry_config = retry_config or TRANSPORT_RETRY_CONFIG
        self._request_with_retry = retry(**self._retry_config)(self._request)

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.BaseTransport | None = None
    ) -> ApiClient:
        return cls(
            endpoint=settings.endpoint,
            api_key=settings.api_key.get_secret_value(),
            timeout=settings.request_timeout,
            transport=transport,
        )

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def bounded(self, seconds: float) -> ApiClient:
        """
        A view sharing this connection pool whose requests and retries all
        finish within `seconds`. Closing the original closes the view too.
        """
        view = copy.copy(self)
        view.timeout = max(min(self.timeout, seconds), MIN_REQUEST_TIMEOUT)
        config = dict(self._retry_config)
        config["stop"] = config["stop"] | stop_before_delay(seconds)
        view._request_with_retry = retry(**config)(view._request)
        return view

    # Transport

    def _request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        logger.debug(f"{method} {path}")
        try:
            return self._http.request(
                method, path, json=body, params=params, timeout=self.timeout
            )
        except httpx.HTTPError as e:
            raise TransportError(str(e) or type(e).__name__, path) from e

    def _send(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        if method in IDEMPOTENT_METHODS:
            response = self._request_with_retry(method, path, body, params)
        else:
            response = self._request(method, path, body, params)
        logger.debug(f"{method} {path} -> {response.status_code}")
        return response

    # Decoding

    def _json(self, response: httpx.Response, path: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Undecodable response body: {e}", path) from e

    def _decode(self, response: httpx.Response, model: type[ModelT], path: str) -> ModelT:
        data = self._json(response, path)
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise ContractError(
                f"Response from {path} does not match {model.__name__}: {e}"
            ) from e

    def _raise_api_error(self, response: httpx.Response, path: str) -> None:
        payload = ApiErrorPayload()
        if response.content:
            try:
                payload = ApiErrorPayload.model_validate(response.json())
            except (ValueError, PydanticValidationError):
                logger.debug(f"Unstructured error body from {path}: {response.text}")
        raise ApiError(
            status=payload.status or response.status_code,
            error_type=payload.error or response.reason_phrase,
            message=payload.message or response.text or response.reason_phrase,
            path=payload.path or path,
        )

    # Typed verbs

    def describe(self, path: str, model: type[ModelT]) -> ModelT | None:
        """GET a single entity. A 404 is the absent result, not an error."""
        response = self._send("GET", path)
        if response.status_code == 404:
            return None
        if not response.is_success:
            self._raise_api_error(response, path)
        return self._decode(response, model, path)

    def list(
        self,
        path: str,
        model: type[ModelT],
        params: dict[str, Any] | None = None,
    ) -> ModelT:
        response = self._send("GET", path, params=params)
        if not response.is_success:
            self._raise_api_error(response, path)
        return self._decode(response, model, path)

    def create(
        self, path: str, body: dict[str, Any], model: type[ModelT] | None = None
    ) -> ModelT | None:
        response = self._send("POST", path, body)
        if not response.is_success:
            self._raise_api_error(response, path)
        if model is None:
            return None
        return self._decode(response, model, path)

    def update(
        self,
        path: str,
        body: dict[str, Any],
        model: type[ModelT] | None = None,
        method: str = "PUT",
    ) -> ModelT | None:
        response = self._send(method, path, body)
        if response.status_code == 404:
            raise NotFoundError("resource", path)
        if not response.is_success:
            self._raise_api_error(response, path)
        if model is None or not response.content:
            return None
        return self._decode(response, model, path)

    def delete(self, path: str) -> bool:
        """DELETE an entity. Returns False when it was already gone."""
        response = self._send("DELETE", path)
        if response.status_code == 404:
            return False
        if not response.is_success:
            self._raise_api_error(response, path)
        return True

    def verify(self) -> None:
        """
        Connectivity and credential probe: lists the first page of clusters.
        """
        page = self.list(VERIFY_PATH, Page, params={"maxItems": 10, "page": 0})
        logger.debug(
            f"Verified API access at {self.endpoint} ({len(page.content)} clusters)"
        )


def connect(
    settings: Settings | None = None, transport: httpx.BaseTransport | None = None
) -> ApiClient:
    """
    Builds a client and verifies the key before handing it out, so a bad
    key or unreachable endpoint fails at configuration time.
    """
    settings = settings or load_settings()
    client = ApiClient.from_settings(settings, transport=transport)
    try:
        client.verify()
    except Exception:
        client.close()
        raise
    return client
