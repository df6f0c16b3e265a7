from __future__ import annotations

from typing import Any

import httpx

from betasim.core.models import RunConfig
from betasim.exceptions import TargetServiceError


class TargetClient:
    """JSON client for the service under test.

    Successful calls return the decoded JSON body (or text when the body is
    not JSON). Failures raise ``TargetServiceError`` carrying the status code
    and the error kind reported by the target, so the executor can classify
    them.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 30.0,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {
            "User-Agent": "betasim-agent/0.1",
            "Accept": "application/json",
        }
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds),
            follow_redirects=True,
            headers=headers,
            transport=transport,
        )

    @classmethod
    def from_config(
        cls,
        config: RunConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "TargetClient":
        return cls(
            config.base_url,
            timeout_seconds=config.timeout_seconds,
            api_key=config.api_key,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def is_closed(self) -> bool:
        return self._http.is_closed

    def set_header(self, name: str, value: str) -> None:
        self._http.headers[name] = value

    async def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(
        self,
        path: str,
        *,
        json: Any = None,
        data: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
    ) -> Any:
        return await self.request("POST", path, json=json, data=data, files=files)

    async def put(self, path: str, *, json: Any = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    async def request(self, method: str, path: str, **kwargs: Any) -> Any:
        kwargs = {k: v for k, v in kwargs.items() if v is not None}
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise TargetServiceError(
                f"{method} {path} failed: {exc}",
                endpoint=path,
                details={"method": method, "network_error": _classify_exception(exc)},
            ) from exc

        payload = _decode(response)
        if response.is_success:
            return payload

        raise TargetServiceError(
            _error_message(method, path, response, payload),
            status_code=response.status_code,
            error_type=_error_type(payload),
            endpoint=path,
            details={"method": method},
        )


# ---------------------------------------------------------------------------
# Helpers: response decoding and error classification
# ---------------------------------------------------------------------------

def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _error_type(payload: Any) -> str | None:
    """The target's own error kind, taken from the ``error`` field of a JSON body."""
    if isinstance(payload, dict):
        kind = payload.get("error")
        if isinstance(kind, str) and kind:
            return kind
    return None


def _error_message(method: str, path: str, response: httpx.Response, payload: Any) -> str:
    detail = None
    if isinstance(payload, dict):
        detail = payload.get("message") or payload.get("error")
    suffix = f": {detail}" if detail else ""
    return f"{method} {path} returned {response.status_code}{suffix}"


def _classify_exception(exc: Exception) -> str:
    """Name the class of a network-level failure for the error context."""
    if isinstance(exc, httpx.TimeoutException):
        return "network_timeout"
    if isinstance(exc, httpx.ConnectError):
        return "network_connect"
    if isinstance(exc, (httpx.RemoteProtocolError, httpx.LocalProtocolError)):
        return "network_protocol"
    if isinstance(exc, httpx.HTTPError):
        return "network_error"
    return type(exc).__name__
