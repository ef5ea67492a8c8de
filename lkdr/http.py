from __future__ import annotations

import json

import httpx

from auth.errors import RemoteRejection, TransportError
from auth.providers import Transport

from .constants import BASE_URL, LOGGER


def _status_message(status_code: int) -> str:
    if status_code == 401:
        return "Authentication failed. The session token may have expired."
    if status_code == 403:
        return "You don't have permission to perform this action."
    if status_code == 404:
        return "The requested resource was not found."
    if status_code == 429:
        return "Rate limit exceeded. Please try again later."
    if status_code >= 500:
        return "Receipt service is experiencing issues. Please try again later."
    return f"Receipt service request failed with status {status_code}."


async def log_request(request: httpx.Request) -> None:
    LOGGER.info("LKDR request %s %s", request.method, request.url)


async def log_response(response: httpx.Response) -> None:
    LOGGER.info(
        "LKDR response %s %s -> %s",
        response.request.method,
        response.request.url,
        response.status_code,
    )
    if response.status_code >= 400:
        body = await response.aread()
        text = body.decode("utf-8", errors="replace")
        if len(text) > 1000:
            text = text[:1000] + "...<truncated>"
        LOGGER.warning("LKDR error body: %s", text)


class HttpTransport(Transport):
    """JSON-over-POST transport for the receipt service."""

    def __init__(
        self,
        *,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        debug: bool = True,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._own_client = client is None
        if client is None:
            hooks = {"request": [log_request], "response": [log_response]} if debug else {}
            client = httpx.AsyncClient(timeout=timeout, transport=transport, event_hooks=hooks)
        self._client = client

    async def call(self, path: str, token: str | None, payload: dict) -> dict:
        headers = {"Content-Type": "application/json;charset=UTF-8"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._client.post(
                f"{self._base_url}{path}",
                content=json.dumps(payload).encode("utf-8"),
                headers=headers,
            )
        except httpx.HTTPError as error:
            raise TransportError(f"{type(error).__name__}: {error}") from error

        if response.status_code != 200:
            raise self._error_from(response)

        try:
            body = response.json()
        except ValueError as error:
            raise TransportError(
                f"decode response body: {error}", status_code=response.status_code
            ) from error

        if not isinstance(body, dict):
            raise TransportError(
                "decode response body: expected a JSON object.",
                status_code=response.status_code,
            )
        return body

    async def aclose(self) -> None:
        if self._own_client:
            await self._client.aclose()

    def _error_from(self, response: httpx.Response) -> Exception:
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and (body.get("code") or body.get("message")):
            return RemoteRejection(
                str(body.get("code") or ""),
                str(body.get("message") or ""),
                status_code=response.status_code,
            )
        return TransportError(
            _status_message(response.status_code), status_code=response.status_code
        )
