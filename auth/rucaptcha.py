from __future__ import annotations

import asyncio
import logging

import httpx

from auth.providers import CaptchaProvider

RUCAPTCHA_BASE_URL = "https://api.rucaptcha.com"
YANDEX_SMART_CAPTCHA_TASK = "YandexSmartCaptchaTaskProxyless"

LOGGER = logging.getLogger("lkdr.rucaptcha")


class RucaptchaError(RuntimeError):
    def __init__(self, code: str, description: str = "") -> None:
        super().__init__(f"{code} ({description})" if description else code)
        self.code = code


async def _rucaptcha_request(
    method: str,
    payload: dict,
    *,
    client: httpx.AsyncClient | None = None,
    base_url: str = RUCAPTCHA_BASE_URL,
) -> dict:
    own_client = client is None
    http_client = client or httpx.AsyncClient()

    try:
        response = await http_client.post(f"{base_url}/{method}", json=payload)
        response.raise_for_status()
        body = response.json()
    except httpx.HTTPStatusError as error:
        raise RuntimeError(
            f"rucaptcha {method} failed with status {error.response.status_code}: "
            f"{error.response.text}"
        ) from error
    finally:
        if own_client:
            await http_client.aclose()

    if not isinstance(body, dict):
        raise RuntimeError(f"rucaptcha {method} returned a non-object response.")
    if body.get("errorId", 0) != 0:
        raise RucaptchaError(
            str(body.get("errorCode") or "ERROR_UNKNOWN"),
            str(body.get("errorDescription") or ""),
        )
    return body


async def create_task(
    api_key: str,
    task: dict,
    *,
    client: httpx.AsyncClient | None = None,
    base_url: str = RUCAPTCHA_BASE_URL,
) -> int:
    body = await _rucaptcha_request(
        "createTask",
        {"clientKey": api_key, "task": task},
        client=client,
        base_url=base_url,
    )
    task_id = body.get("taskId")
    if not isinstance(task_id, int):
        raise RuntimeError("rucaptcha createTask response missing taskId.")
    return task_id


async def get_task_result(
    api_key: str,
    task_id: int,
    *,
    client: httpx.AsyncClient | None = None,
    base_url: str = RUCAPTCHA_BASE_URL,
) -> dict | None:
    """Return the solution once ready, ``None`` while still processing."""
    body = await _rucaptcha_request(
        "getTaskResult",
        {"clientKey": api_key, "taskId": task_id},
        client=client,
        base_url=base_url,
    )
    if body.get("status") != "ready":
        return None
    solution = body.get("solution")
    if not isinstance(solution, dict):
        raise RuntimeError("rucaptcha getTaskResult response missing solution.")
    return solution


class RucaptchaProvider(CaptchaProvider):
    """Solves Yandex SmartCaptcha through rucaptcha.com."""

    def __init__(
        self,
        api_key: str,
        *,
        client: httpx.AsyncClient | None = None,
        base_url: str = RUCAPTCHA_BASE_URL,
        poll_interval: float = 5.0,
        max_wait: float = 180.0,
        sleep=asyncio.sleep,
    ) -> None:
        self._api_key = api_key
        self._client = client
        self._base_url = base_url
        self._poll_interval = poll_interval
        self._max_wait = max_wait
        self._sleep = sleep

    async def solve(self, user_agent: str, site_key: str, page_url: str) -> str:
        task_id = await create_task(
            self._api_key,
            {
                "type": YANDEX_SMART_CAPTCHA_TASK,
                "websiteURL": page_url,
                "websiteKey": site_key,
                "userAgent": user_agent,
            },
            client=self._client,
            base_url=self._base_url,
        )
        LOGGER.info("Captcha task %s created for %s", task_id, page_url)

        waited = 0.0
        while waited < self._max_wait:
            await self._sleep(self._poll_interval)
            waited += self._poll_interval

            solution = await get_task_result(
                self._api_key, task_id, client=self._client, base_url=self._base_url
            )
            if solution is None:
                continue

            token = solution.get("token")
            if not isinstance(token, str) or not token:
                raise RuntimeError("rucaptcha solution missing token.")
            LOGGER.info("Captcha task %s solved after %ss", task_id, waited)
            return token

        raise RuntimeError(f"rucaptcha task {task_id} not solved within {self._max_wait}s.")
