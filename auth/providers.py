from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Callable


class CaptchaProvider(ABC):
    @abstractmethod
    async def solve(self, user_agent: str, site_key: str, page_url: str) -> str:
        """Return a one-time captcha token for the given page."""
        raise NotImplementedError


class CodeProvider(ABC):
    @abstractmethod
    async def get_code(self, identity: str) -> str:
        """Return the SMS confirmation code sent to ``identity``.

        May wait indefinitely for a human; callers cancel the task to give up.
        """
        raise NotImplementedError


class Transport(ABC):
    @abstractmethod
    async def call(self, path: str, token: str | None, payload: dict) -> dict:
        """POST ``payload`` to ``path``, with a bearer token when given."""
        raise NotImplementedError


class PromptCodeProvider(CodeProvider):
    def __init__(self, input_fn: Callable[[str], str] = input) -> None:
        self._input_fn = input_fn

    async def get_code(self, identity: str) -> str:
        text = await asyncio.to_thread(
            self._input_fn, f"Enter confirmation code for {identity}: "
        )
        return text.strip(" \n\t\v")
