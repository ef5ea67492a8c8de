from __future__ import annotations

from typing import TypeVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ValidationError

from auth.engine import AuthEngine
from auth.errors import InvalidConfigError, TransportError, step, transport_step
from auth.models import DeviceInfo
from auth.providers import CaptchaProvider, CodeProvider, Transport
from auth.session_cache import SessionCache
from auth.token_store import SessionStore

from .constants import APP_VERSION, BASE_URL, FISCAL_DATA_PATH, RECEIPT_PATH, SERVICE_TIMEZONE
from .http import HttpTransport
from .models import FiscalData, ReceiptFilter, ReceiptList

ModelT = TypeVar("ModelT", bound=BaseModel)


class Client:
    """Receipt service client for one or more phone-number identities.

    Every business call first obtains a usable session from the auth engine
    (reusing, refreshing or re-authorizing as needed), then issues the request
    with the session's access token as a bearer credential.
    """

    def __init__(
        self,
        *,
        device_id: str,
        user_agent: str,
        code_provider: CodeProvider,
        session_store: SessionStore,
        captcha_provider: CaptchaProvider | None = None,
        transport: Transport | None = None,
        clock=None,
        timezone: str = SERVICE_TIMEZONE,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
        debug: bool = True,
    ) -> None:
        required = {
            "device_id": device_id,
            "user_agent": user_agent,
            "code_provider": code_provider,
            "session_store": session_store,
        }
        missing = [name for name, value in required.items() if value is None or value == ""]
        if missing:
            raise InvalidConfigError(f"Missing required client settings: {', '.join(missing)}")

        try:
            self._timezone = ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as error:
            raise InvalidConfigError(f"Unknown timezone {timezone!r}.") from error

        self._own_transport = transport is None
        self._transport = transport or HttpTransport(
            base_url=base_url, timeout=timeout, debug=debug
        )
        self._cache = SessionCache(session_store)

        engine_options = {}
        if clock is not None:
            engine_options["clock"] = clock
        self.engine = AuthEngine(
            transport=self._transport,
            cache=self._cache,
            device=DeviceInfo(
                source_device_id=device_id,
                user_agent=user_agent,
                app_version=APP_VERSION,
            ),
            code_provider=code_provider,
            captcha_provider=captcha_provider,
            **engine_options,
        )

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._own_transport and isinstance(self._transport, HttpTransport):
            await self._transport.aclose()

    async def receipts(
        self, identity: str, receipt_filter: ReceiptFilter | None = None
    ) -> ReceiptList:
        payload = (receipt_filter or ReceiptFilter()).to_payload()
        return await self._execute_authorized(identity, RECEIPT_PATH, payload, ReceiptList)

    async def fiscal_data(self, identity: str, key: str) -> FiscalData:
        return await self._execute_authorized(
            identity, FISCAL_DATA_PATH, {"key": key}, FiscalData
        )

    async def invalidate(self, identity: str) -> None:
        with step("invalidate session"):
            await self._cache.invalidate(identity)

    async def _execute_authorized(
        self, identity: str, path: str, payload: dict, model: type[ModelT]
    ) -> ModelT:
        session = await self.engine.session_for(identity)
        with transport_step("execute request"):
            body = await self._transport.call(path, session.access_token, payload)
            try:
                return model.model_validate(body, context={"timezone": self._timezone})
            except ValidationError as error:
                raise TransportError(f"decode response body: {error}") from error
