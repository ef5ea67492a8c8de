from __future__ import annotations

import enum
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from auth.errors import (
    SMS_VERIFICATION_NOT_EXPIRED,
    InvalidConfigError,
    RemoteRejection,
    TransportError,
    provider_step,
    step,
    transport_step,
)
from auth.models import DeviceInfo, PendingChallenge, Session
from auth.providers import CaptchaProvider, CodeProvider, Transport
from auth.session_cache import SessionCache

EXPIRE_TOKEN_OFFSET = timedelta(minutes=5)
CAPTCHA_SITE_KEY = "hfU4TD7fJUI7XcP5qRphKWgnIR5t9gXAxTRqdQJk"
CAPTCHA_PAGE_URL = "https://lkdr.nalog.ru/login"

SMS_START_PATH = "/v2/auth/challenge/sms/start"
SMS_VERIFY_PATH = "/v1/auth/challenge/sms/verify"
TOKEN_PATH = "/v1/auth/token"

LOGGER = logging.getLogger("lkdr.auth")


class Renewal(enum.Enum):
    REUSE = "reuse"
    REFRESH = "refresh"
    AUTHORIZE = "authorize"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _decode(factory, payload: dict):
    try:
        return factory(payload)
    except ValueError as error:
        raise TransportError(f"decode response body: {error}") from error


class AuthEngine:
    """Keeps one usable session per identity.

    Each call to ``session_for`` holds the identity's cache lock while it
    decides between reusing, refreshing or re-authorizing, so at most one
    renewal runs per identity and later callers see its result.
    """

    def __init__(
        self,
        *,
        transport: Transport,
        cache: SessionCache,
        device: DeviceInfo,
        code_provider: CodeProvider,
        captcha_provider: CaptchaProvider | None = None,
        clock: Callable[[], datetime] = _utcnow,
        safety_margin: timedelta = EXPIRE_TOKEN_OFFSET,
    ) -> None:
        if transport is None:
            raise InvalidConfigError("transport is required.")
        if cache is None:
            raise InvalidConfigError("session cache is required.")
        if code_provider is None:
            raise InvalidConfigError("code provider is required.")

        self._transport = transport
        self._cache = cache
        self._device = device
        self._code_provider = code_provider
        self._captcha_provider = captcha_provider
        self._clock = clock
        self._safety_margin = safety_margin

    def decide(self, session: Session | None, now: datetime | None = None) -> Renewal:
        deadline = (now or self._clock()) + self._safety_margin
        if session is None:
            return Renewal.AUTHORIZE
        if session.refresh_token_expiry is not None and session.refresh_token_expiry < deadline:
            return Renewal.AUTHORIZE
        if session.access_token_expiry < deadline:
            return Renewal.REFRESH
        return Renewal.REUSE

    async def session_for(self, identity: str) -> Session:
        async with self._cache.hold(identity) as entry:
            with step("load session"):
                session = await entry.get()

            renewal = self.decide(session)
            LOGGER.debug("Session decision identity=%s renewal=%s", identity, renewal.value)
            if renewal is Renewal.REUSE:
                return session

            if renewal is Renewal.AUTHORIZE:
                with step("authorize"):
                    session = await self.authorize(identity)
            else:
                with transport_step("refresh token"):
                    session = await self.refresh(session)

            with step("update session"):
                await entry.update(session)
            return session

    async def authorize(self, identity: str) -> Session:
        if self._captcha_provider is None:
            raise InvalidConfigError("captcha provider not set")

        LOGGER.info("Starting SMS authorization for %s", identity)
        with provider_step("get captcha token"):
            captcha_token = await self._captcha_provider.solve(
                self._device.user_agent, CAPTCHA_SITE_KEY, CAPTCHA_PAGE_URL
            )

        challenge = PendingChallenge(challenge_token="")
        try:
            with transport_step("start sms challenge"):
                payload = await self._transport.call(
                    SMS_START_PATH,
                    None,
                    {
                        "deviceInfo": self._device.to_payload(),
                        "phone": identity,
                        "captchaToken": captcha_token,
                    },
                )
                challenge = _decode(PendingChallenge.from_payload, payload)
        except RemoteRejection as error:
            if error.code != SMS_VERIFICATION_NOT_EXPIRED:
                raise
            LOGGER.warning(
                "SMS verification already pending for %s; continuing with code entry",
                identity,
            )

        with provider_step("get confirmation code"):
            code = await self._code_provider.get_code(identity)

        with transport_step("verify code"):
            payload = await self._transport.call(
                SMS_VERIFY_PATH,
                None,
                {
                    "deviceInfo": self._device.to_payload(),
                    "phone": identity,
                    "challengeToken": challenge.challenge_token,
                    "code": code,
                },
            )
            session = _decode(Session.from_payload, payload)

        LOGGER.info("Authorized %s", identity)
        return session

    async def refresh(self, session: Session) -> Session:
        LOGGER.info("Refreshing access token")
        payload = await self._transport.call(
            TOKEN_PATH,
            None,
            {
                "deviceInfo": self._device.to_payload(),
                "refreshToken": session.refresh_token,
            },
        )
        return _decode(Session.from_payload, payload)
