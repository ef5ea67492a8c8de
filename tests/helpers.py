import asyncio
from datetime import datetime, timedelta, timezone

from auth.engine import SMS_START_PATH, SMS_VERIFY_PATH, TOKEN_PATH, AuthEngine
from auth.models import DeviceInfo, Session, format_timestamp
from auth.providers import CaptchaProvider, CodeProvider, Transport
from auth.session_cache import SessionCache
from auth.token_store import MemorySessionStore

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
PHONE = "79990001122"


def make_session(
    access_in: timedelta,
    refresh_in: timedelta | None = timedelta(days=30),
    *,
    suffix: str = "1",
) -> Session:
    return Session(
        access_token=f"access-{suffix}",
        access_token_expiry=NOW + access_in,
        refresh_token=f"refresh-{suffix}",
        refresh_token_expiry=None if refresh_in is None else NOW + refresh_in,
    )


def session_payload(suffix: str, *, access_in: timedelta = timedelta(hours=1)) -> dict:
    return {
        "token": f"access-{suffix}",
        "tokenExpireIn": format_timestamp(NOW + access_in),
        "refreshToken": f"refresh-{suffix}",
        "refreshTokenExpiresIn": format_timestamp(NOW + timedelta(days=30)),
    }


class FakeCaptchaProvider(CaptchaProvider):
    def __init__(self, error: Exception | None = None) -> None:
        self.calls: list[tuple[str, str, str]] = []
        self._error = error

    async def solve(self, user_agent: str, site_key: str, page_url: str) -> str:
        self.calls.append((user_agent, site_key, page_url))
        if self._error is not None:
            raise self._error
        return "captcha-token"


class FakeCodeProvider(CodeProvider):
    def __init__(self, code: str = "1234", *, gate: asyncio.Event | None = None) -> None:
        self.calls: list[str] = []
        self.waiting = asyncio.Event()
        self._code = code
        self._gate = gate

    async def get_code(self, identity: str) -> str:
        self.calls.append(identity)
        if self._gate is not None:
            self.waiting.set()
            await self._gate.wait()
        return self._code


class FakeTransport(Transport):
    """Replays queued results per path; the last queued result is reused.

    A path listed in ``gates`` blocks until its event is set; ``entered[path]``
    is set once a call for it is in flight.
    """

    def __init__(
        self,
        responses: dict[str, list] | None = None,
        *,
        gates: dict[str, asyncio.Event] | None = None,
    ) -> None:
        self.calls: list[tuple[str, str | None, dict]] = []
        self._responses = {
            SMS_START_PATH: [{"challengeToken": "challenge-1"}],
            SMS_VERIFY_PATH: [session_payload("new")],
            TOKEN_PATH: [session_payload("refreshed")],
        }
        self._responses.update(responses or {})
        self._gates = gates or {}
        self.entered = {path: asyncio.Event() for path in self._gates}

    def paths(self) -> list[str]:
        return [path for path, _, _ in self.calls]

    async def call(self, path: str, token: str | None, payload: dict) -> dict:
        self.calls.append((path, token, payload))
        gate = self._gates.get(path)
        if gate is not None:
            self.entered[path].set()
            await gate.wait()
        else:
            await asyncio.sleep(0)
        queue = self._responses[path]
        result = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(result, Exception):
            raise result
        return result


class CountingStore(MemorySessionStore):
    def __init__(self, *, fail_persist: bool = False, fail_load: bool = False) -> None:
        super().__init__()
        self.loads: list[str] = []
        self.persists: list[tuple[str, Session | None]] = []
        self.fail_persist = fail_persist
        self.fail_load = fail_load

    async def load(self, identity: str) -> Session | None:
        self.loads.append(identity)
        if self.fail_load:
            raise OSError("disk unavailable")
        return await super().load(identity)

    async def persist(self, identity: str, session: Session | None) -> None:
        self.persists.append((identity, session))
        if self.fail_persist:
            raise OSError("disk full")
        await super().persist(identity, session)


def build_engine(
    *,
    transport: FakeTransport | None = None,
    store: CountingStore | None = None,
    captcha_provider: CaptchaProvider | None = None,
    code_provider: FakeCodeProvider | None = None,
    with_captcha: bool = True,
):
    transport = transport or FakeTransport()
    store = store or CountingStore()
    cache = SessionCache(store)
    if captcha_provider is None and with_captcha:
        captcha_provider = FakeCaptchaProvider()
    code_provider = code_provider or FakeCodeProvider()
    engine = AuthEngine(
        transport=transport,
        cache=cache,
        device=DeviceInfo(source_device_id="device-1", user_agent="agent/1.0"),
        code_provider=code_provider,
        captcha_provider=captcha_provider,
        clock=lambda: NOW,
    )
    return engine, transport, store, cache, captcha_provider, code_provider
