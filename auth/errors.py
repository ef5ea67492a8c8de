from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator


class LkdrError(RuntimeError):
    """Base error; ``steps`` records where the failure surfaced, outermost first."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.steps: list[str] = []

    def __str__(self) -> str:
        return ": ".join([*self.steps, self.message])


class InvalidConfigError(LkdrError):
    pass


SMS_VERIFICATION_NOT_EXPIRED = "registration.sms.verification.not.expired"
BLOCKED_CAPTCHA = "blocked.captcha"


class RemoteRejection(LkdrError):
    def __init__(self, code: str, message: str = "", *, status_code: int | None = None) -> None:
        if code and message:
            text = f"{code} ({message})"
        else:
            text = code or message or "remote rejection"
        super().__init__(text)
        self.code = code
        self.remote_message = message
        self.status_code = status_code


class TransportError(LkdrError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PersistenceError(LkdrError):
    pass


class ProviderError(LkdrError):
    pass


@contextmanager
def step(
    name: str,
    *,
    wrap: type[LkdrError] | None = None,
    catch: type[BaseException] | tuple[type[BaseException], ...] = Exception,
) -> Iterator[None]:
    """Prefix library errors raised inside the block with ``name``.

    Other exceptions pass through untouched unless ``wrap`` is given, in which
    case those matching ``catch`` are re-raised as ``wrap`` with the original
    kept as ``__cause__``.
    """
    try:
        yield
    except LkdrError as error:
        error.steps.insert(0, name)
        raise
    except Exception as error:
        if wrap is None or not isinstance(error, catch):
            raise
        wrapped = wrap(str(error) or type(error).__name__)
        wrapped.steps.append(name)
        raise wrapped from error


def provider_step(name: str):
    """Step around a captcha or code provider; foreign failures become ProviderError."""
    return step(name, wrap=ProviderError)


def transport_step(name: str):
    """Step around a transport call; OS-level network failures become TransportError."""
    return step(name, wrap=TransportError, catch=OSError)
