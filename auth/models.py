from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    utc = value.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class DeviceInfo:
    source_device_id: str
    user_agent: str
    source_type: str = "WEB"
    app_version: str = "1.0.0"

    def to_payload(self) -> dict:
        return {
            "appVersion": self.app_version,
            "metaDetails": {"userAgent": self.user_agent},
            "sourceDeviceId": self.source_device_id,
            "sourceType": self.source_type,
        }


@dataclass(frozen=True)
class Session:
    access_token: str
    access_token_expiry: datetime
    refresh_token: str
    refresh_token_expiry: datetime | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "Session":
        access_token = payload.get("token")
        access_token_expiry = payload.get("tokenExpireIn")
        refresh_token = payload.get("refreshToken")
        refresh_token_expiry = payload.get("refreshTokenExpiresIn")

        if not isinstance(access_token, str) or not access_token:
            raise ValueError("Session payload missing token.")
        if not isinstance(access_token_expiry, str) or not access_token_expiry:
            raise ValueError("Session payload missing tokenExpireIn.")
        if not isinstance(refresh_token, str) or not refresh_token:
            raise ValueError("Session payload missing refreshToken.")
        if refresh_token_expiry is not None and not isinstance(refresh_token_expiry, str):
            raise ValueError("Session payload refreshTokenExpiresIn must be a string.")

        return cls(
            access_token=access_token,
            access_token_expiry=parse_timestamp(access_token_expiry),
            refresh_token=refresh_token,
            refresh_token_expiry=(
                parse_timestamp(refresh_token_expiry) if refresh_token_expiry else None
            ),
        )

    def to_payload(self) -> dict:
        payload = {
            "refreshToken": self.refresh_token,
            "token": self.access_token,
            "tokenExpireIn": format_timestamp(self.access_token_expiry),
        }
        if self.refresh_token_expiry is not None:
            payload["refreshTokenExpiresIn"] = format_timestamp(self.refresh_token_expiry)
        return payload


@dataclass
class PendingChallenge:
    challenge_token: str
    expires_at: datetime | None = None
    expires_in_seconds: int | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "PendingChallenge":
        challenge_token = payload.get("challengeToken")
        if not isinstance(challenge_token, str) or not challenge_token:
            raise ValueError("Challenge response missing challengeToken.")

        expires_at = payload.get("challengeTokenExpiresIn")
        expires_in = payload.get("challengeTokenExpiresInSec")
        return cls(
            challenge_token=challenge_token,
            expires_at=parse_timestamp(expires_at) if isinstance(expires_at, str) else None,
            expires_in_seconds=expires_in if isinstance(expires_in, int) else None,
        )
