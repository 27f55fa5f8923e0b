"""Gateway connection configuration."""

from __future__ import annotations

from urllib.parse import urlparse

from pydantic import BaseModel, SecretStr, field_validator


class JanusConfig(BaseModel):
    """Configuration for a Janus gateway connection and its handles."""

    url: str
    api_secret: SecretStr | None = None
    subprotocol: str = "janus-protocol"
    request_timeout: float | None = 10.0
    open_timeout: float = 10.0
    max_size: int = 2**20  # 1 MB

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in ("ws", "wss") or not parsed.hostname:
            raise ValueError(f"url must be a ws:// or wss:// URL, got {v!r}")
        return v

    @field_validator("request_timeout")
    @classmethod
    def validate_request_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("request_timeout must be positive or None")
        return v
