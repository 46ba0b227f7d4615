"""
Session configuration.

SessionSettings groups the timing and buffer limits a PrinterSession runs
with. Defaults come from ProtocolConstants and match the values the device
firmware is built around; tests shorten the timeouts.
"""

from __future__ import annotations

import codecs

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from zfpconnect.protocol.constants import ProtocolConstants


class SessionSettings(BaseModel):
    """
    Timing and buffer settings for a printer session.

    Example:
        >>> settings = SessionSettings(response_timeout=5.0)
        >>> settings.ping_retries
        10
    """

    model_config = ConfigDict(frozen=True)

    ping_timeout: float = Field(
        default=ProtocolConstants.DEFAULT_PING_TIMEOUT,
        gt=0,
        description="Per-attempt wait for a probe echo, in seconds",
    )
    response_timeout: float = Field(
        default=ProtocolConstants.DEFAULT_RESPONSE_TIMEOUT,
        gt=0,
        description="Wait for a complete response, in seconds",
    )
    ping_retries: int = Field(
        default=ProtocolConstants.DEFAULT_PING_RETRIES,
        ge=1,
        description="Probe attempts before the device is declared unresponsive",
    )
    poll_interval: float = Field(
        default=ProtocolConstants.DEFAULT_POLL_INTERVAL,
        gt=0,
        description="Sleep between polls of the inbound stream, in seconds",
    )
    encoding: str = Field(
        default=ProtocolConstants.DEFAULT_ENCODING,
        description="Character set of text fields",
    )
    max_response_length: int = Field(
        default=ProtocolConstants.MAX_RESPONSE_LENGTH,
        ge=ProtocolConstants.FRAME_OVERHEAD,
        description="Largest response accepted, in bytes",
    )

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        """Ensure the encoding is known to the codec registry."""
        try:
            codecs.lookup(v)
        except LookupError:
            raise ValueError(f"Unknown encoding: {v}") from None
        return v

    @model_validator(mode="after")
    def validate_poll_interval(self) -> SessionSettings:
        """Ensure polling is finer than the shortest timeout."""
        if self.poll_interval > min(self.ping_timeout, self.response_timeout):
            raise ValueError("poll_interval must not exceed ping_timeout or response_timeout")
        return self
