from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import timedelta
from urllib.parse import urlparse

from services.duration import format_duration, parse_duration

# Lowercase letter first, then at least one of lowercase letters, digits or hyphens
IDENTIFIER_PATTERN = r"^[a-z][-a-z0-9]+$"

class EndpointPayload(BaseModel):
    """A canary endpoint definition as it travels over the wire"""
    model_config = ConfigDict(strict=True)

    identifier: str = Field(..., pattern=IDENTIFIER_PATTERN, description="Unique endpoint name")
    url: str = Field(..., description="Absolute URL to be checked")
    method: str = Field(..., min_length=1, description="HTTP verb used for the check")
    status_online: int = Field(..., ge=0, le=65535, description="Status code expected when healthy")
    frequency: str = Field(..., description="Check interval as a duration literal, e.g. 30s")
    fail_after: int = Field(..., ge=0, le=255, description="Consecutive failures before the endpoint counts as down")

    @field_validator("url")
    @classmethod
    def url_must_be_absolute(cls, value: str) -> str:
        parsed = urlparse(value)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"url {value!r} is not an absolute URL")
        return value

    @field_validator("frequency")
    @classmethod
    def frequency_must_be_duration(cls, value: str) -> str:
        nanoseconds = parse_duration(value)
        if nanoseconds <= 0:
            raise ValueError(f"frequency {value!r} must be positive")
        # Stored and echoed in canonical form
        return format_duration(nanoseconds)

    @property
    def interval(self) -> timedelta:
        """Check interval as a timedelta"""
        return timedelta(microseconds=parse_duration(self.frequency) / 1000)
