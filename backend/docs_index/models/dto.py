"""Pydantic models validating operation arguments."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator


class OnlineSourceOptions(BaseModel):
    refresh_interval: float = Field(default=60, ge=0, description="Refresh period in minutes, 0 disables")
    content_type: Literal["auto", "markdown", "html"] = "auto"


class OnlineSourceRequest(OnlineSourceOptions):
    url: str
    name: str

    @field_validator("url")
    @classmethod
    def _require_http(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("url must use http or https")
        return value


__all__ = ["OnlineSourceOptions", "OnlineSourceRequest"]
