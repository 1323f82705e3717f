"""Pydantic models for captured cookies and extraction results."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Literal

import pydantic

from cookie_harvester.utils import url as url_mod
from cookie_harvester.utils.serialization import snake_to_camel

SameSite = Literal["Strict", "Lax", "None"]

ErrorKind = Literal["NavigationTimeout", "ExtractionFailure", "InvalidInput"]

# Browsers report session cookies (no Expires/Max-Age) with -1.
NO_EXPIRY = -1

NO_COOKIES_MESSAGE = "No cookies were found for this URL after the page fully loaded."
NAVIGATION_TIMEOUT_MESSAGE = "The page took too long to load"
UNKNOWN_FAILURE_MESSAGE = "Unknown error while extracting cookies"


class CookieRecord(pydantic.BaseModel):
    """A single cookie as reported by the browser's cookie jar."""

    model_config = pydantic.ConfigDict(
        alias_generator=snake_to_camel, populate_by_name=True, frozen=True
    )

    name: str
    value: str
    domain: str
    path: str
    expires: float = NO_EXPIRY
    http_only: bool = False
    secure: bool = False
    same_site: SameSite = "None"

    @property
    def is_session_cookie(self) -> bool:
        return self.expires < 0


class ExtractionRequest(pydantic.BaseModel):
    """Inbound request body: the page to load."""

    url: str

    @pydantic.field_validator("url", mode="before")
    @classmethod
    def _validate_url(cls, value: Any) -> str:
        return url_mod.normalize_target_url(value)


class CookieExtraction(pydantic.BaseModel):
    """Successful extraction, possibly with no cookies at all."""

    model_config = pydantic.ConfigDict(frozen=True)

    cookies: tuple[CookieRecord, ...] = ()
    message: str | None = None

    @classmethod
    def from_cookies(cls, cookies: Iterable[CookieRecord]) -> CookieExtraction:
        """Build a result, explaining an empty jar so it reads differently from a failure."""
        records = tuple(cookies)
        return cls(cookies=records, message=None if records else NO_COOKIES_MESSAGE)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "cookies": [c.model_dump(by_alias=True) for c in self.cookies],
        }
        if self.message is not None:
            payload["message"] = self.message
        return payload


class ExtractionError(pydantic.BaseModel):
    """Failed extraction with a user-facing detail message."""

    model_config = pydantic.ConfigDict(frozen=True)

    error: ErrorKind
    detail: str

    @classmethod
    def navigation_timeout(cls) -> ExtractionError:
        return cls(error="NavigationTimeout", detail=NAVIGATION_TIMEOUT_MESSAGE)

    @classmethod
    def failure(cls, detail: str | None = None) -> ExtractionError:
        return cls(error="ExtractionFailure", detail=detail or UNKNOWN_FAILURE_MESSAGE)

    @classmethod
    def invalid_input(cls, detail: str) -> ExtractionError:
        return cls(error="InvalidInput", detail=detail)

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error, "details": self.detail}


ExtractionResult = CookieExtraction | ExtractionError
