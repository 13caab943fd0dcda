"""Pydantic models describing captured traffic and extracted availability."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _FrozenModel(BaseModel):
    """Immutable model serialised with camelCase keys."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class CapturedResponse(_FrozenModel):
    """A network response observed while driving the booking page."""

    url: str
    status: int
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Any = None
    captured_at: datetime
    is_text: bool = False

    @property
    def is_json(self) -> bool:
        return not self.is_text


class Slot(_FrozenModel):
    """One bookable appointment."""

    date: str
    time: str
    doctor: Optional[str] = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.date, self.time)


class AvailableDate(_FrozenModel):
    """A calendar date annotated with the number of open slots."""

    date: str
    count: int = Field(default=0, ge=0)


class ScrapeResult(_FrozenModel):
    """Outcome of a single scrape invocation."""

    clinic: str
    available_dates: List[AvailableDate] = Field(default_factory=list)
    slots: List[Slot] = Field(default_factory=list)
    raw_data: Optional[Union[List[CapturedResponse], Dict[str, str]]] = None
    error: Optional[str] = None
    demo: bool = False

    @property
    def degraded(self) -> bool:
        return self.error is not None
