"""TraceRecord data model for herald.

A trace is a JSONL file where each line is one report call. The CLI replays
traces against a configured component tree.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from herald.models.severity import Severity, Verbosity


class TraceRecord(BaseModel):
    """One recorded report call.

    Attributes:
        component: Full hierarchical name of the reporting component.
        id: Message identifier.
        severity: Severity name or value.
        verbosity: Verbosity of the message. Only INFO records use it.
        text: Message body.
        time: Optional timestamp passed through to the message.
        filename: Optional source file of the call site.
        line: Optional source line of the call site.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    component: str = Field(min_length=1)
    id: str
    severity: Severity = Severity.INFO
    verbosity: int = Verbosity.MEDIUM
    text: str = ""
    time: Optional[Union[int, float]] = None
    filename: Optional[str] = Field(default=None, alias="file")
    line: Optional[int] = None

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, v):
        return Severity.coerce(v)

    @field_validator("verbosity", mode="before")
    @classmethod
    def _coerce_verbosity(cls, v):
        return Verbosity.coerce(v)
