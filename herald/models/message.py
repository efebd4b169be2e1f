"""ReportMessage data model for herald.

A ReportMessage is the ephemeral value built for every report call. It is
created by the dispatcher and handed to sinks and callback plugins.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator

from herald.models.severity import Severity, Verbosity


class ReportMessage(BaseModel):
    """A single report issued by a component.

    Attributes:
        id: Message identifier used for per-id overrides (e.g. "DRV1").
        severity: Severity of the report.
        verbosity: Verbosity of the report. Only meaningful for INFO; other
            severities are never filtered by verbosity.
        text: Message body.
        component: Full hierarchical name of the reporting component.
        time: Optional caller-supplied timestamp (e.g. simulation time).
        filename: Optional source file of the call site.
        line: Optional source line of the call site.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    severity: Severity
    verbosity: int = Verbosity.MEDIUM
    text: str
    component: str
    time: Optional[Union[int, float]] = None
    filename: Optional[str] = None
    line: Optional[int] = None

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, v):
        return Severity.coerce(v)

    @field_validator("verbosity", mode="before")
    @classmethod
    def _coerce_verbosity(cls, v):
        return Verbosity.coerce(v)

    def format(self) -> str:
        """Render the message as a single report line.

        Format: ``SEVERITY file(line) @ time: component [id] text`` where the
        location and time parts are omitted when unknown.
        """
        parts = [self.severity.name]
        if self.filename:
            if self.line is not None:
                parts.append(f"{self.filename}({self.line})")
            else:
                parts.append(self.filename)
        if self.time is not None:
            parts.append(f"@ {self.time}:")
        else:
            parts[-1] += ":"
        parts.append(f"{self.component} [{self.id}] {self.text}")
        return " ".join(parts)
