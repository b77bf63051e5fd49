"""Pydantic models for the Loki JSON push API payload."""

from __future__ import annotations

from typing import Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field


class PushStream(BaseModel):
    """One labeled stream of ``[timestamp, line]`` pairs."""

    model_config = ConfigDict(extra="forbid")

    stream: Dict[str, str] = Field(default_factory=dict, description="Label set of the stream")
    values: List[Tuple[str, str]] = Field(default_factory=list, description="Unix nanosecond timestamp and line pairs")


class PushRequest(BaseModel):
    """Body of a ``POST /loki/api/v1/push`` request."""

    model_config = ConfigDict(extra="forbid")

    streams: List[PushStream] = Field(default_factory=list, description="Streams carried by this push")

    def to_json(self) -> bytes:
        """Serialize the request to a UTF-8 JSON body."""
        return self.model_dump_json().encode("utf-8")
