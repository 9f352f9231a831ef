"""Request and response payloads for the speech routes."""

from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..models import ScriptResult


class TextRequest(BaseModel):
    """Body of ``/generate`` and ``/generate-script``; emptiness is checked later."""

    text: Optional[str] = None


class DownloadZipRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[Union[int, str]] = Field(default=None, alias="sessionId")


class ScriptChunk(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    filename: str
    text: str
    chunk_number: int = Field(alias="chunkNumber")
    audio_data: str = Field(alias="audioData")


class ScriptResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: Literal[True] = True
    chunks: list[ScriptChunk]
    session_id: int = Field(alias="sessionId")

    @classmethod
    def from_result(cls, result: ScriptResult) -> "ScriptResponse":
        return cls(
            chunks=[
                ScriptChunk(
                    filename=chunk.filename,
                    text=chunk.text,
                    chunk_number=chunk.chunk_number,
                    audio_data=chunk.audio_data,
                )
                for chunk in result.chunks
            ],
            session_id=result.session_id.value,
        )


class ErrorResponse(BaseModel):
    error: str
    details: Optional[Any] = None


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    service: str


__all__ = [
    "DownloadZipRequest",
    "ErrorResponse",
    "HealthResponse",
    "ScriptChunk",
    "ScriptResponse",
    "TextRequest",
]
