"""Standard tool responses: text and image content blocks plus an error flag."""

from __future__ import annotations

from typing import Any

from loguru import logger
from pydantic import BaseModel, Field


class ToolResponse(BaseModel):
    content: list[dict[str, Any]] = Field(default_factory=list)
    is_error: bool = False

    @property
    def text(self) -> str:
        """All text blocks joined by newlines."""
        return "\n".join(block["text"] for block in self.content if block.get("type") == "text")

    @property
    def images(self) -> list[dict[str, Any]]:
        return [block for block in self.content if block.get("type") == "image"]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"content": [dict(block) for block in self.content]}
        if self.is_error:
            data["isError"] = True
        return data


def create_error_response(message: str, possible_solutions: list[str] | None = None) -> ToolResponse:
    """Error response; solutions become a second "Possible solutions" text block."""
    solutions = list(possible_solutions or [])
    logger.error("Error response: {}", message)
    if solutions:
        logger.error("Possible solutions: {}", ", ".join(solutions))
    content = [{"type": "text", "text": message}]
    if solutions:
        content.append({"type": "text", "text": "Possible solutions:\n- " + "\n- ".join(solutions)})
    return ToolResponse(content=content, is_error=True)


def create_text_response(text: str) -> ToolResponse:
    return ToolResponse(content=[{"type": "text", "text": text}])


def create_image_response(base64_data: str, mime_type: str = "image/png", text: str | None = None) -> ToolResponse:
    content: list[dict[str, Any]] = [{"type": "image", "data": base64_data, "mimeType": mime_type}]
    if text:
        content.append({"type": "text", "text": text})
    return ToolResponse(content=content)
