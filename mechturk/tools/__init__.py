"""Controller-side live tools."""

from mechturk.tools.live import BRIDGE_HINTS, LiveTools
from mechturk.tools.responses import (
    ToolResponse,
    create_error_response,
    create_image_response,
    create_text_response,
)

__all__ = [
    "BRIDGE_HINTS",
    "LiveTools",
    "ToolResponse",
    "create_error_response",
    "create_image_response",
    "create_text_response",
]
