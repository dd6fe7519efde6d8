"""Miro REST v2 client."""
import re
from typing import Any, Optional

from src.integrations.base import VendorClient, VendorResponse

# Miro rejects item content longer than this
MAX_CONTENT_LENGTH = 6000

MAX_FONT_SIZE = 96

# Sticky notes and cards only accept named colors
NAMED_COLORS = {
    "#fff9c4": "light_yellow",
    "#ffeb3b": "yellow",
    "#ff9800": "orange",
    "#4caf50": "green",
    "#00bcd4": "cyan",
    "#e91e63": "pink",
    "#9c27b0": "violet",
    "#f44336": "red",
    "#2196f3": "blue",
    "#607d8b": "gray",
    "#ffcdd2": "light_pink",
    "#c8e6c9": "light_green",
    "#bbdefb": "light_blue",
}

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


def clip(content: str) -> str:
    return content[:MAX_CONTENT_LENGTH]


def sticky_color(color: Optional[str]) -> str:
    """Map a hex color onto Miro's named sticky-note palette."""
    if color and color in NAMED_COLORS.values():
        return color
    return NAMED_COLORS.get((color or "").lower(), "light_yellow")


def shape_color(color: Optional[str], default: str = "#ffffff") -> str:
    if color and _HEX_COLOR.match(color):
        return color
    return default


def _position(x: float, y: float) -> dict[str, Any]:
    return {"x": x, "y": y, "origin": "center"}


class MiroClient(VendorClient):
    """Client for the Miro REST API (boards and board items)."""

    vendor = "miro"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.miro.com/v2",
        timeout_seconds: float = 30.0,
    ):
        super().__init__(api_key, base_url, timeout_seconds)

    async def get_board(self, board_id: str) -> VendorResponse:
        return await self._request("GET", f"/boards/{board_id}")

    async def create_board(self, name: str, description: Optional[str] = None) -> VendorResponse:
        payload: dict[str, Any] = {"name": name[:60]}
        if description:
            payload["description"] = description[:300]
        return await self._request("POST", "/boards", json_data=payload)

    async def create_card(
        self,
        board_id: str,
        title: str,
        description: str = "",
        x: float = 0,
        y: float = 0,
    ) -> VendorResponse:
        payload = {
            "data": {"title": clip(title), "description": clip(description)},
            "position": _position(x, y),
        }
        return await self._request("POST", f"/boards/{board_id}/cards", json_data=payload)

    async def create_shape(
        self,
        board_id: str,
        content: str,
        x: float = 0,
        y: float = 0,
        shape: str = "rectangle",
        width: float = 200,
        height: float = 100,
        fill_color: Optional[str] = None,
        border_color: Optional[str] = None,
        font_size: int = 14,
    ) -> VendorResponse:
        payload = {
            "data": {"shape": shape, "content": clip(content)},
            "position": _position(x, y),
            "geometry": {"width": width, "height": height, "rotation": 0},
            "style": {
                "fillColor": shape_color(fill_color),
                "fillOpacity": 1.0,
                "borderColor": shape_color(border_color, "#1a73e8"),
                "borderStyle": "normal",
                "borderWidth": 2,
                "fontFamily": "arial",
                "fontSize": min(font_size, MAX_FONT_SIZE),
                "textAlign": "center",
                "color": "#1a1a1a",
            },
        }
        return await self._request("POST", f"/boards/{board_id}/shapes", json_data=payload)

    async def create_sticky_note(
        self,
        board_id: str,
        content: str,
        x: float = 0,
        y: float = 0,
        color: Optional[str] = None,
    ) -> VendorResponse:
        payload = {
            "data": {"content": clip(content), "shape": "square"},
            "position": _position(x, y),
            "style": {
                "fillColor": sticky_color(color),
                "textAlign": "center",
                "textAlignVertical": "top",
            },
        }
        return await self._request("POST", f"/boards/{board_id}/sticky_notes", json_data=payload)

    async def create_text(
        self,
        board_id: str,
        content: str,
        x: float = 0,
        y: float = 0,
        width: float = 320,
        font_size: int = 16,
    ) -> VendorResponse:
        payload = {
            "data": {"content": clip(content)},
            "position": _position(x, y),
            "geometry": {"width": width},
            "style": {
                "color": "#1a1a1a",
                "fontFamily": "arial",
                "fontSize": min(font_size, MAX_FONT_SIZE),
                "textAlign": "center",
            },
        }
        return await self._request("POST", f"/boards/{board_id}/texts", json_data=payload)
