"""Notion REST client and block builders."""
from typing import Any, Optional

from src.integrations.base import VendorClient, VendorResponse

# Notion accepts at most this many children per request
MAX_BLOCKS_PER_REQUEST = 100

# Rich text content is limited per text object
MAX_TEXT_LENGTH = 2000


# =============================================================================
# Block builders
# =============================================================================


def _rich_text(text: str) -> list[dict[str, Any]]:
    return [{"type": "text", "text": {"content": text[:MAX_TEXT_LENGTH]}}]


def heading(text: str, level: int = 2) -> dict[str, Any]:
    block_type = f"heading_{min(max(level, 1), 3)}"
    return {"object": "block", "type": block_type, block_type: {"rich_text": _rich_text(text)}}


def paragraph(text: str) -> dict[str, Any]:
    return {"object": "block", "type": "paragraph", "paragraph": {"rich_text": _rich_text(text)}}


def bulleted_list(items: list[str]) -> list[dict[str, Any]]:
    return [
        {
            "object": "block",
            "type": "bulleted_list_item",
            "bulleted_list_item": {"rich_text": _rich_text(item)},
        }
        for item in items
    ]


def divider() -> dict[str, Any]:
    return {"object": "block", "type": "divider", "divider": {}}


def callout(text: str, emoji: str = "💡") -> dict[str, Any]:
    return {
        "object": "block",
        "type": "callout",
        "callout": {"rich_text": _rich_text(text), "icon": {"type": "emoji", "emoji": emoji}},
    }


def page_url(page_id: str) -> str:
    return f"https://notion.so/{page_id.replace('-', '')}"


# =============================================================================
# Client
# =============================================================================


class NotionClient(VendorClient):
    """Client for the Notion REST API."""

    vendor = "notion"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.notion.com/v1",
        notion_version: str = "2022-06-28",
        timeout_seconds: float = 30.0,
    ):
        self.notion_version = notion_version
        super().__init__(api_key, base_url, timeout_seconds)

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Notion-Version": self.notion_version,
        }

    async def retrieve_database(self, database_id: str) -> VendorResponse:
        return await self._request("GET", f"/databases/{database_id}")

    async def create_page(
        self,
        database_id: str,
        title: str,
        children: Optional[list[dict[str, Any]]] = None,
        properties: Optional[dict[str, Any]] = None,
    ) -> VendorResponse:
        """Create a database page with the first batch of children.

        Callers append the rest with ``append_blocks``.
        """
        payload = {
            "parent": {"database_id": database_id},
            "properties": properties or {"Name": {"title": _rich_text(title)}},
            "children": (children or [])[:MAX_BLOCKS_PER_REQUEST],
        }
        return await self._request("POST", "/pages", json_data=payload)

    async def append_blocks(self, page_id: str, blocks: list[dict[str, Any]]) -> VendorResponse:
        """Append blocks in chunks; stops at the first failed chunk."""
        appended = 0
        response = VendorResponse(vendor=self.vendor, success=True, status=200, data={"appended": 0})
        for start in range(0, len(blocks), MAX_BLOCKS_PER_REQUEST):
            chunk = blocks[start:start + MAX_BLOCKS_PER_REQUEST]
            response = await self._request(
                "PATCH", f"/blocks/{page_id}/children", json_data={"children": chunk}
            )
            if not response.success:
                return response
            appended += len(chunk)
        response.data = {"appended": appended}
        return response
