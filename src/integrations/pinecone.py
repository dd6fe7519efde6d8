"""Pinecone REST client.

Index management goes to the control plane; upserts and queries go to the
index host.
"""
from typing import Any, Optional

from src.integrations.base import VendorClient, VendorResponse


class PineconeClient(VendorClient):
    """Client for the Pinecone vector database."""

    vendor = "pinecone"

    def __init__(
        self,
        api_key: str,
        host: str,
        control_url: str = "https://api.pinecone.io",
        timeout_seconds: float = 30.0,
    ):
        if not host.startswith("http"):
            host = f"https://{host}"
        self.control_url = control_url.rstrip("/")
        super().__init__(api_key, host, timeout_seconds)

    def _auth_headers(self) -> dict[str, str]:
        return {"Api-Key": self.api_key}

    async def list_indexes(self) -> VendorResponse:
        response = await self._request("GET", "/indexes", base_url=self.control_url)
        if response.success:
            response.data = (response.data or {}).get("indexes", [])
        return response

    async def create_index(
        self,
        name: str,
        dimension: int = 768,
        metric: str = "cosine",
        cloud: str = "aws",
        region: str = "us-east-1",
    ) -> VendorResponse:
        payload = {
            "name": name,
            "dimension": dimension,
            "metric": metric,
            "spec": {"serverless": {"cloud": cloud, "region": region}},
        }
        return await self._request("POST", "/indexes", json_data=payload, base_url=self.control_url)

    async def upsert(
        self, vectors: list[dict[str, Any]], namespace: Optional[str] = None
    ) -> VendorResponse:
        payload: dict[str, Any] = {"vectors": vectors}
        if namespace:
            payload["namespace"] = namespace
        return await self._request("POST", "/vectors/upsert", json_data=payload)

    async def query(
        self,
        vector: list[float],
        top_k: int = 3,
        namespace: Optional[str] = None,
        filter: Optional[dict[str, Any]] = None,
    ) -> VendorResponse:
        """Query nearest neighbours; data is the list of matches."""
        payload: dict[str, Any] = {
            "vector": vector,
            "topK": top_k,
            "includeMetadata": True,
        }
        if namespace:
            payload["namespace"] = namespace
        if filter:
            payload["filter"] = filter
        response = await self._request("POST", "/query", json_data=payload)
        if response.success:
            response.data = (response.data or {}).get("matches", [])
        return response
