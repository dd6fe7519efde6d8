"""Vendor integrations: Linear, Miro, Notion, Pinecone."""
from src.integrations.base import VendorClient, VendorResponse
from src.integrations.batch import BatchFailure, BatchResult, run_batch
from src.integrations.linear import LinearClient
from src.integrations.miro import MiroClient
from src.integrations.miro_oauth import (
    JsonFileTokenStore,
    MiroOAuthFlow,
    OAuthToken,
    TokenStore,
)
from src.integrations.notion import NotionClient
from src.integrations.pinecone import PineconeClient

__all__ = [
    "VendorClient",
    "VendorResponse",
    "BatchFailure",
    "BatchResult",
    "run_batch",
    "LinearClient",
    "MiroClient",
    "NotionClient",
    "PineconeClient",
    "MiroOAuthFlow",
    "OAuthToken",
    "TokenStore",
    "JsonFileTokenStore",
]
