#!/usr/bin/env python3
"""
Check connectivity to every configured integration.

Probes Linear (viewer and teams), Miro (configured board, nothing is
created), Notion (PRD database) and Pinecone (index list), and prints
what to fix when a key is rejected.

Usage:
    python scripts/check_integrations.py
    python scripts/check_integrations.py --miro-board <board_id>
    python scripts/check_integrations.py --seed-knowledge
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config.settings import Settings, get_settings
from src.errors import ProductMaestroError
from src.integrations import LinearClient, MiroClient, NotionClient, PineconeClient
from src.integrations.base import VendorResponse

REMEDIATION = {
    "linear": "Regenerate your API key at Linear > Settings > API and update LINEAR_API_KEY.",
    "miro": "Regenerate your access token (or rerun the OAuth flow) and update MIRO_API_KEY.",
    "notion": (
        "Regenerate your integration secret and make sure the PRD database is "
        "shared with the integration (NOTION_API_KEY, NOTION_PRD_DATABASE_ID)."
    ),
    "pinecone": "Regenerate your API key in the Pinecone console and update PINECONE_API_KEY.",
}


def report(vendor: str, label: str, response: VendorResponse) -> bool:
    if response.success:
        print(f"  OK    {label}")
        return True
    print(f"  FAIL  {label}: {response.status} {response.message}")
    if response.status in (401, 403):
        print(f"        -> {REMEDIATION[vendor]}")
    return False


async def check_linear(settings: Settings) -> bool:
    print("\nLinear")
    if not settings.linear_enabled:
        print("  SKIP  LINEAR_API_KEY is not set")
        return True
    client = LinearClient(settings.linear_api_key, settings.linear_api_url, settings.http_timeout_seconds)
    try:
        viewer = await client.get_viewer()
        if not report("linear", "viewer", viewer):
            return False
        print(f"        signed in as {viewer.data.get('name')} <{viewer.data.get('email')}>")

        teams = await client.get_teams()
        if not report("linear", "teams", teams):
            return False
        for team in teams.data:
            marker = "*" if team.get("id") == settings.linear_team_id else " "
            print(f"      {marker} {team.get('key')}: {team.get('name')} ({team.get('id')})")
        if settings.linear_team_id and not any(t.get("id") == settings.linear_team_id for t in teams.data):
            print(f"  WARN  LINEAR_TEAM_ID {settings.linear_team_id} is not one of your teams")
        return True
    finally:
        await client.close()


async def check_miro(settings: Settings, board_id: str | None) -> bool:
    print("\nMiro")
    if not settings.miro_enabled:
        print("  SKIP  MIRO_API_KEY is not set")
        if settings.miro_client_id:
            print("        OAuth is configured: open /api/integrations/miro/authorize to connect")
        return True
    if not board_id:
        print("  SKIP  pass --miro-board to fetch an existing board")
        return True
    client = MiroClient(settings.miro_api_key, settings.miro_api_url, settings.http_timeout_seconds)
    try:
        board = await client.get_board(board_id)
        ok = report("miro", f"board {board_id}", board)
        if ok:
            print(f"        {board.data.get('name')} {board.data.get('viewLink')}")
        return ok
    finally:
        await client.close()


async def check_notion(settings: Settings) -> bool:
    print("\nNotion")
    if not settings.notion_enabled:
        print("  SKIP  NOTION_API_KEY is not set")
        return True
    if not settings.notion_prd_database_id:
        print("  WARN  NOTION_PRD_DATABASE_ID is not set; PRDs will not be published")
        return True
    client = NotionClient(
        settings.notion_api_key,
        settings.notion_api_url,
        settings.notion_version,
        settings.http_timeout_seconds,
    )
    try:
        return report("notion", "PRD database", await client.retrieve_database(settings.notion_prd_database_id))
    finally:
        await client.close()


async def check_pinecone(settings: Settings, seed: bool) -> bool:
    print("\nPinecone")
    if not settings.pinecone_enabled:
        print("  SKIP  PINECONE_API_KEY or PINECONE_HOST is not set")
        return True
    client = PineconeClient(
        settings.pinecone_api_key,
        settings.pinecone_host,
        settings.pinecone_control_url,
        settings.http_timeout_seconds,
    )
    try:
        indexes = await client.list_indexes()
        if not report("pinecone", "indexes", indexes):
            return False
        names = [index.get("name") for index in indexes.data]
        print(f"        {', '.join(names) or '(none)'}")
        if settings.pinecone_index_name not in names:
            print(f"  WARN  index {settings.pinecone_index_name} does not exist")

        if seed:
            from langchain_google_genai import GoogleGenerativeAIEmbeddings

            from src.knowledge import DEFAULT_DOCUMENTS, KnowledgeBase
            from src.workflow.services import EMBEDDING_MODEL

            knowledge = KnowledgeBase(
                client,
                GoogleGenerativeAIEmbeddings(model=EMBEDDING_MODEL, google_api_key=settings.google_api_key),
            )
            count = await knowledge.index_documents(DEFAULT_DOCUMENTS)
            print(f"  OK    seeded {count} knowledge documents")
        return True
    finally:
        await client.close()


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    print("Checking Product Maestro integrations...")
    results = []
    for check in (
        check_linear(settings),
        check_miro(settings, args.miro_board),
        check_notion(settings),
        check_pinecone(settings, args.seed_knowledge),
    ):
        try:
            results.append(await check)
        except ProductMaestroError as e:
            print(f"  FAIL  {e.message}")
            results.append(False)

    print("\nAll checks passed" if all(results) else "\nSome checks failed")
    return 0 if all(results) else 1


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--miro-board", help="Existing Miro board id to fetch")
    parser.add_argument("--seed-knowledge", action="store_true", help="Index the default knowledge documents")
    sys.exit(asyncio.run(run(parser.parse_args())))


if __name__ == "__main__":
    main()
