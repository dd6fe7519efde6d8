"""Linear GraphQL client."""
import logging
from typing import Any, Optional

from src.integrations.base import VendorClient, VendorResponse
from src.schemas.product import StoryPriority

logger = logging.getLogger(__name__)


# Linear priority scale: 0 none, 1 urgent, 2 high, 3 medium, 4 low
PRIORITY_MAP = {
    StoryPriority.CRITICAL: 1,
    StoryPriority.HIGH: 2,
    StoryPriority.MEDIUM: 3,
    StoryPriority.LOW: 4,
}


VIEWER_QUERY = """
  query Viewer {
    viewer {
      id
      name
      email
    }
  }
"""

TEAMS_QUERY = """
  query GetTeams {
    teams {
      nodes {
        id
        name
        key
      }
    }
  }
"""

TEAM_QUERY = """
  query GetTeam($id: String!) {
    team(id: $id) {
      id
      name
      key
    }
  }
"""

CREATE_CYCLE_MUTATION = """
  mutation CreateCycle($input: CycleCreateInput!) {
    cycleCreate(input: $input) {
      success
      cycle {
        id
        number
        name
        startsAt
        endsAt
      }
    }
  }
"""

CREATE_ISSUE_MUTATION = """
  mutation CreateIssue($input: IssueCreateInput!) {
    issueCreate(input: $input) {
      success
      issue {
        id
        identifier
        title
        url
      }
    }
  }
"""


class LinearClient(VendorClient):
    """Client for Linear's GraphQL API.

    Linear expects the raw API key in the Authorization header, without a
    Bearer prefix. GraphQL ``errors`` in a 200 response are failures too.
    """

    vendor = "linear"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.linear.app/graphql",
        timeout_seconds: float = 30.0,
    ):
        super().__init__(api_key, base_url, timeout_seconds)

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": self.api_key}

    async def _graphql(
        self, query: str, variables: Optional[dict[str, Any]] = None
    ) -> VendorResponse:
        response = await self._request("POST", "", json_data={"query": query, "variables": variables or {}})
        if not response.success:
            return response

        body = response.data or {}
        errors = body.get("errors")
        if errors:
            message = errors[0].get("message", "GraphQL error")
            logger.warning("Linear GraphQL error", extra={"error": message})
            return VendorResponse(
                vendor=self.vendor,
                success=False,
                status=response.status,
                data=body,
                message=message,
            )
        return VendorResponse(
            vendor=self.vendor, success=True, status=response.status, data=body.get("data") or {}
        )

    async def get_viewer(self) -> VendorResponse:
        response = await self._graphql(VIEWER_QUERY)
        if response.success:
            response.data = response.data.get("viewer")
        return response

    async def get_teams(self) -> VendorResponse:
        response = await self._graphql(TEAMS_QUERY)
        if response.success:
            response.data = (response.data.get("teams") or {}).get("nodes", [])
        return response

    async def get_team(self, team_id: str) -> VendorResponse:
        response = await self._graphql(TEAM_QUERY, {"id": team_id})
        if response.success:
            response.data = response.data.get("team")
        return response

    async def create_cycle(
        self,
        team_id: str,
        name: str,
        starts_at: str,
        ends_at: str,
        description: Optional[str] = None,
    ) -> VendorResponse:
        """Create a cycle; data is the cycle dict on success."""
        payload: dict[str, Any] = {
            "teamId": team_id,
            "name": name,
            "startsAt": starts_at,
            "endsAt": ends_at,
        }
        if description:
            payload["description"] = description
        response = await self._graphql(CREATE_CYCLE_MUTATION, {"input": payload})
        return self._mutation_result(response, "cycleCreate", "cycle")

    async def create_issue(
        self,
        team_id: str,
        title: str,
        description: Optional[str] = None,
        cycle_id: Optional[str] = None,
        estimate: Optional[int] = None,
        priority: Optional[int] = None,
    ) -> VendorResponse:
        """Create an issue; data is the issue dict on success."""
        payload: dict[str, Any] = {"teamId": team_id, "title": title}
        if description:
            payload["description"] = description
        if cycle_id:
            payload["cycleId"] = cycle_id
        if estimate is not None:
            payload["estimate"] = estimate
        if priority is not None:
            payload["priority"] = priority
        response = await self._graphql(CREATE_ISSUE_MUTATION, {"input": payload})
        return self._mutation_result(response, "issueCreate", "issue")

    def _mutation_result(
        self, response: VendorResponse, mutation: str, entity: str
    ) -> VendorResponse:
        if not response.success:
            return response
        result = response.data.get(mutation) or {}
        if not result.get("success") or not result.get(entity):
            return VendorResponse(
                vendor=self.vendor,
                success=False,
                status=response.status,
                data=response.data,
                message=f"{mutation} returned success=false",
            )
        response.data = result[entity]
        return response
