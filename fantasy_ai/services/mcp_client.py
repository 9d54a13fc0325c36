"""
JSON-RPC client for the Sleeper MCP server.

The backend uses it for per-player analytics during trade analysis; the AI
proxy uses it to expose Sleeper tools to the language models.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from fantasy_ai.core.config import settings

logger = logging.getLogger(__name__)

_request_ids = itertools.count(1)


@dataclass
class MCPTool:
    name: str
    description: str
    input_schema: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass
class MCPToolCall:
    name: str
    arguments: Any
    id: Optional[str] = None


@dataclass
class MCPResponse:
    content: Any = None
    is_error: bool = False
    error_message: Optional[str] = None


def _schema(properties: Optional[Dict[str, Any]] = None, required: Optional[List[str]] = None):
    return {"type": "object", "properties": properties or {}, "required": required or []}


_LEAGUE_ID = {"league_id": {"type": "string", "description": "Sleeper league ID"}}
_NFL = {"type": "string", "description": "Sport (nfl)", "enum": ["nfl"]}

DEFAULT_SLEEPER_TOOLS = [
    MCPTool("get_nfl_state", "Get current NFL state including week and season information", _schema()),
    MCPTool(
        "get_user",
        "Get user information by username or user ID",
        _schema({"username": {"type": "string", "description": "Sleeper username"}}, ["username"]),
    ),
    MCPTool(
        "get_user_leagues",
        "Get all leagues for a specific user and season",
        _schema(
            {
                "user_id": {"type": "string", "description": "Sleeper user ID"},
                "sport": _NFL,
                "season": {"type": "string", "description": 'Season year (e.g., "2024")'},
            },
            ["user_id", "sport", "season"],
        ),
    ),
    MCPTool("get_league", "Get detailed league information", _schema(_LEAGUE_ID, ["league_id"])),
    MCPTool("get_league_rosters", "Get all rosters in a league", _schema(_LEAGUE_ID, ["league_id"])),
    MCPTool("get_league_users", "Get all users in a league", _schema(_LEAGUE_ID, ["league_id"])),
    MCPTool(
        "get_league_matchups",
        "Get matchups for a specific week in a league",
        _schema(
            {**_LEAGUE_ID, "week": {"type": "number", "description": "Week number (1-18)"}},
            ["league_id", "week"],
        ),
    ),
    MCPTool("get_players_nfl", "Get all NFL players data", _schema()),
    MCPTool(
        "get_player_stats",
        "Get player statistics for a specific season and week",
        _schema(
            {
                "sport": _NFL,
                "season": {"type": "string", "description": "Season year"},
                "season_type": {
                    "type": "string",
                    "description": "regular or post",
                    "enum": ["regular", "post"],
                },
                "week": {"type": "number", "description": "Week number (optional for season stats)"},
                "position": {"type": "string", "description": "Player position filter (optional)"},
            },
            ["sport", "season", "season_type"],
        ),
    ),
    MCPTool(
        "get_projections",
        "Get player projections for a specific season and week",
        _schema(
            {
                "sport": _NFL,
                "season": {"type": "string", "description": "Season year"},
                "week": {"type": "number", "description": "Week number"},
            },
            ["sport", "season", "week"],
        ),
    ),
]


def tools_from_openrpc(document: Dict[str, Any]) -> List[MCPTool]:
    tools = []
    for method in document.get("methods") or []:
        params = method.get("params") or []
        properties = {}
        for param in params:
            schema = param.get("schema") or {}
            prop = {"type": schema.get("type", "string"), "description": param.get("description", "")}
            if schema.get("enum"):
                prop["enum"] = schema["enum"]
            properties[param["name"]] = prop
        tools.append(
            MCPTool(
                name=method["name"],
                description=method.get("summary") or method.get("description") or f"Execute {method['name']}",
                input_schema=_schema(properties, [p["name"] for p in params if p.get("required")]),
            )
        )
    return tools


class MCPClient:
    """JSON-RPC 2.0 client; tool calls report failures instead of raising"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
        rpc_path: str = "/",
        retry_delay: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.MCP_SERVER_URL).rstrip("/")
        self.timeout = timeout or settings.MCP_SERVER_TIMEOUT
        self.retries = settings.MCP_SERVER_RETRIES if retries is None else retries
        self.rpc_path = rpc_path
        self.retry_delay = retry_delay
        self._transport = transport
        self.available_tools: List[MCPTool] = []

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or self.timeout,
            headers={"Content-Type": "application/json"},
            transport=self._transport,
        )

    async def initialize(self) -> None:
        logger.info("Initializing MCP client...")
        try:
            async with self._client() as client:
                response = await client.get("/openrpc.json")
                response.raise_for_status()
                self.available_tools = tools_from_openrpc(response.json())
        except Exception as e:
            logger.warning(f"Failed to load MCP tools, using default Sleeper tools: {e}")
            self.available_tools = list(DEFAULT_SLEEPER_TOOLS)
        logger.info(f"MCP client initialized with {len(self.available_tools)} tools")

    async def _post_rpc(self, method: str, params: Any, timeout: Optional[float] = None) -> Dict[str, Any]:
        payload = {"jsonrpc": "2.0", "id": next(_request_ids), "method": method, "params": params}
        attempt = 0
        while True:
            try:
                async with self._client(timeout) as client:
                    response = await client.post(self.rpc_path, json=payload)
                    response.raise_for_status()
                    return response.json()
            except (httpx.TransportError, httpx.HTTPStatusError):
                if attempt < self.retries:
                    attempt += 1
                    logger.info(f"Retrying MCP request ({attempt}/{self.retries}): {method}")
                    await asyncio.sleep(self.retry_delay * attempt)
                    continue
                raise

    async def call_tool(self, tool_call: MCPToolCall, timeout: Optional[float] = None) -> MCPResponse:
        logger.info(f"Calling MCP tool: {tool_call.name}")
        try:
            data = await self._post_rpc(tool_call.name, tool_call.arguments, timeout)
        except Exception as e:
            logger.error(f"MCP tool call failed for {tool_call.name}: {e}")
            return MCPResponse(is_error=True, error_message=str(e) or type(e).__name__)

        if not isinstance(data, dict):
            logger.error(f"MCP tool call returned a non-object body for {tool_call.name}")
            return MCPResponse(is_error=True, error_message="Invalid JSON-RPC response")

        if data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            return MCPResponse(is_error=True, error_message=message or "Unknown MCP error")

        return MCPResponse(content=data.get("result"))

    async def call_multiple_tools(self, tool_calls: List[MCPToolCall]) -> List[MCPResponse]:
        return list(await asyncio.gather(*(self.call_tool(call) for call in tool_calls)))

    async def get_player_analytics(self, player_id: str, timeout: float = 3.0) -> Optional[Dict[str, Any]]:
        """Analytics for one player, or None when the server cannot provide them"""
        try:
            result = await asyncio.wait_for(
                self.call_tool(
                    MCPToolCall("sleeper.getPlayerAnalytics", [{"playerId": player_id}]),
                    timeout=timeout,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Analytics timeout for player {player_id}")
            return None

        if result.is_error or not isinstance(result.content, dict):
            logger.warning(f"Failed to get analytics for player {player_id}: {result.error_message}")
            return None
        return result.content

    def is_tool_available(self, tool_name: str) -> bool:
        return any(tool.name == tool_name for tool in self.available_tools)

    async def health_check(self) -> bool:
        try:
            async with self._client() as client:
                response = await client.get("/health")
                if response.status_code == 200:
                    return True
        except httpx.HTTPError as e:
            logger.debug(f"MCP /health unavailable: {e}")

        result = await self.call_tool(MCPToolCall("get_nfl_state", {}))
        return not result.is_error
