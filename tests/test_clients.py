"""
Tests for the Sleeper API client and the MCP JSON-RPC client
"""
import asyncio
import json

import httpx
import pytest

from fantasy_ai.core.errors import SleeperAPIError
from fantasy_ai.services.mcp_client import DEFAULT_SLEEPER_TOOLS, MCPClient, MCPToolCall, tools_from_openrpc
from fantasy_ai.services.sleeper_client import PLAYERS_CACHE_KEY, SleeperClient, find_user_roster


def sleeper_client(handler, cache=None, max_retries=0):
    return SleeperClient(
        base_url="https://sleeper.test/v1",
        max_retries=max_retries,
        retry_delay=0,
        cache=cache,
        transport=httpx.MockTransport(handler),
    )


def mcp_client(handler, retries=0):
    return MCPClient(
        base_url="http://mcp.test",
        retries=retries,
        rpc_path="/rpc",
        retry_delay=0,
        transport=httpx.MockTransport(handler),
    )


class TestSleeperClient:
    def test_league_details(self):
        routes = {
            "/v1/league/123": {"name": "Dynasty Bros", "season": "2024"},
            "/v1/league/123/rosters": [{"roster_id": 1, "owner_id": "u1"}],
            "/v1/league/123/users": [{"user_id": "u1"}],
        }

        details = asyncio.run(
            sleeper_client(lambda request: httpx.Response(200, json=routes[request.url.path])).get_league_details("123")
        )

        assert details["league"]["name"] == "Dynasty Bros"
        assert details["rosters"][0]["owner_id"] == "u1"
        assert details["users"] == [{"user_id": "u1"}]

    def test_players_are_cached(self, memory_cache):
        calls = []

        def handler(request):
            calls.append(request.url.path)
            return httpx.Response(200, json={"p1": {"full_name": "Josh Allen"}})

        client = sleeper_client(handler, cache=memory_cache)
        first = asyncio.run(client.get_all_players())
        second = asyncio.run(client.get_all_players())

        assert first == second == {"p1": {"full_name": "Josh Allen"}}
        assert calls == ["/v1/players/nfl"]
        assert asyncio.run(memory_cache.get(PLAYERS_CACHE_KEY)) == first

    def test_retries_server_errors(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            if len(attempts) < 3:
                return httpx.Response(502)
            return httpx.Response(200, json={"week": 5})

        state = asyncio.run(sleeper_client(handler, max_retries=3).get_nfl_state())

        assert state == {"week": 5}
        assert len(attempts) == 3

    def test_client_errors_are_not_retried(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            return httpx.Response(404)

        with pytest.raises(SleeperAPIError) as exc_info:
            asyncio.run(sleeper_client(handler, max_retries=3).get_league("missing"))

        assert len(attempts) == 1
        assert exc_info.value.status_code == 404
        assert "after 1 attempts" in str(exc_info.value)

    def test_health_check(self):
        assert asyncio.run(sleeper_client(lambda r: httpx.Response(200, json={})).health_check()) is True
        assert asyncio.run(sleeper_client(lambda r: httpx.Response(500)).health_check()) is False

    def test_find_user_roster(self):
        rosters = [{"roster_id": 1, "owner_id": "a"}, {"roster_id": 2, "owner_id": "b"}]

        assert find_user_roster(rosters, "b")["roster_id"] == 2
        assert find_user_roster(rosters, "c") is None
        assert find_user_roster(rosters, None) is None


class TestMCPClient:
    def test_initialize_from_openrpc(self):
        document = {
            "methods": [
                {
                    "name": "get_league",
                    "summary": "Get a league",
                    "params": [{"name": "league_id", "required": True, "schema": {"type": "string"}}],
                }
            ]
        }
        client = mcp_client(lambda request: httpx.Response(200, json=document))

        asyncio.run(client.initialize())

        assert [tool.name for tool in client.available_tools] == ["get_league"]
        assert client.available_tools[0].input_schema["required"] == ["league_id"]
        assert client.is_tool_available("get_league")

    def test_initialize_falls_back_to_defaults(self):
        client = mcp_client(lambda request: httpx.Response(404))

        asyncio.run(client.initialize())

        assert len(client.available_tools) == len(DEFAULT_SLEEPER_TOOLS)
        assert client.is_tool_available("get_players_nfl")

    def test_openrpc_without_methods(self):
        assert tools_from_openrpc({}) == []

    def test_call_tool(self):
        seen = []

        def handler(request):
            payload = json.loads(request.content)
            seen.append(payload)
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": {"week": 5}})

        result = asyncio.run(mcp_client(handler).call_tool(MCPToolCall("get_nfl_state", {})))

        assert result.is_error is False
        assert result.content == {"week": 5}
        assert seen[0]["method"] == "get_nfl_state"

    def test_call_tool_reports_errors(self):
        def rpc_error(request):
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "nope"}})

        def unreachable(request):
            raise httpx.ConnectError("refused")

        error = asyncio.run(mcp_client(rpc_error).call_tool(MCPToolCall("bad", {})))
        assert error.is_error is True
        assert error.error_message == "nope"

        down = asyncio.run(mcp_client(unreachable, retries=1).call_tool(MCPToolCall("get_nfl_state", {})))
        assert down.is_error is True

    @pytest.mark.parametrize("body", [[1, 2], "ok", 42])
    def test_non_object_reply_is_an_error(self, body):
        client = mcp_client(lambda request: httpx.Response(200, json=body))

        result = asyncio.run(client.call_tool(MCPToolCall("get_nfl_state", {})))

        assert result.is_error is True
        assert result.error_message == "Invalid JSON-RPC response"
        assert asyncio.run(client.get_player_analytics("p1")) is None

    def test_player_analytics(self):
        seen = []

        def handler(request):
            payload = json.loads(request.content)
            seen.append(payload)
            return httpx.Response(
                200, json={"jsonrpc": "2.0", "id": payload["id"], "result": {"player_name": "Josh Allen"}}
            )

        analytics = asyncio.run(mcp_client(handler).get_player_analytics("p1"))

        assert analytics == {"player_name": "Josh Allen"}
        assert seen[0]["method"] == "sleeper.getPlayerAnalytics"
        assert seen[0]["params"] == [{"playerId": "p1"}]

    def test_player_analytics_unavailable(self):
        client = mcp_client(lambda request: httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": None}))

        assert asyncio.run(client.get_player_analytics("p1")) is None

    def test_health_check_falls_back_to_rpc(self):
        def handler(request):
            if request.url.path == "/health":
                return httpx.Response(404)
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"week": 1}})

        assert asyncio.run(mcp_client(handler).health_check()) is True
