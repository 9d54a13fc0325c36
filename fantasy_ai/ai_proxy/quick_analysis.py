"""
Single-player analyses served by the AI proxy. The models gather their own
data through the MCP tools, so these prompts carry ids only.
"""

from typing import Any, Dict, List, Optional
import logging

from fantasy_ai.ai_proxy.manager import AIManager
from fantasy_ai.models.ai_models import AIMessage, AIProvider, ProxyChatRequest
from fantasy_ai.services import response_parser

logger = logging.getLogger(__name__)

STREAMING_POSITIONS = ("DEF", "K", "QB")

_PICKUP_SCHEMA = """{
    "playerId": "string",
    "playerName": "string",
    "position": "%s",
    "team": "string",
    "priority": number (1-10, 1 = highest),
    "confidence": number (0-1),
    "reasoning": "detailed explanation",
    "projectedImpact": {
      "immediateStarter": boolean,
      "flexConsideration": boolean,
      "depthUpgrade": boolean,
      "futureUpside": boolean
    },
    "targetWeeks": [number],
    "dropCandidates": ["playerId"],
    "riskFactors": ["string"],
    "upside": "string",
    "recentTrends": {
      "usage": "increasing|stable|decreasing",
      "opportunity": "increasing|stable|decreasing",
      "production": "increasing|stable|decreasing"
    }
  }"""


def _request(system: str, user: str, max_tokens: int) -> ProxyChatRequest:
    return ProxyChatRequest(
        messages=[AIMessage(role="system", content=system), AIMessage(role="user", content=user)],
        max_tokens=max_tokens,
        temperature=0.1,
    )


async def quick_start_sit(
    manager: AIManager, player_id: str, league_id: str, week: int, provider: Optional[AIProvider] = None
) -> Dict[str, Any]:
    request = _request(
        "You are a fantasy football expert. Provide a quick start/sit recommendation for a single player. "
        "Use MCP tools to get current data and respond with valid JSON.",
        f"Quick start/sit recommendation for player {player_id} in league {league_id} for week {week}. "
        "Get player info, stats, and projections using MCP tools.",
        max_tokens=1000,
    )
    response = await manager.chat(request, provider, enable_mcp=True)
    return response_parser.parse_quick_start_sit(response.content, player_id).to_json()


async def quick_pickup(
    manager: AIManager, player_id: str, league_id: str, week: int, provider: Optional[AIProvider] = None
) -> Dict[str, Any]:
    request = _request(
        "You are a fantasy football expert. Provide a quick waiver wire pickup analysis for a single player. "
        "Use MCP tools for current data.\n\n"
        "OUTPUT REQUIREMENTS:\nRespond with a valid JSON object:\n"
        f'{{\n  "pickup": {_PICKUP_SCHEMA % "string"}\n}}',
        f"""Quick waiver wire analysis for player {player_id} in league {league_id} for week {week}.

Get current player data including:
- Recent performance and usage
- Upcoming matchups and opportunities
- Injury status and depth chart position
- Fantasy relevance and upside potential

Use get_league with league ID {league_id} to understand league context.
Use get_players_nfl to get player information.
Use get_player_stats for recent performance data.

Provide a specific pickup recommendation with priority ranking.""",
        max_tokens=1500,
    )
    response = await manager.chat(request, provider, enable_mcp=True)
    return response_parser.parse_quick_pickup(response.content, player_id, week)


async def trade_values(
    manager: AIManager, player_ids: List[str], league_id: str, provider: Optional[AIProvider] = None
) -> List[Dict[str, Any]]:
    """Raises ValueError when the model does not value every requested player"""
    request = _request(
        """You are a fantasy football expert. Gather data with the MCP tools and give player trade values.

Respond with ONLY a valid JSON object:
{
  "playerValues": [
    {
      "playerId": "string",
      "playerName": "string",
      "value": number (0-100 scale),
      "tier": "string (Tier 1-5)",
      "reasoning": "brief explanation"
    }
  ]
}""",
        f"""Get trade values and tiers for players: {', '.join(player_ids)} in league {league_id}.

Use this scale:
- 90-100: Elite tier (Tier 1)
- 80-89: High tier (Tier 2)
- 70-79: Mid tier (Tier 3)
- 60-69: Low tier (Tier 4)
- Below 60: Waiver tier (Tier 5)""",
        max_tokens=2000,
    )
    response = await manager.chat(request, provider, enable_mcp=True)
    try:
        return response_parser.parse_trade_values(response.content, player_ids)
    except ValueError as e:
        logger.error(f"Error getting trade value comparison: {e}")
        raise ValueError(f"Trade value comparison failed: {e}") from e


async def streaming_recommendations(
    manager: AIManager, position: str, league_id: str, week: int, provider: Optional[AIProvider] = None
) -> List[Dict[str, Any]]:
    request = _request(
        f"You are a fantasy football expert specializing in {position} streaming recommendations. "
        "Use MCP tools for current data.\n\n"
        "OUTPUT REQUIREMENTS:\nRespond with a valid JSON object:\n"
        f'{{\n  "streamingOptions": [\n  {_PICKUP_SCHEMA % position}\n  ]\n}}',
        f"""Get the top 3-5 {position} streaming recommendations for league {league_id} week {week}.

Focus on:
- Favorable matchups and opponent rankings
- Availability on the waiver wire
- Recent performance trends
- Game script and weather factors
- Injury and rotation concerns

Rank by expected weekly performance for this position.""",
        max_tokens=2000,
    )
    response = await manager.chat(request, provider, enable_mcp=True)
    return response_parser.parse_streaming(response.content, position, week)


async def run_quick_analysis(
    manager: AIManager,
    analysis_type: str,
    player_id: str,
    league_id: str,
    week: int,
    provider: Optional[AIProvider] = None,
) -> Any:
    logger.info(f"Quick {analysis_type} analysis for player {player_id}")
    if analysis_type == "start_sit":
        return await quick_start_sit(manager, player_id, league_id, week, provider)
    if analysis_type == "waiver_pickup":
        return await quick_pickup(manager, player_id, league_id, week, provider)
    if analysis_type == "trade_value":
        return await trade_values(manager, [player_id], league_id, provider)
    raise ValueError(f"Unsupported analysis type: {analysis_type}")
