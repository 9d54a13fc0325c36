"""
Prompt builders for the four analysis types.

System prompts describe the analyst role and the exact JSON contract the
response parser expects; user prompts carry the league and player context.
"""

from typing import Any, Dict, List, Optional

from fantasy_ai.models.ai_models import (
    LineupOptimizerRequest,
    StartSitRequest,
    TradeAnalysisRequest,
    WaiverWireRequest,
)


def risk_tolerance(preferences) -> str:
    if preferences is not None and preferences.risk_tolerance is not None:
        return preferences.risk_tolerance.value
    return "moderate"


def _yes_no(flag: Optional[bool]) -> str:
    return "Yes" if flag else "No"


def _league_line(league_data: Dict[str, Any]) -> str:
    league = league_data.get("league") or {}
    return f"League: {league.get('name', 'Unknown League')} ({league.get('season', 'N/A')})"


def player_line(player_id: str, players: Dict[str, Any]) -> str:
    player = players.get(player_id)
    if not player:
        return f"Player {player_id}: Data not available"
    name = player.get("full_name") or player.get("player_name") or "Unknown"
    return (
        f"Player {player_id} ({name}): {player.get('position')} - "
        f"{player.get('team') or 'FA'} - Status: {player.get('status') or 'Active'}"
    )


def _roster_line(roster: Optional[Dict[str, Any]]) -> str:
    if not roster:
        return "Roster not found"
    players = roster.get("players") or []
    return f"Roster Players: {', '.join(players) if players else 'No players found'}"


# ============================================================================
# START / SIT
# ============================================================================


def start_sit_system_prompt(request: StartSitRequest) -> str:
    return f"""You are an expert fantasy football analyst specializing in start/sit decisions. Your goal is to help users set the highest-scoring weekly lineup.

ANALYSIS FRAMEWORK:
1. Consider matchup difficulty against the opposing defense
2. Factor in player health, recent performance trends and usage
3. Account for weather and expected game script
4. Weigh upside against floor for a user risk tolerance of: {risk_tolerance(request.user_preferences)}

RISK TOLERANCE GUIDELINES:
- Conservative: prefer high-floor, consistent performers
- Moderate: balance floor and ceiling, lean on favorable matchups
- Aggressive: chase boom potential and accept variance

OUTPUT REQUIREMENTS:
Respond with a single valid JSON object:
{{
  "recommendations": [
    {{
      "playerId": "string",
      "playerName": "string",
      "position": "string",
      "recommendation": "start|sit|flex",
      "confidence": 0.0-1.0,
      "reasoning": "detailed explanation",
      "projectedPoints": {{"floor": number, "ceiling": number, "expected": number}},
      "matchupAnalysis": {{
        "opponent": "string",
        "difficulty": "easy|medium|hard",
        "keyFactors": ["string"]
      }},
      "riskFactors": ["string"],
      "alternativeOptions": ["optional alternatives"]
    }}
  ],
  "optimalLineup": {{"QB": "playerId", "RB1": "playerId", "RB2": "playerId", "WR1": "playerId", "WR2": "playerId", "TE": "playerId", "FLEX": "playerId", "K": "playerId", "DEF": "playerId"}},
  "benchPlayers": ["playerId"],
  "confidenceScore": 0.0-1.0,
  "weeklyOutlook": "overall summary",
  "keyInsights": ["string"]
}}

Be thorough but concise. Focus on actionable insights."""


def start_sit_user_prompt(
    request: StartSitRequest,
    league_data: Dict[str, Any],
    players: Dict[str, Any],
    user_roster: Optional[Dict[str, Any]],
) -> str:
    league = league_data.get("league") or {}
    prefs = request.user_preferences
    preferences_text = ""
    if prefs is not None:
        preferences_text = f"""
User Preferences:
- Risk Tolerance: {risk_tolerance(prefs)}
- Prioritize Upside: {_yes_no(prefs.prioritize_upside)}
- Avoid Injured Players: {_yes_no(prefs.avoid_injured_players)}
"""

    player_info = "\n".join(player_line(player_id, players) for player_id in request.player_ids)
    starters = (user_roster or {}).get("starters") or []

    return f"""Please analyze the start/sit decisions for my fantasy team this week.

LEAGUE DETAILS:
{_league_line(league_data)}
Scoring: {'PPR' if league.get('scoring_settings') else 'Standard'}
Total Teams: {league.get('total_rosters', 'N/A')}
Week: {request.week}
Current Starters: {', '.join(starters) if starters else 'Unknown'}

PLAYER INFORMATION:
{player_info}

AVAILABLE ROSTER SLOTS: {', '.join(request.roster_slots)}
{preferences_text}
Provide detailed start/sit recommendations with an optimal lineup. Consider:
- Projected points against realistic scoring potential
- Matchup advantages and disadvantages
- Player health and status
- Recent form and usage trends
- Weather and game script
- Risk/reward trade-offs

Maximize my team's scoring potential for this specific week."""


# ============================================================================
# TRADE
# ============================================================================

_TEAM_ANALYSIS_SCHEMA = """{
    "grade": "A+|A|A-|B+|B|B-|C+|C|C-|D+|D|F",
    "impact": {
      "positionalChange": {
        "QB": {"before": number, "after": number, "change": number},
        "RB": {"before": number, "after": number, "change": number},
        "WR": {"before": number, "after": number, "change": number},
        "TE": {"before": number, "after": number, "change": number}
      },
      "startingLineupImpact": number,
      "depthChartImpact": number,
      "byeWeekHelp": boolean,
      "playoffImplications": "string"
    },
    "recommendation": {
      "decision": "accept|reject|counter|consider",
      "confidence": 0.0-1.0,
      "reasoning": "string",
      "pros": ["string"],
      "cons": ["string"]
    }
  }"""


def trade_system_prompt(request: TradeAnalysisRequest) -> str:
    return f"""You are an expert fantasy football trade analyst. Give a complete trade evaluation that lets the user make an informed decision.

ANALYSIS FRAMEWORK:
1. Value players on current performance, projections and positional scarcity
2. Consider team needs, roster construction and depth
3. Account for schedule strength, injury risk and role security
4. Factor in league format, scoring and trade deadline timing
5. Apply risk tolerance: {risk_tolerance(request.user_preferences)}

OUTPUT REQUIREMENTS:
Respond with a single valid JSON object:
{{
  "fairnessScore": 0-10,
  "team1Analysis": {_TEAM_ANALYSIS_SCHEMA},
  "team2Analysis": {_TEAM_ANALYSIS_SCHEMA},
  "marketValue": {{
    "team1Total": number,
    "team2Total": number,
    "difference": number,
    "valueVerdict": "fair|team1_wins|team2_wins"
  }},
  "riskAssessment": {{
    "team1Risk": "low|medium|high",
    "team2Risk": "low|medium|high",
    "riskFactors": ["string"]
  }},
  "timing": {{
    "optimalTiming": boolean,
    "seasonContext": "string",
    "urgency": "low|medium|high"
  }},
  "summary": "string",
  "keyInsights": ["string"]
}}"""


def _analytics_text(analytics: Optional[Dict[str, Any]]) -> str:
    if not analytics:
        return ""
    metrics = analytics.get("metrics") or {}
    consistency = metrics.get("consistency_score") or analytics.get("consistency_score") or "N/A"
    trend = metrics.get("upward_trend") or analytics.get("trend_direction") or "steady"
    rank = metrics.get("position_rank") or analytics.get("position_rank") or "N/A"
    avg = analytics.get("avg_fantasy_points_per_game") or "N/A"
    return (
        f"\n  - Analytics: {consistency}/100 consistency, {trend} trend"
        f"\n  - Position Rank: {rank}"
        f"\n  - Performance: {avg} avg PPG"
    )


def trade_user_prompt(
    request: TradeAnalysisRequest,
    league_data: Dict[str, Any],
    players: Dict[str, Any],
    user_roster: Optional[Dict[str, Any]],
    analytics: Dict[str, Any],
) -> str:
    prefs = request.user_preferences
    preferences_text = ""
    if prefs is not None:
        preferences_text = f"""
User Preferences:
- Risk Tolerance: {risk_tolerance(prefs)}
- Favor Long Term: {_yes_no(prefs.favor_long_term)}
- Priority Position: {prefs.prioritize_position or 'None'}
"""

    player_info = "\n".join(
        player_line(player_id, players) + _analytics_text(analytics.get(player_id))
        for player_id in request.all_player_ids()
    )

    return f"""Please analyze this trade proposal for my fantasy team.

LEAGUE DETAILS:
{_league_line(league_data)}
Week: {request.week}
My Roster: {_roster_line(user_roster)}

TRADE PROPOSAL:
Team 1 Gives: {', '.join(request.team1_players.give)}
Team 1 Receives: {', '.join(request.team1_players.receive)}

Team 2 Gives: {', '.join(request.team2_players.give)}
Team 2 Receives: {', '.join(request.team2_players.receive)}

PLAYER INFORMATION:
{player_info}
{preferences_text}
ANALYSIS REQUIREMENTS:
Use the analytics above (consistency, position rank, trend, points per game) to value each player.

Include:
- Overall trade grade and fairness
- Impact on both rosters
- Individual player value
- Risk factors
- Counter-offer ideas where useful

Focus on actionable insight for the trade decision."""


# ============================================================================
# WAIVER WIRE
# ============================================================================


def waiver_wire_system_prompt(request: WaiverWireRequest) -> str:
    return f"""You are an expert fantasy football waiver wire analyst. Identify the best available players and the right acquisition strategy.

ANALYSIS FRAMEWORK:
1. Find high-value available players based on opportunity, talent and matchups
2. Consider positional needs and roster construction
3. Manage FAAB budget and waiver priority
4. Balance short-term and long-term value per user preferences
5. Apply risk tolerance: {risk_tolerance(request.user_preferences)}

OUTPUT REQUIREMENTS:
Respond with a single valid JSON object:
{{
  "recommendations": [
    {{
      "playerId": "string",
      "playerName": "string",
      "position": "string",
      "priority": "high|medium|low",
      "bidAmount": number,
      "reasoning": "string",
      "projectedValue": {{"thisWeek": number, "nextThreeWeeks": number, "seasonLong": number}},
      "availabilityLikelihood": 0.0-1.0,
      "dropCandidates": ["playerId"]
    }}
  ],
  "streamingOptions": {{"QB": [], "DEF": [], "K": []}},
  "budgetStrategy": {{
    "recommendedSpend": number,
    "savingsTarget": number,
    "reasoning": "string"
  }},
  "dropCandidates": [
    {{
      "playerId": "string",
      "playerName": "string",
      "dropPriority": "safe|consider|drop",
      "reasoning": "string"
    }}
  ],
  "keyInsights": ["string"]
}}"""


def waiver_wire_user_prompt(
    request: WaiverWireRequest,
    league_data: Dict[str, Any],
    players: Dict[str, Any],
    user_roster: Optional[Dict[str, Any]],
) -> str:
    prefs = request.user_preferences
    preferences_text = ""
    if prefs is not None:
        preferences_text = f"""
User Preferences:
- Risk Tolerance: {risk_tolerance(prefs)}
- Streaming Strategy: {_yes_no(prefs.streaming_strategy)}
- Dynasty Mode: {_yes_no(prefs.dynasty_mode)}
"""

    details: List[str] = [_league_line(league_data), f"Week: {request.week}"]
    if request.budget is not None:
        details.append(f"FAAB Budget Remaining: ${request.budget:g}")
    if request.priority_position is not None:
        details.append(f"Waiver Priority: {request.priority_position}")
    if request.target_positions:
        details.append(f"Target Positions: {', '.join(request.target_positions)}")

    roster_text = _roster_line(user_roster)
    if user_roster and user_roster.get("players"):
        roster_text += "\n" + "\n".join(player_line(pid, players) for pid in user_roster["players"])

    newline = "\n"
    return f"""Please analyze waiver wire opportunities for my fantasy team.

LEAGUE DETAILS:
{newline.join(details)}

CURRENT ROSTER:
{roster_text}
{preferences_text}
Include:
- Priority pickups with bid amounts
- Streaming options for QB, DEF and K
- FAAB budget strategy
- Drop candidates from my roster
- Key strategic insights

Focus on maximizing roster value and weekly scoring."""


# ============================================================================
# LINEUP OPTIMIZER
# ============================================================================


def lineup_system_prompt(request: LineupOptimizerRequest) -> str:
    optimization = request.optimization.value if request.optimization else "balanced"
    return f"""You are an expert fantasy football lineup optimizer. Build the highest-scoring lineup from projections, matchups and constraints.

OPTIMIZATION STRATEGY: {optimization}
- ceiling: maximize upside, accept variance
- floor: prioritize safe, consistent performers
- balanced: weigh floor and ceiling evenly

OUTPUT REQUIREMENTS:
Respond with a single valid JSON object:
{{
  "optimalLineup": {{
    "QB": {{"playerId": "string", "playerName": "string", "projectedPoints": number, "confidence": 0.0-1.0}}
  }},
  "alternativeLineups": [
    {{"name": "string", "lineup": {{"QB": "playerId"}}, "projectedTotal": number, "reasoning": "string"}}
  ],
  "benchOptimization": [
    {{"playerId": "string", "playerName": "string", "flexEligible": boolean, "projectedPoints": number}}
  ],
  "projectedTotal": number,
  "confidenceScore": 0.0-1.0,
  "riskFactors": ["string"],
  "keyDecisions": [
    {{
      "position": "string",
      "alternatives": [
        {{"playerId": "string", "playerName": "string", "pros": ["string"], "cons": ["string"]}}
      ]
    }}
  ]
}}"""


def lineup_user_prompt(
    request: LineupOptimizerRequest,
    league_data: Dict[str, Any],
    players: Dict[str, Any],
    user_roster: Optional[Dict[str, Any]],
) -> str:
    constraints_text = ""
    constraints = request.constraints
    if constraints is not None:
        stacks = constraints.stack_preferences
        constraints_text = f"""
Constraints:
- Must Start: {', '.join(constraints.must_start or []) or 'None'}
- Must Sit: {', '.join(constraints.must_sit or []) or 'None'}
- QB/WR Stack Preference: {_yes_no(stacks.qb_wr if stacks else None)}
- QB/TE Stack Preference: {_yes_no(stacks.qb_te if stacks else None)}
- Avoid Opponents: {', '.join(constraints.avoid_opponents or []) or 'None'}
"""

    prefs = request.user_preferences
    preferences_text = ""
    if prefs is not None:
        preferences_text = f"""
User Preferences:
- Risk Tolerance: {risk_tolerance(prefs)}
- Favor Projections: {_yes_no(prefs.favor_projections)}
- Favor Matchups: {_yes_no(prefs.favor_matchups)}
"""

    roster_text = _roster_line(user_roster)
    if user_roster and user_roster.get("players"):
        roster_text += "\n" + "\n".join(player_line(pid, players) for pid in user_roster["players"])
    roster_positions = (league_data.get("league") or {}).get("roster_positions") or []

    return f"""Please optimize my fantasy football lineup for maximum scoring.

LEAGUE DETAILS:
{_league_line(league_data)}
Week: {request.week}
Optimization Target: {request.optimization.value if request.optimization else 'balanced'}
Lineup Slots: {', '.join(roster_positions) if roster_positions else 'Standard'}

AVAILABLE PLAYERS:
{roster_text}
{constraints_text}{preferences_text}
Include:
- Best lineup with projected points
- Alternative lineups for other strategies
- Bench and flex considerations
- Key decisions and trade-offs
- Risk factors and confidence

Maximize expected points under the chosen optimization strategy."""
