"""
Turns free-form LLM output into typed analysis results.

Models are asked for JSON but routinely wrap it in prose or code fences,
add comments or leave trailing commas. extract_json repairs what it can;
each parse_* function normalises field by field and falls back to a fixed
"analysis unavailable" result when nothing usable comes back.
"""

import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from fantasy_ai.models.ai_models import (
    AlternativeLineup,
    BenchPlayer,
    BudgetStrategy,
    DecisionAlternative,
    DropCandidate,
    KeyDecision,
    LineupOptimizerRequest,
    LineupOptimizerResult,
    LineupSlot,
    MarketValue,
    MatchupAnalysis,
    ProjectedPoints,
    ProjectedValue,
    RiskAssessment,
    StartSitAnalysis,
    StartSitRecommendation,
    StartSitRequest,
    TeamTradeAnalysis,
    TradeAnalysisRequest,
    TradeAnalysisResult,
    TradeImpact,
    TradeRecommendation,
    TradeTiming,
    WaiverWireAnalysis,
    WaiverWireRecommendation,
    WaiverWireRequest,
)

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")

GRADES = ("A+", "A", "A-", "B+", "B", "B-", "C+", "C", "C-", "D+", "D", "F")
LEVELS = ("low", "medium", "high")


# ============================================================================
# JSON EXTRACTION
# ============================================================================


def _strip_comments(text: str) -> str:
    """Remove // and /* */ comments that sit outside string literals"""
    out = []
    i = 0
    in_string = False
    length = len(text)
    while i < length:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < length:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue

        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            newline = text.find("\n", i)
            i = length if newline == -1 else newline
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = length if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _candidates(text: str) -> Iterable[str]:
    for match in _FENCE_RE.finditer(text):
        yield match.group(1)
    yield text


def extract_json(text: str) -> Dict[str, Any]:
    """Pull the outermost JSON object out of an LLM reply"""
    if not text:
        raise ValueError("Empty AI response")

    for candidate in _candidates(text):
        start = candidate.find("{")
        end = candidate.rfind("}")
        if start == -1 or end <= start:
            continue
        snippet = candidate[start : end + 1]
        try:
            parsed = json.loads(snippet)
        except json.JSONDecodeError:
            cleaned = _TRAILING_COMMA_RE.sub(r"\1", _strip_comments(snippet))
            try:
                parsed = json.loads(cleaned)
            except json.JSONDecodeError:
                continue
        if isinstance(parsed, dict):
            return parsed

    raise ValueError("No JSON found in AI response")


# ============================================================================
# FIELD HELPERS
# ============================================================================


def as_number(value: Any, default: float = 0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return default
    return default


def clamp(value: Any, low: float, high: float, default: float) -> float:
    number = as_number(value, default)
    # 0 is falsy in the models' eyes too; treat it as "missing"
    if not number:
        number = default
    return max(low, min(high, number))


def choice(value: Any, allowed: Iterable[str], default: str) -> str:
    if isinstance(value, str):
        normalized = value.strip()
        if normalized in allowed:
            return normalized
        if normalized.lower() in allowed:
            return normalized.lower()
    return default


def as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def as_text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


# ============================================================================
# START / SIT
# ============================================================================


def _start_sit_recommendation(rec: Dict[str, Any], default_id: str = "unknown") -> StartSitRecommendation:
    projected = as_dict(rec.get("projectedPoints"))
    matchup = as_dict(rec.get("matchupAnalysis"))
    alternatives = rec.get("alternativeOptions")
    return StartSitRecommendation(
        player_id=as_text(rec.get("playerId"), default_id),
        player_name=as_text(rec.get("playerName"), "Unknown Player"),
        position=as_text(rec.get("position"), "UNKNOWN"),
        recommendation=choice(rec.get("recommendation"), ("start", "sit", "flex"), "sit"),
        confidence=clamp(rec.get("confidence"), 0, 1, 0.5),
        reasoning=as_text(rec.get("reasoning"), "No reasoning provided"),
        projected_points=ProjectedPoints(
            floor=as_number(projected.get("floor")),
            ceiling=as_number(projected.get("ceiling")),
            expected=as_number(projected.get("expected")),
        ),
        matchup_analysis=MatchupAnalysis(
            opponent=as_text(matchup.get("opponent"), "Unknown"),
            difficulty=choice(matchup.get("difficulty"), ("easy", "medium", "hard"), "medium"),
            key_factors=as_list(matchup.get("keyFactors")),
        ),
        risk_factors=as_list(rec.get("riskFactors")),
        alternative_options=alternatives if isinstance(alternatives, list) else None,
    )


def start_sit_fallback(request: StartSitRequest) -> StartSitAnalysis:
    return StartSitAnalysis(
        recommendations=[
            StartSitRecommendation(
                player_id=player_id,
                recommendation="sit",
                confidence=0.1,
                reasoning="Analysis failed - manual review required",
                matchup_analysis=MatchupAnalysis(key_factors=["Analysis failed"]),
                risk_factors=["AI analysis unavailable"],
            )
            for player_id in request.player_ids
        ],
        optimal_lineup={},
        bench_players=list(request.player_ids),
        confidence_score=0.1,
        weekly_outlook="Analysis failed - please try again",
        key_insights=["AI analysis is currently unavailable"],
    )


def parse_start_sit(text: str, request: StartSitRequest) -> StartSitAnalysis:
    try:
        parsed = extract_json(text)
        if not isinstance(parsed.get("recommendations"), list):
            raise ValueError("Invalid recommendations format")
        if not isinstance(parsed.get("optimalLineup"), dict):
            raise ValueError("Invalid optimal lineup format")

        return StartSitAnalysis(
            recommendations=[
                _start_sit_recommendation(rec) for rec in parsed["recommendations"] if isinstance(rec, dict)
            ],
            optimal_lineup=parsed["optimalLineup"],
            bench_players=as_list(parsed.get("benchPlayers")),
            confidence_score=clamp(parsed.get("confidenceScore"), 0, 1, 0.7),
            weekly_outlook=as_text(parsed.get("weeklyOutlook"), "Analysis completed"),
            key_insights=as_list(parsed.get("keyInsights")),
        )
    except ValueError as e:
        logger.error(f"Failed to parse start/sit response: {e}")
        return start_sit_fallback(request)


# ============================================================================
# TRADE
# ============================================================================


def _team_analysis(raw: Any) -> TeamTradeAnalysis:
    raw = as_dict(raw)
    impact = as_dict(raw.get("impact"))
    rec = as_dict(raw.get("recommendation"))
    return TeamTradeAnalysis(
        grade=choice(raw.get("grade"), GRADES, "C"),
        impact=TradeImpact(
            positional_change=as_dict(impact.get("positionalChange")),
            starting_lineup_impact=as_number(impact.get("startingLineupImpact")),
            depth_chart_impact=as_number(impact.get("depthChartImpact")),
            bye_week_help=impact.get("byeWeekHelp") is True,
            playoff_implications=as_text(impact.get("playoffImplications"), "Minimal impact"),
        ),
        recommendation=TradeRecommendation(
            decision=choice(rec.get("decision"), ("accept", "reject", "counter", "consider"), "consider"),
            confidence=clamp(rec.get("confidence"), 0, 1, 0.5),
            reasoning=as_text(rec.get("reasoning"), "Analysis incomplete"),
            pros=as_list(rec.get("pros")),
            cons=as_list(rec.get("cons")),
            counter_offer_suggestion=rec.get("counterOfferSuggestion")
            if isinstance(rec.get("counterOfferSuggestion"), dict)
            else None,
        ),
    )


def _default_projections(avg_points: float) -> List[Dict[str, Any]]:
    return [
        {"week": 15, "projected_points": avg_points * 0.95, "confidence": 70},
        {"week": 16, "projected_points": avg_points * 1.05, "confidence": 68},
        {"week": 17, "projected_points": avg_points * 0.98, "confidence": 65},
        {"week": 18, "projected_points": avg_points * 1.02, "confidence": 62},
    ]


def build_player_data(
    request: TradeAnalysisRequest,
    analytics: Optional[Dict[str, Any]] = None,
    projections: Optional[Dict[str, Any]] = None,
) -> Dict[str, Dict[str, Any]]:
    """Per-player analytics block for the trade result; players without analytics are omitted"""
    analytics = analytics or {}
    projections = projections or {}
    player_data: Dict[str, Dict[str, Any]] = {}

    for player_id in request.all_player_ids():
        player_analytics = analytics.get(player_id)
        if not player_analytics:
            continue

        metrics = as_dict(player_analytics.get("metrics"))
        avg_points = as_number(player_analytics.get("avg_fantasy_points_per_game"))
        weekly = as_dict(projections.get(player_id)).get("weekly_projections") or _default_projections(avg_points)

        player_data[player_id] = {
            "player_id": player_id,
            "player_name": player_analytics.get("player_name") or f"Player {player_id}",
            "position": player_analytics.get("position") or "N/A",
            "team": player_analytics.get("team") or "N/A",
            "avg_fantasy_points_per_game": avg_points,
            "consistency_score": as_number(
                player_analytics.get("consistency_score", metrics.get("consistency_score"))
            ),
            "trends": as_list(player_analytics.get("trends")),
            "weekly_projections": weekly,
            "metrics": metrics,
        }

    return player_data


def trade_fallback(
    request: TradeAnalysisRequest,
    analytics: Optional[Dict[str, Any]] = None,
    projections: Optional[Dict[str, Any]] = None,
) -> TradeAnalysisResult:
    def failed_team() -> TeamTradeAnalysis:
        return TeamTradeAnalysis(
            grade="C",
            impact=TradeImpact(playoff_implications="Unable to analyze"),
            recommendation=TradeRecommendation(
                decision="consider",
                confidence=0.1,
                reasoning="Analysis failed - manual review required",
                cons=["AI analysis unavailable"],
            ),
        )

    return TradeAnalysisResult(
        fairness_score=5,
        team1_analysis=failed_team(),
        team2_analysis=failed_team(),
        market_value=MarketValue(),
        risk_assessment=RiskAssessment(risk_factors=["AI analysis unavailable"]),
        timing=TradeTiming(season_context="Unable to analyze timing"),
        player_data=build_player_data(request, analytics, projections),
        summary="Analysis failed - manual review required",
        key_insights=["Manual trade evaluation recommended", "AI analysis temporarily unavailable"],
    )


def parse_trade_analysis(
    text: str,
    request: TradeAnalysisRequest,
    analytics: Optional[Dict[str, Any]] = None,
    projections: Optional[Dict[str, Any]] = None,
) -> TradeAnalysisResult:
    try:
        parsed = extract_json(text)
    except ValueError as e:
        logger.error(f"Failed to parse trade analysis response: {e}")
        return trade_fallback(request, analytics, projections)

    market = as_dict(parsed.get("marketValue"))
    risk = as_dict(parsed.get("riskAssessment"))
    timing = as_dict(parsed.get("timing"))
    similar = parsed.get("similarTrades")

    return TradeAnalysisResult(
        fairness_score=clamp(parsed.get("fairnessScore"), 0, 10, 5),
        team1_analysis=_team_analysis(parsed.get("team1Analysis")),
        team2_analysis=_team_analysis(parsed.get("team2Analysis")),
        market_value=MarketValue(
            team1_total=as_number(market.get("team1Total")),
            team2_total=as_number(market.get("team2Total")),
            difference=as_number(market.get("difference")),
            value_verdict=choice(market.get("valueVerdict"), ("fair", "team1_wins", "team2_wins"), "fair"),
        ),
        risk_assessment=RiskAssessment(
            team1_risk=choice(risk.get("team1Risk"), LEVELS, "medium"),
            team2_risk=choice(risk.get("team2Risk"), LEVELS, "medium"),
            risk_factors=as_list(risk.get("riskFactors")),
        ),
        timing=TradeTiming(
            optimal_timing=timing.get("optimalTiming") is True,
            season_context=as_text(timing.get("seasonContext"), "Mid-season timing"),
            urgency=choice(timing.get("urgency"), LEVELS, "medium"),
        ),
        player_data=build_player_data(request, analytics, projections),
        summary=as_text(parsed.get("summary"), "Analysis incomplete"),
        key_insights=as_list(parsed.get("keyInsights")),
        similar_trades=similar if isinstance(similar, list) else None,
    )


# ============================================================================
# WAIVER WIRE
# ============================================================================


def _waiver_recommendation(rec: Dict[str, Any]) -> WaiverWireRecommendation:
    projected = as_dict(rec.get("projectedValue"))
    return WaiverWireRecommendation(
        player_id=as_text(rec.get("playerId"), "unknown"),
        player_name=as_text(rec.get("playerName"), "Unknown Player"),
        position=as_text(rec.get("position"), "UNKNOWN"),
        priority=choice(rec.get("priority"), LEVELS, "medium"),
        bid_amount=max(0, as_number(rec.get("bidAmount"))),
        reasoning=as_text(rec.get("reasoning"), "No reasoning provided"),
        projected_value=ProjectedValue(
            this_week=as_number(projected.get("thisWeek")),
            next_three_weeks=as_number(projected.get("nextThreeWeeks")),
            season_long=as_number(projected.get("seasonLong")),
        ),
        availability_likelihood=clamp(rec.get("availabilityLikelihood"), 0, 1, 0.5),
        drop_candidates=as_list(rec.get("dropCandidates")),
    )


def _drop_candidate(raw: Dict[str, Any]) -> DropCandidate:
    return DropCandidate(
        player_id=as_text(raw.get("playerId"), "unknown"),
        player_name=as_text(raw.get("playerName"), "Unknown Player"),
        drop_priority=choice(raw.get("dropPriority"), ("safe", "consider", "drop"), "consider"),
        reasoning=as_text(raw.get("reasoning"), ""),
    )


def waiver_wire_fallback() -> WaiverWireAnalysis:
    return WaiverWireAnalysis(
        recommendations=[],
        streaming_options={},
        budget_strategy=BudgetStrategy(reasoning="Analysis failed - manual review required"),
        drop_candidates=[],
        key_insights=["AI waiver wire analysis is currently unavailable"],
    )


def parse_waiver_wire(text: str, request: WaiverWireRequest) -> WaiverWireAnalysis:
    try:
        parsed = extract_json(text)
    except ValueError as e:
        logger.error(f"Failed to parse waiver wire response for week {request.week}: {e}")
        return waiver_wire_fallback()

    budget = as_dict(parsed.get("budgetStrategy"))
    streaming = {
        position: [_waiver_recommendation(rec) for rec in recs if isinstance(rec, dict)]
        for position, recs in as_dict(parsed.get("streamingOptions")).items()
        if isinstance(recs, list)
    }

    return WaiverWireAnalysis(
        recommendations=[
            _waiver_recommendation(rec) for rec in as_list(parsed.get("recommendations")) if isinstance(rec, dict)
        ],
        streaming_options=streaming,
        budget_strategy=BudgetStrategy(
            recommended_spend=as_number(budget.get("recommendedSpend")),
            savings_target=as_number(budget.get("savingsTarget")),
            reasoning=as_text(budget.get("reasoning"), "No strategy provided"),
        ),
        drop_candidates=[
            _drop_candidate(raw) for raw in as_list(parsed.get("dropCandidates")) if isinstance(raw, dict)
        ],
        key_insights=as_list(parsed.get("keyInsights")),
    )


# ============================================================================
# LINEUP OPTIMIZER
# ============================================================================


def _lineup_slot(raw: Any) -> LineupSlot:
    if isinstance(raw, str):
        return LineupSlot(player_id=raw)
    raw = as_dict(raw)
    return LineupSlot(
        player_id=as_text(raw.get("playerId"), "unknown"),
        player_name=as_text(raw.get("playerName"), "Unknown Player"),
        projected_points=as_number(raw.get("projectedPoints")),
        confidence=clamp(raw.get("confidence"), 0, 1, 0.5),
    )


def lineup_fallback() -> LineupOptimizerResult:
    return LineupOptimizerResult(
        optimal_lineup={},
        projected_total=0,
        confidence_score=0.1,
        risk_factors=["AI lineup optimization unavailable"],
    )


def parse_lineup_optimizer(text: str, request: LineupOptimizerRequest) -> LineupOptimizerResult:
    try:
        parsed = extract_json(text)
    except ValueError as e:
        logger.error(f"Failed to parse lineup optimizer response for week {request.week}: {e}")
        return lineup_fallback()

    alternatives = [
        AlternativeLineup(
            name=as_text(alt.get("name"), "Alternative"),
            lineup=as_dict(alt.get("lineup")),
            projected_total=as_number(alt.get("projectedTotal")),
            reasoning=as_text(alt.get("reasoning"), ""),
        )
        for alt in as_list(parsed.get("alternativeLineups"))
        if isinstance(alt, dict)
    ]
    bench = [
        BenchPlayer(
            player_id=as_text(player.get("playerId"), "unknown"),
            player_name=as_text(player.get("playerName"), "Unknown Player"),
            flex_eligible=player.get("flexEligible") is True,
            projected_points=as_number(player.get("projectedPoints")),
        )
        for player in as_list(parsed.get("benchOptimization"))
        if isinstance(player, dict)
    ]
    decisions = [
        KeyDecision(
            position=as_text(decision.get("position"), "UNKNOWN"),
            alternatives=[
                DecisionAlternative(
                    player_id=as_text(alt.get("playerId"), "unknown"),
                    player_name=as_text(alt.get("playerName"), "Unknown Player"),
                    pros=as_list(alt.get("pros")),
                    cons=as_list(alt.get("cons")),
                )
                for alt in as_list(decision.get("alternatives"))
                if isinstance(alt, dict)
            ],
        )
        for decision in as_list(parsed.get("keyDecisions"))
        if isinstance(decision, dict)
    ]

    return LineupOptimizerResult(
        optimal_lineup={
            position: _lineup_slot(slot) for position, slot in as_dict(parsed.get("optimalLineup")).items()
        },
        alternative_lineups=alternatives,
        bench_optimization=bench,
        projected_total=as_number(parsed.get("projectedTotal")),
        confidence_score=clamp(parsed.get("confidenceScore"), 0, 1, 0.7),
        risk_factors=as_list(parsed.get("riskFactors")),
        key_decisions=decisions,
    )


# ============================================================================
# QUICK ANALYSIS (AI proxy)
# ============================================================================

TRENDS = ("increasing", "stable", "decreasing")


def parse_quick_start_sit(text: str, player_id: str) -> StartSitRecommendation:
    try:
        parsed = extract_json(text)
        # Some models wrap the single recommendation in a list
        recs = parsed.get("recommendations")
        if isinstance(recs, list) and recs and isinstance(recs[0], dict):
            parsed = recs[0]
        return _start_sit_recommendation(parsed, default_id=player_id)
    except ValueError as e:
        logger.error(f"Failed to parse quick recommendation: {e}")
        return StartSitRecommendation(
            player_id=player_id,
            recommendation="sit",
            confidence=0.1,
            reasoning="Quick analysis failed",
        )


def _pickup(raw: Dict[str, Any], week: int, player_id: str = "unknown", position: str = "UNKNOWN",
            reasoning: str = "Quick analysis completed", upside: str = "Moderate upside potential") -> Dict[str, Any]:
    impact = as_dict(raw.get("projectedImpact"))
    trends = as_dict(raw.get("recentTrends"))
    priority = raw.get("priority")
    confidence = raw.get("confidence")
    return {
        "playerId": as_text(raw.get("playerId"), player_id),
        "playerName": as_text(raw.get("playerName"), "Unknown Player"),
        "position": as_text(raw.get("position"), position),
        "team": as_text(raw.get("team"), "FA"),
        "priority": max(1, min(10, priority)) if isinstance(priority, (int, float)) and not isinstance(priority, bool) else 5,
        "confidence": max(0, min(1, confidence)) if isinstance(confidence, (int, float)) and not isinstance(confidence, bool) else 0.5,
        "reasoning": as_text(raw.get("reasoning"), reasoning),
        "projectedImpact": {
            "immediateStarter": bool(impact.get("immediateStarter")),
            "flexConsideration": bool(impact.get("flexConsideration")),
            "depthUpgrade": bool(impact.get("depthUpgrade", not raw)),
            "futureUpside": bool(impact.get("futureUpside")),
        },
        "targetWeeks": raw.get("targetWeeks") if isinstance(raw.get("targetWeeks"), list) else [week],
        "dropCandidates": as_list(raw.get("dropCandidates")),
        "riskFactors": as_list(raw.get("riskFactors")),
        "upside": as_text(raw.get("upside"), upside),
        "recentTrends": {
            "usage": choice(trends.get("usage"), TRENDS, "stable"),
            "opportunity": choice(trends.get("opportunity"), TRENDS, "stable"),
            "production": choice(trends.get("production"), TRENDS, "stable"),
        },
    }


def parse_quick_pickup(text: str, player_id: str, week: int) -> Dict[str, Any]:
    try:
        parsed = extract_json(text)
        if not isinstance(parsed.get("pickup"), dict):
            raise ValueError("Invalid pickup format")
        return _pickup(parsed["pickup"], week, player_id=player_id)
    except ValueError as e:
        logger.error(f"Error parsing quick pickup response: {e}")
        return _pickup({}, week, player_id=player_id)


def parse_streaming(text: str, position: str, week: int) -> List[Dict[str, Any]]:
    try:
        parsed = extract_json(text)
    except ValueError as e:
        logger.error(f"Error parsing streaming response: {e}")
        return []

    options = parsed.get("streamingOptions")
    if not isinstance(options, list):
        logger.error("Invalid streamingOptions format")
        return []

    return [
        _pickup(option, week, position=position, reasoning="Streaming recommendation", upside="Good streaming option")
        for option in options
        if isinstance(option, dict)
    ]


def parse_trade_values(text: str, player_ids: List[str]) -> List[Dict[str, Any]]:
    """Strict: raises ValueError unless every requested player comes back with a 0-100 value and a tier"""
    parsed = extract_json(text)

    values = parsed.get("playerValues")
    if not isinstance(values, list):
        raise ValueError("Invalid playerValues format - must be an array")
    if not values:
        raise ValueError("No player values returned in response")

    result = []
    for player in values:
        if not isinstance(player, dict) or not player.get("playerId"):
            raise ValueError("Player entry missing playerId")
        value = player.get("value")
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0 <= value <= 100:
            raise ValueError(f"Invalid value for player {player['playerId']}: {value}. Must be a number between 0-100")
        if not isinstance(player.get("tier"), str) or not player["tier"]:
            raise ValueError(f"Invalid tier for player {player['playerId']}: {player.get('tier')}. Must be a string")
        result.append({"playerId": str(player["playerId"]), "value": value, "tier": player["tier"]})

    returned = {entry["playerId"] for entry in result}
    missing = [player_id for player_id in player_ids if player_id not in returned]
    if missing:
        raise ValueError(f"Missing trade values for players: {', '.join(missing)}")
    return result
