"""
Pydantic models for the AI endpoints.

Request bodies and analysis results travel as camelCase JSON; attribute
names stay snake_case on the Python side.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict, Any, Literal
from datetime import datetime
from enum import Enum


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class AIProvider(str, Enum):
    CLAUDE = "claude"
    OPENAI = "openai"
    GEMINI = "gemini"


class RiskTolerance(str, Enum):
    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


class Optimization(str, Enum):
    CEILING = "ceiling"
    FLOOR = "floor"
    BALANCED = "balanced"


# ============================================================================
# CHAT
# ============================================================================


class AIMessage(CamelModel):
    role: Literal["system", "user", "assistant"]
    content: str = Field(..., min_length=1)


class AIRequest(CamelModel):
    messages: List[AIMessage] = Field(..., min_length=1)
    max_tokens: Optional[int] = Field(None, ge=1, le=8000)
    temperature: Optional[float] = Field(None, ge=0, le=2)
    provider: Optional[AIProvider] = None


class AIUsage(CamelModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class AIResponse(CamelModel):
    content: str
    provider: AIProvider
    model: Optional[str] = None
    usage: Optional[AIUsage] = None


# Tool calling, only spoken between the AI proxy and its providers


class AITool(CamelModel):
    name: str
    description: str
    parameters: Dict[str, Any]


class AIToolCall(CamelModel):
    name: str
    parameters: Dict[str, Any] = {}


class ProxyChatRequest(AIRequest):
    tools: Optional[List[AITool]] = None
    enable_mcp: bool = Field(False, alias="enableMCP")


class ProxyChatResponse(AIResponse):
    tool_calls: Optional[List[AIToolCall]] = None
    finish_reason: Optional[str] = None


class QuickAnalysisRequest(CamelModel):
    player_id: str = Field(..., min_length=1)
    league_id: str = Field(..., min_length=1)
    week: int = Field(..., ge=1, le=18)
    analysis_type: Literal["start_sit", "waiver_pickup", "trade_value"]
    preferred_provider: Optional[AIProvider] = None


# ============================================================================
# REQUESTS
# ============================================================================


class StartSitPreferences(CamelModel):
    risk_tolerance: Optional[RiskTolerance] = None
    prioritize_upside: Optional[bool] = None
    avoid_injured_players: Optional[bool] = None


class StartSitRequest(CamelModel):
    league_id: str = Field(..., min_length=1)
    week: int = Field(..., ge=1, le=18)
    player_ids: List[str] = Field(..., min_length=1)
    roster_slots: List[str] = Field(..., min_length=1)
    user_preferences: Optional[StartSitPreferences] = None


class TradeSide(CamelModel):
    give: List[str] = Field(..., min_length=1)
    receive: List[str] = Field(..., min_length=1)


class TradePreferences(CamelModel):
    risk_tolerance: Optional[RiskTolerance] = None
    favor_long_term: Optional[bool] = None
    prioritize_position: Optional[str] = None


class TradeAnalysisRequest(CamelModel):
    league_id: str = Field(..., min_length=1)
    week: int = Field(..., ge=1, le=18)
    team1_players: TradeSide = Field(..., alias="team1Players")
    team2_players: TradeSide = Field(..., alias="team2Players")
    user_preferences: Optional[TradePreferences] = None

    def all_player_ids(self) -> List[str]:
        return [
            *self.team1_players.give,
            *self.team1_players.receive,
            *self.team2_players.give,
            *self.team2_players.receive,
        ]


class WaiverWirePreferences(CamelModel):
    risk_tolerance: Optional[RiskTolerance] = None
    streaming_strategy: Optional[bool] = None
    dynasty_mode: Optional[bool] = None


class WaiverWireRequest(CamelModel):
    league_id: str = Field(..., min_length=1)
    week: int = Field(..., ge=1, le=18)
    budget: Optional[float] = Field(None, ge=0)
    priority_position: Optional[int] = Field(None, ge=1)
    target_positions: Optional[List[str]] = None
    user_preferences: Optional[WaiverWirePreferences] = None


class StackPreferences(CamelModel):
    qb_wr: Optional[bool] = None
    qb_te: Optional[bool] = None


class LineupConstraints(CamelModel):
    must_start: Optional[List[str]] = None
    must_sit: Optional[List[str]] = None
    stack_preferences: Optional[StackPreferences] = None
    avoid_opponents: Optional[List[str]] = None


class LineupPreferences(CamelModel):
    risk_tolerance: Optional[RiskTolerance] = None
    favor_projections: Optional[bool] = None
    favor_matchups: Optional[bool] = None


class LineupOptimizerRequest(CamelModel):
    league_id: str = Field(..., min_length=1)
    week: int = Field(..., ge=1, le=18)
    constraints: Optional[LineupConstraints] = None
    optimization: Optional[Optimization] = None
    user_preferences: Optional[LineupPreferences] = None


# ============================================================================
# START / SIT RESULTS
# ============================================================================


class ProjectedPoints(CamelModel):
    floor: float = 0
    ceiling: float = 0
    expected: float = 0


class MatchupAnalysis(CamelModel):
    opponent: str = "Unknown"
    difficulty: Literal["easy", "medium", "hard"] = "medium"
    key_factors: List[Any] = []


class StartSitRecommendation(CamelModel):
    player_id: str
    player_name: str = "Unknown Player"
    position: str = "UNKNOWN"
    recommendation: Literal["start", "sit", "flex"] = "sit"
    confidence: float = Field(0.5, ge=0, le=1)
    reasoning: str = "No reasoning provided"
    projected_points: ProjectedPoints = ProjectedPoints()
    matchup_analysis: MatchupAnalysis = MatchupAnalysis()
    risk_factors: List[Any] = []
    alternative_options: Optional[List[Any]] = None


class StartSitAnalysis(CamelModel):
    recommendations: List[StartSitRecommendation]
    optimal_lineup: Dict[str, Any]
    bench_players: List[Any]
    confidence_score: float = Field(..., ge=0, le=1)
    weekly_outlook: str
    key_insights: List[Any]
    last_updated: datetime = Field(default_factory=datetime.utcnow)


# ============================================================================
# TRADE RESULTS
# ============================================================================

TradeGrade = Literal["A+", "A", "A-", "B+", "B", "B-", "C+", "C", "C-", "D+", "D", "F"]
Level = Literal["low", "medium", "high"]


class TradeImpact(CamelModel):
    positional_change: Dict[str, Any] = {}
    starting_lineup_impact: float = 0
    depth_chart_impact: float = 0
    bye_week_help: bool = False
    playoff_implications: str = "Minimal impact"


class TradeRecommendation(CamelModel):
    decision: Literal["accept", "reject", "counter", "consider"] = "consider"
    confidence: float = Field(0.5, ge=0, le=1)
    reasoning: str = "Analysis incomplete"
    pros: List[Any] = []
    cons: List[Any] = []
    counter_offer_suggestion: Optional[Dict[str, Any]] = None


class TeamTradeAnalysis(CamelModel):
    grade: TradeGrade = "C"
    impact: TradeImpact = TradeImpact()
    recommendation: TradeRecommendation = TradeRecommendation()


class MarketValue(CamelModel):
    team1_total: float = Field(0, alias="team1Total")
    team2_total: float = Field(0, alias="team2Total")
    difference: float = 0
    value_verdict: Literal["fair", "team1_wins", "team2_wins"] = "fair"


class RiskAssessment(CamelModel):
    team1_risk: Level = Field("medium", alias="team1Risk")
    team2_risk: Level = Field("medium", alias="team2Risk")
    risk_factors: List[Any] = []


class TradeTiming(CamelModel):
    optimal_timing: bool = False
    season_context: str = "Mid-season timing"
    urgency: Level = "medium"


class TradeAnalysisResult(CamelModel):
    fairness_score: float = Field(..., ge=0, le=10)
    team1_analysis: TeamTradeAnalysis = Field(..., alias="team1Analysis")
    team2_analysis: TeamTradeAnalysis = Field(..., alias="team2Analysis")
    market_value: MarketValue
    risk_assessment: RiskAssessment
    timing: TradeTiming
    # Keyed by Sleeper player id; inner keys stay snake_case as served by the MCP server
    player_data: Dict[str, Dict[str, Any]] = {}
    summary: str
    key_insights: List[Any]
    similar_trades: Optional[List[Any]] = None
    last_updated: datetime = Field(default_factory=datetime.utcnow)


# ============================================================================
# WAIVER WIRE RESULTS
# ============================================================================


class ProjectedValue(CamelModel):
    this_week: float = 0
    next_three_weeks: float = 0
    season_long: float = 0


class WaiverWireRecommendation(CamelModel):
    player_id: str = "unknown"
    player_name: str = "Unknown Player"
    position: str = "UNKNOWN"
    priority: Level = "medium"
    bid_amount: float = 0
    reasoning: str = "No reasoning provided"
    projected_value: ProjectedValue = ProjectedValue()
    availability_likelihood: float = Field(0.5, ge=0, le=1)
    drop_candidates: List[Any] = []


class BudgetStrategy(CamelModel):
    recommended_spend: float = 0
    savings_target: float = 0
    reasoning: str = "No strategy provided"


class DropCandidate(CamelModel):
    player_id: str = "unknown"
    player_name: str = "Unknown Player"
    drop_priority: Literal["safe", "consider", "drop"] = "consider"
    reasoning: str = ""


class WaiverWireAnalysis(CamelModel):
    recommendations: List[WaiverWireRecommendation]
    streaming_options: Dict[str, List[WaiverWireRecommendation]] = {}
    budget_strategy: BudgetStrategy
    drop_candidates: List[DropCandidate] = []
    key_insights: List[Any]
    last_updated: datetime = Field(default_factory=datetime.utcnow)


# ============================================================================
# LINEUP OPTIMIZER RESULTS
# ============================================================================


class LineupSlot(CamelModel):
    player_id: str = "unknown"
    player_name: str = "Unknown Player"
    projected_points: float = 0
    confidence: float = Field(0.5, ge=0, le=1)


class AlternativeLineup(CamelModel):
    name: str = "Alternative"
    lineup: Dict[str, Any] = {}
    projected_total: float = 0
    reasoning: str = ""


class BenchPlayer(CamelModel):
    player_id: str = "unknown"
    player_name: str = "Unknown Player"
    flex_eligible: bool = False
    projected_points: float = 0


class DecisionAlternative(CamelModel):
    player_id: str = "unknown"
    player_name: str = "Unknown Player"
    pros: List[Any] = []
    cons: List[Any] = []


class KeyDecision(CamelModel):
    position: str = "UNKNOWN"
    alternatives: List[DecisionAlternative] = []


class LineupOptimizerResult(CamelModel):
    optimal_lineup: Dict[str, LineupSlot]
    alternative_lineups: List[AlternativeLineup] = []
    bench_optimization: List[BenchPlayer] = []
    projected_total: float = 0
    confidence_score: float = Field(..., ge=0, le=1)
    risk_factors: List[Any]
    key_decisions: List[KeyDecision] = []
    last_updated: datetime = Field(default_factory=datetime.utcnow)
