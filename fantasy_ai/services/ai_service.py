"""
AI Service - fantasy analysis on top of the LLM providers

Each analysis loads league context from Sleeper, builds a prompt, sends it
through chat() (one direct provider call, then the AI proxy as fallback),
parses the reply into a typed result and stores it as an AIAnalysis row.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from fantasy_ai.core.errors import AIProviderError, AIServiceError, AnalysisError
from fantasy_ai.models.ai_models import (
    AIMessage,
    AIProvider,
    AIRequest,
    AIResponse,
    LineupOptimizerRequest,
    LineupOptimizerResult,
    StartSitAnalysis,
    StartSitRequest,
    TradeAnalysisRequest,
    TradeAnalysisResult,
    WaiverWireAnalysis,
    WaiverWireRequest,
)
from fantasy_ai.models.database_models import AIAnalysis, AnalysisType, League, TradeAnalysis, User
from fantasy_ai.services import prompts, response_parser
from fantasy_ai.services.ai_client import AIClient, PROVIDER_PRIORITY, default_provider
from fantasy_ai.services.mcp_client import MCPClient
from fantasy_ai.services.sleeper_client import SleeperClient, find_user_roster

logger = logging.getLogger(__name__)

ANALYSIS_MAX_TOKENS = 4000
ANALYSIS_TEMPERATURE = 0.1
MAX_ANALYTICS_PLAYERS = 4
ANALYTICS_TIMEOUT_SECONDS = 3.0


class AIService:
    """AI orchestration for chat and the four fantasy analyses"""

    def __init__(
        self,
        ai_client: Optional[AIClient] = None,
        sleeper_client: Optional[SleeperClient] = None,
        mcp_client: Optional[MCPClient] = None,
    ):
        self.ai_client = ai_client or AIClient()
        self.sleeper = sleeper_client or SleeperClient()
        self.mcp = mcp_client or MCPClient(rpc_path="/rpc", retries=0)

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def chat(self, request: AIRequest) -> AIResponse:
        """One direct provider call, then one call to the AI proxy"""
        provider = request.provider or default_provider()

        try:
            return await self.ai_client.call_provider(request, provider)
        except AIProviderError as direct_error:
            logger.warning(f"{provider.value} AI provider failed, trying AI proxy: {direct_error}")

            try:
                return await self.ai_client.call_proxy(request)
            except AIProviderError as proxy_error:
                logger.error(f"All AI methods failed: {direct_error}; {proxy_error}")
                raise AIServiceError(
                    f"AI request failed: {direct_error}; proxy: {proxy_error}"
                ) from proxy_error

    async def _analysis_chat(self, system_prompt: str, user_prompt: str) -> AIResponse:
        return await self.chat(
            AIRequest(
                messages=[
                    AIMessage(role="system", content=system_prompt),
                    AIMessage(role="user", content=user_prompt),
                ],
                max_tokens=ANALYSIS_MAX_TOKENS,
                temperature=ANALYSIS_TEMPERATURE,
            )
        )

    # ------------------------------------------------------------------
    # Shared context loading
    # ------------------------------------------------------------------

    async def _load_context(
        self, db: Session, user: User, league_id: str
    ) -> Tuple[League, Dict[str, Any], Dict[str, Any], Optional[Dict[str, Any]]]:
        league = db.query(League).filter(League.id == league_id).first()
        if not league:
            raise ValueError(f"League not found for ID: {league_id}")

        logger.info(f"Found league: {league.name} (Sleeper ID: {league.sleeper_league_id})")

        league_data, players = await asyncio.gather(
            self.sleeper.get_league_details(league.sleeper_league_id),
            self.sleeper.get_all_players(),
        )
        user_roster = find_user_roster(league_data.get("rosters", []), user.sleeper_user_id)
        if user_roster is None:
            logger.info(f"No roster owned by user {user.id} in league {league.sleeper_league_id}")
        return league, league_data, players, user_roster

    async def _fetch_player_analytics(self, player_ids: List[str]) -> Dict[str, Any]:
        limited = list(dict.fromkeys(player_ids))[:MAX_ANALYTICS_PLAYERS]
        logger.info(f"Fetching analytics for {len(limited)} players")

        results = await asyncio.gather(
            *(self.mcp.get_player_analytics(pid, timeout=ANALYTICS_TIMEOUT_SECONDS) for pid in limited)
        )
        return {pid: analytics for pid, analytics in zip(limited, results) if analytics}

    async def _run_analysis(self, name: str, pipeline: Callable):
        try:
            return await pipeline()
        except Exception as e:
            logger.error(f"{name} failed: {e}")
            raise AnalysisError(f"{name} failed: {e}") from e

    def _store_analysis(
        self,
        db: Session,
        user: User,
        league_id: str,
        analysis_type: AnalysisType,
        request_json: Dict[str, Any],
        output_json: Dict[str, Any],
        metadata: Dict[str, Any],
        extra_rows: Optional[List[Any]] = None,
    ) -> Optional[AIAnalysis]:
        """Persist a finished analysis; storage problems never fail the request"""
        try:
            record = AIAnalysis(
                user_id=user.id,
                league_id=league_id,
                analysis_type=analysis_type,
                input=request_json,
                output=output_json,
                analysis_metadata=metadata,
            )
            db.add(record)
            for row in extra_rows or []:
                db.add(row)
            db.commit()
            db.refresh(record)
            logger.info(f"{analysis_type.value} analysis stored in database")
            return record
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to store {analysis_type.value} analysis: {e}")
            return None

    # ------------------------------------------------------------------
    # Analyses
    # ------------------------------------------------------------------

    async def analyze_start_sit(self, db: Session, user: User, request: StartSitRequest) -> StartSitAnalysis:
        async def pipeline():
            logger.info(f"Analyzing start/sit for user {user.id}, week {request.week}")
            _, league_data, players, roster = await self._load_context(db, user, request.league_id)

            response = await self._analysis_chat(
                prompts.start_sit_system_prompt(request),
                prompts.start_sit_user_prompt(request, league_data, players, roster),
            )
            return response, response_parser.parse_start_sit(response.content, request)

        response, analysis = await self._run_analysis("Start/Sit analysis", pipeline)

        prefs = request.user_preferences
        self._store_analysis(
            db,
            user,
            request.league_id,
            AnalysisType.START_SIT,
            request.to_json(),
            analysis.to_json(),
            {
                "provider": response.provider.value,
                "confidence": analysis.confidence_score,
                "week": request.week,
                "playerCount": len(request.player_ids),
                "riskTolerance": prompts.risk_tolerance(prefs),
            },
        )
        return analysis

    async def analyze_trade_proposal(
        self, db: Session, user: User, request: TradeAnalysisRequest
    ) -> TradeAnalysisResult:
        async def pipeline():
            logger.info(f"Analyzing trade proposal for user {user.id}, week {request.week}")
            _, league_data, players, roster = await self._load_context(db, user, request.league_id)
            analytics = await self._fetch_player_analytics(request.all_player_ids())

            response = await self._analysis_chat(
                prompts.trade_system_prompt(request),
                prompts.trade_user_prompt(request, league_data, players, roster, analytics),
            )
            return response, response_parser.parse_trade_analysis(response.content, request, analytics)

        response, analysis = await self._run_analysis("Trade analysis", pipeline)

        output = analysis.to_json()
        trade_row = TradeAnalysis(
            league_id=request.league_id,
            requested_by=user.id,
            team1_players=request.team1_players.to_json(),
            team2_players=request.team2_players.to_json(),
            fairness_score=analysis.fairness_score,
            team1_grade=analysis.team1_analysis.grade,
            team2_grade=analysis.team2_analysis.grade,
            recommendation=analysis.team1_analysis.recommendation.decision,
            analysis=output,
        )
        self._store_analysis(
            db,
            user,
            request.league_id,
            AnalysisType.TRADE_ANALYSIS,
            request.to_json(),
            output,
            {
                "provider": response.provider.value,
                "team1Grade": analysis.team1_analysis.grade,
                "team2Grade": analysis.team2_analysis.grade,
                "fairnessScore": analysis.fairness_score,
                "week": request.week,
                "riskTolerance": prompts.risk_tolerance(request.user_preferences),
            },
            extra_rows=[trade_row],
        )
        return analysis

    async def analyze_waiver_wire(self, db: Session, user: User, request: WaiverWireRequest) -> WaiverWireAnalysis:
        async def pipeline():
            logger.info(f"Analyzing waiver wire for user {user.id}, week {request.week}")
            _, league_data, players, roster = await self._load_context(db, user, request.league_id)

            response = await self._analysis_chat(
                prompts.waiver_wire_system_prompt(request),
                prompts.waiver_wire_user_prompt(request, league_data, players, roster),
            )
            return response, response_parser.parse_waiver_wire(response.content, request)

        response, analysis = await self._run_analysis("Waiver wire analysis", pipeline)

        self._store_analysis(
            db,
            user,
            request.league_id,
            AnalysisType.WAIVER_WIRE,
            request.to_json(),
            analysis.to_json(),
            {
                "provider": response.provider.value,
                "recommendationCount": len(analysis.recommendations),
                "week": request.week,
                "riskTolerance": prompts.risk_tolerance(request.user_preferences),
            },
        )
        return analysis

    async def optimize_lineup(self, db: Session, user: User, request: LineupOptimizerRequest) -> LineupOptimizerResult:
        async def pipeline():
            logger.info(f"Optimizing lineup for user {user.id}, week {request.week}")
            _, league_data, players, roster = await self._load_context(db, user, request.league_id)

            response = await self._analysis_chat(
                prompts.lineup_system_prompt(request),
                prompts.lineup_user_prompt(request, league_data, players, roster),
            )
            return response, response_parser.parse_lineup_optimizer(response.content, request)

        response, analysis = await self._run_analysis("Lineup optimization", pipeline)

        self._store_analysis(
            db,
            user,
            request.league_id,
            AnalysisType.LINEUP_OPTIMIZER,
            request.to_json(),
            analysis.to_json(),
            {
                "provider": response.provider.value,
                "projectedTotal": analysis.projected_total,
                "confidence": analysis.confidence_score,
                "optimization": request.optimization.value if request.optimization else "balanced",
                "week": request.week,
            },
        )
        return analysis

    # ------------------------------------------------------------------
    # Stored analyses
    # ------------------------------------------------------------------

    def get_analysis(self, db: Session, user: User, analysis_id: str) -> Optional[AIAnalysis]:
        return (
            db.query(AIAnalysis)
            .filter(AIAnalysis.id == analysis_id, AIAnalysis.user_id == user.id)
            .first()
        )

    def list_history(
        self,
        db: Session,
        user: User,
        limit: int = 10,
        analysis_type: Optional[AnalysisType] = None,
        league_id: Optional[str] = None,
    ) -> List[AIAnalysis]:
        limit = max(1, min(100, limit))
        query = db.query(AIAnalysis).filter(AIAnalysis.user_id == user.id)
        if analysis_type is not None:
            query = query.filter(AIAnalysis.analysis_type == analysis_type)
        if league_id:
            query = query.filter(AIAnalysis.league_id == league_id)
        return query.order_by(AIAnalysis.created_at.desc()).limit(limit).all()

    def list_league_trades(self, db: Session, league_id: str, limit: int = 10) -> List[TradeAnalysis]:
        """Trade analyses any member ran in the league, newest first"""
        return (
            db.query(TradeAnalysis)
            .filter(TradeAnalysis.league_id == league_id)
            .order_by(TradeAnalysis.created_at.desc())
            .limit(max(1, min(100, limit)))
            .all()
        )

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def _probe_provider(self, provider: AIProvider) -> bool:
        try:
            await self.ai_client.call_provider(
                AIRequest(messages=[AIMessage(role="user", content="test")], max_tokens=1),
                provider,
            )
            return True
        except AIProviderError as e:
            logger.info(f"{provider.value} health probe failed: {e}")
            return False

    async def health_check(self) -> Dict[str, Any]:
        provider_results = await asyncio.gather(*(self._probe_provider(p) for p in PROVIDER_PRIORITY))
        mcp_service, sleeper_api = await asyncio.gather(
            self.ai_client.proxy_health(),
            self.sleeper.health_check(),
        )
        return {
            "directProviders": {
                provider.value: healthy for provider, healthy in zip(PROVIDER_PRIORITY, provider_results)
            },
            "mcpService": mcp_service,
            "sleeperAPI": sleeper_api,
        }


# Global service instance
ai_service = AIService()
