"""
AI analysis API endpoints
"""
from datetime import datetime, timezone
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from fantasy_ai.core.auth import get_current_user, require_league_role
from fantasy_ai.core.database import get_db
from fantasy_ai.core.errors import APIError, AIServiceError, AnalysisError, NotFoundError
from fantasy_ai.core.responses import error_response, success_response
from fantasy_ai.models.ai_models import (
    AIRequest,
    LineupOptimizerRequest,
    StartSitRequest,
    TradeAnalysisRequest,
    WaiverWireRequest,
)
from fantasy_ai.models.database_models import AnalysisType, User, UserLeague
from fantasy_ai.services.ai_service import AIService, ai_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["AI"])


def get_ai_service() -> AIService:
    return ai_service


def _failure(code: str, message: str, error: Exception) -> APIError:
    return APIError(message, code=code, status_code=500, details=str(error) or type(error).__name__)


# ============================================================================
# ANALYSES
# ============================================================================


@router.post("/start-sit")
async def start_sit_analysis(
    body: StartSitRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: AIService = Depends(get_ai_service),
):
    """Start/sit recommendations and an optimal lineup for one week"""
    logger.info(f"Start/Sit analysis request from user {current_user.id}")
    try:
        analysis = await service.analyze_start_sit(db, current_user, body)
    except AnalysisError as e:
        raise _failure("START_SIT_ANALYSIS_FAILED", "Failed to perform start/sit analysis", e)

    return success_response(
        analysis.to_json(),
        request,
        analysisType=AnalysisType.START_SIT.value,
        week=body.week,
        playerCount=len(body.player_ids),
    )


@router.post("/chat")
async def ai_chat(
    body: AIRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: AIService = Depends(get_ai_service),
):
    """General AI chat, routed through the provider fallback chain"""
    logger.info(f"AI chat request from user {current_user.id}")
    try:
        response = await service.chat(body)
    except AIServiceError as e:
        raise _failure("AI_CHAT_FAILED", "Failed to process AI chat request", e)

    return success_response(
        response.to_json(),
        request,
        provider=response.provider.value,
        tokens=response.usage.total_tokens if response.usage else None,
    )


@router.post("/trade-analysis")
async def trade_analysis(
    body: TradeAnalysisRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: AIService = Depends(get_ai_service),
):
    logger.info(f"Trade analysis request from user {current_user.id}")
    try:
        analysis = await service.analyze_trade_proposal(db, current_user, body)
    except AnalysisError as e:
        raise _failure("TRADE_ANALYSIS_FAILED", "Failed to perform trade analysis", e)

    return success_response(
        analysis.to_json(),
        request,
        analysisType=AnalysisType.TRADE_ANALYSIS.value,
        week=body.week,
        recommendation=analysis.team1_analysis.recommendation.decision,
        grade=analysis.team1_analysis.grade,
    )


@router.post("/waiver-wire")
async def waiver_wire_analysis(
    body: WaiverWireRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: AIService = Depends(get_ai_service),
):
    logger.info(f"Waiver wire analysis request from user {current_user.id}")
    try:
        analysis = await service.analyze_waiver_wire(db, current_user, body)
    except AnalysisError as e:
        raise _failure("WAIVER_WIRE_ANALYSIS_FAILED", "Failed to perform waiver wire analysis", e)

    return success_response(
        analysis.to_json(),
        request,
        analysisType=AnalysisType.WAIVER_WIRE.value,
        week=body.week,
        recommendationCount=len(analysis.recommendations),
        budget=body.budget,
    )


@router.post("/lineup-optimizer")
async def lineup_optimizer(
    body: LineupOptimizerRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: AIService = Depends(get_ai_service),
):
    logger.info(f"Lineup optimizer request from user {current_user.id}")
    try:
        analysis = await service.optimize_lineup(db, current_user, body)
    except AnalysisError as e:
        raise _failure("LINEUP_OPTIMIZER_FAILED", "Failed to perform lineup optimization", e)

    return success_response(
        analysis.to_json(),
        request,
        analysisType=AnalysisType.LINEUP_OPTIMIZER.value,
        week=body.week,
        optimization=body.optimization.value if body.optimization else "balanced",
        lineupCount=len(analysis.alternative_lineups) + 1,
    )


# ============================================================================
# HEALTH
# ============================================================================


@router.get("/health")
async def ai_health(request: Request, service: AIService = Depends(get_ai_service)):
    """Health of the direct providers, the AI proxy and the Sleeper API"""
    try:
        health = await service.health_check()
    except Exception as e:
        logger.error(f"AI health check error: {e}")
        return error_response(
            "HEALTH_CHECK_FAILED",
            "Failed to perform health check",
            503,
            request,
            details=str(e),
        )

    healthy = any(health["directProviders"].values()) or health["mcpService"] or health["sleeperAPI"]
    return success_response(
        {
            "status": "healthy" if healthy else "degraded",
            "services": health,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        request,
        status_code=200 if healthy else 503,
    )


# ============================================================================
# STORED ANALYSES
# ============================================================================


@router.get("/analysis/{analysis_id}")
async def get_analysis(
    analysis_id: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: AIService = Depends(get_ai_service),
):
    try:
        analysis = service.get_analysis(db, current_user, analysis_id)
    except Exception as e:
        logger.error(f"Get analysis error: {e}")
        raise _failure("GET_ANALYSIS_FAILED", "Failed to retrieve analysis", e)

    if analysis is None:
        raise NotFoundError(f"Analysis {analysis_id} not found")

    return success_response(analysis.to_dict(), request)


@router.get("/history")
async def get_history(
    request: Request,
    limit: int = Query(10, ge=1, le=100),
    analysis_type: Optional[AnalysisType] = Query(None, alias="analysisType"),
    league_id: Optional[str] = Query(None, alias="leagueId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: AIService = Depends(get_ai_service),
):
    """The user's stored analyses, newest first"""
    try:
        analyses = service.list_history(
            db, current_user, limit=limit, analysis_type=analysis_type, league_id=league_id
        )
    except Exception as e:
        logger.error(f"Get analysis history error: {e}")
        raise _failure("GET_HISTORY_FAILED", "Failed to retrieve analysis history", e)

    return success_response(
        [analysis.to_dict() for analysis in analyses],
        request,
        count=len(analyses),
        limit=limit,
    )


@router.get("/leagues/{league_id}/trade-analyses")
async def get_league_trade_analyses(
    league_id: str,
    request: Request,
    limit: int = Query(10, ge=1, le=100),
    membership: UserLeague = Depends(require_league_role()),
    db: Session = Depends(get_db),
    service: AIService = Depends(get_ai_service),
):
    """Trade analyses run in a league, visible to every league member"""
    try:
        trades = service.list_league_trades(db, league_id, limit=limit)
    except Exception as e:
        logger.error(f"Get league trade analyses error: {e}")
        raise _failure("GET_TRADE_ANALYSES_FAILED", "Failed to retrieve trade analyses", e)

    return success_response(
        [trade.to_dict() for trade in trades],
        request,
        count=len(trades),
        role=membership.role.value,
    )
