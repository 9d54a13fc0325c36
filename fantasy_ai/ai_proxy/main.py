"""
AI proxy service - SDK-backed provider fallback with MCP tools.

The backend calls POST /rpc (JSON-RPC 2.0, method ai.chat) when its own
direct provider call fails.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging
import time

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from fantasy_ai.ai_proxy import quick_analysis
from fantasy_ai.ai_proxy.config import build_manager_config
from fantasy_ai.ai_proxy.manager import AIManager
from fantasy_ai.core.config import settings
from fantasy_ai.core.errors import AIProviderError, APIError, ErrorCode, ServiceUnavailableError
from fantasy_ai.core.responses import (
    add_request_context,
    error_response,
    register_exception_handlers,
    success_response,
)
from fantasy_ai.models.ai_models import AIProvider, ProxyChatRequest, QuickAnalysisRequest

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()

# JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
PROVIDER_ERROR = -32000


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🤖 Starting AI Service...")
    app.state.ai_manager = None
    try:
        manager = AIManager(build_manager_config())
        await manager.initialize()
        app.state.ai_manager = manager
        logger.info(f"🚀 AI Service ready on port {settings.PROXY_PORT}")
    except RuntimeError as e:
        logger.error(f"❌ Failed to start AI Manager: {e}")

    yield

    if app.state.ai_manager is not None:
        await app.state.ai_manager.close()
        logger.info("📴 AI Manager closed")


app = FastAPI(
    title=f"{settings.APP_NAME} AI Service",
    version=settings.API_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_frontend_urls() + ["http://localhost:4000"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)
app.middleware("http")(add_request_context)
register_exception_handlers(app)


def get_ai_manager(request: Request) -> AIManager:
    manager = getattr(request.app.state, "ai_manager", None)
    if manager is None:
        raise ServiceUnavailableError("AI Manager not initialized")
    return manager


def _ai_error(message: str) -> APIError:
    return APIError(message, code=ErrorCode.AI_SERVICE_ERROR.value, status_code=400)


# ============================================================================
# JSON-RPC
# ============================================================================


def _rpc_result(request_id: Any, result: Any) -> JSONResponse:
    return JSONResponse({"jsonrpc": "2.0", "id": request_id, "result": result})


def _rpc_error(request_id: Any, code: int, message: str, data: Any = None) -> JSONResponse:
    error: Dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return JSONResponse({"jsonrpc": "2.0", "id": request_id, "error": error})


async def _rpc_status(manager: AIManager) -> Dict[str, Any]:
    providers = await manager.get_provider_status()
    return {
        "providers": providers,
        "mcpServer": {"healthy": await manager.get_mcp_status()},
        "availableProviders": manager.get_available_providers(),
        "availableTools": manager.get_available_tools(),
    }


@app.post("/rpc")
async def json_rpc(request: Request, manager: AIManager = Depends(get_ai_manager)):
    """JSON-RPC 2.0 endpoint: ai.chat and ai.status"""
    try:
        payload = await request.json()
    except ValueError:
        return _rpc_error(None, PARSE_ERROR, "Parse error")

    if not isinstance(payload, dict) or payload.get("jsonrpc") != "2.0" or not isinstance(payload.get("method"), str):
        request_id = payload.get("id") if isinstance(payload, dict) else None
        return _rpc_error(request_id, INVALID_REQUEST, "Invalid Request")

    request_id = payload.get("id")
    method = payload["method"]
    logger.info(f"JSON-RPC call: {method}")

    if method == "ai.status":
        return _rpc_result(request_id, await _rpc_status(manager))

    if method != "ai.chat":
        return _rpc_error(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")

    try:
        chat_request = ProxyChatRequest.model_validate(payload.get("params") or {})
    except ValidationError as e:
        details = [f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()]
        return _rpc_error(request_id, INVALID_PARAMS, "Invalid params", data=details)

    try:
        response = await manager.chat(chat_request, chat_request.provider, chat_request.enable_mcp)
    except AIProviderError as e:
        return _rpc_error(request_id, PROVIDER_ERROR, str(e))

    return _rpc_result(request_id, response.to_json())


# ============================================================================
# REST
# ============================================================================


@app.post("/ai/chat")
async def chat(body: ProxyChatRequest, request: Request, manager: AIManager = Depends(get_ai_manager)):
    try:
        response = await manager.chat(body, body.provider, body.enable_mcp)
    except AIProviderError as e:
        logger.error(f"AI chat error: {e}")
        raise _ai_error(str(e))
    return success_response(response.to_json(), request)


@app.get("/ai/status")
async def status(request: Request, manager: AIManager = Depends(get_ai_manager)):
    """Provider and MCP server health"""
    try:
        data = await _rpc_status(manager)
    except Exception as e:
        logger.error(f"Status check error: {e}")
        return error_response(
            ErrorCode.SERVICE_UNAVAILABLE.value, "Unable to check service status", 503, request
        )

    data["uptime"] = round(time.monotonic() - STARTED_AT, 3)
    return success_response(data, request)


@app.post("/ai/quick-analysis")
async def run_quick_analysis(
    body: QuickAnalysisRequest, request: Request, manager: AIManager = Depends(get_ai_manager)
):
    try:
        result = await quick_analysis.run_quick_analysis(
            manager,
            body.analysis_type,
            body.player_id,
            body.league_id,
            body.week,
            body.preferred_provider,
        )
    except (AIProviderError, ValueError) as e:
        logger.error(f"Quick analysis error: {e}")
        raise _ai_error(str(e) or "Quick analysis failed")
    return success_response(result, request)


@app.get("/ai/streaming/{position}/{league_id}/{week}")
async def streaming(
    position: str,
    league_id: str,
    week: int,
    request: Request,
    provider: Optional[AIProvider] = None,
    manager: AIManager = Depends(get_ai_manager),
):
    """Streaming pickups for a DEF, K or QB slot"""
    position = position.upper()
    if position not in quick_analysis.STREAMING_POSITIONS:
        return error_response(
            ErrorCode.VALIDATION_ERROR.value, "Position must be DEF, K, or QB", 400, request
        )

    try:
        recommendations = await quick_analysis.streaming_recommendations(
            manager, position, league_id, week, provider
        )
    except AIProviderError as e:
        logger.error(f"Streaming recommendations error: {e}")
        raise _ai_error(str(e))

    return success_response(
        {"position": position, "week": week, "recommendations": recommendations}, request
    )


@app.get("/health")
async def health(request: Request):
    return success_response(
        {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - STARTED_AT, 3),
            "managerReady": getattr(request.app.state, "ai_manager", None) is not None,
        },
        request,
    )


if __name__ == "__main__":
    import uvicorn

    logger.info(f"🚀 Starting AI service on port {settings.PROXY_PORT}")
    uvicorn.run(app, host="0.0.0.0", port=settings.PROXY_PORT)
