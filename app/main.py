"""
HTTP Boundary for the ClearSpend Assistant

The browser's chat panel talks to these two routes:

    POST /api/chat   one conversational turn
    GET  /api/chat   health probe

DESIGN PRINCIPLES:
1. The handler is thin: parse, resolve, wrap
2. The server keeps no conversation state; the client echoes
   context.lastContext back on every turn
3. Only malformed input is a client error. A failed search is still
   a 200 with a "Search failed" reply, so the conversation continues
"""

from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Optional

import structlog
from fastapi import Depends, FastAPI, Header
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from clearspend.audit import AuditLogger, create_correlation_id
from clearspend.config import get_settings, validate_all_settings
from clearspend.models.chat import ChatRequest, ChatResponse, HealthResponse
from clearspend.orchestrator import QueryResolutionService, create_app_components
from clearspend.validation import InvalidMessageError


settings = get_settings().app
audit_logger = AuditLogger(logger_name="clearspend.api")
logger = structlog.get_logger("clearspend.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Missing Sheets/Gemini config degrades search; it does not stop the service
    status = validate_all_settings()
    logger.info(
        "configuration_checked",
        environment=settings.app_environment,
        **{name: ok for name, ok in status.items() if not name.endswith("_error")},
    )
    yield


app = FastAPI(
    title=settings.service_name,
    description="Natural-language questions over stored receipts",
    version=settings.service_version,
    debug=settings.debug_mode,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache
def get_resolution_service() -> QueryResolutionService:
    """Get or create the resolver (built once per process)."""
    return create_app_components(use_storage=True)


@app.post("/api/chat")
async def chat(
    request: ChatRequest,
    service: QueryResolutionService = Depends(get_resolution_service),
    x_tenant_id: Optional[str] = Header(default=None),
):
    """Answer one chat turn."""
    correlation_id = create_correlation_id()

    try:
        reply = await service.resolve(
            request.to_turn(),
            tenant_id=x_tenant_id,
            correlation_id=correlation_id,
        )
    except InvalidMessageError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except Exception as e:
        await audit_logger.log_error(
            error_type=type(e).__name__,
            error_message=str(e),
            correlation_id=correlation_id,
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    response = ChatResponse.from_reply(reply, request.conversation_id)
    return response.model_dump(by_alias=True, mode="json")


@app.get("/api/chat")
async def health() -> dict:
    """Static health probe."""
    return HealthResponse(
        service=settings.service_name,
        version=settings.service_version,
    ).model_dump()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
