from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.app.config import get_settings
from src.app.dependencies import get_model_client, get_tool_gateway
from src.app.routes import router
from src.utils.logging import configure_logging

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    model = get_model_client()
    gateway = get_tool_gateway()
    if not await model.is_available():
        logger.warning("Ollama is not available. Make sure Ollama is running on %s", settings.ollama_api_url)
    if not await gateway.is_available():
        logger.warning("MCP Server is not available. Make sure it is running on %s", settings.mcp_server_url)
    logger.info("AI Agent ready, chat endpoint: POST /api/chat")
    yield
    await model.aclose()
    await gateway.aclose()


app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins or ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})


def run() -> None:
    import uvicorn

    uvicorn.run("src.app.main:app", host=settings.agent_host, port=settings.agent_port)


if __name__ == "__main__":
    run()
