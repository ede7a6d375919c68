"""FastAPI application exposing conversations, chat turns, and exports."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from .config import ChatConfig
from .errors import ChatError
from .service import ChatService
from .utils import setup_logging

logger = logging.getLogger(__name__)


class ChatRequest(BaseModel):
    conversationId: Optional[str] = Field(None, description="Existing conversation to continue.")
    message: Any = Field(None, description="User message to send to the model.")


class TitleRequest(BaseModel):
    title: Any = Field(None, description="New conversation title.")


class ChatResponse(BaseModel):
    aiResponse: str
    conversationId: str


def _error_response(status_code: int, reason: str, detail: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": reason, "detail": detail})


def _dump(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


def create_app(
    chat_config: Optional[ChatConfig] = None,
    *,
    service: Optional[ChatService] = None,
    log_dir: Optional[str] = None,
) -> FastAPI:
    if log_dir:
        setup_logging(log_dir, logging.INFO)

    config = chat_config or (service.config if service else ChatConfig())
    service = service or ChatService(config)

    app = FastAPI(title="Conversation Chat Backend", version="0.1.0")
    app.state.service = service
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ChatError)
    async def handle_chat_error(request: Request, exc: ChatError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return _error_response(exc.status_code, exc.reason, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error_response(400, "validation_error", "Malformed request body")

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(500, "internal_error", "Internal server error")

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/conversations")
    async def list_conversations() -> List[Dict[str, Any]]:
        summaries = await run_in_threadpool(app.state.service.list_conversations)
        return [_dump(summary) for summary in summaries]

    @app.get("/conversations/{conversation_id}")
    async def get_conversation(conversation_id: str) -> Dict[str, Any]:
        conversation = await run_in_threadpool(app.state.service.get_conversation, conversation_id)
        return _dump(conversation)

    @app.post("/conversations/new", status_code=201)
    async def create_conversation() -> Dict[str, Any]:
        conversation = await run_in_threadpool(app.state.service.create_conversation)
        return _dump(conversation)

    @app.post("/chat", response_model=ChatResponse)
    async def chat(request: ChatRequest):
        logger.info("Chat turn received (conversation_id=%s)", request.conversationId)
        result = await run_in_threadpool(
            app.state.service.chat,
            request.conversationId,
            request.message,
        )
        return ChatResponse(aiResponse=result.reply_text, conversationId=result.conversation_id)

    @app.put("/conversations/{conversation_id}/title")
    async def rename_conversation(conversation_id: str, request: TitleRequest) -> Dict[str, Any]:
        conversation = await run_in_threadpool(
            app.state.service.rename_conversation,
            conversation_id,
            request.title,
        )
        return _dump(conversation)

    @app.get("/conversations/{conversation_id}/export/{fmt}")
    async def export_conversation(conversation_id: str, fmt: str) -> Response:
        exported = await run_in_threadpool(app.state.service.export_conversation, conversation_id, fmt)
        return Response(
            content=exported.content,
            media_type=exported.mime_type,
            headers={"Content-Disposition": f"attachment; filename={exported.filename}"},
        )

    return app
