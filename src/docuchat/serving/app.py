"""FastAPI application exposing conversations, uploads and grounded Q&A."""

from __future__ import annotations

import random
import shutil
import time
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, Query, Request, UploadFile
from fastapi import File as FormFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from docuchat import __version__
from docuchat.config import settings
from docuchat.container import Services
from docuchat.errors import DocuChatError
from docuchat.service import ChatService


# ── Request / Response schemas ────────────────────────────────────────
class ConversationCreate(BaseModel):
    name: str | None = None


class ConversationRename(BaseModel):
    name: str | None = None


class MessageCreate(BaseModel):
    content: str | None = None
    role: str | None = None


class ConversationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    created_at: datetime


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    conversation_id: str
    role: str
    content: str
    sources: list[dict[str, Any]] | None = None
    created_at: datetime


class ConversationDetail(ConversationOut):
    messages: list[MessageOut] = []


class FileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    conversation_id: str
    filename: str
    created_at: datetime


class UploadOut(BaseModel):
    message: str
    file: FileOut


class AnswerOut(BaseModel):
    """Answer returned to the chat UI."""

    message: str
    docs: list[dict[str, Any]] = []


# ── Application factory ───────────────────────────────────────────────
def create_app(
    services: Services | None = None,
    *,
    upload_dir: str | Path = settings.upload_dir,
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """Build the API.

    When *services* is ``None`` production clients are constructed at
    startup and closed at shutdown; injected services are left to their
    owner to close.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = services is None
        app.state.services = Services.from_settings(settings) if owned else services
        try:
            yield
        finally:
            if owned:
                app.state.services.close()

    app = FastAPI(
        title="DocuChat API",
        version=__version__,
        description="Document-grounded chat over per-conversation uploads.",
        lifespan=lifespan,
    )
    app.state.upload_dir = Path(upload_dir)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins if cors_origins is not None else settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DocuChatError)
    async def _domain_error(request: Request, exc: DocuChatError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    _register_routes(app)
    return app


def get_chat(request: Request) -> ChatService:
    return request.app.state.services.chat


def _store_upload(upload_dir: Path, upload: UploadFile) -> tuple[str, Path]:
    """Write *upload* under a unique name; return (original filename, stored path)."""
    original = Path(upload.filename or "upload").name
    upload_dir.mkdir(parents=True, exist_ok=True)
    unique = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}-{original}"
    target = upload_dir / unique
    with target.open("wb") as fh:
        shutil.copyfileobj(upload.file, fh)
    return original, target


# ── Routes ────────────────────────────────────────────────────────────
def _register_routes(app: FastAPI) -> None:
    @app.get("/")
    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "ok"}

    @app.post("/chats", response_model=ConversationOut)
    def create_chat(body: ConversationCreate, chat: ChatService = Depends(get_chat)):
        return chat.create_conversation(body.name)

    @app.get("/chats", response_model=list[ConversationOut])
    def list_chats(chat: ChatService = Depends(get_chat)):
        return chat.list_conversations()

    @app.get("/chats/{chat_id}", response_model=ConversationDetail)
    def get_chat_detail(chat_id: str, chat: ChatService = Depends(get_chat)):
        return chat.get_conversation(chat_id)

    @app.patch("/chats/{chat_id}", response_model=ConversationOut)
    def rename_chat(chat_id: str, body: ConversationRename, chat: ChatService = Depends(get_chat)):
        return chat.rename_conversation(chat_id, body.name)

    @app.delete("/chats/{chat_id}")
    def delete_chat(chat_id: str, chat: ChatService = Depends(get_chat)) -> dict[str, bool]:
        chat.delete_conversation(chat_id)
        return {"success": True}

    @app.post("/chats/{chat_id}/files", response_model=UploadOut)
    def upload_file(
        chat_id: str,
        request: Request,
        pdf: UploadFile = FormFile(...),
        chat: ChatService = Depends(get_chat),
    ):
        chat.require_conversation(chat_id)
        filename, stored = _store_upload(request.app.state.upload_dir, pdf)
        try:
            record = chat.attach_file(chat_id, filename, str(stored))
        except DocuChatError:
            stored.unlink(missing_ok=True)
            raise
        return UploadOut(message="uploaded", file=FileOut.model_validate(record))

    @app.get("/chats/{chat_id}/files", response_model=list[FileOut])
    def list_files(chat_id: str, chat: ChatService = Depends(get_chat)):
        return chat.list_files(chat_id)

    @app.post("/chats/{chat_id}/messages", response_model=MessageOut)
    def create_message(chat_id: str, body: MessageCreate, chat: ChatService = Depends(get_chat)):
        return chat.add_message(chat_id, body.content, body.role)

    @app.get("/chats/{chat_id}/messages", response_model=list[MessageOut])
    def list_messages(chat_id: str, chat: ChatService = Depends(get_chat)):
        return chat.list_messages(chat_id)

    @app.get("/chat", response_model=AnswerOut)
    def ask(
        message: str = Query(default=""),
        chat_id: str = Query(default="", alias="chatId"),
        chat: ChatService = Depends(get_chat),
    ):
        answer = chat.ask(message, chat_id)
        return AnswerOut(message=answer.message, docs=answer.docs)


app = create_app()


def main() -> None:
    """Entry point: serve the API with uvicorn."""
    import uvicorn

    from docuchat.config import configure_logging

    configure_logging(settings.log_level)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
