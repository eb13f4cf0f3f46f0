from __future__ import annotations

from contextlib import asynccontextmanager
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Form, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
import logging
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError

from app.auth import AccessDenied, access_denied_response, require_admin
from config.settings import Settings, get_settings
from relay.clients.speech import ElevenLabsSpeech, SpeechSynthesizer
from relay.clients.text_generation import TextGenerator, build_text_generator
from relay.errors import ProspectNotFound
from relay.relay import ChatRelay
from store.prospects import ProspectStore


logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s - %(message)s")
logger = logging.getLogger("prospect_demo")

BASE_DIR = Path(__file__).resolve().parent
CHAT_FAILURE_MESSAGE = "Failed to get AI response"


@lru_cache(maxsize=1)
def get_store() -> Optional[ProspectStore]:
    """Shared store, or None when no database is configured (degraded mode)."""
    settings = get_settings()
    if not settings.database_configured:
        return None
    try:
        return ProspectStore.from_url(settings.database_url, use_ssl=settings.database_ssl)
    except SQLAlchemyError:
        logger.exception("Could not build database engine from DATABASE_URL")
        return None


def get_text_generator(settings: Settings = Depends(get_settings)) -> TextGenerator:
    return build_text_generator(settings)


def get_speech(settings: Settings = Depends(get_settings)) -> SpeechSynthesizer:
    return ElevenLabsSpeech(settings)


@asynccontextmanager
async def lifespan(_: FastAPI):
    store = get_store()
    if store is None:
        logger.warning("DATABASE_URL not set. Skipping database initialization.")
        logger.warning("Landing, admin and chat routes answer 503 until it is configured.")
    else:
        store.init_schema()
    yield


app = FastAPI(title="Prospect Demo Site", version="1.0.0", lifespan=lifespan)

# CORS: allow local frontend during development
settings = get_settings()
if settings.app_env.lower() in {"dev", "development", "local"}:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


class ChatTurn(BaseModel):
    role: str = Field(..., description="'user' or 'assistant'")
    content: Optional[str] = ""


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_message: Optional[str] = Field(
        default="", alias="userMessage", description="Visitor's latest message"
    )
    chat_history: Optional[List[ChatTurn]] = Field(
        default_factory=list,
        alias="chatHistory",
        description="Every prior turn of this page session (frontend-managed)",
    )
    prospect_id: Optional[str] = Field(default=None, alias="prospectId")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(AccessDenied)
async def admin_access_denied(request: Request, exc: AccessDenied) -> PlainTextResponse:
    return access_denied_response()


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Rejected malformed request to %s: %s", request.url.path, exc.errors())
    return _error(400, "Invalid request")


# --- Public prospect-facing route ---

@app.get("/", response_class=HTMLResponse)
def landing(
    request: Request,
    prospect: Optional[str] = None,
    store: Optional[ProspectStore] = Depends(get_store),
):
    if not prospect:
        return PlainTextResponse("Prospect not found. Please use a valid demo link.", status_code=404)
    if store is None:
        return PlainTextResponse("Database not configured.", status_code=503)

    try:
        record = store.get(prospect)
    except SQLAlchemyError:
        logger.exception("Database query error")
        return PlainTextResponse("Server error", status_code=500)
    if record is None:
        return PlainTextResponse("Prospect not found.", status_code=404)

    return templates.TemplateResponse(
        request,
        "demo.html",
        {"prospect_name": record.name, "prospect_id": record.unique_id},
    )


# --- Admin routes ---

@app.get("/admin", response_class=HTMLResponse)
def admin_dashboard(
    request: Request,
    _: str = Depends(require_admin),
    store: Optional[ProspectStore] = Depends(get_store),
):
    if store is None:
        return PlainTextResponse("Database not configured.", status_code=503)
    try:
        prospects = store.list()
    except SQLAlchemyError:
        logger.exception("Admin dashboard error")
        return PlainTextResponse("Server error", status_code=500)

    base_url = str(request.base_url).rstrip("/")
    return templates.TemplateResponse(
        request,
        "admin_dashboard.html",
        {"prospects": prospects, "base_url": base_url},
    )


@app.post("/admin/create")
def admin_create(
    prospect_name: str = Form(default="", alias="prospectName"),
    system_prompt: str = Form(default="", alias="systemPrompt"),
    _: str = Depends(require_admin),
    store: Optional[ProspectStore] = Depends(get_store),
):
    if not prospect_name.strip() or not system_prompt.strip():
        return PlainTextResponse("Prospect name and system prompt are required.", status_code=400)
    if store is None:
        return PlainTextResponse("Database not configured.", status_code=503)

    try:
        store.create(prospect_name.strip(), system_prompt)
    except SQLAlchemyError:
        logger.exception("Error creating prospect")
        return PlainTextResponse("Error creating prospect", status_code=500)
    return RedirectResponse("/admin", status_code=303)


# --- Chat API route ---

@app.post("/chat")
def chat(
    req: ChatRequest,
    store: Optional[ProspectStore] = Depends(get_store),
    text_generator: TextGenerator = Depends(get_text_generator),
    speech: SpeechSynthesizer = Depends(get_speech),
) -> Any:
    if not req.prospect_id:
        return _error(400, "Missing Prospect ID")
    user_message = (req.user_message or "").strip()
    if not user_message:
        return _error(400, "Missing message")
    if store is None:
        return _error(503, "Database not configured")

    history: List[Dict[str, str]] = [
        {"role": t.role, "content": t.content or ""} for t in (req.chat_history or [])
    ]
    relay = ChatRelay(store.get, text_generator, speech)
    try:
        reply = relay.handle(req.prospect_id, user_message, history)
    except ProspectNotFound:
        logger.info("Chat for unknown prospect %s", req.prospect_id)
        return _error(404, "Prospect brain not found")
    except Exception as e:
        # Cause stays in the server log; callers only ever see the generic message.
        logger.exception("Chat API error: %s", e)
        return _error(500, CHAT_FAILURE_MESSAGE)

    logger.info("Chat turn complete: prospect=%s reply_chars=%s", req.prospect_id, len(reply.text))
    return {"textResponse": reply.text, "audioData": reply.audio_data}


@app.get("/health")
def health(store: Optional[ProspectStore] = Depends(get_store)):
    return {"status": "ok", "database": store is not None}


if __name__ == "__main__":
    import uvicorn

    logger.info("Server running on http://localhost:%s", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
