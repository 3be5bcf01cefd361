"""
server/main.py
SoloMan backend – FastAPI
"""

# =========================
# Standard & third-party
# =========================
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.concurrency import run_in_threadpool

from server import config
from server.challenge import DailyChallenge
from server.dispatcher import Dispatcher
from server.license_gate import LicenseGate, load_license_keys, require_license
from server.prompting import PromptBuilder
from server.schemas import (
    ChatIn, EditImageIn, GalleryUploadIn, GenerateImageIn, MissionIn, MissionStatusIn
)
from services.errors import AppError, InvalidImage, ProviderError
from services.images import parse_data_url
from services.openai_client import GenerativeClient
from services.store import Store

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("server")


def _state(request: Request):
    return request.app.state


# =========================
# App factory
# =========================
def create_app(settings: Optional[config.Settings] = None, ai: Optional[GenerativeClient] = None) -> FastAPI:
    settings = settings or config.Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # a broken database aborts startup
        store = Store(settings.database_path)
        store.init_schema()
        keys = load_license_keys(settings.license_file, extra=settings.license_keys)
        client = ai or GenerativeClient(
            api_key=settings.openai_api_key,
            chat_model=settings.chat_model,
            image_model=settings.image_model,
            image_size=settings.image_size,
            timeout=settings.provider_timeout,
        )
        prompts = PromptBuilder(settings.prompt_path)
        challenge = DailyChallenge()
        gate = LicenseGate(keys)

        app.state.store = store
        app.state.gate = gate
        app.state.ai = client
        app.state.prompts = prompts
        app.state.challenge = challenge
        app.state.dispatcher = Dispatcher(
            store, gate, client, challenge, prompts,
            history_window=settings.chat_history_window,
            temperature=settings.chat_temperature,
            top_p=settings.chat_top_p,
        )
        log.info("[boot] db=%s ai_configured=%s licenses=%d", settings.database_path, client.configured, len(gate))
        yield

    app = FastAPI(title="SoloMan Backend", version="1.0.0", lifespan=lifespan)

    # one budget per client across every /api/ route
    limiter = Limiter(
        key_func=get_remote_address,
        application_limits=[settings.rate_limit] if settings.rate_limit else [],
        enabled=bool(settings.rate_limit),
    )
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    assets_dir = settings.dist_dir / "assets"
    if assets_dir.is_dir():
        app.mount("/assets", StaticFiles(directory=str(assets_dir)), name="assets")
    index_file = settings.dist_dir / "index.html"

    # =========================
    # Errors + request log
    # =========================
    @app.exception_handler(AppError)
    async def app_error(request: Request, exc: AppError):
        log.warning("[error] %s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.detail)
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(RateLimitExceeded)
    def too_many_requests(request: Request, exc: RateLimitExceeded):
        log.warning("[limit] %s exceeded %s", get_remote_address(request), exc.detail)
        return JSONResponse(
            {"error": "SoloMan is a bit tired! Please wait a few minutes before asking again. 😴"},
            status_code=429,
        )

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ())[1:]) or "body"
        return JSONResponse({"error": f"Invalid {field}: {first.get('msg', 'bad request')}"}, status_code=400)

    @app.exception_handler(Exception)
    async def unhandled(request: Request, exc: Exception):
        log.exception("[error] unhandled server error on %s %s", request.method, request.url.path)
        return JSONResponse({"error": "SoloMan's brain had a hiccup! 🧠"}, status_code=500)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        log.info("%s %s -> %d", request.method, request.url.path, response.status_code)
        return response

    # =========================
    # Health / Diagnostics
    # =========================
    @app.get("/api/health")
    async def health(request: Request, net: int = 0):
        """
        Basic health check. Add ?net=1 to test outbound access to the AI provider.
        """
        state = _state(request)
        info = {
            "status": "ok",
            "ai_configured": state.ai.configured,
            "db_connected": await run_in_threadpool(state.store.ping),
        }
        if net:
            try:
                headers = {"Authorization": f"Bearer {settings.openai_api_key}"}
                async with httpx.AsyncClient(timeout=8) as client:
                    r = await client.get("https://api.openai.com/v1/models", headers=headers)
                info["net"] = {"status": r.status_code, "ok": r.status_code < 400}
            except httpx.HTTPError as e:
                info["net"] = f"error: {type(e).__name__}: {e}"
        return info

    # =========================
    # Root (serves the SPA build)
    # =========================
    @app.get("/", response_class=HTMLResponse)
    @limiter.exempt
    def root_page():
        if index_file.exists():
            return FileResponse(str(index_file))
        return HTMLResponse("<!doctype html><h1>SoloMan backend is running.</h1>")

    # =========================
    # Missions
    # =========================
    @app.get("/api/tasks")
    def list_tasks(request: Request):
        return _state(request).store.list_missions(seed=True)

    @app.post("/api/tasks")
    def add_task(body: MissionIn, request: Request):
        log.info("[tasks] adding %r", body.title)
        return _state(request).store.add_mission(body.title, body.description)

    @app.patch("/api/tasks/{task_id}")
    def update_task(task_id: int, body: MissionStatusIn, request: Request):
        _state(request).store.set_mission_status(task_id, body.status)
        return {"success": True}

    @app.delete("/api/tasks/{task_id}")
    def delete_task(task_id: int, request: Request):
        _state(request).store.delete_mission(task_id)
        return {"success": True}

    # =========================
    # Chat (license-gated)
    # =========================
    @app.get("/api/chat", dependencies=[Depends(require_license)])
    def chat_history(request: Request):
        state = _state(request)
        return state.store.ensure_welcome(state.prompts.WELCOME)

    @app.delete("/api/chat", dependencies=[Depends(require_license)])
    def clear_chat(request: Request):
        _state(request).store.clear_chat()
        return {"success": True}

    @app.post("/api/chat")
    def chat(body: ChatIn, request: Request, x_license_key: Optional[str] = Header(None)):
        result = _state(request).dispatcher.handle(
            body.message, license_key=x_license_key, image_under_edit=body.imageUnderEdit
        )
        if result is None:
            return JSONResponse({"error": "Message is empty"}, status_code=400)
        if result.forbidden:
            return JSONResponse({"error": result.reply, "response": result.reply}, status_code=403)
        return result.to_json()

    @app.get("/api/challenge")
    def challenge(request: Request):
        return _state(request).challenge.snapshot()

    # =========================
    # Gallery
    # =========================
    @app.post("/api/gallery/upload")
    def gallery_upload(body: GalleryUploadIn, request: Request):
        log.info("[gallery] saving %s image", body.type)
        _state(request).store.add_gallery(body.imageUrl, prompt=body.prompt, kind=body.type)
        return {"success": True}

    @app.get("/api/gallery")
    def gallery(request: Request):
        return _state(request).store.list_gallery()

    @app.delete("/api/gallery/{entry_id}")
    def gallery_delete(entry_id: int, request: Request):
        _state(request).store.delete_gallery(entry_id)
        return {"success": True}

    # =========================
    # Direct image routes (license-gated)
    # =========================
    @app.post("/api/generate-image", dependencies=[Depends(require_license)])
    def generate_image(body: GenerateImageIn, request: Request):
        try:
            image = _state(request).ai.generate_image(body.prompt)
        except InvalidImage:
            raise
        except ProviderError as e:
            raise ProviderError(e.detail, message="Failed to generate image") from e
        return {"imageUrl": image.to_data_url()}

    @app.post("/api/edit-image", dependencies=[Depends(require_license)])
    def edit_image(body: EditImageIn, request: Request):
        source = parse_data_url(body.base64Image)
        try:
            image = _state(request).ai.edit_image(body.prompt, source)
        except InvalidImage:
            raise
        except ProviderError as e:
            raise ProviderError(e.detail, message="Failed to edit image") from e
        return {"imageUrl": image.to_data_url()}

    return app


app = create_app()
