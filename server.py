"""AdGen — Web Server.

FastAPI backend that serves the campaign form and exposes API routes for
image uploads, ad package generation and per-scene image/video generation.

Usage:
    python server.py
    # Then open http://localhost:8000
"""

from __future__ import annotations

import asyncio
import logging
import threading
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Literal

from fastapi import FastAPI, File, Form, UploadFile
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field, ValidationError

import config
from pipeline.generation import (
    generate_ad_image,
    generate_ad_package,
    generate_ad_video,
    generate_creative_concept,
)
from pipeline.llm import LLMError, get_usage_summary
from pipeline.prompting import build_scene_image_prompt, build_scene_video_prompt
from pipeline.scene_media import SceneMediaBoard
from pipeline.uploads import UploadError, UploadRegistry
from schemas.ad_package import ConceptScene, StoryboardScene
from schemas.request import AdGenRequest

logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO), format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


def _check_api_keys() -> list[str]:
    """Check that the provider key is configured. Returns list of warnings."""
    warnings = []
    if not config.GOOGLE_API_KEY:
        warnings.append("GOOGLE_API_KEY is not set — every generation request will fail!")
    return warnings


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    key_warnings = _check_api_keys()
    if key_warnings:
        logger.warning("=" * 60)
        logger.warning("API KEY WARNINGS:")
        for w in key_warnings:
            logger.warning("  • %s", w)
        logger.warning("Add GOOGLE_API_KEY to your .env file.")
        logger.warning("=" * 60)
    else:
        logger.info("API key: Google configured")

    yield

    # Shutdown
    scene_board.clear()
    uploads.clear()


app = FastAPI(title="AdGen", version="1.0.0", lifespan=lifespan)

# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

server_state: dict[str, Any] = {
    "active_generations": 0,
    "last_error": None,
    "log": [],
}

uploads = UploadRegistry()
scene_board = SceneMediaBoard()


def _add_log(message: str, level: str = "info"):
    entry = {
        "time": datetime.now().strftime("%H:%M:%S"),
        "level": level,
        "message": message,
    }
    server_state["log"].append(entry)
    if len(server_state["log"]) > 200:
        server_state["log"] = server_state["log"][-200:]


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


# ---------------------------------------------------------------------------
# Health / options
# ---------------------------------------------------------------------------

@app.get("/api/health")
async def api_health():
    """Report whether the provider key is configured and which models are used."""
    return {
        "ok": bool(config.GOOGLE_API_KEY),
        "models": {
            "creative": config.CREATIVE_MODEL,
            "image": config.IMAGE_MODEL,
            "video": config.VIDEO_MODEL,
        },
        "warnings": _check_api_keys(),
    }


@app.get("/api/channels")
async def api_channels():
    return {"channels": list(config.CHANNEL_OPTIONS)}


@app.get("/api/status")
async def api_status():
    return {
        "generating": server_state["active_generations"] > 0,
        "active_generations": server_state["active_generations"],
        "last_error": server_state["last_error"],
        "active_video_jobs": scene_board.active_jobs(),
        "uploads": len(uploads.list_uploads()),
        "usage": get_usage_summary(),
        "log": server_state["log"][-50:],
    }


# ---------------------------------------------------------------------------
# Uploads (image previews)
# ---------------------------------------------------------------------------

@app.post("/api/uploads")
async def api_upload(files: list[UploadFile] = File(...), kind: str = Form("product")):
    """Store uploaded images and return their preview handles."""
    stored = []
    try:
        for upload in files:
            data = await upload.read()
            item = uploads.add(upload.filename or "", upload.content_type or "", data, kind=kind)
            stored.append(item)
    except UploadError as exc:
        # All-or-nothing: release what this request already stored
        for item in stored:
            uploads.remove(item.upload_id)
        return _error(str(exc), 400)
    return {"uploads": [item.public_dict() for item in stored]}


@app.get("/api/uploads/{upload_id}/preview")
async def api_upload_preview(upload_id: str):
    item = uploads.get(upload_id)
    if item is None or not item.path.exists():
        return _error(f"Upload '{upload_id}' not found", 404)
    return FileResponse(str(item.path), media_type=item.mime_type)


@app.delete("/api/uploads/{upload_id}")
async def api_delete_upload(upload_id: str):
    """Revoke an upload's preview and delete its file."""
    if not uploads.remove(upload_id):
        return _error(f"Upload '{upload_id}' not found", 404)
    return {"ok": True, "deleted": upload_id}


# ---------------------------------------------------------------------------
# Ad package generation
# ---------------------------------------------------------------------------

class GenerateRequest(BaseModel):
    product_description: str = ""
    campaign_goals: str = ""
    brand_guidelines: str = ""
    tone: str = ""
    channels: list[str] = Field(default_factory=list)
    regions: str = ""
    product_image_ids: list[str] = Field(default_factory=list)
    celebrity_image_ids: list[str] = Field(default_factory=list)
    mode: Literal["package", "concept"] = "package"


def _build_adgen_request(req: GenerateRequest) -> AdGenRequest:
    return AdGenRequest(
        product_description=req.product_description,
        product_images=uploads.resolve(req.product_image_ids),
        celebrity_images=uploads.resolve(req.celebrity_image_ids),
        campaign_goals=req.campaign_goals,
        brand_guidelines=req.brand_guidelines,
        tone=req.tone,
        channels=req.channels,
        regions=req.regions,
    )


@app.post("/api/generate")
async def api_generate(req: GenerateRequest):
    """Generate an ad package (or a quick concept) from the form inputs."""
    try:
        adgen_request = _build_adgen_request(req)
    except UploadError as exc:
        return _error(str(exc), 400)
    except ValidationError as exc:
        messages = "; ".join(str(err.get("msg", "")).removeprefix("Value error, ") for err in exc.errors())
        return _error(messages or "Invalid request", 400)

    server_state["active_generations"] += 1
    server_state["last_error"] = None
    _add_log(f"Generating {req.mode} ({adgen_request.image_count} image(s), {len(adgen_request.channels)} channel(s))")
    loop = asyncio.get_running_loop()
    try:
        if req.mode == "concept":
            result = await loop.run_in_executor(None, generate_creative_concept, adgen_request)
            payload = {"creative_output": result.model_dump(mode="json")}
        else:
            result = await loop.run_in_executor(None, generate_ad_package, adgen_request)
            payload = {"ad_package": result.model_dump(mode="json")}
    except LLMError as exc:
        logger.error("Error generating ad package: %s", exc)
        server_state["last_error"] = str(exc)
        _add_log(str(exc), "error")
        return _error(str(exc), 502)
    finally:
        server_state["active_generations"] -= 1

    discarded = scene_board.discard_idle()
    _add_log(f"Generated {req.mode} ({discarded} stale scene state(s) dropped)")
    return payload


# ---------------------------------------------------------------------------
# Per-scene media
# ---------------------------------------------------------------------------

class SceneMediaRequest(BaseModel):
    scene_key: str = Field(..., min_length=1, description="Unique per displayed scene, e.g. 'v1:s1'")
    scene: dict[str, Any]


def _parse_scene(raw: dict[str, Any]) -> ConceptScene | StoryboardScene:
    # Concept scenes carry a mood; full storyboard scenes carry camera direction.
    if "mood" in raw:
        return ConceptScene.model_validate(raw)
    return StoryboardScene.model_validate(raw)


@app.post("/api/scenes/image")
async def api_scene_image(req: SceneMediaRequest):
    """Generate a still for one scene. Clears that scene's video."""
    try:
        scene = _parse_scene(req.scene)
    except ValidationError as exc:
        return _error(f"Invalid scene: {exc.error_count()} validation error(s)", 400)

    state = scene_board.state(req.scene_key)
    if state.is_generating:
        return _error(f"Scene '{req.scene_key}' is already generating {state.generating}", 409)

    state.start_image()
    prompt = build_scene_image_prompt(scene)
    loop = asyncio.get_running_loop()
    try:
        image_url = await loop.run_in_executor(None, generate_ad_image, prompt)
        state.finish_image(image_url)
    except LLMError as exc:
        state.fail_image(str(exc))
        _add_log(f"Image failed for {req.scene_key}: {exc}", "error")
    return state.model_dump()


async def _run_scene_video(scene_key: str, prompt: str, cancel_flag: threading.Event):
    state = scene_board.state(scene_key)
    loop = asyncio.get_running_loop()

    def _on_status(message: str):
        loop.call_soon_threadsafe(state.set_status, message)

    try:
        path = await loop.run_in_executor(
            None,
            lambda: generate_ad_video(prompt, is_cancelled=cancel_flag.is_set, on_status=_on_status),
        )
        state.finish_video(f"/api/videos/{path.name}")
        _add_log(f"Video ready for {scene_key}")
    except LLMError as exc:
        state.fail_video(str(exc))
        _add_log(f"Video failed for {scene_key}: {exc}", "error")


@app.post("/api/scenes/video")
async def api_scene_video(req: SceneMediaRequest):
    """Start video generation for one scene. Clears that scene's image."""
    try:
        scene = _parse_scene(req.scene)
    except ValidationError as exc:
        return _error(f"Invalid scene: {exc.error_count()} validation error(s)", 400)

    state = scene_board.state(req.scene_key)
    if state.is_generating:
        return _error(f"Scene '{req.scene_key}' is already generating {state.generating}", 409)

    state.start_video()
    prompt = build_scene_video_prompt(scene)
    scene_board.start_job(req.scene_key, lambda flag: _run_scene_video(req.scene_key, prompt, flag))
    _add_log(f"Video started for {req.scene_key}")
    return JSONResponse(state.model_dump(), status_code=202)


@app.get("/api/scenes/{scene_key}")
async def api_scene_state(scene_key: str):
    return scene_board.snapshot(scene_key)


@app.delete("/api/scenes/{scene_key}/video")
async def api_cancel_scene_video(scene_key: str):
    """Ask a running video job to stop at its next poll."""
    if not scene_board.cancel(scene_key):
        return _error(f"No video generation running for scene '{scene_key}'", 404)
    return {"ok": True, "cancelling": scene_key}


@app.get("/api/videos/{name}")
async def api_video(name: str):
    if Path(name).name != name or not name.endswith(".mp4"):
        return _error("Invalid video name", 400)
    path = config.VIDEO_DIR / name
    if not path.exists():
        return _error(f"Video '{name}' not found", 404)
    return FileResponse(str(path), media_type="video/mp4")


# ---------------------------------------------------------------------------
# Static files & SPA fallback
# ---------------------------------------------------------------------------

static_dir = config.STATIC_DIR
static_dir.mkdir(exist_ok=True)

app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")


@app.get("/")
async def index():
    return FileResponse(str(static_dir / "index.html"))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn
    print("\n  AdGen — AI Creative Generator")
    print(f"  http://localhost:{config.PORT}\n")
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level="info")
