"""Generation service — ad package, concept, scene image and scene video.

Every public function catches failures at the call site and re-raises them
as an LLMError with a generic, user-facing message. The only
classification is a check for "JSON" in the error text, which turns into
the friendlier invalid-JSON hint.
"""

from __future__ import annotations

import base64
import logging
import uuid
from pathlib import Path
from typing import Callable

from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

import config
from pipeline.llm import (
    LLMError,
    PROVIDER,
    call_gemini_structured,
    extract_error_message,
    get_google_client,
    is_retryable,
    record_media_usage,
)
from pipeline.prompting import (
    AD_PACKAGE_RESPONSE_SCHEMA,
    CREATIVE_OUTPUT_RESPONSE_SCHEMA,
    build_ad_package_prompt,
    build_concept_prompt,
)
from pipeline.video_poll import VideoPollCancelled, poll_operation
from schemas.ad_package import AdPackage, CreativeOutput
from schemas.request import AdGenRequest

logger = logging.getLogger(__name__)

INVALID_JSON_MESSAGE = "The AI returned an invalid JSON response. Please try again."
NO_IMAGE_MESSAGE = "No image was generated. The response may have been blocked."
NO_VIDEO_LINK_MESSAGE = "Video generation completed, but no download link was found."

VIDEO_STATUS_SUBMITTING = "Sending request to the video model..."
VIDEO_STATUS_GENERATING = "Generating video... This can take a few minutes. Please wait."
VIDEO_STATUS_DOWNLOADING = "Downloading video..."

StatusCallback = Callable[[str], None]


def _surface_text_error(exc: Exception, action: str) -> LLMError:
    message = str(exc)
    if "JSON" in message:
        return LLMError(INVALID_JSON_MESSAGE, provider=PROVIDER, cause=exc)
    return LLMError(f"Failed to {action}: {message}", provider=PROVIDER, cause=exc)


# ---------------------------------------------------------------------------
# Text: ad package + quick concept
# ---------------------------------------------------------------------------

def generate_ad_package(request: AdGenRequest) -> AdPackage:
    """Generate the full multi-channel ad package for a campaign."""
    prompt = build_ad_package_prompt(request)
    images = [*request.product_images, *request.celebrity_images]
    try:
        return call_gemini_structured(
            prompt,
            AD_PACKAGE_RESPONSE_SCHEMA,
            AdPackage,
            images=images,
        )
    except Exception as exc:
        logger.error("Ad package generation failed: %s", exc)
        raise _surface_text_error(exc, "generate ad package") from exc


def generate_creative_concept(request: AdGenRequest) -> CreativeOutput:
    """Generate a single headline/body/CTA concept with a 3-scene storyboard."""
    prompt = build_concept_prompt(request)
    images = [*request.product_images, *request.celebrity_images]
    try:
        return call_gemini_structured(
            prompt,
            CREATIVE_OUTPUT_RESPONSE_SCHEMA,
            CreativeOutput,
            images=images,
        )
    except Exception as exc:
        logger.error("Gemini API call failed: %s", exc)
        raise _surface_text_error(exc, "generate ad concept") from exc


# ---------------------------------------------------------------------------
# Image
# ---------------------------------------------------------------------------

@retry(
    retry=retry_if_exception(is_retryable),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=30),
    reraise=True,
)
def _request_image(prompt: str):
    from google.genai import types

    client = get_google_client()
    return client.models.generate_images(
        model=config.IMAGE_MODEL,
        prompt=prompt,
        config=types.GenerateImagesConfig(
            number_of_images=1,
            output_mime_type=config.IMAGE_MIME_TYPE,
            aspect_ratio=config.IMAGE_ASPECT_RATIO,
        ),
    )


def generate_ad_image(prompt: str) -> str:
    """Generate one still for a storyboard scene; returns a data: URL."""
    logger.info("Image generation: model=%s, prompt=%d chars", config.IMAGE_MODEL, len(prompt))
    try:
        response = _request_image(prompt)
        generated = getattr(response, "generated_images", None) or []
        image = generated[0].image if generated and generated[0] is not None else None
        image_bytes = getattr(image, "image_bytes", None) if image is not None else None
        if not image_bytes:
            raise RuntimeError(NO_IMAGE_MESSAGE)
        record_media_usage(config.IMAGE_MODEL)
        encoded = base64.b64encode(bytes(image_bytes)).decode("ascii")
        return f"data:{config.IMAGE_MIME_TYPE};base64,{encoded}"
    except Exception as exc:
        logger.error("Image generation failed: %s", exc)
        message = str(exc) if isinstance(exc, (LLMError, RuntimeError)) else extract_error_message(exc, config.IMAGE_MODEL)
        raise LLMError(f"Failed to generate image: {message}", provider=PROVIDER, model=config.IMAGE_MODEL, cause=exc) from exc


# ---------------------------------------------------------------------------
# Video
# ---------------------------------------------------------------------------

@retry(
    retry=retry_if_exception(is_retryable),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=30),
    reraise=True,
)
def _start_video_job(prompt: str):
    from google.genai import types

    client = get_google_client()
    return client.models.generate_videos(
        model=config.VIDEO_MODEL,
        prompt=prompt,
        config=types.GenerateVideosConfig(number_of_videos=1),
    )


def _refresh_video_job(operation):
    return get_google_client().operations.get(operation)


def _first_video(operation):
    response = getattr(operation, "response", None) or getattr(operation, "result", None)
    videos = getattr(response, "generated_videos", None) or []
    if not videos or videos[0] is None:
        return None
    return getattr(videos[0], "video", None)


def download_video(uri: str, target_path: Path) -> Path:
    """Stream a generated video to disk, authenticating with the API key."""
    import httpx

    target_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with httpx.stream(
            "GET",
            uri,
            params={"key": config.GOOGLE_API_KEY},
            follow_redirects=True,
            timeout=config.VIDEO_DOWNLOAD_TIMEOUT,
        ) as response:
            if not response.is_success:
                raise RuntimeError(f"Failed to download video: {response.reason_phrase or response.status_code}")
            with target_path.open("wb") as fh:
                for chunk in response.iter_bytes():
                    if chunk:
                        fh.write(chunk)
    except Exception:
        # No partial files in VIDEO_DIR
        target_path.unlink(missing_ok=True)
        raise
    return target_path


def generate_ad_video(
    prompt: str,
    *,
    is_cancelled: Callable[[], bool] | None = None,
    on_status: StatusCallback | None = None,
    poll_interval: float | None = None,
    max_wait: float | None = None,
    output_dir: Path | None = None,
) -> Path:
    """Generate one video for a storyboard scene and return its local path.

    Submits the job, polls it every ``poll_interval`` seconds until done,
    then downloads the result into ``output_dir`` (VIDEO_DIR by default).
    Cancellation raises VideoPollCancelled unchanged; every other failure is
    wrapped as "Failed to generate video: ...".
    """
    def _status(message: str):
        logger.info("Video: %s", message)
        if on_status:
            on_status(message)

    try:
        _status(VIDEO_STATUS_SUBMITTING)
        operation = _start_video_job(prompt)

        _status(VIDEO_STATUS_GENERATING)
        operation = poll_operation(
            operation,
            _refresh_video_job,
            interval=poll_interval,
            max_wait=max_wait,
            is_cancelled=is_cancelled,
        )

        error = getattr(operation, "error", None)
        if error:
            detail = error.get("message") if isinstance(error, dict) else getattr(error, "message", None)
            raise RuntimeError(f"Video generation failed: {detail or error}")

        video = _first_video(operation)
        target = (output_dir or config.VIDEO_DIR) / f"{uuid.uuid4().hex}.mp4"
        video_bytes = getattr(video, "video_bytes", None) if video is not None else None
        uri = str(getattr(video, "uri", "") or "").strip() if video is not None else ""

        if video_bytes:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(bytes(video_bytes))
        elif uri:
            _status(VIDEO_STATUS_DOWNLOADING)
            download_video(uri, target)
        else:
            raise RuntimeError(NO_VIDEO_LINK_MESSAGE)

        record_media_usage(config.VIDEO_MODEL)
        logger.info("Video saved: %s", target)
        return target
    except VideoPollCancelled:
        logger.info("Video generation cancelled")
        raise
    except Exception as exc:
        logger.error("Video generation failed: %s", exc)
        message = str(exc) if isinstance(exc, (LLMError, RuntimeError)) else extract_error_message(exc, config.VIDEO_MODEL)
        raise LLMError(f"Failed to generate video: {message}", provider=PROVIDER, model=config.VIDEO_MODEL, cause=exc) from exc
