"""Per-scene image/video generation state.

Each storyboard scene shown in the output view can hold either a generated
still or a generated video. Starting one kind clears the other's result;
that exclusion is a convention of the state transitions below, not a lock.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Awaitable, Callable, Literal, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

MediaKind = Literal["image", "video"]


class SceneMediaState(BaseModel):
    scene_key: str
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    generating: Optional[MediaKind] = None
    status: str = ""
    image_error: Optional[str] = None
    video_error: Optional[str] = None

    @property
    def is_generating(self) -> bool:
        return self.generating is not None

    def start_image(self):
        self.generating = "image"
        self.image_error = None
        self.video_url = None
        self.status = "Generating Image..."

    def finish_image(self, image_url: str):
        self.image_url = image_url
        self.generating = None
        self.status = ""

    def fail_image(self, message: str):
        self.image_error = message or "An unknown error occurred."
        self.generating = None
        self.status = ""

    def start_video(self):
        self.generating = "video"
        self.video_error = None
        self.image_url = None
        self.status = "Sending request to the video model..."

    def set_status(self, message: str):
        self.status = message

    def finish_video(self, video_url: str):
        self.video_url = video_url
        self.generating = None
        self.status = ""

    def fail_video(self, message: str):
        self.video_error = message or "An unknown error occurred during video generation."
        self.generating = None
        self.status = ""


class SceneMediaBoard:
    """In-memory scene states plus in-flight video tasks, keyed by scene."""

    def __init__(self):
        self._states: dict[str, SceneMediaState] = {}
        self._jobs: dict[str, asyncio.Task] = {}
        self._cancel_flags: dict[str, threading.Event] = {}

    def _prune_finished(self):
        for key in [key for key, task in self._jobs.items() if task.done()]:
            del self._jobs[key]
            self._cancel_flags.pop(key, None)

    def state(self, scene_key: str) -> SceneMediaState:
        existing = self._states.get(scene_key)
        if existing is None:
            existing = SceneMediaState(scene_key=scene_key)
            self._states[scene_key] = existing
        return existing

    def snapshot(self, scene_key: str) -> dict[str, Any]:
        return self.state(scene_key).model_dump()

    def start_job(self, scene_key: str, coro_factory: Callable[[threading.Event], Awaitable[Any]]) -> asyncio.Task:
        """Start a video task for the scene, or return the one already running."""
        self._prune_finished()
        existing = self._jobs.get(scene_key)
        if existing is not None:
            return existing
        cancel_flag = threading.Event()
        self._cancel_flags[scene_key] = cancel_flag
        task = asyncio.create_task(coro_factory(cancel_flag))
        self._jobs[scene_key] = task
        return task

    def get_job(self, scene_key: str) -> asyncio.Task | None:
        self._prune_finished()
        return self._jobs.get(scene_key)

    def cancel(self, scene_key: str) -> bool:
        """Flag the scene's running job; the poll loop stops at its next check."""
        task = self.get_job(scene_key)
        flag = self._cancel_flags.get(scene_key)
        if task is None or flag is None:
            return False
        flag.set()
        logger.info("Video job cancellation requested: %s", scene_key)
        return True

    def active_jobs(self) -> list[str]:
        self._prune_finished()
        return list(self._jobs)

    def discard_idle(self) -> int:
        """Forget scene states with nothing in flight (a new output replaced them)."""
        self._prune_finished()
        idle = [key for key, state in self._states.items() if not state.is_generating and key not in self._jobs]
        for key in idle:
            del self._states[key]
        return len(idle)

    def clear(self):
        for flag in self._cancel_flags.values():
            flag.set()
        self._states.clear()
        self._jobs.clear()
        self._cancel_flags.clear()
