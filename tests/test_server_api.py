from __future__ import annotations

import asyncio
import io
import json
import tempfile
import threading
import unittest
from pathlib import Path
from unittest.mock import patch

from fastapi import UploadFile
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers

import server
from pipeline.llm import LLMError
from pipeline.scene_media import SceneMediaBoard
from pipeline.uploads import UploadRegistry
from schemas.ad_package import AdPackage, CreativeOutput

FIXTURE = Path(__file__).parent / "fixtures" / "ad_package.json"

STORYBOARD_SCENE = {
    "scene_id": "s1",
    "duration_s": 3,
    "shot_type": "close-up",
    "camera_move": "handheld",
    "framing": "centered",
    "action": "Phone battery hits 1% on a ridge",
}


def _body(resp: JSONResponse) -> dict:
    return json.loads(resp.body)


def _upload_file(name: str, data: bytes, content_type: str) -> UploadFile:
    return UploadFile(file=io.BytesIO(data), filename=name, headers=Headers({"content-type": content_type}))


class ServerApiTestCase(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.root = Path(self.tmpdir.name)

        self.uploads = UploadRegistry(root=self.root / "uploads")
        self.board = SceneMediaBoard()
        for name, value in (("uploads", self.uploads), ("scene_board", self.board)):
            patcher = patch.object(server, name, value)
            patcher.start()
            self.addCleanup(patcher.stop)

        server.server_state["active_generations"] = 0
        server.server_state["last_error"] = None
        server.server_state["log"] = []


class UploadApiTests(ServerApiTestCase):
    def test_upload_preview_and_delete(self):
        resp = asyncio.run(server.api_upload(files=[_upload_file("a.png", b"png", "image/png")], kind="product"))
        item = resp["uploads"][0]
        self.assertEqual(item["filename"], "a.png")

        preview = asyncio.run(server.api_upload_preview(item["id"]))
        self.assertEqual(preview.media_type, "image/png")

        deleted = asyncio.run(server.api_delete_upload(item["id"]))
        self.assertEqual(deleted, {"ok": True, "deleted": item["id"]})
        missing = asyncio.run(server.api_upload_preview(item["id"]))
        self.assertEqual(missing.status_code, 404)

    def test_batch_with_non_image_is_rejected_entirely(self):
        files = [
            _upload_file("a.png", b"png", "image/png"),
            _upload_file("notes.txt", b"text", "text/plain"),
        ]
        resp = asyncio.run(server.api_upload(files=files, kind="product"))

        self.assertEqual(resp.status_code, 400)
        self.assertIn("only image files", _body(resp)["error"])
        self.assertEqual(self.uploads.list_uploads(), [])


class GenerateApiTests(ServerApiTestCase):
    def test_generate_returns_package_with_copy_key(self):
        pkg = AdPackage.model_validate_json(FIXTURE.read_text())
        image = self.uploads.add("a.png", "image/png", b"png")
        req = server.GenerateRequest(
            product_description="Backpack",
            channels=["TikTok"],
            product_image_ids=[image.upload_id],
        )

        with patch("server.generate_ad_package", return_value=pkg) as gen:
            resp = asyncio.run(server.api_generate(req))

        sent = gen.call_args.args[0]
        self.assertEqual(sent.image_count, 1)
        self.assertEqual(resp["ad_package"]["variants"][0]["copy"]["cta"], "Shop now")
        self.assertEqual(server.server_state["active_generations"], 0)

    def test_overlapping_requests_keep_status_busy(self):
        pkg = AdPackage.model_validate_json(FIXTURE.read_text())
        slow_started = threading.Event()
        release = threading.Event()

        def fake_generate(request):
            if request.product_description == "slow":
                slow_started.set()
                release.wait(5)
            return pkg

        async def run():
            slow = asyncio.create_task(server.api_generate(server.GenerateRequest(product_description="slow")))
            while not slow_started.is_set():
                await asyncio.sleep(0.01)
            await server.api_generate(server.GenerateRequest(product_description="fast"))
            during = await server.api_status()
            release.set()
            await slow
            after = await server.api_status()
            return during, after

        with patch("server.generate_ad_package", side_effect=fake_generate):
            during, after = asyncio.run(run())

        self.assertTrue(during["generating"])
        self.assertEqual(during["active_generations"], 1)
        self.assertFalse(after["generating"])
        self.assertEqual(after["active_generations"], 0)

    def test_new_output_drops_idle_scene_states(self):
        pkg = AdPackage.model_validate_json(FIXTURE.read_text())
        self.board.state("old:s1").finish_image("data:image/jpeg;base64,OLD")
        self.board.state("old:s2").start_video()

        with patch("server.generate_ad_package", return_value=pkg):
            asyncio.run(server.api_generate(server.GenerateRequest(product_description="x")))

        self.assertIsNone(self.board.snapshot("old:s1")["image_url"])
        self.assertEqual(self.board.snapshot("old:s2")["generating"], "video")

    def test_concept_mode(self):
        concept = CreativeOutput(headline="H", body="B", cta="C", storyboard=[])
        with patch("server.generate_creative_concept", return_value=concept):
            resp = asyncio.run(server.api_generate(server.GenerateRequest(product_description="x", mode="concept")))
        self.assertEqual(resp["creative_output"]["headline"], "H")

    def test_blank_description_is_rejected_before_any_call(self):
        with patch("server.generate_ad_package") as gen:
            resp = asyncio.run(server.api_generate(server.GenerateRequest(product_description="   ")))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(_body(resp)["error"], "Product description is required.")
        gen.assert_not_called()

    def test_unknown_upload_id_is_rejected(self):
        req = server.GenerateRequest(product_description="x", celebrity_image_ids=["gone"])
        resp = asyncio.run(server.api_generate(req))
        self.assertEqual(resp.status_code, 400)
        self.assertIn("Please re-upload", _body(resp)["error"])

    def test_generation_error_is_reported(self):
        with patch("server.generate_ad_package", side_effect=LLMError("The AI returned an invalid JSON response. Please try again.")):
            resp = asyncio.run(server.api_generate(server.GenerateRequest(product_description="x")))

        self.assertEqual(resp.status_code, 502)
        self.assertEqual(_body(resp)["error"], "The AI returned an invalid JSON response. Please try again.")
        self.assertEqual(server.server_state["last_error"], _body(resp)["error"])
        self.assertEqual(server.server_state["active_generations"], 0)


class SceneMediaApiTests(ServerApiTestCase):
    def test_scene_image_replaces_video(self):
        self.board.state("v1:s1").finish_video("/api/videos/old.mp4")
        req = server.SceneMediaRequest(scene_key="v1:s1", scene=STORYBOARD_SCENE)

        with patch("server.generate_ad_image", return_value="data:image/jpeg;base64,AAA") as gen:
            state = asyncio.run(server.api_scene_image(req))

        self.assertIn("close-up, centered", gen.call_args.args[0])
        self.assertEqual(state["image_url"], "data:image/jpeg;base64,AAA")
        self.assertIsNone(state["video_url"])
        self.assertIsNone(state["generating"])

    def test_scene_image_failure_is_recorded(self):
        req = server.SceneMediaRequest(scene_key="k", scene={**STORYBOARD_SCENE})
        with patch("server.generate_ad_image", side_effect=LLMError("Failed to generate image: blocked")):
            state = asyncio.run(server.api_scene_image(req))
        self.assertEqual(state["image_error"], "Failed to generate image: blocked")
        self.assertIsNone(state["image_url"])

    def test_concept_scene_is_accepted(self):
        scene = {"scene_id": "s1", "description": "d", "action": "a", "shot_type": "wide shot", "mood": "serene"}
        req = server.SceneMediaRequest(scene_key="c:s1", scene=scene)
        with patch("server.generate_ad_image", return_value="data:image/jpeg;base64,B") as gen:
            asyncio.run(server.api_scene_image(req))
        self.assertIn("wide shot, serene mood", gen.call_args.args[0])

    def test_invalid_scene_is_rejected(self):
        req = server.SceneMediaRequest(scene_key="k", scene={"scene_id": "s1"})
        resp = asyncio.run(server.api_scene_image(req))
        self.assertEqual(resp.status_code, 400)

    def test_scene_video_runs_in_background(self):
        video_path = self.root / "abc.mp4"

        def fake_video(prompt, *, is_cancelled=None, on_status=None):
            on_status("Downloading video...")
            return video_path

        async def run():
            req = server.SceneMediaRequest(scene_key="v1:s1", scene=STORYBOARD_SCENE)
            self.board.state("v1:s1").finish_image("data:image/jpeg;base64,OLD")
            resp = await server.api_scene_video(req)
            self.assertEqual(resp.status_code, 202)
            started = _body(resp)
            self.assertEqual(started["generating"], "video")
            self.assertIsNone(started["image_url"])

            busy = await server.api_scene_image(req)
            self.assertEqual(busy.status_code, 409)

            await self.board.get_job("v1:s1")
            return await server.api_scene_state("v1:s1")

        with patch("server.generate_ad_video", side_effect=fake_video):
            state = asyncio.run(run())

        self.assertEqual(state["video_url"], "/api/videos/abc.mp4")
        self.assertIsNone(state["generating"])

    def test_cancel_without_running_job_is_404(self):
        resp = asyncio.run(server.api_cancel_scene_video("nothing"))
        self.assertEqual(resp.status_code, 404)


class MiscApiTests(ServerApiTestCase):
    def test_channels_and_health(self):
        channels = asyncio.run(server.api_channels())
        self.assertEqual(channels["channels"], ["TikTok", "YouTube", "Instagram Feed", "Instagram Reels", "Billboard"])

        with patch.object(server.config, "GOOGLE_API_KEY", ""):
            health = asyncio.run(server.api_health())
        self.assertFalse(health["ok"])
        self.assertTrue(health["warnings"])

    def test_video_name_must_be_plain_mp4(self):
        resp = asyncio.run(server.api_video("../config.py"))
        self.assertEqual(resp.status_code, 400)

    def test_status_reports_uploads(self):
        self.uploads.add("a.png", "image/png", b"x")
        status = asyncio.run(server.api_status())
        self.assertEqual(status["uploads"], 1)
        self.assertEqual(status["active_video_jobs"], [])


if __name__ == "__main__":
    unittest.main()
