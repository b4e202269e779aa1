from __future__ import annotations

import asyncio
import os
import unittest
from io import BytesIO
from types import SimpleNamespace
from unittest.mock import patch

from fastapi.testclient import TestClient
from PIL import Image

from editing_desk.core.settings import Settings
from editing_desk.main import create_app, lifespan
from editing_desk.schemas.analysis import AnalysisResult, Correction, HeadlinePair
from editing_desk.services.errors import MalformedJson, SafetyBlocked, TransportFailure
from editing_desk.services.identity import IdentityBootstrap

ANNOTATED = (
    'The cow <span class="error-highlight">eat</span> '
    '<span class="correction-suggestion">[eats]</span> grass. <b>x</b>'
)


def _result(n: int = 5) -> AnalysisResult:
    return AnalysisResult(
        annotated_text=ANNOTATED,
        corrections=[Correction(original_error="eat", corrected_text="eats")],
        headlines=[HeadlinePair(headline=f"शीर्षक {i}", subheadline=f"उपशीर्षक {i}") for i in range(n)],
    )


class _StubPipeline:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.requests = []

    def submit(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.result


def _png() -> bytes:
    buf = BytesIO()
    Image.new("RGB", (4, 4), "white").save(buf, format="PNG")
    return buf.getvalue()


class _RoutesBase(unittest.TestCase):
    def make_client(self, pipeline, bootstrap=None, api_key="test-key") -> TestClient:
        with patch.dict(os.environ, {"EDITING_DESK_CONFIG": "/nonexistent/config.yaml"}):
            settings = Settings(GEMINI_API_KEY=api_key, APP_ID="desk-app")
        app = create_app(settings=settings, pipeline=pipeline, bootstrap=bootstrap or IdentityBootstrap({}))
        return TestClient(app)


class TestAnalyzeRoutes(_RoutesBase):
    def test_analyze_text(self) -> None:
        pipeline = _StubPipeline(result=_result(5))
        client = self.make_client(pipeline)

        r = client.post("/analyze/text", json={"text": "The cow eat grass.", "headline_count": 5})

        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body["headline_count"], 5)
        self.assertEqual(len(body["result"]["headlines"]), 5)
        self.assertEqual(body["result"]["headlines"][0]["headline"], "शीर्षक 0")
        self.assertEqual(body["result"]["corrections"][0]["corrected_text"], "eats")
        self.assertIn('<span class="error-highlight">eat</span>', body["annotated_html"])
        self.assertIn("&lt;b&gt;x&lt;/b&gt;", body["annotated_html"])
        self.assertEqual(pipeline.requests[0].raw_text, "The cow eat grass.")

    def test_empty_text_is_no_input(self) -> None:
        pipeline = _StubPipeline(result=_result())
        client = self.make_client(pipeline)

        r = client.post("/analyze/text", json={"text": "   ", "headline_count": 10})

        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()["error"], "no_input")
        self.assertEqual(pipeline.requests, [])

    def test_headline_count_out_of_range(self) -> None:
        client = self.make_client(_StubPipeline(result=_result()))
        r = client.post("/analyze/text", json={"text": "x", "headline_count": 30})
        self.assertEqual(r.status_code, 422)

    def test_transport_failure(self) -> None:
        client = self.make_client(_StubPipeline(error=TransportFailure("unavailable", status=503, attempts=3)))
        r = client.post("/analyze/text", json={"text": "x", "headline_count": 5})
        self.assertEqual(r.status_code, 502)
        self.assertEqual(r.json()["error"], "transport_failure")
        self.assertIn("3 attempts", r.json()["detail"])

    def test_safety_blocked(self) -> None:
        client = self.make_client(_StubPipeline(error=SafetyBlocked("finish_reason=SAFETY", attempts=1)))
        r = client.post("/analyze/text", json={"text": "x", "headline_count": 5})
        self.assertEqual(r.status_code, 422)
        self.assertEqual(r.json()["error"], "safety_blocked")
        self.assertIn("adjust the input", r.json()["detail"])

    def test_malformed_json_hides_raw_text(self) -> None:
        client = self.make_client(_StubPipeline(error=MalformedJson("{secret raw", reason="invalid JSON")))
        r = client.post("/analyze/text", json={"text": "x", "headline_count": 5})
        self.assertEqual(r.status_code, 502)
        self.assertEqual(r.json()["error"], "malformed_json")
        self.assertNotIn("secret raw", r.text)

    def test_missing_api_key_is_a_json_error(self) -> None:
        # real pipeline, no key configured
        client = self.make_client(None, api_key=None)

        r = client.post("/analyze/text", json={"text": "The cow eat grass.", "headline_count": 5})

        self.assertEqual(r.status_code, 500)
        self.assertTrue(r.headers["content-type"].startswith("application/json"))
        self.assertEqual(r.json()["error"], "configuration_error")
        self.assertIn("GEMINI_API_KEY", r.json()["detail"])

    def test_unexpected_error_is_a_json_error(self) -> None:
        client = self.make_client(_StubPipeline(error=RuntimeError("boom")))

        r = client.post("/analyze/text", json={"text": "x", "headline_count": 5})

        self.assertEqual(r.status_code, 500)
        self.assertEqual(r.json(), {"error": "internal_error", "detail": "Analysis failed: RuntimeError"})

    def test_analyze_image(self) -> None:
        pipeline = _StubPipeline(result=_result(9))
        client = self.make_client(pipeline)

        r = client.post(
            "/analyze/image",
            files={"file": ("page.png", _png(), "image/png")},
            data={"headline_count": "9"},
        )

        self.assertEqual(r.status_code, 200)
        req = pipeline.requests[0]
        self.assertEqual(req.image.mime_type, "image/png")
        self.assertEqual(req.headline_count, 9)

    def test_bad_image_never_reaches_pipeline(self) -> None:
        pipeline = _StubPipeline(result=_result())
        client = self.make_client(pipeline)

        r = client.post(
            "/analyze/image",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            data={"headline_count": "5"},
        )

        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()["error"], "file_conversion_failure")
        self.assertEqual(pipeline.requests, [])

    def test_refresh_and_current(self) -> None:
        pipeline = _StubPipeline(result=_result(15))
        client = self.make_client(pipeline)

        self.assertEqual(client.get("/analyze/current").status_code, 404)
        self.assertEqual(client.post("/analyze/refresh/headlines").status_code, 400)

        client.post("/analyze/text", json={"text": "article", "headline_count": 15})
        r = client.post("/analyze/refresh/headlines")
        self.assertEqual(r.status_code, 200)
        r = client.post("/analyze/refresh/corrections")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(len(pipeline.requests), 3)
        self.assertEqual(pipeline.requests[2].raw_text, "article")

        current = client.get("/analyze/current")
        self.assertEqual(current.status_code, 200)
        self.assertEqual(current.json()["headline_count"], 15)

        self.assertEqual(client.post("/analyze/refresh/everything").status_code, 422)


class TestPageAndMeta(_RoutesBase):
    def test_home_page(self) -> None:
        client = self.make_client(_StubPipeline(result=_result()))
        r = client.get("/")
        self.assertEqual(r.status_code, 200)
        self.assertIn("Reporter's AI Editing Desk", r.text)
        self.assertIn('<option value="25"', r.text)
        self.assertIn("desk-app", r.text)

    def test_identity(self) -> None:
        boot = IdentityBootstrap({"apiKey": "k"})
        boot.state = "ready"
        boot.current_identity = "uid-1"
        client = self.make_client(_StubPipeline(result=_result()), bootstrap=boot)

        body = client.get("/identity").json()
        self.assertEqual(body, {"user_id": "uid-1", "ready": True, "state": "ready", "app_id": "desk-app"})

    def test_health(self) -> None:
        client = self.make_client(_StubPipeline(result=_result()))
        body = client.get("/health").json()
        self.assertEqual(body["status"], "ok")
        self.assertTrue(body["has_gemini_key"])


class _CrashingBootstrap:
    def __init__(self):
        self.torn_down = False

    async def start(self):
        raise RuntimeError("toolkit exploded")

    async def teardown(self):
        self.torn_down = True


class TestLifespan(unittest.TestCase):
    def test_finished_bootstrap_error_is_collected(self) -> None:
        boot = _CrashingBootstrap()
        app = SimpleNamespace(state=SimpleNamespace(identity=boot))

        async def run():
            async with lifespan(app):
                await asyncio.sleep(0.01)

        with self.assertLogs("editing_desk.main", level="ERROR") as logs:
            asyncio.run(run())

        self.assertIn("toolkit exploded", "\n".join(logs.output))
        self.assertTrue(boot.torn_down)


if __name__ == "__main__":
    unittest.main()
