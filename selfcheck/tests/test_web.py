import contextlib
import io
import json
import os
import tempfile
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from selfcheck.backends import StaticBackend
from selfcheck.client import AssessmentClient
from selfcheck.history import InMemoryHistoryStore
from selfcheck.session import SelfCheckSession
import web.main
from web.main import app, get_session

VALID = {
    "decision": "OFFICE",
    "reason": "症状がないため通常通りの出社で問題ありません。",
    "aiAdvice": "引き続き十分な睡眠を心がけてください。",
    "reportDraft": "お疲れ様です。本日は通常通り出社いたします。",
    "score": 5,
}

REQUEST = {
    "symptoms": {"fever": 36.4, "cough": "none", "soreThroat": "mild", "mentalStress": "moderate"},
    "workContext": {"canRemote": True, "hasUrgentMeeting": True, "isPeakPeriod": False},
}


class TestWebApi(unittest.TestCase):
    def setUp(self):
        self.backend = StaticBackend(json.dumps(VALID, ensure_ascii=False))
        self.store = InMemoryHistoryStore()
        self.session = SelfCheckSession(AssessmentClient(self.backend), self.store)
        self.session.start()
        app.dependency_overrides[get_session] = lambda: self.session
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def test_healthz(self):
        self.assertEqual(self.client.get("/healthz").json(), {"ok": True})

    def test_guide(self):
        data = self.client.get("/api/guide").json()
        self.assertEqual([o["value"] for o in data["severityOptions"]], ["none", "mild", "moderate", "severe"])
        self.assertEqual(data["decisionTitles"]["REST"], "休暇・休養を推奨")
        self.assertIn("sleep_quality", data["symptomGuide"])

    def test_assessment(self):
        resp = self.client.post("/api/assessment", json=REQUEST)
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["assessment"], VALID)
        self.assertFalse(data["fallback"])
        self.assertEqual(data["title"], "通常通り出社")
        self.assertEqual(data["entry"]["symptoms"]["soreThroat"], "mild")
        self.assertIn("代替のきかない重要な会議: あり", self.backend.calls[0])
        self.assertEqual(len(self.store.load()), 1)

    def test_fallback_flag(self):
        self.backend.text = "not json"
        with contextlib.redirect_stderr(io.StringIO()):
            data = self.client.post("/api/assessment", json=REQUEST).json()
        self.assertTrue(data["fallback"])
        self.assertEqual(data["assessment"]["decision"], "REST")
        self.assertEqual(data["assessment"]["score"], 50)

    def test_invalid_input(self):
        bad = {"symptoms": {"fever": 42.0}, "workContext": {}}
        self.assertEqual(self.client.post("/api/assessment", json=bad).status_code, 422)
        bad = {"symptoms": {"cough": "unbearable"}}
        self.assertEqual(self.client.post("/api/assessment", json=bad).status_code, 422)
        self.assertEqual(self.store.load(), [])

    def test_busy(self):
        self.session.state = self.session.state.__class__(loading=True)
        self.assertEqual(self.client.post("/api/assessment", json=REQUEST).status_code, 409)

    def test_history_and_clear(self):
        self.client.post("/api/assessment", json=REQUEST)
        self.client.post("/api/assessment", json=REQUEST)

        data = self.client.get("/api/history").json()
        self.assertEqual(len(data["entries"]), 2)
        self.assertEqual(data["counts"]["OFFICE"], 2)

        self.assertEqual(self.client.delete("/api/history").json(), {"ok": True})
        self.assertEqual(self.client.get("/api/history").json()["entries"], [])
        self.assertEqual(self.store.slots, {})

    def test_trend(self):
        with contextlib.redirect_stderr(io.StringIO()):
            self.assertEqual(self.client.get("/api/history/trend.png").status_code, 404)
        self.assertEqual(self.client.get("/api/history/trend").json(), {"points": []})

        self.client.post("/api/assessment", json=REQUEST)
        points = self.client.get("/api/history/trend").json()["points"]
        self.assertEqual([p["score"] for p in points], [5])

        resp = self.client.get("/api/history/trend.png")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.headers["content-type"], "image/png")
        self.assertTrue(resp.content.startswith(b"\x89PNG"))


class TestWebApiWithoutApiKey(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        env = {
            "SELFCHECK_PROVIDER": "gemini",
            "GEMINI_API_KEY": "",
            "API_KEY": "",
            "SELFCHECK_HISTORY_DIR": self._tmp.name,
        }
        self._env = patch.dict(os.environ, env)
        self._env.start()
        web.main._session = None
        self.client = TestClient(app)

    def tearDown(self):
        web.main._session = None
        self._env.stop()
        self._tmp.cleanup()

    def test_history_endpoints_work(self):
        self.assertEqual(self.client.get("/api/history").status_code, 200)
        self.assertEqual(self.client.get("/api/history").json()["entries"], [])
        self.assertEqual(self.client.get("/api/history/trend").json(), {"points": []})
        self.assertEqual(self.client.delete("/api/history").status_code, 200)

    def test_assessment_unavailable(self):
        resp = self.client.post("/api/assessment", json=REQUEST)
        self.assertEqual(resp.status_code, 503)
        self.assertIn("API key", resp.json()["detail"])

    def test_bad_configuration(self):
        with patch.dict(os.environ, {"SELFCHECK_PROVIDER": "carrier-pigeon"}):
            resp = self.client.get("/api/history")
        self.assertEqual(resp.status_code, 503)


if __name__ == "__main__":
    unittest.main()
