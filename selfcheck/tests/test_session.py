import asyncio
import contextlib
import io
import json
import unittest
from datetime import datetime

from selfcheck.backends import ModelBackend, StaticBackend
from selfcheck.client import AssessmentClient
from selfcheck.history import InMemoryHistoryStore
from selfcheck.schemas import FALLBACK_ASSESSMENT, SymptomRecord, WorkContext
from selfcheck.session import SelfCheckSession
from selfcheck.state import STEP_RESULT, AssessmentInProgress

VALID = {
    "decision": "REMOTE",
    "reason": "喉の痛みが軽いため、在宅勤務を推奨します。",
    "aiAdvice": "加湿器を使い、ハチミツ入りの温かい飲み物をどうぞ。",
    "reportDraft": "お疲れ様です。喉の不調のため、本日は在宅勤務とさせてください。",
    "score": 25,
}


class GatedBackend(ModelBackend):
    name = "gated"

    def __init__(self):
        self.release = asyncio.Event()

    async def submit(self, prompt, schema):
        await self.release.wait()
        return json.dumps(VALID)


class BrokenStore(InMemoryHistoryStore):
    def save(self, entries):
        raise OSError("disk full")


class TestSelfCheckSession(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self._stderr = contextlib.redirect_stderr(io.StringIO())
        self._stderr.__enter__()

    def tearDown(self):
        self._stderr.__exit__(None, None, None)

    def make_session(self, backend, store=None):
        store = store if store is not None else InMemoryHistoryStore()
        session = SelfCheckSession(
            AssessmentClient(backend, timeout=5),
            store,
            clock=lambda: datetime(2026, 10, 18, 8, 30, 0),
        )
        session.start()
        return session

    async def test_assessment_persists_history(self):
        store = InMemoryHistoryStore()
        session = self.make_session(StaticBackend(json.dumps(VALID, ensure_ascii=False)), store)
        session.fill_form(SymptomRecord(sore_throat="mild"), WorkContext())

        assessment = await session.run_assessment()

        self.assertEqual(assessment.model_dump(), VALID)
        self.assertEqual(session.state.step, STEP_RESULT)
        self.assertFalse(session.state.loading)
        saved = store.load()
        self.assertEqual(len(saved), 1)
        self.assertEqual(saved[0].assessment, assessment)
        self.assertEqual(saved[0].symptoms.sore_throat, "mild")
        self.assertEqual(saved[0].timestamp, "2026/10/18 08:30:00")
        self.assertEqual(list(session.state.history), saved)

    async def test_history_is_newest_first_across_runs(self):
        store = InMemoryHistoryStore()
        session = self.make_session(StaticBackend(json.dumps(VALID)), store)
        for fever in (36.5, 37.0, 37.5):
            session.fill_form(SymptomRecord(fever=fever), WorkContext())
            await session.run_assessment()

        self.assertEqual([e.symptoms.fever for e in store.load()], [37.5, 37.0, 36.5])

        # A fresh session reads the same history back
        again = self.make_session(StaticBackend(json.dumps(VALID)), store)
        self.assertEqual(list(again.state.history), store.load())

    async def test_network_failure_records_fallback_score(self):
        store = InMemoryHistoryStore()
        session = self.make_session(StaticBackend(error=ConnectionError("network unreachable")), store)

        assessment = await session.run_assessment()

        self.assertEqual(assessment, FALLBACK_ASSESSMENT)
        self.assertEqual([e.assessment.score for e in store.load()], [50])

    async def test_no_second_assessment_in_flight(self):
        backend = GatedBackend()
        session = self.make_session(backend)

        first = asyncio.create_task(session.run_assessment())
        await asyncio.sleep(0.01)
        self.assertTrue(session.state.loading)
        with self.assertRaises(AssessmentInProgress):
            await session.run_assessment()

        backend.release.set()
        await first
        self.assertFalse(session.state.loading)
        self.assertEqual(len(session.state.history), 1)

    async def test_cancel_releases_busy_flag(self):
        session = self.make_session(GatedBackend())
        task = asyncio.create_task(session.run_assessment())
        await asyncio.sleep(0.01)
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task
        self.assertFalse(session.state.loading)
        self.assertEqual(session.state.history, ())

    async def test_store_failure_surfaces_generic_error(self):
        session = self.make_session(StaticBackend(json.dumps(VALID)), BrokenStore())
        with self.assertRaises(OSError):
            await session.run_assessment()
        self.assertFalse(session.state.loading)
        self.assertEqual(session.state.error, "判定中にエラーが発生しました。")

    async def test_clear_history(self):
        store = InMemoryHistoryStore()
        session = self.make_session(StaticBackend(json.dumps(VALID)), store)
        await session.run_assessment()
        session.clear_history()
        self.assertEqual(session.state.history, ())
        self.assertEqual(store.load(), [])
        self.assertEqual(store.slots, {})

    async def test_history_only_session(self):
        store = InMemoryHistoryStore()
        await self.make_session(StaticBackend(json.dumps(VALID)), store).run_assessment()

        session = SelfCheckSession(None, store)
        session.start()
        self.assertEqual(len(session.state.history), 1)
        with self.assertRaises(RuntimeError):
            await session.run_assessment()
        self.assertFalse(session.state.loading)
        session.clear_history()
        self.assertEqual(store.slots, {})


if __name__ == "__main__":
    unittest.main()
