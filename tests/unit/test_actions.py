"""Tests for ConsoleActions: status-line messages and failure reporting."""

import pytest

from agent_console.models.agent import IngestDraft


class TestStatusMessages:
    async def test_seed(self, actions, store):
        assert await actions.seed() == "Seeded sample vendor requests."
        assert store.status_message == "Seeded sample vendor requests."

    async def test_ingest_uses_stored_draft(self, actions, fake_backend, store):
        message = await actions.ingest()

        assert message == "Email ingested. You can now Process Next."
        posted = fake_backend.calls_to("/ingest/mock-email")[0][2]
        assert posted == store.draft.model_dump()

    async def test_ingest_with_draft_replaces_stored_draft(self, actions, fake_backend, store):
        draft = IngestDraft(from_email="ops@example.com", subject="Docs attached", body="see pdf")

        await actions.ingest(draft)

        assert store.draft == draft
        assert fake_backend.calls_to("/ingest/mock-email")[0][2]["subject"] == "Docs attached"

    async def test_process_next_processed(self, actions, fake_backend, store):
        fake_backend.add_message("v@example.com", "status?", "hi")

        assert await actions.process_next() == "Processed one email and replied (mock)."
        assert store.status_message == "Processed one email and replied (mock)."

    async def test_process_next_nothing_pending(self, actions, store):
        assert await actions.process_next() == "No emails pending."
        assert store.status_message == "No emails pending."

    async def test_process_next_result_line_survives_concurrent_write(
        self, actions, orchestrator, fake_backend, store, monkeypatch
    ):
        fake_backend.add_message("v@example.com", "status?", "hi")
        process_next = orchestrator.process_next

        async def overwritten_during_refresh():
            result = await process_next()
            store.set_status_message("No emails pending.")
            return result

        monkeypatch.setattr(orchestrator, "process_next", overwritten_during_refresh)

        message = await actions.process_next()

        assert message == "Processed one email and replied (mock)."
        assert store.status_message == message

    async def test_run_loop_reports_processed_count(self, actions, fake_backend, store):
        for n in range(2):
            fake_backend.add_message("v@example.com", f"q{n}", "hi")

        assert await actions.run_loop(5) == "Loop done. Processed 2 messages."
        assert fake_backend.calls_to("/agent/run-loop")[0][2] == {"max_steps": 5}

    async def test_run_loop_defaults_to_configured_steps(self, actions, fake_backend):
        await actions.run_loop()

        assert fake_backend.calls_to("/agent/run-loop")[0][2] == {"max_steps": 10}

    async def test_run_loop_rejects_zero_steps(self, actions, fake_backend):
        with pytest.raises(ValueError):
            await actions.run_loop(0)

        assert fake_backend.calls == []

    async def test_start_and_stop_auto(self, actions, orchestrator, store):
        assert actions.start_auto() == "Auto cycle running every 0.02s."
        assert orchestrator.auto_run_enabled is True

        assert actions.stop_auto() == "Auto cycle stopped."
        assert orchestrator.auto_run_enabled is False
        await orchestrator.wait_for_ticks()

    async def test_refresh_queue_reports_count(self, actions, fake_backend):
        fake_backend.add_message("v@example.com", "a", "b")

        assert await actions.refresh_queue() == "Queue refreshed: 1 message(s)."

    async def test_refresh_summary(self, actions, fake_backend):
        assert await actions.refresh_summary() == "Analytics and threads refreshed."
        assert sorted(path for _, path, _ in fake_backend.calls) == ["/analytics/summary", "/logs"]

    def test_update_draft(self, actions, store):
        draft = IngestDraft(subject="new subject")

        assert actions.update_draft(draft) == draft
        assert store.draft.subject == "new subject"


class TestFailureMessages:
    @pytest.mark.parametrize(
        "path, action_name, expected",
        [
            ("/seed/vendors", "seed", "Seed failed: 500 Internal Server Error"),
            ("/ingest/mock-email", "ingest", "Ingest failed: 500 Internal Server Error"),
            ("/agent/run-once", "process_next", "Process failed: 500 Internal Server Error"),
            ("/agent/run-loop", "run_loop", "Run-loop failed: 500 Internal Server Error"),
        ],
    )
    async def test_backend_failure_becomes_status_line(
        self, actions, fake_backend, store, path, action_name, expected
    ):
        fake_backend.failures[path] = 500

        message = await getattr(actions, action_name)()

        assert message == expected
        assert store.status_message == expected

    async def test_malformed_response(self, actions, fake_backend, store):
        fake_backend.malformed.add("/agent/run-once")

        message = await actions.process_next()

        assert message.startswith("Process failed: ")

    async def test_failure_still_refreshes_view(self, actions, fake_backend, store):
        fake_backend.failures["/agent/run-loop"] = 500

        await actions.run_loop(3)

        assert store.agent_status is not None
        assert fake_backend.calls_to("/gmail/poll")

    async def test_refresh_failure_is_not_an_action_failure(self, actions, fake_backend, store):
        fake_backend.failures["/gmail/poll"] = 500

        assert await actions.refresh_queue() == "Queue refreshed: 0 message(s)."
        assert store.refresh_health["queue"].stale is True
