"""
Tests for RenderOrchestrator.

Validates:
1. Happy path: outro (when missing), intro, composition, mark rendered, relocate
2. Missing source: no process invoked
3. Step failures are terminal and leave the record unrendered
4. Zero exit without output is MissingOutputError
5. Concurrent renders for one import reference are rejected
6. Relocation failure after marking rendered is reported distinctly
7. Timed-out steps are terminal and leave the record unrendered
8. An existing deliverable blocks the render before the record changes
9. Store access and the final move stay off the event loop thread
"""

import asyncio
import threading
import time
from datetime import datetime

import pytest

from support import FakeRunner
from talkrender.rendering import (
    AlreadyRenderedError,
    CompositionError,
    DeliverableExistsError,
    FinalizeError,
    MissingOutputError,
    MissingSourceError,
    RenderInProgressError,
    RenderOrchestrator,
    RenderStepError,
    SetupError,
    SetupVerifier,
)
from talkrender.rendering import orchestrator as orchestrator_module


@pytest.fixture
def uploads_root(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def verifier(renderer_repo):
    verifier = SetupVerifier(repo_location=renderer_repo)
    verifier.verified_at = datetime.now()
    return verifier


@pytest.fixture
def runner(renderer_repo):
    return FakeRunner(renderer_repo)


@pytest.fixture
def orchestrator(store, verifier, uploads_root, runner):
    return RenderOrchestrator(
        store=store,
        setup=verifier,
        uploads_root=uploads_root,
        runner=runner,
        asset_timeout=60,
        composition_timeout=600,
    )


@pytest.fixture
def uploaded(store, uploads_root):
    raw = uploads_root / "abc-123" / "talk.mp4"
    raw.parent.mkdir(parents=True)
    raw.write_bytes(b"raw talk")
    store.insert_upload(str(raw), "abc-123", 42)
    return raw


class TestRenderSuccess:

    def test_full_pipeline(self, orchestrator, runner, store, uploaded, uploads_root, renderer_repo):
        result = asyncio.run(orchestrator.render_talk(42))

        assert runner.steps() == ["outro", "intro", "composition"]
        assert result.outro_generated is True
        assert result.guid == "abc-123"

        final = uploads_root / "abc-123" / "final.mkv"
        assert final.read_text() == "final video"
        assert result.final_path == str(final)
        assert not (renderer_repo / "output" / "42_final.mkv").exists()
        assert uploaded.exists()

        assert store.get_upload_by_import_reference(42).rendered is True

    def test_commands_and_working_directories(self, orchestrator, runner, uploaded, renderer_repo):
        asyncio.run(orchestrator.render_talk(42))

        generator = renderer_repo / "intro-outro-generator"
        python = str(generator / "env" / "bin" / "python")

        outro, intro, composition = runner.calls
        assert outro[1] == (python, "./make.py", "r3talks", "--skip", "intro", "--imagemagick")
        assert outro[2] == generator
        assert outro[3] == 60
        assert intro[1] == (python, "./make.py", "r3talks", "--id", "42", "--skip", "out", "--imagemagick")
        assert composition[1] == (
            str(renderer_repo / "scripts" / "create_video.sh"),
            "--video_file",
            str(uploaded.resolve()),
            "--video_id",
            "42",
        )
        assert composition[2] == renderer_repo
        assert composition[3] == 600

    def test_existing_outro_is_not_regenerated(self, orchestrator, runner, uploaded, renderer_repo):
        (renderer_repo / "intro-outro-generator" / "r3talks" / "outro.ts").write_text("cached")

        result = asyncio.run(orchestrator.render_talk(42))

        assert runner.steps() == ["intro", "composition"]
        assert result.outro_generated is False

    def test_second_render_after_success_is_rejected(self, orchestrator, runner, uploaded):
        asyncio.run(orchestrator.render_talk(42))
        calls_after_first = len(runner.calls)

        with pytest.raises(AlreadyRenderedError):
            asyncio.run(orchestrator.render_talk(42))

        assert len(runner.calls) == calls_after_first


class TestRenderPrerequisites:

    def test_no_record_is_missing_source_and_runs_nothing(self, orchestrator, runner):
        with pytest.raises(MissingSourceError):
            asyncio.run(orchestrator.render_talk(42))

        assert runner.calls == []

    def test_raw_file_gone_is_missing_source(self, orchestrator, runner, uploaded):
        uploaded.unlink()

        with pytest.raises(MissingSourceError) as exc_info:
            asyncio.run(orchestrator.render_talk(42))

        assert "does not exist" in str(exc_info.value)
        assert runner.calls == []

    def test_setup_failure_aborts_before_anything_runs(self, store, uploads_root, runner, uploaded, tmp_path):
        orchestrator = RenderOrchestrator(
            store=store,
            setup=SetupVerifier(repo_location=tmp_path / "missing-repo"),
            uploads_root=uploads_root,
            runner=runner,
        )

        with pytest.raises(SetupError) as exc_info:
            asyncio.run(orchestrator.render_talk(42))

        assert exc_info.value.check_id == "repo_location"
        assert runner.calls == []
        assert store.get_upload_by_import_reference(42).rendered is False


class TestRenderFailures:

    @pytest.mark.parametrize("step", ["outro", "intro"])
    def test_asset_step_failure(self, store, verifier, uploads_root, renderer_repo, uploaded, step):
        runner = FakeRunner(renderer_repo, exit_codes={step: 1})
        orchestrator = RenderOrchestrator(store=store, setup=verifier, uploads_root=uploads_root, runner=runner)

        with pytest.raises(RenderStepError) as exc_info:
            asyncio.run(orchestrator.render_talk(42))

        assert exc_info.value.step == step
        assert exc_info.value.exit_code == 1
        assert not isinstance(exc_info.value, CompositionError)
        assert "composition" not in runner.steps()
        assert store.get_upload_by_import_reference(42).rendered is False

    def test_composition_failure_leaves_record_unrendered(self, store, verifier, uploads_root, renderer_repo, uploaded):
        runner = FakeRunner(renderer_repo, exit_codes={"composition": 2})
        orchestrator = RenderOrchestrator(store=store, setup=verifier, uploads_root=uploads_root, runner=runner)

        with pytest.raises(CompositionError) as exc_info:
            asyncio.run(orchestrator.render_talk(42))

        assert exc_info.value.exit_code == 2
        assert exc_info.value.step == "composition"
        assert store.get_upload_by_import_reference(42).rendered is False
        assert list((uploads_root / "abc-123").glob("final.*")) == []

    @pytest.mark.parametrize("step, error_type", [("intro", RenderStepError), ("composition", CompositionError)])
    def test_timed_out_step(self, store, verifier, uploads_root, renderer_repo, uploaded, step, error_type):
        runner = FakeRunner(renderer_repo, timeouts={step})
        orchestrator = RenderOrchestrator(
            store=store, setup=verifier, uploads_root=uploads_root, runner=runner, composition_timeout=600
        )

        with pytest.raises(error_type) as exc_info:
            asyncio.run(orchestrator.render_talk(42))

        error = exc_info.value
        assert type(error) is error_type
        assert error.step == step
        assert error.timed_out is True
        assert error.exit_code is None
        assert "timed out" in str(error)
        assert store.get_upload_by_import_reference(42).rendered is False
        assert list((uploads_root / "abc-123").glob("final.*")) == []

    def test_zero_exit_without_output(self, store, verifier, uploads_root, renderer_repo, uploaded):
        runner = FakeRunner(renderer_repo, produce_output=False)
        orchestrator = RenderOrchestrator(store=store, setup=verifier, uploads_root=uploads_root, runner=runner)

        with pytest.raises(MissingOutputError) as exc_info:
            asyncio.run(orchestrator.render_talk(42))

        assert exc_info.value.expected_path.endswith("42_final.mkv")
        assert store.get_upload_by_import_reference(42).rendered is False

    def test_failed_render_can_be_retried(self, store, verifier, uploads_root, renderer_repo, uploaded):
        runner = FakeRunner(renderer_repo, exit_codes={"composition": 1})
        orchestrator = RenderOrchestrator(store=store, setup=verifier, uploads_root=uploads_root, runner=runner)
        with pytest.raises(CompositionError):
            asyncio.run(orchestrator.render_talk(42))

        runner.exit_codes.clear()
        result = asyncio.run(orchestrator.render_talk(42))

        assert result.import_reference == 42
        assert store.get_upload_by_import_reference(42).rendered is True

    def test_relocation_failure_after_mark_rendered(self, orchestrator, store, uploaded, monkeypatch, caplog):
        def failing_move(source, destination):
            raise OSError("read-only filesystem")

        monkeypatch.setattr(orchestrator_module, "move_exclusive", failing_move)

        with pytest.raises(FinalizeError) as exc_info:
            asyncio.run(orchestrator.render_talk(42))

        assert exc_info.value.artifact_path.endswith("42_final.mkv")
        assert store.get_upload_by_import_reference(42).rendered is True
        assert any("[Inconsistency]" in message for message in caplog.messages)


class TestExistingDeliverable:

    def test_deliverable_present_before_render(self, orchestrator, runner, store, uploaded, uploads_root):
        final = uploads_root / "abc-123" / "final.mkv"
        final.write_text("stale")

        with pytest.raises(DeliverableExistsError) as exc_info:
            asyncio.run(orchestrator.render_talk(42))

        assert exc_info.value.status_code == 409
        assert runner.calls == []
        assert final.read_text() == "stale"
        assert store.get_upload_by_import_reference(42).rendered is False

    def test_deliverable_appearing_during_composition(self, orchestrator, runner, store, uploaded, uploads_root, renderer_repo):
        final = uploads_root / "abc-123" / "final.mkv"

        async def scenario():
            runner.composition_started = asyncio.Event()
            runner.composition_gate = asyncio.Event()

            task = asyncio.create_task(orchestrator.render_talk(42))
            await runner.composition_started.wait()
            final.write_text("placed meanwhile")
            runner.composition_gate.set()
            return await task

        with pytest.raises(DeliverableExistsError):
            asyncio.run(scenario())

        assert final.read_text() == "placed meanwhile"
        assert (renderer_repo / "output" / "42_final.mkv").is_file()
        assert store.get_upload_by_import_reference(42).rendered is False

        final.unlink()
        result = asyncio.run(orchestrator.render_talk(42))

        assert result.final_path == str(final)
        assert final.read_text() == "final video"


class TestBlockingWorkOffLoop:

    def test_store_and_move_run_in_worker_threads(self, orchestrator, store, uploaded, monkeypatch):
        loop_thread = threading.get_ident()
        seen = {}

        def recording(name, func):
            def wrapper(*args, **kwargs):
                seen[name] = threading.get_ident()
                return func(*args, **kwargs)
            return wrapper

        monkeypatch.setattr(orchestrator_module, "move_exclusive", recording("move", orchestrator_module.move_exclusive))
        monkeypatch.setattr(store, "mark_rendered", recording("mark_rendered", store.mark_rendered))
        monkeypatch.setattr(
            store,
            "get_upload_by_import_reference",
            recording("lookup", store.get_upload_by_import_reference),
        )

        asyncio.run(orchestrator.render_talk(42))

        assert set(seen) == {"move", "mark_rendered", "lookup"}
        assert all(ident != loop_thread for ident in seen.values())

    def test_slow_move_does_not_stall_other_tasks(self, orchestrator, uploaded, monkeypatch):
        real_move = orchestrator_module.move_exclusive

        def slow_move(source, destination):
            time.sleep(0.5)
            real_move(source, destination)

        monkeypatch.setattr(orchestrator_module, "move_exclusive", slow_move)

        async def scenario():
            ticks = 0
            render = asyncio.create_task(orchestrator.render_talk(42))
            while not render.done():
                await asyncio.sleep(0.02)
                ticks += 1
            await render
            return ticks

        assert asyncio.run(scenario()) >= 10


class TestRenderConcurrency:

    def test_concurrent_render_same_reference_rejected(self, orchestrator, runner, store, uploaded, uploads_root):
        async def scenario():
            runner.composition_started = asyncio.Event()
            runner.composition_gate = asyncio.Event()

            first = asyncio.create_task(orchestrator.render_talk(42))
            await runner.composition_started.wait()
            assert orchestrator.is_rendering(42)

            with pytest.raises(RenderInProgressError):
                await orchestrator.render_talk(42)

            runner.composition_gate.set()
            return await first

        result = asyncio.run(scenario())

        assert result.import_reference == 42
        assert runner.steps().count("composition") == 1
        assert list((uploads_root / "abc-123").glob("final.*")) == [uploads_root / "abc-123" / "final.mkv"]
        assert not orchestrator.is_rendering(42)

    def test_different_references_may_render_together(self, orchestrator, runner, store, uploaded, uploads_root):
        other = uploads_root / "def-456" / "talk.mp4"
        other.parent.mkdir(parents=True)
        other.write_bytes(b"other talk")
        store.insert_upload(str(other), "def-456", 43)

        async def scenario():
            return await asyncio.gather(orchestrator.render_talk(42), orchestrator.render_talk(43))

        results = asyncio.run(scenario())

        assert sorted(r.import_reference for r in results) == [42, 43]
        assert runner.steps().count("composition") == 2
