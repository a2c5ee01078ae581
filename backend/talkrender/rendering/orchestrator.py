"""
RenderOrchestrator — drives the external intro/outro/composition toolchain.

Per import reference: NotRendered → Rendering → Rendered.
Rendering is never persisted; a crash mid-render leaves the record
unrendered and the operator retries.

Steps (each requires the previous to succeed):
1. Setup verification (cached per verifier)
2. Load the upload record; the raw file must exist and no final
   artifact may be in place yet
3. Generate outro if its marker is missing, then the per-talk intro
4. Run create_video.sh against the raw file
5. Verify <repo>/output/<id>_final.<ext> exists
6. Re-check the final path, then mark the record rendered
7. Move the artifact to <uploads>/<guid>/final.<ext>

At most one render per import reference runs at a time; a second
request while one is in flight is rejected. Store access and file moves
run in worker threads.
"""

import asyncio
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional, Set, Union

from ..persistence import UploadStore
from ..uploads.paths import move_exclusive
from .errors import (
    AlreadyRenderedError,
    CompositionError,
    DeliverableExistsError,
    FinalizeError,
    MissingOutputError,
    MissingSourceError,
    RenderInProgressError,
    RenderStepError,
)
from .layout import RendererLayout
from .process import ProcessRunner, run_process
from .results import RenderResult
from .setup import SetupVerifier

logger = logging.getLogger(__name__)


class RenderOrchestrator:
    """
    Renders uploaded talks through the external toolchain.

    The only component that sets the rendered flag.
    """

    def __init__(
        self,
        store: UploadStore,
        setup: SetupVerifier,
        uploads_root: Union[str, Path],
        runner: ProcessRunner = run_process,
        asset_timeout: Optional[float] = None,
        composition_timeout: Optional[float] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Upload record store
            setup: Setup verifier owning the renderer location
            uploads_root: Root uploads directory for final artifacts
            runner: Coroutine running one external command
            asset_timeout: Seconds allowed per intro/outro generation
            composition_timeout: Seconds allowed for create_video.sh
        """
        self.store = store
        self.setup = setup
        self.uploads_root = Path(uploads_root)
        self._runner = runner
        self.asset_timeout = asset_timeout
        self.composition_timeout = composition_timeout

        self._in_flight: Set[int] = set()
        self._in_flight_lock = threading.Lock()

    def is_rendering(self, import_reference: int) -> bool:
        with self._in_flight_lock:
            return import_reference in self._in_flight

    async def render_talk(self, import_reference: int) -> RenderResult:
        """
        Render one uploaded talk end to end.

        Raises:
            RenderInProgressError: Another render for this reference is running
            SetupError: Renderer environment check failed
            MissingSourceError: No record or raw file
            AlreadyRenderedError: Record already rendered
            DeliverableExistsError: uploads/<guid>/final.<ext> already exists
            RenderStepError: Intro/outro generation failed
            CompositionError: create_video.sh failed
            MissingOutputError: Composition produced no output
            FinalizeError: Marked rendered but the artifact could not be moved
        """
        with self._in_flight_lock:
            if import_reference in self._in_flight:
                raise RenderInProgressError(import_reference)
            self._in_flight.add(import_reference)

        try:
            return await self._render(import_reference)
        finally:
            with self._in_flight_lock:
                self._in_flight.discard(import_reference)

    async def _render(self, import_reference: int) -> RenderResult:
        started_at = datetime.now()

        if not self.setup.verified:
            await asyncio.to_thread(self.setup.verify)
        layout = self.setup.layout

        record = await asyncio.to_thread(self.store.get_upload_by_import_reference, import_reference)
        if record is None:
            raise MissingSourceError(
                f"No uploaded file found for import ID {import_reference}", import_reference
            )

        source_path = Path(record.path).resolve()
        if not source_path.is_file():
            raise MissingSourceError(
                f"Uploaded file does not exist at path {source_path}", import_reference
            )

        if record.rendered:
            raise AlreadyRenderedError(import_reference)

        final_path = self.uploads_root / record.import_guid / f"final.{layout.final_extension}"
        self._ensure_no_deliverable(final_path, import_reference)

        logger.info(f"[Render] Starting import ID {import_reference} from {source_path}")

        outro_generated = await self._render_assets(layout, import_reference)

        outcome = await self._runner(
            layout.composition_command(source_path, import_reference),
            layout.repo,
            self.composition_timeout,
        )
        if not outcome.succeeded:
            logger.error(f"[Render] Composition for import ID {import_reference} {outcome.describe()}")
            raise CompositionError(
                import_reference,
                exit_code=outcome.exit_code,
                timed_out=outcome.timed_out,
                reason=outcome.spawn_error,
            )

        artifact = layout.output_artifact(import_reference)
        if not artifact.is_file():
            logger.error(f"[Render] create_video.sh succeeded but {artifact} is missing")
            raise MissingOutputError(import_reference, str(artifact))

        self._ensure_no_deliverable(final_path, import_reference)
        await asyncio.to_thread(self.store.mark_rendered, import_reference)

        try:
            final_path.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(move_exclusive, artifact, final_path)
        except OSError as e:
            logger.error(
                f"[Inconsistency] Import ID {import_reference} (guid {record.import_guid}) is marked "
                f"rendered but {artifact} could not be moved to {final_path}: {e}"
            )
            raise FinalizeError(import_reference, str(artifact), str(final_path), str(e)) from e

        result = RenderResult(
            import_reference=import_reference,
            guid=record.import_guid,
            source_path=str(source_path),
            final_path=os.path.normpath(str(final_path)),
            outro_generated=outro_generated,
            started_at=started_at,
            completed_at=datetime.now(),
        )
        logger.info(f"[Render] {result.summary()}")
        return result

    def _ensure_no_deliverable(self, final_path: Path, import_reference: int) -> None:
        if os.path.lexists(final_path):
            logger.error(f"[Render] {final_path} already exists, refusing to render import ID {import_reference}")
            raise DeliverableExistsError(import_reference, str(final_path))

    async def _render_assets(self, layout: RendererLayout, import_reference: int) -> bool:
        """
        Generate the outro (only when missing) and the per-talk intro.

        Returns:
            True if the outro had to be generated
        """
        outro_generated = False

        if not layout.outro_marker.exists():
            logger.info(f"[Render] No {layout.outro_marker.name} found, rendering it now...")
            await self._run_step("outro", layout.outro_command(), layout, import_reference)
            outro_generated = True

        await self._run_step("intro", layout.intro_command(import_reference), layout, import_reference)
        logger.info(f"[Render] Rendered intro for import ID {import_reference}")
        return outro_generated

    async def _run_step(self, step: str, argv, layout: RendererLayout, import_reference: int) -> None:
        outcome = await self._runner(argv, layout.generator_dir, self.asset_timeout)
        if not outcome.succeeded:
            logger.error(f"[Render] {step} for import ID {import_reference} {outcome.describe()}")
            raise RenderStepError(
                step,
                import_reference,
                exit_code=outcome.exit_code,
                timed_out=outcome.timed_out,
                reason=outcome.spawn_error,
            )
