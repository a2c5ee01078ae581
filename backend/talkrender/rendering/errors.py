"""
Render-specific errors.

All render errors are terminal for the attempt. Nothing is retried;
the operator retries manually using the step and exit details carried here.
"""

from typing import Optional


class RenderError(Exception):
    """
    Base exception for render failures.

    Attributes:
        step: Pipeline step that failed (setup, source, outro, intro,
            composition, verify, finalize, guard)
    """

    step = "render"
    status_code = 500

    def __init__(self, message: str, import_reference: Optional[int] = None):
        self.message = message
        self.import_reference = import_reference
        super().__init__(message)


class SetupError(RenderError):
    """
    External renderer environment is not usable.

    Raised for the first failing setup check:
    - Repository location missing
    - create_video.sh missing or not executable
    - intro-outro-generator or its project folder missing
    - Generator virtualenv python missing or make.py --help failing
    """

    step = "setup"
    status_code = 503

    def __init__(self, check_id: str, message: str, hint: Optional[str] = None):
        self.check_id = check_id
        self.hint = hint
        full = f"Setup check '{check_id}' failed: {message}"
        if hint:
            full += f" ({hint})"
        super().__init__(full)


class MissingSourceError(RenderError):
    """No upload record for the import reference, or its raw file is gone."""

    step = "source"
    status_code = 404


class AlreadyRenderedError(RenderError):
    """The upload record is already marked rendered."""

    step = "guard"
    status_code = 409

    def __init__(self, import_reference: int):
        super().__init__(f"Import ID {import_reference} has already been rendered", import_reference)


class RenderInProgressError(RenderError):
    """Another render for the same import reference is running."""

    step = "guard"
    status_code = 409

    def __init__(self, import_reference: int):
        super().__init__(f"A render for import ID {import_reference} is already in progress", import_reference)


class DeliverableExistsError(RenderError):
    """A final artifact is already in place for the talk."""

    step = "guard"
    status_code = 409

    def __init__(self, import_reference: int, final_path: str):
        self.final_path = final_path
        super().__init__(
            f"Import ID {import_reference} already has a rendered video at {final_path}", import_reference
        )


class RenderStepError(RenderError):
    """
    An external generator step failed.

    Raised on non-zero exit, timeout, or a process that could not be started.
    """

    def __init__(
        self,
        step: str,
        import_reference: int,
        exit_code: Optional[int] = None,
        timed_out: bool = False,
        reason: Optional[str] = None,
    ):
        self.step = step
        self.exit_code = exit_code
        self.timed_out = timed_out
        self.reason = reason

        message = f"Failed to render {step} for import ID {import_reference}"
        if timed_out:
            message += " (timed out)"
        elif exit_code is not None:
            message += f" (exit code: {exit_code})"
        if reason:
            message += f": {reason}"
        super().__init__(message, import_reference)


class CompositionError(RenderStepError):
    """The composition script (create_video.sh) failed."""

    def __init__(
        self,
        import_reference: int,
        exit_code: Optional[int] = None,
        timed_out: bool = False,
        reason: Optional[str] = None,
    ):
        super().__init__("composition", import_reference, exit_code, timed_out, reason)


class MissingOutputError(RenderError):
    """Composition exited zero but the expected output file does not exist."""

    step = "verify"

    def __init__(self, import_reference: int, expected_path: str):
        self.expected_path = expected_path
        super().__init__(
            f"Rendering completed but output video not found at {expected_path}", import_reference
        )


class FinalizeError(RenderError):
    """
    The record is marked rendered but the final artifact could not be moved.

    Requires manual reconciliation.
    """

    step = "finalize"

    def __init__(self, import_reference: int, artifact_path: str, final_path: str, reason: str):
        self.artifact_path = artifact_path
        self.final_path = final_path
        self.reason = reason
        super().__init__(
            f"Import ID {import_reference} is marked rendered but {artifact_path} "
            f"could not be moved to {final_path}: {reason}",
            import_reference,
        )
