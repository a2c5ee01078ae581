"""
Render orchestration over the external intro/outro toolchain.
"""

from .orchestrator import RenderOrchestrator
from .setup import SetupVerifier, CheckResult, CheckStatus
from .layout import RendererLayout
from .process import run_process, ProcessOutcome
from .results import RenderResult
from .errors import (
    RenderError,
    SetupError,
    MissingSourceError,
    AlreadyRenderedError,
    RenderInProgressError,
    DeliverableExistsError,
    RenderStepError,
    CompositionError,
    MissingOutputError,
    FinalizeError,
)

__all__ = [
    "RenderOrchestrator",
    "SetupVerifier",
    "CheckResult",
    "CheckStatus",
    "RendererLayout",
    "run_process",
    "ProcessOutcome",
    "RenderResult",
    "RenderError",
    "SetupError",
    "MissingSourceError",
    "AlreadyRenderedError",
    "RenderInProgressError",
    "DeliverableExistsError",
    "RenderStepError",
    "CompositionError",
    "MissingOutputError",
    "FinalizeError",
]
