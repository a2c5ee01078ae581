"""
Renderer setup verification.

One function per renderer prerequisite, each answering with a CheckResult.
Checks run in order; verify() stops at the first failure and caches
success for the lifetime of the verifier.
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from .errors import SetupError
from .layout import RendererLayout

logger = logging.getLogger(__name__)


# Seconds allowed for `make.py --help`
HELP_TIMEOUT_SECONDS = 60


class CheckStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"


@dataclass
class CheckResult:
    """
    Outcome of one renderer prerequisite.

    `id` names the prerequisite (for example "generator_make_help"); `hint`
    tells the operator what to fix and is only set on failures.
    """

    id: str
    status: CheckStatus
    message: str
    hint: Optional[str] = None

    def to_dict(self) -> dict:
        """Readiness payload entry; `hint` is omitted when empty."""
        payload = {"id": self.id, "status": self.status.value, "message": self.message}
        if self.hint:
            payload["hint"] = self.hint
        return payload

    @property
    def passed(self) -> bool:
        return self.status == CheckStatus.PASS


def _pass(check_id: str, message: str) -> CheckResult:
    return CheckResult(id=check_id, status=CheckStatus.PASS, message=message)


def _fail(check_id: str, message: str, hint: Optional[str] = None) -> CheckResult:
    return CheckResult(id=check_id, status=CheckStatus.FAIL, message=message, hint=hint)


class SetupVerifier:
    """
    One-time verification of the external renderer environment.

    Owns the "setup checked" state explicitly instead of a module global.
    """

    def __init__(self, repo_location: Optional[Path], project: str = "r3talks", final_extension: str = "mkv"):
        self.repo_location = Path(repo_location) if repo_location else None
        self.project = project
        self.final_extension = final_extension
        self.verified_at: Optional[datetime] = None

    @property
    def verified(self) -> bool:
        return self.verified_at is not None

    @property
    def layout(self) -> RendererLayout:
        """
        Renderer layout for the configured repository.

        Raises:
            SetupError: If no repository location is configured
        """
        if self.repo_location is None:
            raise SetupError("repo_location", "R3VOC_REPO_LOCATION is not defined")
        return RendererLayout(
            repo=self.repo_location,
            project=self.project,
            final_extension=self.final_extension,
        )

    def _checks(self) -> List[Callable[[], CheckResult]]:
        return [
            self.check_repo_location,
            self.check_create_video_script,
            self.check_create_video_executable,
            self.check_generator_directory,
            self.check_generator_project,
            self.check_generator_python,
            self.check_generator_make_help,
        ]

    def run_checks(self) -> List[CheckResult]:
        """
        Run every check, stopping at the first failure.

        Later checks depend on earlier ones, so they are not attempted
        after a failure.
        """
        results = []
        for check in self._checks():
            result = check()
            results.append(result)
            if not result.passed:
                break
        return results

    def verify(self) -> None:
        """
        Verify the renderer setup once per verifier.

        Raises:
            SetupError: Naming the first failing check
        """
        if self.verified:
            return

        for result in self.run_checks():
            if not result.passed:
                logger.error(f"[Setup] {result.id}: {result.message}")
                raise SetupError(result.id, result.message, result.hint)

        self.verified_at = datetime.now()
        logger.info("[Setup] Setup looks good.")

    def reset(self) -> None:
        """Forget a previous successful verification."""
        self.verified_at = None

    # Individual checks

    def check_repo_location(self) -> CheckResult:
        if self.repo_location is None:
            return _fail(
                "repo_location",
                "R3VOC_REPO_LOCATION is not defined",
                hint="Set R3VOC_REPO_LOCATION to the renderer repository checkout",
            )
        if not self.repo_location.is_dir():
            return _fail("repo_location", f"R3VOC_REPO_LOCATION does not exist: {self.repo_location}")
        return _pass("repo_location", f"Renderer repository at {self.repo_location}")

    def check_create_video_script(self) -> CheckResult:
        script = self.layout.create_video_script
        if not script.is_file():
            return _fail("create_video_script", f"create_video.sh does not exist at {script}")
        return _pass("create_video_script", f"Found {script}")

    def check_create_video_executable(self) -> CheckResult:
        script = self.layout.create_video_script
        if not os.access(script, os.X_OK):
            return _fail(
                "create_video_executable",
                "create_video.sh is not executable",
                hint=f"chmod +x {script}",
            )
        return _pass("create_video_executable", "create_video.sh is executable")

    def check_generator_directory(self) -> CheckResult:
        generator = self.layout.generator_dir
        if not generator.is_dir():
            return _fail(
                "generator_directory",
                f"intro-outro-generator directory does not exist in {self.repo_location}",
            )
        return _pass("generator_directory", f"Found {generator}")

    def check_generator_project(self) -> CheckResult:
        project_dir = self.layout.generator_project_dir
        if not project_dir.is_dir():
            return _fail(
                "generator_project",
                f"{self.project} directory does not exist in intro-outro-generator",
            )
        return _pass("generator_project", f"Found {project_dir}")

    def check_generator_python(self) -> CheckResult:
        python = self.layout.generator_python
        if not python.exists():
            return _fail(
                "generator_python",
                f"Virtual environment python does not exist at {python}",
                hint='Run "virtualenv --python=$(which python3.9) env" in the intro-outro-generator directory',
            )
        return _pass("generator_python", f"Found {python}")

    def check_generator_make_help(self) -> CheckResult:
        layout = self.layout
        try:
            subprocess.run(
                layout.make_command("--help"),
                cwd=layout.generator_dir,
                capture_output=True,
                timeout=HELP_TIMEOUT_SECONDS,
                check=True,
            )
        except (OSError, subprocess.SubprocessError) as e:
            return _fail(
                "generator_make_help",
                f"Failed to run make.py in intro-outro-generator: {e}",
                hint="Make sure the generator virtualenv and its requirements are installed",
            )
        return _pass("generator_make_help", "make.py --help ran successfully")
