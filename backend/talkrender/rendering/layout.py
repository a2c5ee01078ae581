"""
Filesystem layout of the external renderer repository.

    <repo>/scripts/create_video.sh
    <repo>/intro-outro-generator/make.py
    <repo>/intro-outro-generator/env/bin/python
    <repo>/intro-outro-generator/<project>/outro.ts
    <repo>/output/<import id>_final.<ext>
"""

from dataclasses import dataclass
from pathlib import Path


GENERATOR_DIRNAME = "intro-outro-generator"
OUTRO_MARKER = "outro.ts"


@dataclass(frozen=True)
class RendererLayout:
    """Derived paths inside the renderer repository."""

    repo: Path
    project: str = "r3talks"
    final_extension: str = "mkv"

    @property
    def create_video_script(self) -> Path:
        return self.repo / "scripts" / "create_video.sh"

    @property
    def generator_dir(self) -> Path:
        return self.repo / GENERATOR_DIRNAME

    @property
    def generator_project_dir(self) -> Path:
        return self.generator_dir / self.project

    @property
    def generator_python(self) -> Path:
        return self.generator_dir / "env" / "bin" / "python"

    @property
    def outro_marker(self) -> Path:
        return self.generator_project_dir / OUTRO_MARKER

    @property
    def output_dir(self) -> Path:
        return self.repo / "output"

    def output_artifact(self, import_reference: int) -> Path:
        """Where create_video.sh writes the composited talk."""
        return self.output_dir / f"{import_reference}_final.{self.final_extension}"

    def make_command(self, *args: str) -> list[str]:
        """Generator invocation, run with cwd=generator_dir."""
        return [str(self.generator_python), "./make.py", *args]

    def outro_command(self) -> list[str]:
        return self.make_command(self.project, "--skip", "intro", "--imagemagick")

    def intro_command(self, import_reference: int) -> list[str]:
        return self.make_command(
            self.project, "--id", str(import_reference), "--skip", "out", "--imagemagick"
        )

    def composition_command(self, video_file: Path, import_reference: int) -> list[str]:
        """Composition invocation, run with cwd=repo."""
        return [
            str(self.create_video_script),
            "--video_file",
            str(video_file),
            "--video_id",
            str(import_reference),
        ]
