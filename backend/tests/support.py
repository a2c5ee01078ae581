"""
Test helpers: schedule documents, mock feed transport, fake renderer.
"""

import stat
import sys
from pathlib import Path

import httpx
import pytest

from talkrender.rendering.process import ProcessOutcome


SCHEDULE_URL = "https://schedule.test/realraum.json"


def make_schedule_document(*events_by_room):
    """
    Build a c3voc-style document.

    Each positional argument is one day: a dict of room name -> list of events.
    """
    return {
        "schedule": {
            "version": "test",
            "conference": {
                "title": "Test Conference",
                "days": [{"index": i, "rooms": rooms} for i, rooms in enumerate(events_by_room, start=1)],
            },
        }
    }


DEFAULT_DOCUMENT = make_schedule_document(
    {
        "LoTHR": [
            {"guid": "abc-123", "id": 42, "title": "Video Infrastructure", "date": "2025-05-01T18:00:00+02:00"},
        ],
    },
    {
        "LoTHR": [
            {"guid": "def-456", "id": 43, "title": "Soldering 101"},
        ],
        "Workshop": [
            {"guid": "ghi-789", "id": 44, "title": "Mesh Networks"},
        ],
    },
)


def json_transport(document, status_code=200):
    """MockTransport answering every request with the given JSON document."""
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=document)
    return httpx.MockTransport(handler)


def make_executable(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!/bin/sh\n{body}\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX shell scripts")


class FakeRunner:
    """
    Records external invocations and simulates their side effects.

    - outro step writes the outro marker
    - composition writes <repo>/output/<id>_final.mkv
    Exit codes per step can be overridden, steps listed in `timeouts` report
    a timeout instead of exiting, and composition can be held on a gate.
    """

    def __init__(self, repo: Path, exit_codes=None, produce_output=True, timeouts=()):
        self.repo = repo
        self.exit_codes = exit_codes or {}
        self.timeouts = set(timeouts)
        self.produce_output = produce_output
        self.calls = []
        self.composition_started = None
        self.composition_gate = None

    @staticmethod
    def step_of(argv) -> str:
        argv = list(argv)
        if argv[0].endswith("create_video.sh"):
            return "composition"
        if "--id" in argv:
            return "intro"
        return "outro"

    async def __call__(self, argv, cwd, timeout=None):
        step = self.step_of(argv)
        self.calls.append((step, tuple(argv), Path(cwd), timeout))

        if step == "composition" and self.composition_gate is not None:
            self.composition_started.set()
            await self.composition_gate.wait()

        if step in self.timeouts:
            return ProcessOutcome(argv=tuple(argv), exit_code=None, duration_seconds=timeout or 0.0, timed_out=True)

        exit_code = self.exit_codes.get(step, 0)
        if exit_code == 0:
            if step == "outro":
                (self.repo / "intro-outro-generator" / "r3talks" / "outro.ts").write_text("outro")
            elif step == "composition" and self.produce_output:
                video_id = argv[argv.index("--video_id") + 1]
                (self.repo / "output" / f"{video_id}_final.mkv").write_text("final video")

        return ProcessOutcome(argv=tuple(argv), exit_code=exit_code, duration_seconds=0.0)

    def steps(self):
        return [call[0] for call in self.calls]
