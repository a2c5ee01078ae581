"""
talkrender CLI - thin entrypoint for operator commands.

Commands:
- serve: run the HTTP service
- refresh-schedule: fetch the remote schedule now
- render <import_id>: render one uploaded talk
- list-uploads: print every upload record
- check-setup: run the renderer setup checks

Exit Codes:
===========
- 0: Success
- 1: Validation error
- 2: Execution error
- 4: System error (setup, store, network)
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, NoReturn, Optional

from .config import Settings, get_settings
from .persistence import PersistenceError, UploadStore
from .rendering import (
    AlreadyRenderedError,
    MissingSourceError,
    RenderError,
    RenderInProgressError,
    RenderOrchestrator,
    SetupError,
    SetupVerifier,
)
from .schedule import FetchError, ScheduleCache

EXIT_SUCCESS = 0
EXIT_VALIDATION_ERROR = 1
EXIT_EXECUTION_ERROR = 2
EXIT_SYSTEM_ERROR = 4


def _fail(message: str, exit_code: int) -> NoReturn:
    print(f"ERROR: {message}", file=sys.stderr)
    sys.exit(exit_code)


def _store(settings: Settings) -> UploadStore:
    store = UploadStore(db_path=settings.db_path)
    try:
        store.bootstrap()
    except PersistenceError as e:
        _fail(str(e), EXIT_SYSTEM_ERROR)
    return store


def _verifier(settings: Settings) -> SetupVerifier:
    return SetupVerifier(
        repo_location=settings.repo_location,
        project=settings.generator_project,
        final_extension=settings.final_extension,
    )


def cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    import uvicorn

    from .main import create_app

    host = args.host or settings.host
    port = args.port or settings.port
    uvicorn.run(create_app(settings), host=host, port=port, log_level=settings.log_level.lower())
    return EXIT_SUCCESS


def cmd_refresh_schedule(args: argparse.Namespace, settings: Settings) -> int:
    cache = ScheduleCache(
        url=settings.schedule_url,
        cache_dir=settings.cache_dir,
        timeout=settings.schedule_timeout_seconds,
    )
    try:
        catalog = asyncio.run(cache.refresh())
    except FetchError as e:
        _fail(str(e), EXIT_SYSTEM_ERROR)

    print(f"Schedule fetched: {len(catalog.events)} events")
    return EXIT_SUCCESS


def cmd_render(args: argparse.Namespace, settings: Settings) -> int:
    orchestrator = RenderOrchestrator(
        store=_store(settings),
        setup=_verifier(settings),
        uploads_root=settings.upload_dir,
        asset_timeout=settings.asset_timeout_seconds,
        composition_timeout=settings.composition_timeout_seconds,
    )
    try:
        result = asyncio.run(orchestrator.render_talk(args.import_id))
    except SetupError as e:
        _fail(str(e), EXIT_SYSTEM_ERROR)
    except (MissingSourceError, AlreadyRenderedError, RenderInProgressError) as e:
        _fail(str(e), EXIT_VALIDATION_ERROR)
    except RenderError as e:
        _fail(str(e), EXIT_EXECUTION_ERROR)
    except PersistenceError as e:
        _fail(str(e), EXIT_SYSTEM_ERROR)

    print(result.summary())
    return EXIT_SUCCESS


def cmd_list_uploads(args: argparse.Namespace, settings: Settings) -> int:
    store = _store(settings)
    try:
        records = store.list_uploads()
    except PersistenceError as e:
        _fail(str(e), EXIT_SYSTEM_ERROR)

    if args.json:
        print(json.dumps([record.model_dump(mode="json") for record in records], indent=2))
        return EXIT_SUCCESS

    for record in records:
        state = "rendered" if record.rendered else "pending"
        print(f"{record.import_reference}\t{record.import_guid}\t{state}\t{record.path}")
    return EXIT_SUCCESS


def cmd_check_setup(args: argparse.Namespace, settings: Settings) -> int:
    results = _verifier(settings).run_checks()
    for result in results:
        line = f"[{result.status.value.upper()}] {result.id}: {result.message}"
        if result.hint:
            line += f" (hint: {result.hint})"
        print(line)

    if all(result.passed for result in results):
        return EXIT_SUCCESS
    return EXIT_SYSTEM_ERROR


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="talkrender",
        description="Upload and render management for conference talks",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP service")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(handler=cmd_serve)

    refresh = subparsers.add_parser("refresh-schedule", help="Fetch the remote schedule now")
    refresh.set_defaults(handler=cmd_refresh_schedule)

    render = subparsers.add_parser("render", help="Render one uploaded talk")
    render.add_argument("import_id", type=int, help="Import ID of the talk")
    render.set_defaults(handler=cmd_render)

    list_uploads = subparsers.add_parser("list-uploads", help="List upload records")
    list_uploads.add_argument("--json", action="store_true", help="Print records as JSON")
    list_uploads.set_defaults(handler=cmd_list_uploads)

    check = subparsers.add_parser("check-setup", help="Run the renderer setup checks")
    check.set_defaults(handler=cmd_check_setup)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    return args.handler(args, settings)


if __name__ == "__main__":
    sys.exit(main())
