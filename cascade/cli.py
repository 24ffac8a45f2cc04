"""
Cascade CLI - Command-line interface for the engine.

Usage:
    cascade validate <descriptor.json>                 Validate a descriptor
    cascade run <descriptor.json> --event NAME         Feed an event and print the result
               [--data JSON] [--force] [--strict] [--verbose]

JSON descriptors cannot carry closures, so `run` exercises properties,
dispatch-only hacks and services with literal configuration.
"""

import argparse
import asyncio
import json
import logging
import sys


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Cascade - Reactive State Orchestration Engine",
        prog="cascade",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Validate an engine descriptor")
    validate_parser.add_argument("descriptor_file", help="Path to descriptor JSON file")

    # Run command
    run_parser = subparsers.add_parser("run", help="Build an engine and feed it events")
    run_parser.add_argument("descriptor_file", help="Path to descriptor JSON file")
    run_parser.add_argument("--event", "-e", action="append", required=True, help="Event to emit")
    run_parser.add_argument("--data", "-d", help="JSON payload attached to the events")
    run_parser.add_argument("--force", action="store_true", help="Count writes even if rejected")
    run_parser.add_argument("--strict", action="store_true", help="Make diagnostics fatal")
    run_parser.add_argument("--verbose", "-v", action="store_true", help="Log main loop traces")

    args = parser.parse_args(argv)

    if args.command == "validate":
        return cmd_validate(args)
    elif args.command == "run":
        return cmd_run(args)
    else:
        parser.print_help()
        sys.exit(1)


def _load_descriptor(path):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        print(f"Error: File not found: {path}")
        sys.exit(1)
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON in {path}: {e}")
        sys.exit(1)


def cmd_validate(args):
    """Validate a descriptor."""
    from .schema import validate_descriptor

    print(f"Validating: {args.descriptor_file}")
    descriptor = _load_descriptor(args.descriptor_file)
    result = validate_descriptor(descriptor)

    if result.warnings:
        print("\nWarnings:")
        for w in result.warnings:
            print(f"  - {w}")

    if result.errors:
        print("\nErrors:")
        for e in result.errors:
            print(f"  - {e}")
        sys.exit(1)

    print("\nDescriptor is valid")
    return 0


def cmd_run(args):
    """Build an engine, emit the events and print the final state."""
    from .engine_core import Engine
    from .errors import CascadeError
    from .settings import Settings

    descriptor = _load_descriptor(args.descriptor_file)
    data = json.loads(args.data) if args.data else None
    settings = Settings.from_env()
    settings.strict = settings.strict or args.strict
    settings.verbose = settings.verbose or args.verbose
    if settings.verbose:
        logging.basicConfig(level=logging.DEBUG)

    async def _run():
        engine = Engine(descriptor, settings=settings)
        report = engine.emit(args.event, data=data, force=args.force)
        await _drain()
        await engine.services.transport.aclose()
        return engine, report

    try:
        engine, report = asyncio.run(_run())
    except CascadeError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(json.dumps({
        "iterations": report.iterations,
        "converged": report.converged,
        "dispatched": report.dispatched,
        "properties": engine.snapshot(),
        "warnings": engine.diagnostics.warnings,
    }, indent=2, default=str))
    return 0


async def _drain():
    """Wait for every service call still in flight, including the ones they trigger."""
    current = asyncio.current_task()
    while True:
        tasks = [t for t in asyncio.all_tasks() if t is not current and not t.done()]
        if not tasks:
            return
        await asyncio.gather(*tasks, return_exceptions=True)


if __name__ == "__main__":
    main()
