"""Command line entry point.

Examples::

    gimba tables catalogs --out family/
    gimba tables lookup --out family/ --overwrite
    gimba materials GIMBA.yaml check
    gimba materials GIMBA.yaml create --overwrite
    gimba dump GIMBA.yaml --name "Thread template$"

Exit status is 0 on success, 1 when any file or material operation failed
and 2 when pre-checks failed or the input could not be read.
"""

from __future__ import annotations

import argparse
import re
import sys
from pathlib import Path
from typing import List, Optional

from . import logs
from .config import Settings, load_settings
from .errors import GimbaError
from .materials import (
    Action,
    AssetDumper,
    Choice,
    DocumentStore,
    ReconciliationEngine,
    precheck_summary,
    wrapup_summary,
)
from .messages import Summary
from .tables import OUTPUT_GROUPS, precheck_outputs, table_run_summary, write_outputs

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_PRECHECK = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gimba",
        description="Catalogs, lookup tables and thread materials for generic ISO metric bolts.",
    )
    parser.add_argument("--config", type=Path, help="Settings file (default: $GIMBA_CONFIG or ~/.config/gimba/gimba.yaml).")
    sub = parser.add_subparsers(dest="command", required=True)

    tables = sub.add_parser("tables", help="Write type catalogs and lookup tables.")
    tables.add_argument("group", choices=sorted(OUTPUT_GROUPS), help="Output group to write.")
    tables.add_argument("--out", type=Path, default=Path("."), help="Output directory (default: current directory).")
    tables.add_argument("--overwrite", action="store_true", help="Overwrite existing files.")

    materials = sub.add_parser("materials", help="Check, create or delete thread materials in a document.")
    materials.add_argument("document", type=Path, help="Material document (YAML).")
    materials.add_argument("action", choices=["check", "create", "delete"])
    materials.add_argument("--overwrite", action="store_true", help="Replace existing thread materials.")

    dump = sub.add_parser("dump", help="Print materials and their appearance assets.")
    dump.add_argument("document", type=Path, help="Material document (YAML).")
    dump.add_argument("--name", help="Regular expression selecting materials by name.")
    return parser


def _print_summary(summary: Summary) -> None:
    stream = sys.stderr if summary.warning else sys.stdout
    print(summary, file=stream)


def _log_dir(settings: Settings, fallback: Path) -> Path:
    return settings.log_dir if settings.log_dir is not None else fallback


def _run_tables(args: argparse.Namespace, settings: Settings) -> int:
    out = args.out
    if not out.is_dir():
        print(f"ERROR: output directory {out} does not exist", file=sys.stderr)
        return EXIT_PRECHECK

    statuses = precheck_outputs(args.group, out, settings)
    print("Status of output files:")
    for status in statuses:
        print(f"* {status.path.name} ({'exists' if status.exists else 'does not exist'})")

    run = write_outputs(args.group, out, args.overwrite, settings=settings)
    _print_summary(table_run_summary(run))
    return EXIT_FAILURES if run.failed else EXIT_OK


def _run_materials(args: argparse.Namespace, store: DocumentStore) -> int:
    engine = ReconciliationEngine(store)
    discovery = engine.discover()
    _print_summary(precheck_summary(discovery, args.document.name))
    if not discovery.ready:
        return EXIT_PRECHECK
    if args.action == "check":
        return EXIT_OK

    choice = Choice(Action(args.action), args.overwrite)
    counters = engine.execute(discovery, choice)
    _print_summary(wrapup_summary(choice.action, counters))
    return EXIT_FAILURES if counters.has_failures else EXIT_OK


def _run_dump(args: argparse.Namespace, store: DocumentStore) -> int:
    pattern = re.compile(args.name) if args.name else None
    dumper = AssetDumper()
    materials = store.find(pattern)
    for material in materials:
        print(dumper.dump_material(material))
    if not materials:
        print("No materials found.")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
    except (OSError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_PRECHECK

    if args.command == "tables":
        logs.begin("Catalogs_And_Tables", _log_dir(settings, args.out))
        try:
            return _run_tables(args, settings)
        finally:
            logs.end()

    try:
        store = DocumentStore.load(args.document)
    except (OSError, GimbaError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_PRECHECK

    if args.command == "dump":
        return _run_dump(args, store)

    log_path = logs.begin("Thread_Materials", _log_dir(settings, args.document.resolve().parent))
    try:
        return _run_materials(args, store)
    except (OSError, GimbaError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        print(f"See {log_path} for details.", file=sys.stderr)
        return EXIT_FAILURES
    finally:
        logs.end()


if __name__ == "__main__":
    sys.exit(main())
