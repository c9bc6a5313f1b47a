from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Optional, Sequence

from .backends import LocalFileBackend
from .compiler import CatalogCompiler
from .config import DEFAULT_CONFIG, load_config
from .engine import ConvergenceEngine
from .facts import FileFactProvider, StaticFactProvider, parse_fact_args
from .packages import PackageBackendFactory
from .types import (
    Catalog,
    DuplicateResourceError,
    ReconciliationResult,
    ResourceDeclaration,
    ResourceOutcome,
    Status,
    UnsupportedPlatform,
)


class Ansi:
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    BLUE = "\033[94m"
    RESET = "\033[0m"


def colorize(text: str, color: Optional[str]) -> str:
    if not color:
        return text
    if not sys.stdout.isatty() or os.environ.get("NO_COLOR"):
        return text
    return f"{color}{text}{Ansi.RESET}"

_last_progress_len = 0


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Converge the EPEL repository definition")
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Path to config file (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument("--facts", type=Path, help="TOML or JSON file with host facts")
    parser.add_argument(
        "--fact",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Set a single fact (repeatable, overrides --facts)",
    )
    parser.add_argument("--module", help="Module to compile (default from config or 'epel')")
    parser.add_argument("--root", type=Path, help="Apply file resources below this directory")
    parser.add_argument("--manager", help="Package manager backend (yum or dnf)")
    parser.add_argument("--dry-run", action="store_true", help="Calculate changes without executing")
    parser.add_argument(
        "--show-catalog",
        action="store_true",
        help="Print the compiled catalog and exit without applying it",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(levelname)s %(name)s - %(message)s",
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    try:
        cfg = load_config(args.config)
        overrides = parse_fact_args(args.fact)
        facts_file = args.facts or cfg.facts_file
        if facts_file:
            provider = FileFactProvider(facts_file, overrides)
        else:
            provider = StaticFactProvider(overrides)
        facts = provider.get_facts()
    except (OSError, ValueError) as exc:
        print(colorize(f"Configuration failed: {exc}", Ansi.RED), file=sys.stderr)
        return 1

    module = args.module or cfg.module
    try:
        catalog = CatalogCompiler().compile(facts, module, cfg.params)
    except (UnsupportedPlatform, DuplicateResourceError, KeyError, ValueError) as exc:
        print(colorize(f"Catalog compilation failed: {exc}", Ansi.RED), file=sys.stderr)
        return 1

    if args.show_catalog:
        print(format_catalog(catalog))
        return 0

    try:
        packages = PackageBackendFactory.create(args.manager or cfg.package_manager)
    except (RuntimeError, ValueError) as exc:
        print(colorize(f"Package backend unavailable: {exc}", Ansi.RED), file=sys.stderr)
        return 1

    engine = ConvergenceEngine(
        LocalFileBackend(args.root or cfg.root),
        packages,
        dry_run=args.dry_run,
        progress_callback=print_progress,
    )
    # Ctrl-C stops the run before the next resource.
    previous_handler = signal.signal(signal.SIGINT, lambda *_: engine.cancel())
    try:
        result = engine.run(catalog)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    effective_level = logging.getLogger().getEffectiveLevel()
    for outcome in result.outcomes:
        _clear_progress()
        if not should_display_outcome(outcome, effective_level):
            continue
        print(format_outcome(outcome))

    _clear_progress()
    print(render_summary(result))
    return 1 if result.failed or result.aborted else 0


def format_outcome(outcome: ResourceOutcome) -> str:
    status = outcome.status.value
    if outcome.status is Status.FAILED:
        color = Ansi.RED
    elif outcome.status is Status.CHANGED:
        color = Ansi.GREEN
    else:
        color = Ansi.BLUE
    line = f"{outcome.ref} {status} - {outcome.details}"
    return colorize(line, color)


def should_display_outcome(outcome: ResourceOutcome, log_level: int) -> bool:
    if outcome.status is not Status.UNCHANGED:
        return True
    return log_level <= logging.DEBUG


def format_catalog(catalog: Catalog) -> str:
    lines: list[str] = []
    for declaration in catalog:
        lines.append(f"{declaration.ref}:")
        for name, value in declaration.attributes.items():
            if name == "content":
                value = f"<{len(str(value).splitlines())} lines>"
            lines.append(f"  {name} => {value}")
    return "\n".join(lines)


def render_summary(result: ReconciliationResult) -> str:
    parts = [
        f"Changed: {result.changed}",
        f"Unchanged: {result.unchanged}",
        f"Failed: {result.failures}",
    ]
    if result.not_started:
        parts.append(f"Not started: {len(result.not_started)}")
    text = " | ".join(parts)
    if result.dry_run:
        text = f"{text} (dry-run)"
    color = Ansi.GREEN if not result.failed and not result.aborted else Ansi.RED
    return colorize(text, color)


def print_progress(declaration: ResourceDeclaration) -> None:
    global _last_progress_len
    line = f"{declaration.ref} pending..."
    _last_progress_len = len(line)
    print(colorize(line, Ansi.YELLOW), end="\r", flush=True)


def _clear_progress() -> None:
    global _last_progress_len
    if _last_progress_len:
        print(" " * _last_progress_len, end="\r", flush=True)
        _last_progress_len = 0


if __name__ == "__main__":
    raise SystemExit(main())
