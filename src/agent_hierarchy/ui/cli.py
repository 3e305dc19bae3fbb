"""Command-line interface router for agent-hierarchy."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from agent_hierarchy.config import load_config
from agent_hierarchy.observability.logging import configure_from_config
from agent_hierarchy.orchestrator import HierarchyService
from agent_hierarchy.ui.render import CLIRenderer, create_renderer

EXIT_SUCCESS = 0
EXIT_WARNINGS_PRESENT = 1


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 2

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agent-hierarchy",
        description=(
            "agent-hierarchy — reconcile agent rosters, configs, documents, and runtime\n"
            "tool policies into one organizational graph.\n\n"
            "Common workflows:\n"
            "  agent-hierarchy build            Print the reconciled hierarchy\n"
            "  agent-hierarchy build --json     Emit the graph as canonical JSON\n"
            "  agent-hierarchy sources          Show which sources were found and used\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--workspace",
        default=None,
        help="Workspace root holding the source documents (default: from config, else '.').",
    )
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to hierarchy TOML config (default: ./hierarchy.toml if present).",
    )
    common.add_argument(
        "--roster",
        default=None,
        help="JSON or YAML roster file with the authoritative agent records.",
    )
    common.add_argument(
        "--no-runtime",
        action="store_true",
        default=False,
        help="Skip the runtime inventory command.",
    )
    common.add_argument(
        "--log-level",
        default=None,
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        type=str.upper,
        help="Log level for stderr diagnostics.",
    )
    common.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )
    common.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Emit machine-readable JSON on stdout.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    build_cmd = subparsers.add_parser(
        "build",
        parents=[common],
        help="Build and print the reconciled agent hierarchy",
    )
    build_cmd.add_argument(
        "--strict",
        action="store_true",
        default=False,
        help="Exit with status 1 when the graph carries warnings.",
    )
    build_cmd.set_defaults(handler=_cmd_build)

    sources_cmd = subparsers.add_parser(
        "sources",
        parents=[common],
        help="Show per-source availability without printing the graph",
    )
    sources_cmd.set_defaults(handler=_cmd_sources)

    config_cmd = subparsers.add_parser(
        "config",
        parents=[common],
        help="Print the effective configuration",
    )
    config_cmd.set_defaults(handler=_cmd_config)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_build(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    graph = _service(config).load()

    if _flag(args, "json"):
        print(graph.to_json())
    else:
        _get_renderer(args).graph(graph)

    if _flag(args, "strict") and graph.warnings:
        return EXIT_WARNINGS_PRESENT
    return EXIT_SUCCESS


def _cmd_sources(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    graph = _service(config).load()

    if _flag(args, "json"):
        _emit_json({"command": "sources", "sources": graph.sources.to_dict()})
        return EXIT_SUCCESS

    _get_renderer(args).sources(graph.sources)
    return EXIT_SUCCESS


def _cmd_config(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)

    if _flag(args, "json"):
        _emit_json({"command": "config", "config": config})
        return EXIT_SUCCESS

    renderer = _get_renderer(args)
    renderer.heading("Effective configuration")
    renderer.text(json.dumps(config, indent=2, sort_keys=True, ensure_ascii=False))
    return EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_effective_config(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, object] = {}
    workspace = getattr(args, "workspace", None)
    if isinstance(workspace, str) and workspace.strip():
        workspace_root = _absolute(workspace)
        if not Path(workspace_root).is_dir():
            raise CLIError(f"workspace directory not found: {workspace_root}")
        overrides["sources.workspace_root"] = workspace_root
    roster = getattr(args, "roster", None)
    if isinstance(roster, str) and roster.strip():
        overrides["sources.roster_file"] = _absolute(roster)
    if _flag(args, "no_runtime"):
        overrides["runtime.enabled"] = False
    log_level = getattr(args, "log_level", None)
    if isinstance(log_level, str):
        overrides["observability.log_level"] = log_level

    config = load_config(getattr(args, "config_path", None), cli_overrides=overrides)
    configure_from_config(config.get("observability"))
    return config


def _service(config: Mapping[str, Any]) -> HierarchyService:
    return HierarchyService.from_config(config)


def _absolute(raw: str) -> str:
    return Path(raw).expanduser().resolve().as_posix()


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(no_color=_flag(args, "no_color"))


__all__ = ["CLIError", "build_parser", "run_cli"]
