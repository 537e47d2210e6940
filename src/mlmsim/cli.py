"""Simulator CLI — command-line interface for the binary MLM engine.

Usage:
    python -m mlmsim.cli status
    python -m mlmsim.cli demo
    python -m mlmsim.cli simulate --script commands.json
    python -m mlmsim.cli check-invariants

A simulate script is a JSON list of commands:
    [
        {"op": "add", "sponsor": "A", "name": "User B"},
        {"op": "activate", "id": "B"}
    ]
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from mlmsim.policy.resolver import PolicyResolver
from mlmsim.service import ServiceResult, SimulatorService


DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "config"


def _make_service(config_dir: Path) -> Optional[SimulatorService]:
    """Build a service from config_dir; None (after reporting) if it cannot load."""
    try:
        if config_dir == DEFAULT_CONFIG and not config_dir.exists():
            # Installed without the source tree: run on built-in parameters
            logger.warning("No config directory at {}, using defaults", config_dir)
            resolver = PolicyResolver.from_params()
        else:
            resolver = PolicyResolver.from_config_dir(config_dir)
    except (OSError, ValueError) as e:
        print(f"Failed to load config: {e}", file=sys.stderr)
        return None
    return SimulatorService(resolver)


def _report(service: SimulatorService) -> dict:
    return {
        "events": service.list_events(),
        "participants": service.list_participants(),
        "stats": service.network_stats(),
    }


def _run_command(service: SimulatorService, command: dict) -> ServiceResult:
    op = command.get("op")
    if op == "add":
        return service.add_participant(command.get("sponsor", ""), command.get("name", ""))
    if op == "activate":
        return service.mark_active(command.get("id", ""))
    if op == "check-pair":
        return service.check_pair(command.get("id", ""))
    raise ValueError(f"Unknown op: {op!r}")


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    if service is None:
        return 1
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_demo(args: argparse.Namespace) -> int:
    """Root A refers B, C and D (D spills over), then B and C activate."""
    service = _make_service(args.config)
    if service is None:
        return 1
    for name in ("User B", "User C", "User D"):
        service.add_participant("A", name)
    service.mark_active("B")
    service.mark_active("C")
    print(json.dumps(_report(service), indent=2, default=str))
    return 0


def cmd_simulate(args: argparse.Namespace) -> int:
    """Replay a JSON command script and print the resulting state."""
    service = _make_service(args.config)
    if service is None:
        return 1
    try:
        with args.script.open("r", encoding="utf-8") as handle:
            commands = json.load(handle)
    except (OSError, ValueError) as e:
        print(f"Failed to read script: {e}", file=sys.stderr)
        return 1
    if not isinstance(commands, list):
        print("Failed: script must be a JSON list of commands", file=sys.stderr)
        return 1

    failures = 0
    for index, command in enumerate(commands, 1):
        try:
            result = _run_command(service, command)
        except (ValueError, AttributeError) as e:
            print(f"Failed (command {index}): {e}", file=sys.stderr)
            return 1
        if not result.success:
            failures += 1
            print(
                f"Command {index} {result.outcome.value}: {'; '.join(result.errors)}",
                file=sys.stderr,
            )
            if args.strict:
                return 1

    print(json.dumps(_report(service), indent=2, default=str))
    return 1 if failures and args.strict else 0


def cmd_check_invariants(args: argparse.Namespace) -> int:
    """Validate the config directory."""
    tools_dir = Path(__file__).resolve().parents[2] / "tools"
    if not (tools_dir / "check_invariants.py").exists():
        print(f"Failed: invariant tool not found in {tools_dir}", file=sys.stderr)
        return 1
    sys.path.insert(0, str(tools_dir))
    from check_invariants import check
    return check(args.config)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mlmsim",
        description="Binary MLM compensation simulator",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help="Path to config directory (default: config/)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR"],
        help="Diagnostic log level on stderr (default: WARNING)",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("status", help="Show engine parameters and counts")
    sub.add_parser("demo", help="Run the three-referral demo scenario")

    p_sim = sub.add_parser("simulate", help="Replay a JSON command script")
    p_sim.add_argument("--script", type=Path, required=True, help="Path to script JSON")
    p_sim.add_argument(
        "--strict", action="store_true",
        help="Stop with exit code 1 at the first failed command",
    )

    sub.add_parser("check-invariants", help="Validate the config files")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level=args.log_level)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "status": cmd_status,
        "demo": cmd_demo,
        "simulate": cmd_simulate,
        "check-invariants": cmd_check_invariants,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
