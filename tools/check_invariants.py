#!/usr/bin/env python3
"""Simulator invariant checks against the shipped config artifacts."""

import json
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional


ROOT = Path(__file__).resolve().parents[1]
CONFIG_DIR = ROOT / "config"
PARAMS_FILE = "compensation_params.json"

REQUIRED_KEYS = ("unit_direct_bonus", "unit_pair_bonus", "root_name", "max_depth")


def load_json(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def check_amount(params: dict, key: str, errors: list[str]) -> None:
    raw = params.get(key)
    if not isinstance(raw, str):
        errors.append(f"{key} must be a decimal string (no floats in compensation)")
        return
    try:
        amount = Decimal(raw)
    except InvalidOperation:
        errors.append(f"{key} is not a decimal amount: {raw!r}")
        return
    if not amount.is_finite() or amount < 0:
        errors.append(f"{key} must be a non-negative amount, got {raw}")


def check(config_dir: Optional[Path] = None) -> int:
    path = Path(config_dir or CONFIG_DIR) / PARAMS_FILE
    if not path.exists():
        print(f"Missing config file: {path}")
        return 1
    params = load_json(path)
    errors: list[str] = []

    for key in REQUIRED_KEYS:
        if key not in params:
            errors.append(f"missing key: {key}")

    check_amount(params, "unit_direct_bonus", errors)
    check_amount(params, "unit_pair_bonus", errors)

    root_name = params.get("root_name")
    if not isinstance(root_name, str) or not root_name.strip():
        errors.append("root_name must be a non-empty string")

    max_depth = params.get("max_depth")
    if max_depth is not None:
        if isinstance(max_depth, bool) or not isinstance(max_depth, int):
            errors.append(f"max_depth must be an integer or null, got {max_depth!r}")
        elif max_depth < 1:
            errors.append(f"max_depth must be >= 1, got {max_depth}")

    if errors:
        print("Invariant check failed:")
        for error in errors:
            print(f"  - {error}")
        return 1

    print("All invariant checks passed.")
    return 0


if __name__ == "__main__":
    sys.exit(check())
