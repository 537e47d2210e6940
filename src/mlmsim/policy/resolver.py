"""Policy resolver — loads compensation and placement parameters.

Parameters come from config/compensation_params.json. They are validated
once at load time; a resolver that exists is always well-formed.
"""

from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional


PARAMS_FILE = "compensation_params.json"

DEFAULT_PARAMS: dict[str, Any] = {
    "unit_direct_bonus": "2500",
    "unit_pair_bonus": "2500",
    "root_name": "User A",
    "max_depth": None,
}


def _to_amount(key: str, raw: Any) -> Decimal:
    try:
        amount = Decimal(str(raw))
    except InvalidOperation:
        raise ValueError(f"{key} must be a decimal amount, got {raw!r}")
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"{key} must be a non-negative amount, got {raw!r}")
    return amount


class PolicyResolver:
    """Resolves simulator parameters.

    Usage:
        resolver = PolicyResolver.from_config_dir(Path("config"))
        params = resolver.compensation_params()
        unit = params["unit_pair_bonus"]
    """

    def __init__(self, params: dict[str, Any]) -> None:
        merged = dict(DEFAULT_PARAMS)
        merged.update(params)

        self._unit_direct_bonus = _to_amount(
            "unit_direct_bonus", merged["unit_direct_bonus"],
        )
        self._unit_pair_bonus = _to_amount(
            "unit_pair_bonus", merged["unit_pair_bonus"],
        )

        root_name = merged["root_name"]
        if not isinstance(root_name, str) or not root_name.strip():
            raise ValueError("root_name must be a non-empty string")
        self._root_name = root_name.strip()

        max_depth = merged["max_depth"]
        if max_depth is not None:
            if isinstance(max_depth, bool) or not isinstance(max_depth, int):
                raise ValueError(f"max_depth must be an integer or null, got {max_depth!r}")
            if max_depth < 1:
                raise ValueError(f"max_depth must be >= 1, got {max_depth}")
        self._max_depth: Optional[int] = max_depth

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> PolicyResolver:
        path = Path(config_dir) / PARAMS_FILE
        if not path.exists():
            raise ValueError(f"Missing config file: {path}")
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a JSON object")
        return cls(data)

    @classmethod
    def from_params(cls, params: Optional[dict[str, Any]] = None) -> PolicyResolver:
        return cls(params or {})

    def compensation_params(self) -> dict[str, Decimal]:
        return {
            "unit_direct_bonus": self._unit_direct_bonus,
            "unit_pair_bonus": self._unit_pair_bonus,
        }

    def root_name(self) -> str:
        return self._root_name

    def max_depth(self) -> Optional[int]:
        """Deepest level a node may occupy. None means unbounded."""
        return self._max_depth
