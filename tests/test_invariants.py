"""Tests for the invariant checker — proves it accepts healthy trees and flags corruption."""

import pytest

from mlmsim.compensation.calculator import CompensationCalculator
from mlmsim.compensation.ledger import ActivationLedger
from mlmsim.placement.engine import PlacementEngine
from mlmsim.placement.invariants import verify
from mlmsim.policy.resolver import PolicyResolver


@pytest.fixture
def engine() -> PlacementEngine:
    engine = PlacementEngine(PolicyResolver.from_params())
    for i in range(6):
        engine.add_participant("A", f"U{i}")
    return engine


class TestHealthyTree:
    def test_fresh_engine(self) -> None:
        assert verify(PlacementEngine(PolicyResolver.from_params())) == []

    def test_after_operations(self, engine: PlacementEngine) -> None:
        resolver = PolicyResolver.from_params()
        calc = CompensationCalculator(resolver, engine)
        ledger = ActivationLedger(engine, calc)
        for pid in "BCDEFG":
            ledger.mark_active(pid)
        calc.recompute()
        assert verify(engine) == []


class TestCorruptionDetected:
    def test_second_parent(self, engine: PlacementEngine) -> None:
        engine.get("C").left_id = "D"
        errors = verify(engine)
        assert any("claimed by 2 slots" in e for e in errors)

    def test_orphan(self, engine: PlacementEngine) -> None:
        engine.get("B").left_id = None
        errors = verify(engine)
        assert any("claimed by 0 slots" in e for e in errors)

    def test_total_mismatch(self, engine: PlacementEngine) -> None:
        engine.get("B").earnings.total += 1
        assert any("total" in e for e in verify(engine))

    def test_pair_count_mismatch(self, engine: PlacementEngine) -> None:
        engine.get("B").pair_count = 2
        assert any("pair_count" in e for e in verify(engine))

    def test_foreign_pair_key(self, engine: PlacementEngine) -> None:
        node = engine.get("B")
        node.paid_pairs.add("F-G")
        node.pair_count = 1
        assert any("does not match its children" in e for e in verify(engine))

    def test_reverted_activation(self, engine: PlacementEngine) -> None:
        resolver = PolicyResolver.from_params()
        ledger = ActivationLedger(engine, CompensationCalculator(resolver, engine))
        ledger.mark_active("B")
        engine.get("B").active = False
        assert any("inactive" in e for e in verify(engine))
