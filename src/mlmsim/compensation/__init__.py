"""Compensation subsystem — pairing bonus, volumes, activation ledger."""

from mlmsim.compensation.calculator import CompensationCalculator
from mlmsim.compensation.ledger import ActivationLedger

__all__ = [
    "ActivationLedger",
    "CompensationCalculator",
]
