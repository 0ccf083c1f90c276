from .decision import (
    Decision,
    DecisionEngine,
    DecisionThresholds,
    decide,
    default_thresholds,
    load_tenant_thresholds,
    thresholds_for_tenant,
)
from .money import quantize_amount

__all__ = [
    "Decision",
    "DecisionEngine",
    "DecisionThresholds",
    "decide",
    "default_thresholds",
    "load_tenant_thresholds",
    "quantize_amount",
    "thresholds_for_tenant",
]
