"""
HostPulse - Threshold Evaluation

Pure classification of collected metrics against bounds. Scalar
thresholds yield at most one warning; per-entity thresholds yield one
warning per breaching entity (e.g. per mounted filesystem).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import operator
from typing import Any, Callable, Mapping, Optional, Union


Number = Union[int, float]


class Comparator(Enum):
    """Comparison applied as ``value <op> bound``; a true result is a breach."""
    GT = ">"
    GE = ">="
    EQ = "=="
    NE = "!="

    def compare(self, value: Any, bound: Any) -> bool:
        """Apply the comparison."""
        return _OPERATORS[self](value, bound)


_OPERATORS: dict[Comparator, Callable[[Any, Any], bool]] = {
    Comparator.GT: operator.gt,
    Comparator.GE: operator.ge,
    Comparator.EQ: operator.eq,
    Comparator.NE: operator.ne,
}


class Scope(Enum):
    """Whether a threshold applies to one value or to each entity of a metric."""
    GLOBAL = "global"
    PER_ENTITY = "per-entity"


@dataclass(frozen=True)
class Metric:
    """A collected value.

    Attributes:
        subsystem: Metric name matched against Threshold.metric_name
        value: Scalar, string, or mapping of entity to value
        unit: Optional unit for display
    """
    subsystem: str
    value: Any
    unit: Optional[str] = None


@dataclass(frozen=True)
class Threshold:
    """A bound a metric must not breach.

    Attributes:
        metric_name: Subsystem of the metrics this threshold applies to
        bound: Value compared against
        comparator: Comparison that signals a breach when true
        scope: GLOBAL or PER_ENTITY
        message: Warning template; may use {entity}, {value}, {bound}, {unit}
    """
    metric_name: str
    bound: Any
    comparator: Comparator = Comparator.GT
    scope: Scope = Scope.GLOBAL
    message: str = "{value} breaches {bound}"

    def breached(self, value: Any) -> bool:
        """Check a single value against this threshold."""
        if value is None:
            return False
        return self.comparator.compare(value, self.bound)

    def render(self, value: Any, entity: str = "", unit: Optional[str] = None) -> str:
        """Render the warning line for a breaching value."""
        return self.message.format(
            entity=entity,
            value=value,
            bound=_format_bound(self.bound),
            unit=unit or "",
        )


@dataclass(frozen=True)
class Classification:
    """Outcome of evaluating a metric."""
    breached: bool
    warnings: tuple[str, ...] = ()


def _format_bound(bound: Any) -> str:
    if isinstance(bound, float):
        return f"{bound:g}"
    return str(bound)


def evaluate(metric: Metric, thresholds: list[Threshold]) -> Classification:
    """Classify a metric against the thresholds that apply to it.

    Thresholds whose metric_name differs from the metric's subsystem are
    ignored. Per-entity thresholds require a mapping value and are
    evaluated entity by entity in mapping order; entities whose value is
    None are not evaluated.

    Args:
        metric: Collected metric
        thresholds: Threshold definitions for the subsystem

    Returns:
        Classification with one warning line per breach
    """
    warnings: list[str] = []

    for threshold in thresholds:
        if threshold.metric_name != metric.subsystem:
            continue

        if threshold.scope is Scope.PER_ENTITY:
            if not isinstance(metric.value, Mapping):
                raise TypeError(
                    f"per-entity threshold for '{metric.subsystem}' needs a mapping value"
                )
            for entity, value in metric.value.items():
                if threshold.breached(value):
                    warnings.append(threshold.render(value, entity=str(entity), unit=metric.unit))
        elif threshold.breached(metric.value):
            warnings.append(threshold.render(metric.value, unit=metric.unit))

    return Classification(breached=bool(warnings), warnings=tuple(warnings))
