"""Weighted scenario distribution.

Splits a pool of virtual users (or iterations) across named scenarios in
proportion to integer weights. Every scenario except the last receives its
round-half-up share; the last scenario absorbs the residual so the
allocation always sums to the pool size.

Rounding drift therefore lands on whichever scenario is declared last.
Order profiles so the least weight-sensitive scenario (or the heaviest one)
comes last.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)


class InvalidConfiguration(ValueError):
    """Raised when a profile, capacity or preset name cannot be used."""


@dataclass(frozen=True)
class ScenarioWeight:
    """A named scenario and its relative weight."""
    name: str
    weight: int
    description: str = ""


class DistributionProfile:
    """Ordered, read-only mapping of scenario name to ScenarioWeight.

    Emptiness and weight sign are checked by allocate() rather than here so
    that a profile can be built from raw configuration and rejected at the
    point of use.
    """

    def __init__(
        self,
        scenarios: Iterable[ScenarioWeight] = (),
        name: Optional[str] = None
    ):
        self.name = name
        self._scenarios: Dict[str, ScenarioWeight] = {}
        for scenario in scenarios:
            if scenario.name in self._scenarios:
                raise InvalidConfiguration(
                    f"Duplicate scenario name in profile: {scenario.name}"
                )
            self._scenarios[scenario.name] = scenario

    @classmethod
    def from_triples(
        cls,
        triples: Iterable[Tuple[str, int, str]],
        name: Optional[str] = None
    ) -> "DistributionProfile":
        """Build a profile from (name, weight, description) triples."""
        return cls(
            (ScenarioWeight(n, w, d) for n, w, d in triples),
            name=name
        )

    def __len__(self) -> int:
        return len(self._scenarios)

    def __iter__(self) -> Iterator[str]:
        return iter(self._scenarios)

    def __contains__(self, name: object) -> bool:
        return name in self._scenarios

    def __getitem__(self, name: str) -> ScenarioWeight:
        return self._scenarios[name]

    def __repr__(self) -> str:
        weights = ", ".join(
            f"{s.name}={s.weight}" for s in self._scenarios.values()
        )
        return f"DistributionProfile({self.name!r}: {weights})"

    def scenarios(self) -> List[ScenarioWeight]:
        return list(self._scenarios.values())

    @property
    def total_weight(self) -> int:
        return sum(s.weight for s in self._scenarios.values())


@dataclass(frozen=True)
class ScenarioPlanEntry:
    """One executable unit handed to the load-generation host."""
    name: str
    target_concurrency: int
    duration: Any
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ExecutionPlan:
    """Per-scenario concurrency assignment for a single run.

    duration and thresholds are carried through untouched; interpreting
    them is the host's job.
    """
    entries: Tuple[ScenarioPlanEntry, ...]
    capacity: int
    duration: Any
    thresholds: Any
    allocation: Dict[str, int] = field(default_factory=dict)

    def __iter__(self) -> Iterator[ScenarioPlanEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def scenario_names(self) -> List[str]:
        return [entry.name for entry in self.entries]

    def as_dict(self) -> Dict[str, Any]:
        """Plain representation for logging and JSON export."""
        return {
            'capacity': self.capacity,
            'duration': self.duration,
            'thresholds': self.thresholds,
            'allocation': dict(self.allocation),
            'scenarios': [
                {
                    'name': entry.name,
                    'target_concurrency': entry.target_concurrency,
                    'duration': entry.duration,
                    'tags': dict(entry.tags),
                }
                for entry in self.entries
            ],
        }


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate(profile: DistributionProfile, capacity: int):
    if profile is None or len(profile) == 0:
        raise InvalidConfiguration("Distribution profile has no scenarios")

    for scenario in profile.scenarios():
        if not _is_int(scenario.weight) or scenario.weight <= 0:
            raise InvalidConfiguration(
                f"Scenario {scenario.name!r} has invalid weight "
                f"{scenario.weight!r}; weights must be positive integers"
            )

    if not _is_int(capacity) or capacity < 0:
        raise InvalidConfiguration(
            f"Capacity must be a non-negative integer, got {capacity!r}"
        )


def allocate(profile: DistributionProfile, capacity: int) -> Dict[str, int]:
    """Split capacity across the profile's scenarios by weight.

    Args:
        profile: Non-empty profile with positive integer weights
        capacity: Total VUs or iterations to distribute (>= 0)

    Returns:
        Dict of scenario name to count, in profile order. Values are
        non-negative and sum to capacity.

    Raises:
        InvalidConfiguration: empty profile, bad weight or negative capacity
    """
    _validate(profile, capacity)

    total_weight = profile.total_weight
    scenarios = profile.scenarios()
    allocation: Dict[str, int] = {}
    allocated = 0

    for scenario in scenarios[:-1]:
        # round half up of capacity * weight / total_weight
        share = (2 * capacity * scenario.weight + total_weight) // (2 * total_weight)
        share = min(share, capacity - allocated)
        allocation[scenario.name] = share
        allocated += share

    allocation[scenarios[-1].name] = capacity - allocated

    logger.debug(f"Allocated {capacity} across {len(scenarios)} scenarios: {allocation}")
    return allocation


def generate_execution_plan(
    profile: DistributionProfile,
    capacity: int,
    duration: Any,
    thresholds: Any
) -> ExecutionPlan:
    """Build the execution plan for a profile and capacity.

    Scenarios allocated zero VUs are left out of the plan.

    Raises:
        InvalidConfiguration: propagated from allocate()
    """
    allocation = allocate(profile, capacity)

    entries = tuple(
        ScenarioPlanEntry(
            name=name,
            target_concurrency=count,
            duration=duration,
            tags={'scenario': name}
        )
        for name, count in allocation.items()
        if count > 0
    )

    return ExecutionPlan(
        entries=entries,
        capacity=capacity,
        duration=duration,
        thresholds=thresholds,
        allocation=allocation
    )
