"""Pass/fail thresholds for a finished run.

Threshold keys:
    p95_response_time_ms, p99_response_time_ms, max_response_time_ms:
        limits in milliseconds
    failure_ratio: limit as a fraction of requests
    scenarios: mapping of scenario name to its own limits, using the keys
        above and judged against that scenario's requests only

A threshold is violated when the measured value reaches its limit.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional


@dataclass
class AggregatedStats:
    """Aggregated request stats read back from storage.

    Exposes the same attributes check_thresholds() uses on locust's
    environment.stats.total.
    """
    num_requests: int = 0
    num_failures: int = 0
    max_response_time: float = 0.0
    p95: Optional[float] = None
    p99: Optional[float] = None

    @property
    def fail_ratio(self) -> float:
        if not self.num_requests:
            return 0.0
        return self.num_failures / self.num_requests

    def get_response_time_percentile(self, percentile: float) -> Optional[float]:
        return {0.95: self.p95, 0.99: self.p99}.get(percentile)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "AggregatedStats":
        """Build from a locust_stats row (see reporting.storage)."""
        return cls(
            num_requests=row.get('num_requests') or 0,
            num_failures=row.get('num_failures') or 0,
            max_response_time=row.get('max_response_time') or 0.0,
            p95=row.get('p95'),
            p99=row.get('p99'),
        )


def check_thresholds(stats: Any, thresholds: Dict[str, Any]) -> List[str]:
    """Compare aggregated request stats against thresholds.

    Args:
        stats: locust's aggregated entry (environment.stats.total) or an
            AggregatedStats
        thresholds: Threshold limits; missing keys are skipped

    Returns:
        Human-readable description of each violated threshold
    """
    violations = []
    if not thresholds or not stats.num_requests:
        return violations

    percentiles = (
        ('p95_response_time_ms', 0.95),
        ('p99_response_time_ms', 0.99),
    )
    for key, percentile in percentiles:
        limit = thresholds.get(key)
        if limit is None:
            continue
        value = stats.get_response_time_percentile(percentile)
        if value is not None and value >= limit:
            violations.append(f"{key}: {value:.0f}ms >= {limit}ms")

    limit = thresholds.get('max_response_time_ms')
    if limit is not None and stats.max_response_time >= limit:
        violations.append(
            f"max_response_time_ms: {stats.max_response_time:.0f}ms >= {limit}ms"
        )

    limit = thresholds.get('failure_ratio')
    if limit is not None and stats.fail_ratio >= limit:
        violations.append(f"failure_ratio: {stats.fail_ratio:.3f} >= {limit}")

    return violations


def check_scenario_thresholds(
    stats_by_scenario: Mapping[str, Any],
    thresholds: Dict[str, Any]
) -> List[str]:
    """Judge each scenario's stats against its entry under 'scenarios'.

    Scenarios without stats (no VUs, or no requests made) are skipped.
    """
    violations = []
    for scenario, limits in ((thresholds or {}).get('scenarios') or {}).items():
        stats = stats_by_scenario.get(scenario)
        if stats is None:
            continue
        violations.extend(
            f"{scenario} {violation}"
            for violation in check_thresholds(stats, limits)
        )
    return violations
