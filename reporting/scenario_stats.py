"""Request statistics split by scenario.

Every request a planned user makes carries the plan's tags in its locust
context. locust itself aggregates by request name only, and all scenarios
share request names, so this keeps one locust RequestStats per scenario
tag alongside the built-in stats.
"""

import csv
import logging
from pathlib import Path
from typing import Dict, List, Optional

from locust.stats import RequestStats, StatsEntry

logger = logging.getLogger(__name__)

# Same headers as locust's --csv stats file, plus the scenario
SCENARIO_CSV_HEADER = [
    'Scenario', 'Request Count', 'Failure Count', 'Median Response Time',
    'Average Response Time', 'Min Response Time', 'Max Response Time',
    'Average Content Size', 'Requests/s', 'Failures/s',
    '50%', '90%', '95%', '99%',
]


class ScenarioStats:
    """Per-scenario request stats fed by locust's request event."""

    def __init__(self, tag: str = 'scenario'):
        self.tag = tag
        self.stats: Dict[str, RequestStats] = {}

    def on_request(
        self,
        request_type=None,
        name=None,
        response_time=None,
        response_length=None,
        context=None,
        exception=None,
        **kwargs
    ):
        """Listener for events.request."""
        scenario = (context or {}).get(self.tag)
        if not scenario or not name:
            return

        stats = self.stats.get(scenario)
        if stats is None:
            stats = self.stats[scenario] = RequestStats()
        stats.log_request(request_type, name, response_time or 0, response_length or 0)
        if exception is not None:
            stats.log_error(request_type, name, exception)

    def totals(self) -> Dict[str, StatsEntry]:
        """Aggregated entry per scenario, in first-seen order."""
        return {scenario: stats.total for scenario, stats in self.stats.items()}

    def rows(self) -> List[List]:
        rows = []
        for scenario, total in self.totals().items():
            rows.append([
                scenario,
                total.num_requests,
                total.num_failures,
                total.median_response_time,
                round(total.avg_response_time, 2),
                total.min_response_time or 0,
                total.max_response_time,
                round(total.avg_content_length, 2),
                round(total.total_rps, 2),
                round(total.total_fail_per_sec, 2),
            ] + [
                total.get_response_time_percentile(p)
                for p in (0.5, 0.9, 0.95, 0.99)
            ])
        return rows

    def write_csv(self, path: Optional[str]) -> Optional[Path]:
        """Write one row per scenario; skipped when path is empty."""
        if not path:
            return None
        path = Path(path)
        with open(path, 'w', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(SCENARIO_CSV_HEADER)
            writer.writerows(self.rows())
        logger.info(f"Per-scenario stats written to {path}")
        return path
