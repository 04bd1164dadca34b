"""Report generator for load test results.

Generates a single-file HTML report with the planned VU distribution,
request statistics and threshold verdicts.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import BaseLoader, Environment

from .thresholds import AggregatedStats, check_scenario_thresholds, check_thresholds

logger = logging.getLogger(__name__)

REPORT_TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
<style>
  body { font: 14px/1.5 system-ui, sans-serif; color: #1f2933; background: #eef2f5; margin: 0; }
  main { max-width: 1200px; margin: 0 auto; padding: 24px; }
  .banner { background: #0f766e; color: #fff; padding: 24px 28px; border-radius: 8px; }
  .banner h1 { margin: 0 0 6px; font-size: 26px; }
  .banner span { margin-right: 24px; opacity: .85; }
  h2 { font-size: 18px; margin: 0 0 12px; color: #334e68; }
  .panel { background: #fff; border: 1px solid #d9e2ec; border-radius: 8px; padding: 18px; margin-top: 18px; }
  .tiles { display: flex; gap: 18px; margin-top: 18px; }
  .tile { flex: 1; background: #fff; border: 1px solid #d9e2ec; border-radius: 8px; padding: 16px; }
  .tile b { display: block; font-size: 30px; color: #0f766e; }
  .tile small { color: #627d98; text-transform: uppercase; letter-spacing: .05em; }
  .verdict-pass, .verdict-fail { padding: 12px 16px; border-radius: 6px; margin-bottom: 12px; }
  .verdict-pass { background: #e3f9e5; color: #05400a; }
  .verdict-fail { background: #ffe3e3; color: #610404; }
  table { width: 100%; border-collapse: collapse; }
  th { text-align: left; color: #486581; border-bottom: 2px solid #d9e2ec; padding: 8px; }
  td { border-bottom: 1px solid #f0f4f8; padding: 8px; }
  td.num { text-align: right; font-variant-numeric: tabular-nums; }
  .muted td { color: #9fb3c8; }
  pre { background: #f0f4f8; padding: 12px; border-radius: 6px; overflow-x: auto; }
  footer { color: #829ab1; text-align: center; padding: 24px; }
</style>
</head>
<body>
<main>
  <div class="banner">
    <h1>{{ title }}</h1>
    <span>Run: {{ run_name }}</span>
    <span>Duration: {{ duration }}</span>
    <span>Generated: {{ generated_at }}</span>
  </div>

  <div class="tiles">
    <div class="tile"><b>{{ summary.capacity }}</b><small>Planned VUs</small></div>
    <div class="tile"><b>{{ summary.total_requests | int }}</b><small>Requests</small></div>
    <div class="tile"><b>{{ "%.1f" | format(summary.requests_per_sec) }}</b><small>Requests/s</small></div>
    <div class="tile"><b>{{ "%.2f" | format(summary.error_rate) }}%</b><small>Failed</small></div>
  </div>

  {% if threshold_rows %}
  <div class="panel">
    <h2>Thresholds</h2>
    {% if violations %}
    <div class="verdict-fail">
      <strong>{{ violations | length }} threshold(s) violated</strong>
      <ul>{% for v in violations %}<li>{{ v }}</li>{% endfor %}</ul>
    </div>
    {% else %}
    <div class="verdict-pass"><strong>All thresholds passed</strong></div>
    {% endif %}
    <table>
      <tr><th>Threshold</th><th>Limit</th></tr>
      {% for key, limit in threshold_rows %}
      <tr><td>{{ key }}</td><td class="num">{{ limit }}</td></tr>
      {% endfor %}
    </table>
  </div>
  {% endif %}

  {% if allocations %}
  <div class="panel">
    <h2>VU Distribution</h2>
    <table>
      <tr><th>Scenario</th><th>Weight</th><th>VUs</th><th>Share</th><th>Description</th></tr>
      {% for a in allocations %}
      <tr{% if not a.vus %} class="muted"{% endif %}>
        <td>{{ a.scenario }}</td>
        <td class="num">{{ a.weight }}</td>
        <td class="num">{{ a.vus }}</td>
        <td class="num">{{ "%.1f" | format(a.share) }}%</td>
        <td>{{ a.description }}</td>
      </tr>
      {% endfor %}
    </table>
  </div>
  {% endif %}

  {% if scenario_stats %}
  <div class="panel">
    <h2>Results by Scenario</h2>
    <table>
      <tr>
        <th>Scenario</th><th>Requests</th><th>Failures</th>
        <th>Median ms</th><th>p95 ms</th><th>p99 ms</th><th>Max ms</th><th>Req/s</th>
      </tr>
      {% for s in scenario_stats %}
      <tr>
        <td>{{ s.scenario }}</td>
        <td class="num">{{ s.num_requests or 0 }}</td>
        <td class="num">{{ s.num_failures or 0 }}</td>
        <td class="num">{{ s.median_response_time or '-' }}</td>
        <td class="num">{{ s.p95 or '-' }}</td>
        <td class="num">{{ s.p99 or '-' }}</td>
        <td class="num">{{ s.max_response_time or '-' }}</td>
        <td class="num">{{ "%.2f" | format(s.requests_per_sec or 0) }}</td>
      </tr>
      {% endfor %}
    </table>
  </div>
  {% endif %}

  {% if locust_stats %}
  <div class="panel">
    <h2>Requests</h2>
    <table>
      <tr>
        <th>Type</th><th>Name</th><th>Requests</th><th>Failures</th>
        <th>Median ms</th><th>p95 ms</th><th>p99 ms</th><th>Max ms</th><th>Req/s</th>
      </tr>
      {% for s in locust_stats %}
      <tr>
        <td>{{ s.method or '' }}</td>
        <td>{{ s.name }}</td>
        <td class="num">{{ s.num_requests or 0 }}</td>
        <td class="num">{{ s.num_failures or 0 }}</td>
        <td class="num">{{ s.median_response_time or '-' }}</td>
        <td class="num">{{ s.p95 or '-' }}</td>
        <td class="num">{{ s.p99 or '-' }}</td>
        <td class="num">{{ s.max_response_time or '-' }}</td>
        <td class="num">{{ "%.2f" | format(s.requests_per_sec or 0) }}</td>
      </tr>
      {% endfor %}
    </table>
  </div>
  {% endif %}

  {% if config %}
  <div class="panel">
    <h2>Run Configuration</h2>
    <pre>{{ config | tojson(indent=2) }}</pre>
  </div>
  {% endif %}

  <footer>demoblaze-load-test &middot; {{ generated_at }}</footer>
</main>
</body>
</html>
"""


class ReportGenerator:
    """Single-file HTML report for a finished run.

    Shows headline numbers, the threshold verdict, the planned VU split
    per scenario (zero allocations greyed out), locust's per-request
    table and the resolved configuration.
    """

    def __init__(self, output_dir: str = "./reports"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        # Preset descriptions come from YAML files; escape them
        self.env = Environment(loader=BaseLoader(), autoescape=True)
        self.template = self.env.from_string(REPORT_TEMPLATE)

    def generate(
        self,
        run_name: str,
        allocations: List[Dict],
        locust_stats: Optional[List[Dict]] = None,
        scenario_stats: Optional[List[Dict]] = None,
        thresholds: Optional[Dict[str, Any]] = None,
        config: Optional[Dict] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None
    ) -> str:
        """Render the report for one run and write it to output_dir.

        Args:
            run_name: Name of the test run
            allocations: scenario_allocations rows, in profile order
            locust_stats: locust_stats rows; the 'Aggregated' row drives the
                summary and threshold verdicts
            scenario_stats: scenario_stats rows, judged against the
                thresholds' per-scenario limits
            thresholds: Threshold limits to judge the run against
            config: Resolved run configuration summary
            start_time: Test start time
            end_time: Test end time

        Returns:
            Path to the written HTML file
        """
        locust_stats = locust_stats or []
        scenario_stats = scenario_stats or []
        aggregated = self._aggregated_row(locust_stats)
        violations = []
        if aggregated and thresholds:
            violations = check_thresholds(
                AggregatedStats.from_row(aggregated), thresholds
            )
        if thresholds:
            violations += check_scenario_thresholds(
                {row['scenario']: AggregatedStats.from_row(row) for row in scenario_stats},
                thresholds
            )

        now = datetime.now(timezone.utc)
        html = self.template.render(
            title=f"Load Test Report - {run_name}",
            run_name=run_name,
            duration=self._format_duration(start_time, end_time),
            generated_at=now.strftime("%Y-%m-%d %H:%M:%S UTC"),
            summary=self._calculate_summary(allocations, aggregated),
            allocations=self._with_shares(allocations),
            locust_stats=locust_stats,
            scenario_stats=scenario_stats,
            threshold_rows=self._threshold_rows(thresholds),
            violations=violations,
            config=config
        )

        report_path = self.output_dir / f"report_{run_name}_{now:%Y%m%d_%H%M%S}.html"
        report_path.write_text(html)

        logger.info(f"Report written: {report_path}")
        return str(report_path)

    @staticmethod
    def _format_duration(
        start_time: Optional[datetime],
        end_time: Optional[datetime]
    ) -> str:
        if not (start_time and end_time):
            return "Unknown"
        minutes, seconds = divmod(int((end_time - start_time).total_seconds()), 60)
        return f"{minutes}m {seconds}s"

    @staticmethod
    def _aggregated_row(stats: List[Dict]) -> Optional[Dict]:
        """The 'Aggregated' row locust appends to its stats CSV."""
        for row in reversed(stats):
            if row.get('name') == 'Aggregated':
                return row
        return None

    @staticmethod
    def _threshold_rows(thresholds: Optional[Dict[str, Any]]) -> List[tuple]:
        """(label, limit) pairs, per-scenario limits labelled by scenario."""
        rows = []
        for key, limit in (thresholds or {}).items():
            if key == 'scenarios':
                for scenario, limits in limit.items():
                    rows.extend((f"{scenario} {k}", v) for k, v in limits.items())
            else:
                rows.append((key, limit))
        return rows

    @staticmethod
    def _with_shares(allocations: List[Dict]) -> List[Dict]:
        capacity = sum(a.get('vus', 0) or 0 for a in allocations)
        return [
            dict(a, share=((a.get('vus', 0) or 0) / capacity * 100) if capacity else 0.0)
            for a in allocations
        ]

    def _calculate_summary(
        self,
        allocations: List[Dict],
        aggregated: Optional[Dict]
    ) -> Dict[str, Any]:
        """Headline numbers: planned VUs, request count, throughput, error %."""
        aggregated = aggregated or {}
        total = aggregated.get('num_requests') or 0
        failures = aggregated.get('num_failures') or 0
        return {
            'capacity': sum(a.get('vus') or 0 for a in allocations),
            'total_requests': total,
            'requests_per_sec': aggregated.get('requests_per_sec') or 0,
            'error_rate': (failures / total * 100) if total else 0,
        }
