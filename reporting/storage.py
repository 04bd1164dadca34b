"""Test run storage using SQLite.

One database holds every run: its resolved configuration, the VUs planned
per scenario and the request statistics locust wrote at the end.
"""

import csv
import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from distribution.allocator import DistributionProfile, ExecutionPlan

# locust --csv header -> (locust_stats column, SQL type)
LOCUST_CSV_COLUMNS = {
    'Type': ('method', 'TEXT'),
    'Name': ('name', 'TEXT'),
    'Request Count': ('num_requests', 'INTEGER'),
    'Failure Count': ('num_failures', 'INTEGER'),
    'Median Response Time': ('median_response_time', 'REAL'),
    'Average Response Time': ('average_response_time', 'REAL'),
    'Min Response Time': ('min_response_time', 'REAL'),
    'Max Response Time': ('max_response_time', 'REAL'),
    'Average Content Size': ('avg_content_length', 'REAL'),
    'Requests/s': ('requests_per_sec', 'REAL'),
    'Failures/s': ('failures_per_sec', 'REAL'),
    '50%': ('p50', 'REAL'),
    '90%': ('p90', 'REAL'),
    '95%': ('p95', 'REAL'),
    '99%': ('p99', 'REAL'),
}

STAT_COLUMNS = [column for column, _ in LOCUST_CSV_COLUMNS.values()]

# Per-scenario CSV (see reporting.scenario_stats): numeric columns only
SCENARIO_CSV_COLUMNS = {
    header: column_type
    for header, column_type in LOCUST_CSV_COLUMNS.items()
    if header not in ('Type', 'Name')
}


class MetricsStorage:
    """SQLite-backed record of load test runs.

    Tables:
    - test_runs: one row per run, with status and resolved configuration
    - scenario_allocations: planned VUs per scenario, zero counts included
    - locust_stats: one row per request name, plus locust's Aggregated row
    - scenario_stats: aggregated request stats per scenario tag
    """

    def __init__(self, db_path: str = "metrics.db"):
        self.db_path = Path(db_path)
        self._init_schema()

    @contextmanager
    def _get_connection(self):
        """Connection that commits on success and always closes."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_schema(self):
        stat_columns = ",\n".join(
            f"    {column} {sql_type}"
            for column, sql_type in LOCUST_CSV_COLUMNS.values()
        )
        scenario_columns = ",\n".join(
            f"    {column} {sql_type}"
            for column, sql_type in SCENARIO_CSV_COLUMNS.values()
        )
        with self._get_connection() as conn:
            conn.executescript(f"""
                CREATE TABLE IF NOT EXISTS test_runs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    start_time TIMESTAMP NOT NULL,
                    end_time TIMESTAMP,
                    test_profile TEXT,
                    distribution_profile TEXT,
                    capacity INTEGER,
                    config TEXT,
                    notes TEXT,
                    status TEXT DEFAULT 'running'
                );

                CREATE TABLE IF NOT EXISTS scenario_allocations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    run_id INTEGER NOT NULL REFERENCES test_runs(id),
                    position INTEGER NOT NULL,
                    scenario TEXT NOT NULL,
                    weight INTEGER,
                    vus INTEGER NOT NULL,
                    description TEXT
                );

                CREATE TABLE IF NOT EXISTS locust_stats (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    run_id INTEGER NOT NULL REFERENCES test_runs(id),
                    recorded_at TIMESTAMP NOT NULL,
                {stat_columns},
                    raw_data TEXT
                );

                CREATE TABLE IF NOT EXISTS scenario_stats (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    run_id INTEGER NOT NULL REFERENCES test_runs(id),
                    recorded_at TIMESTAMP NOT NULL,
                    scenario TEXT NOT NULL,
                {scenario_columns}
                );

                CREATE INDEX IF NOT EXISTS idx_allocations_run
                ON scenario_allocations(run_id, position);

                CREATE INDEX IF NOT EXISTS idx_locust_stats_run
                ON locust_stats(run_id);

                CREATE INDEX IF NOT EXISTS idx_scenario_stats_run
                ON scenario_stats(run_id);
            """)

    def create_test_run(
        self,
        name: str,
        config: Optional[Dict] = None,
        notes: Optional[str] = None
    ) -> int:
        """Open a run in 'running' state.

        Args:
            name: Run name from the run configuration
            config: Resolved configuration; its test_profile and
                distribution_profile are also stored as columns
            notes: Free text

        Returns:
            The new run ID
        """
        config = config or {}
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO test_runs (
                    name, start_time, test_profile, distribution_profile,
                    config, notes
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    name,
                    self._now(),
                    config.get('test_profile'),
                    config.get('distribution_profile'),
                    json.dumps(config, default=str) if config else None,
                    notes
                )
            )
            return cursor.lastrowid

    def complete_test_run(self, run_id: int, status: str = "completed"):
        """Close a run with completed, failed, error or interrupted."""
        with self._get_connection() as conn:
            conn.execute(
                "UPDATE test_runs SET end_time = ?, status = ? WHERE id = ?",
                (self._now(), status, run_id)
            )

    def store_allocation(
        self,
        run_id: int,
        profile: DistributionProfile,
        plan: ExecutionPlan
    ):
        """Store the planned VUs for every scenario, zero counts included."""
        rows = [
            (
                run_id,
                position,
                scenario.name,
                scenario.weight,
                plan.allocation.get(scenario.name, 0),
                scenario.description
            )
            for position, scenario in enumerate(profile.scenarios())
        ]
        with self._get_connection() as conn:
            conn.execute(
                "UPDATE test_runs SET capacity = ? WHERE id = ?",
                (plan.capacity, run_id)
            )
            conn.executemany(
                """
                INSERT INTO scenario_allocations (
                    run_id, position, scenario, weight, vus, description
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                rows
            )

    def store_locust_stats(self, run_id: int, stats: Dict[str, Any]):
        """Store one row of locust statistics keyed by column name.

        Numbers may arrive as CSV strings; locust's 'N/A' becomes NULL.
        """
        values = self._coerce(LOCUST_CSV_COLUMNS, stats)
        columns = ', '.join(['run_id', 'recorded_at'] + STAT_COLUMNS + ['raw_data'])
        placeholders = ', '.join('?' * (len(STAT_COLUMNS) + 3))
        with self._get_connection() as conn:
            conn.execute(
                f"INSERT INTO locust_stats ({columns}) VALUES ({placeholders})",
                [run_id, self._now()] + values + [json.dumps(stats)]
            )

    def store_scenario_stats(self, run_id: int, scenario: str, stats: Dict[str, Any]):
        """Store the aggregated stats of one scenario, keyed by column name."""
        values = self._coerce(SCENARIO_CSV_COLUMNS, stats)
        stat_columns = [column for column, _ in SCENARIO_CSV_COLUMNS.values()]
        columns = ', '.join(['run_id', 'recorded_at', 'scenario'] + stat_columns)
        placeholders = ', '.join('?' * (len(stat_columns) + 3))
        with self._get_connection() as conn:
            conn.execute(
                f"INSERT INTO scenario_stats ({columns}) VALUES ({placeholders})",
                [run_id, self._now(), scenario] + values
            )

    def import_locust_csv(self, run_id: int, csv_path: str) -> int:
        """Import a locust --csv *_stats.csv file.

        Returns:
            Number of rows imported
        """
        count = 0
        for row in self._read_csv(csv_path):
            self.store_locust_stats(run_id, {
                column: row.get(header)
                for header, (column, _) in LOCUST_CSV_COLUMNS.items()
            })
            count += 1
        return count

    def import_scenario_csv(self, run_id: int, csv_path: str) -> int:
        """Import the per-scenario stats file written by the locustfile.

        Returns:
            Number of scenarios imported
        """
        count = 0
        for row in self._read_csv(csv_path):
            self.store_scenario_stats(run_id, row['Scenario'], {
                column: row.get(header)
                for header, (column, _) in SCENARIO_CSV_COLUMNS.items()
            })
            count += 1
        return count

    @staticmethod
    def _read_csv(csv_path: str):
        path = Path(csv_path)
        if not path.exists():
            raise FileNotFoundError(f"Stats file not found: {path}")
        with open(path, newline='') as f:
            yield from csv.DictReader(f)

    def _fetch_all(self, query: str, params: tuple) -> List[Dict]:
        with self._get_connection() as conn:
            return [dict(row) for row in conn.execute(query, params).fetchall()]

    def get_allocations(self, run_id: int) -> List[Dict]:
        """Planned allocations for a run, in profile order."""
        return self._fetch_all(
            "SELECT * FROM scenario_allocations WHERE run_id = ? ORDER BY position",
            (run_id,)
        )

    def get_locust_stats(self, run_id: int) -> List[Dict]:
        """Locust stats rows for a run, in CSV order."""
        return self._fetch_all(
            "SELECT * FROM locust_stats WHERE run_id = ? ORDER BY id",
            (run_id,)
        )

    def get_scenario_stats(self, run_id: int) -> List[Dict]:
        """Per-scenario stats rows for a run, in the order scenarios were seen."""
        return self._fetch_all(
            "SELECT * FROM scenario_stats WHERE run_id = ? ORDER BY id",
            (run_id,)
        )

    def get_test_run(self, run_id: int) -> Optional[Dict]:
        runs = self._fetch_all("SELECT * FROM test_runs WHERE id = ?", (run_id,))
        return runs[0] if runs else None

    def list_test_runs(self, limit: int = 20) -> List[Dict]:
        """Most recent runs first."""
        return self._fetch_all(
            "SELECT * FROM test_runs ORDER BY start_time DESC, id DESC LIMIT ?",
            (limit,)
        )

    def export_to_json(self, run_id: int, output_path: str):
        """Dump a run with its allocations and stats to a JSON file."""
        data = {
            'test_run': self.get_test_run(run_id),
            'scenario_allocations': self.get_allocations(run_id),
            'locust_stats': self.get_locust_stats(run_id),
            'scenario_stats': self.get_scenario_stats(run_id)
        }
        Path(output_path).write_text(json.dumps(data, indent=2, default=str))

    @staticmethod
    def _int_or_none(value) -> Optional[int]:
        if value is None or value == '':
            return None
        try:
            return int(float(value))
        except (ValueError, TypeError):
            return None

    @staticmethod
    def _float_or_none(value) -> Optional[float]:
        if value is None or value == '':
            return None
        try:
            return float(value)
        except (ValueError, TypeError):
            return None

    @classmethod
    def _coerce(cls, columns: Dict[str, tuple], stats: Dict[str, Any]) -> List:
        values = []
        for column, sql_type in columns.values():
            value = stats.get(column)
            if sql_type == 'INTEGER':
                value = cls._int_or_none(value)
            elif sql_type == 'REAL':
                value = cls._float_or_none(value)
            values.append(value)
        return values

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()
