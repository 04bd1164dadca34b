"""Test orchestrator for Demoblaze load testing.

This module drives the whole load test workflow:
1. Resolves the run configuration and execution plan
2. Validates the target is reachable
3. Records the run and its VU distribution
4. Executes Locust headless against the plan
5. Imports Locust statistics and generates reports

Usage:
    demoblaze-load-test --config configs/mix_auth_basic.yaml
    demoblaze-load-test --config configs/ecommerce_load.yaml --users 40
    demoblaze-load-test --config configs/smoke.yaml --host https://api.demoblaze.com
"""

import argparse
import logging
import os
import subprocess
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import requests
import yaml

from distribution.allocator import DistributionProfile, ExecutionPlan, InvalidConfiguration
from distribution.profiles import format_distribution
from reporting.report_generator import ReportGenerator
from reporting.storage import MetricsStorage
from scenarios.host import plan_for_config
from settings.config import RunConfig, resolve_config

logger = logging.getLogger('demoblaze-load-test')

LOCUSTFILE = Path(__file__).resolve().parent.parent / 'locustfile.py'

# YAML 'test' key -> RunConfig field
TEST_KEYS = {
    'profile': 'test_profile',
    'environment': 'environment',
    'distribution_profile': 'distribution_profile',
    'scenario': 'scenario',
    'profiles_file': 'profiles_file',
    'duration': 'duration',
}


class LoadTestOrchestrator:
    """One load test run, from YAML run config to HTML report."""

    def __init__(self, config_path: str, overrides: Optional[Dict[str, Any]] = None):
        """
        Args:
            config_path: Path to the run configuration YAML file
            overrides: RunConfig values from the command line
        """
        self.config_path = Path(config_path)
        self.config = self._load_config()
        self.overrides = overrides or {}
        self.run_config: Optional[RunConfig] = None
        self.profile: Optional[DistributionProfile] = None
        self.plan: Optional[ExecutionPlan] = None
        self.storage: Optional[MetricsStorage] = None
        self.run_id: Optional[int] = None
        self.start_time: Optional[datetime] = None
        self.end_time: Optional[datetime] = None

    def _load_config(self) -> Dict[str, Any]:
        """Load the run configuration file and fill in defaults."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        with open(self.config_path) as f:
            config = yaml.safe_load(f) or {}

        # Set defaults
        config.setdefault('test', {})
        config['test'].setdefault('name', 'demoblaze-load-test')

        config.setdefault('locust', {})
        config.setdefault('storage', {'path': 'metrics.db'})
        config.setdefault('report', {'output_dir': './reports', 'export_json': True})

        return config

    def resolve(self) -> RunConfig:
        """Resolve the RunConfig and build the execution plan.

        Raises:
            InvalidConfiguration: unknown profile, bad weights or capacity
        """
        values = {
            field_name: self.config['test'][key]
            for key, field_name in TEST_KEYS.items()
            if key in self.config['test']
        }
        if 'users' in self.config['locust']:
            values['vus'] = self.config['locust']['users']
        if 'host' in self.config['locust']:
            values['base_url'] = self.config['locust']['host']
        values.update(self.overrides)

        self.run_config = resolve_config(overrides=values)
        self.profile, self.plan = plan_for_config(self.run_config)

        self.run_config.log()
        logger.info(
            "VU distribution:\n"
            + format_distribution(self.profile, self.plan.allocation)
        )
        return self.run_config

    def validate_environment(self) -> bool:
        """Check the target API answers at all."""
        logger.info("Checking the target API is reachable...")

        base_url = self.run_config.base_url
        try:
            response = requests.get(base_url, timeout=self.run_config.timeout_seconds)
            logger.info(f"Target {base_url} is reachable (status: {response.status_code})")
        except requests.RequestException as e:
            logger.error(f"Cannot reach target {base_url}: {e}")
            return False

        logger.info("Target check complete")
        return True

    def setup_storage(self):
        """Create the test run record and store its planned distribution."""
        db_path = self.config['storage'].get('path', 'metrics.db')
        self.storage = MetricsStorage(db_path)

        self.run_id = self.storage.create_test_run(
            name=self.config['test']['name'],
            config=dict(self.run_config.summary(), thresholds=self.run_config.thresholds),
            notes=self.config['test'].get('notes')
        )
        self.storage.store_allocation(self.run_id, self.profile, self.plan)
        logger.info(f"Created test run with ID: {self.run_id}")

    def locust_env(self) -> Dict[str, str]:
        """Environment for the Locust process, mirroring the resolved config."""
        env = dict(os.environ)
        env.update({
            'TEST_PROFILE': self.run_config.test_profile,
            'ENVIRONMENT': self.run_config.environment,
            'DISTRIBUTION_PROFILE': self.run_config.distribution_profile,
            'BASE_URL': self.run_config.base_url,
            'VUS': str(self.run_config.vus),
            'DURATION': str(self.run_config.duration),
            'SCENARIO_STATS_CSV': self.scenario_csv,
        })
        if self.run_config.scenario:
            env['SCENARIO'] = self.run_config.scenario
        else:
            env.pop('SCENARIO', None)
        if self.run_config.profiles_file:
            env['DISTRIBUTION_PROFILES_FILE'] = str(
                Path(self.run_config.profiles_file).resolve()
            )
        return env

    def locust_command(self) -> list:
        return [
            'locust',
            '-f', str(LOCUSTFILE),
            '--headless',
            '--only-summary',
            '--csv', self.csv_prefix,
        ]

    @property
    def csv_prefix(self) -> str:
        return f'locust_results_{self.run_id}'

    @property
    def scenario_csv(self) -> str:
        return f'{self.csv_prefix}_scenarios.csv'

    def run_locust(self) -> bool:
        """Run Locust load test.

        Users, duration and shape come from the load shape the locustfile
        builds from the plan, so none are passed on the command line.

        Returns:
            True if Locust exited cleanly and every threshold passed
        """
        logger.info(f"Starting locust for run {self.run_id}...")

        cmd = self.locust_command()
        logger.info(f"Running: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                env=self.locust_env(),
                capture_output=True,
                text=True
            )
        except FileNotFoundError:
            logger.error("Locust not found. Install with: pip install locust")
            return False

        for line in result.stderr.splitlines():
            logger.debug(f"Locust: {line}")

        if result.returncode != 0:
            tail = '\n'.join(result.stderr.splitlines()[-20:])
            logger.error(f"Locust exited with code {result.returncode}:\n{tail}")
            return False

        logger.info("Locust finished with exit code 0")
        return True

    def import_results(self):
        """Import the Locust stats and per-scenario CSVs, if the run produced them."""
        csv_path = f"{self.csv_prefix}_stats.csv"
        try:
            count = self.storage.import_locust_csv(self.run_id, csv_path)
            logger.info(f"Imported {count} Locust stats rows from {csv_path}")
        except FileNotFoundError as e:
            logger.warning(str(e))

        try:
            count = self.storage.import_scenario_csv(self.run_id, self.scenario_csv)
            logger.info(f"Imported stats for {count} scenarios from {self.scenario_csv}")
        except FileNotFoundError as e:
            logger.warning(str(e))

    def generate_report(self) -> str:
        """Write the HTML report and, unless disabled, the JSON export."""
        logger.info("Writing HTML report...")

        report_config = self.config['report']
        output_dir = report_config.get('output_dir', './reports')

        generator = ReportGenerator(output_dir)
        report_path = generator.generate(
            run_name=self.config['test']['name'],
            allocations=self.storage.get_allocations(self.run_id),
            locust_stats=self.storage.get_locust_stats(self.run_id),
            scenario_stats=self.storage.get_scenario_stats(self.run_id),
            thresholds=self.run_config.thresholds,
            config=self.run_config.summary(),
            start_time=self.start_time,
            end_time=self.end_time
        )

        # Export raw data to JSON
        if report_config.get('export_json', True):
            json_path = f"{output_dir}/data_{self.run_id}.json"
            self.storage.export_to_json(self.run_id, json_path)
            logger.info(f"Run data exported to {json_path}")

        return report_path

    def run(self) -> bool:
        """Resolve, check, run locust, store and report.

        Returns:
            True when locust exited cleanly with every threshold met
        """
        try:
            self.resolve()

            if not self.validate_environment():
                logger.error("Target API unreachable, not starting locust")
                return False

            self.setup_storage()

            self.start_time = datetime.now(timezone.utc)
            logger.info(f"Load started at {self.start_time}")

            success = self.run_locust()

            self.end_time = datetime.now(timezone.utc)
            logger.info(f"Load ended at {self.end_time}")

            self.import_results()
            self.storage.complete_test_run(
                self.run_id, 'completed' if success else 'failed'
            )

            report_path = self.generate_report()

            logger.info("=" * 60)
            logger.info("LOAD TEST COMPLETE")
            logger.info(f"Duration: {self.end_time - self.start_time}")
            logger.info(f"Report: {report_path}")
            logger.info(f"Status: {'passed' if success else 'failed'}")
            logger.info("=" * 60)

            return success

        except InvalidConfiguration as e:
            logger.error(f"Invalid configuration: {e}")
            if self.storage and self.run_id:
                self.storage.complete_test_run(self.run_id, 'error')
            return False

        except KeyboardInterrupt:
            logger.info("Test interrupted by user")
            if self.storage and self.run_id:
                self.storage.complete_test_run(self.run_id, 'interrupted')
            return False

        except Exception as e:
            logger.exception(f"Load test failed: {e}")
            if self.storage and self.run_id:
                self.storage.complete_test_run(self.run_id, 'error')
            return False


def main():
    """Console script entry point."""
    parser = argparse.ArgumentParser(
        description='Demoblaze API Load Test Runner'
    )
    parser.add_argument(
        '--config', '-c',
        required=True,
        help='Path to run configuration YAML file'
    )
    parser.add_argument(
        '--duration', '-d',
        help="Override test duration (e.g. 30s, 5m)"
    )
    parser.add_argument(
        '--users', '-u',
        type=int,
        help='Override number of virtual users to distribute'
    )
    parser.add_argument(
        '--host',
        help='Override target API base URL'
    )
    parser.add_argument(
        '--profile', '-p',
        help='Override test profile (smoke, functional, load, stress, spike, mix)'
    )
    parser.add_argument(
        '--distribution',
        help='Override distribution profile (auth_basic, ecommerce, ...)'
    )
    parser.add_argument(
        '--scenario',
        help='Run every VU on a single scenario'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    orchestrator = LoadTestOrchestrator(args.config, overrides={
        'duration': args.duration,
        'vus': args.users,
        'base_url': args.host,
        'test_profile': args.profile,
        'distribution_profile': args.distribution,
        'scenario': args.scenario,
    })

    success = orchestrator.run()
    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
