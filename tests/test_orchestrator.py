"""
Tests for the command-line orchestrator, with locust and the network stubbed out.
"""
import subprocess
from pathlib import Path

import pytest
import requests

from distribution.allocator import InvalidConfiguration
from runner import orchestrator

from conftest import LOCUST_STATS_CSV, SCENARIO_STATS_CSV


@pytest.fixture
def run_file(tmp_path):
    path = tmp_path / 'run.yaml'
    path.write_text(
        "test:\n"
        "  name: mix-auth-basic\n"
        "  profile: mix\n"
        "  environment: sit\n"
        "  distribution_profile: auth_basic\n"
        "  notes: weighted mix\n"
        "locust:\n"
        "  users: 10\n"
        f"storage:\n  path: {tmp_path / 'metrics.db'}\n"
        f"report:\n  output_dir: {tmp_path / 'reports'}\n  export_json: true\n"
    )
    return str(path)


@pytest.fixture
def reachable(monkeypatch):
    monkeypatch.setattr(
        orchestrator.requests, 'get',
        lambda url, timeout=None: type('Response', (), {'status_code': 404})()
    )


class FakeLocust:
    """Stands in for subprocess.run, writing the stats CSVs a real run would."""

    def __init__(self, returncode=0):
        self.returncode = returncode
        self.calls = []

    def __call__(self, cmd, env=None, **kwargs):
        self.calls.append({'cmd': cmd, 'env': env})
        prefix = cmd[cmd.index('--csv') + 1]
        Path(f"{prefix}_stats.csv").write_text(LOCUST_STATS_CSV)
        Path(env['SCENARIO_STATS_CSV']).write_text(SCENARIO_STATS_CSV)
        return subprocess.CompletedProcess(cmd, self.returncode, stdout='', stderr='')


class TestResolve:

    def test_yaml_values(self, run_file):
        runner = orchestrator.LoadTestOrchestrator(run_file)
        config = runner.resolve()

        assert config.test_profile == 'mix'
        assert config.vus == 10
        assert runner.plan.allocation == {
            'signup_only': 2, 'login_only': 2, 'signup_and_login': 6
        }

    def test_cli_overrides_win(self, run_file):
        runner = orchestrator.LoadTestOrchestrator(
            run_file, overrides={'vus': 4, 'scenario': 'view_cart', 'base_url': None}
        )
        runner.resolve()

        assert [(e.name, e.target_concurrency) for e in runner.plan] == [('view_cart', 4)]
        assert runner.run_config.base_url == 'https://api.demoblaze.com'

    def test_zero_users_rejected(self, run_file):
        runner = orchestrator.LoadTestOrchestrator(run_file, overrides={'vus': 0})

        with pytest.raises(InvalidConfiguration, match='at least 1'):
            runner.resolve()

    def test_missing_config_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            orchestrator.LoadTestOrchestrator(str(tmp_path / 'missing.yaml'))


class TestLocustInvocation:

    def test_environment_mirrors_config(self, run_file, monkeypatch):
        runner = orchestrator.LoadTestOrchestrator(run_file)
        runner.resolve()
        monkeypatch.setenv('SCENARIO', 'stale')

        env = runner.locust_env()

        assert env['TEST_PROFILE'] == 'mix'
        assert env['DISTRIBUTION_PROFILE'] == 'auth_basic'
        assert env['VUS'] == '10'
        assert env['BASE_URL'] == 'https://api.demoblaze.com'
        assert env['SCENARIO_STATS_CSV'] == f'locust_results_{runner.run_id}_scenarios.csv'
        assert 'SCENARIO' not in env

    def test_command_runs_headless(self, run_file):
        runner = orchestrator.LoadTestOrchestrator(run_file)
        runner.run_id = 7

        cmd = runner.locust_command()

        assert cmd[0] == 'locust'
        assert cmd[cmd.index('-f') + 1].endswith('locustfile.py')
        assert '--headless' in cmd
        assert cmd[cmd.index('--csv') + 1] == 'locust_results_7'


class TestRun:

    def test_full_run(self, run_file, tmp_path, monkeypatch, reachable):
        monkeypatch.chdir(tmp_path)
        fake_locust = FakeLocust()
        monkeypatch.setattr(orchestrator.subprocess, 'run', fake_locust)

        runner = orchestrator.LoadTestOrchestrator(run_file)

        assert runner.run() is True

        run = runner.storage.get_test_run(runner.run_id)
        assert run['status'] == 'completed'
        assert run['capacity'] == 10
        assert len(runner.storage.get_allocations(runner.run_id)) == 3
        assert len(runner.storage.get_locust_stats(runner.run_id)) == 3
        assert [s['scenario'] for s in runner.storage.get_scenario_stats(runner.run_id)] == [
            'login_only', 'signup_and_login'
        ]
        assert list((tmp_path / 'reports').glob('report_mix-auth-basic_*.html'))
        assert (tmp_path / 'reports' / f'data_{runner.run_id}.json').exists()

    def test_locust_failure_marks_run_failed(self, run_file, tmp_path, monkeypatch, reachable):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(orchestrator.subprocess, 'run', FakeLocust(returncode=1))

        runner = orchestrator.LoadTestOrchestrator(run_file)

        assert runner.run() is False
        assert runner.storage.get_test_run(runner.run_id)['status'] == 'failed'

    def test_invalid_configuration(self, run_file, monkeypatch):
        fake_locust = FakeLocust()
        monkeypatch.setattr(orchestrator.subprocess, 'run', fake_locust)

        runner = orchestrator.LoadTestOrchestrator(run_file, overrides={'distribution_profile': 'nope'})

        assert runner.run() is False
        assert fake_locust.calls == []

    def test_unreachable_target(self, run_file, monkeypatch):
        def unreachable(url, timeout=None):
            raise requests.ConnectionError('connection refused')

        monkeypatch.setattr(orchestrator.requests, 'get', unreachable)
        runner = orchestrator.LoadTestOrchestrator(run_file)
        runner.resolve()

        assert runner.validate_environment() is False

    def test_unexpected_error_marks_run_error(self, run_file, tmp_path, monkeypatch, reachable):
        monkeypatch.chdir(tmp_path)

        def broken_locust(self):
            raise OSError('exec format error')

        monkeypatch.setattr(orchestrator.LoadTestOrchestrator, 'run_locust', broken_locust)
        runner = orchestrator.LoadTestOrchestrator(run_file)

        assert runner.run() is False
        assert runner.storage.get_test_run(runner.run_id)['status'] == 'error'
