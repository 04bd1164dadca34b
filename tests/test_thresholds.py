"""
Tests for threshold verdicts on aggregated request stats.
"""
from distribution.profiles import DEFAULT_THRESHOLDS, MIX_THRESHOLDS
from reporting.thresholds import AggregatedStats, check_scenario_thresholds, check_thresholds


def stats(**kwargs):
    values = dict(num_requests=100, num_failures=0, max_response_time=300, p95=200, p99=250)
    values.update(kwargs)
    return AggregatedStats(**values)


class TestCheckThresholds:

    def test_healthy_run_passes(self):
        assert check_thresholds(stats(), DEFAULT_THRESHOLDS) == []

    def test_p95_violation(self):
        violations = check_thresholds(stats(p95=650), DEFAULT_THRESHOLDS)
        assert violations == ['p95_response_time_ms: 650ms >= 500ms']

    def test_limit_itself_is_a_violation(self):
        """p(95)<500 means exactly 500 fails"""
        assert check_thresholds(stats(p95=500), {'p95_response_time_ms': 500})

    def test_failure_ratio(self):
        violations = check_thresholds(stats(num_failures=5), DEFAULT_THRESHOLDS)
        assert len(violations) == 1
        assert violations[0].startswith('failure_ratio: 0.050')

    def test_max_response_time(self):
        violations = check_thresholds(stats(max_response_time=2500), DEFAULT_THRESHOLDS)
        assert violations == ['max_response_time_ms: 2500ms >= 2000ms']

    def test_several_violations(self):
        violations = check_thresholds(
            stats(p95=900, p99=1500, num_failures=50), DEFAULT_THRESHOLDS
        )
        assert len(violations) == 3

    def test_missing_keys_are_skipped(self):
        assert check_thresholds(stats(p95=5000, max_response_time=9000), {'failure_ratio': 0.5}) == []

    def test_no_requests(self):
        """Nothing ran, nothing to judge"""
        assert check_thresholds(stats(num_requests=0, num_failures=0), DEFAULT_THRESHOLDS) == []

    def test_no_thresholds(self):
        assert check_thresholds(stats(num_failures=100), {}) == []

    def test_unknown_percentile_is_ignored(self):
        assert check_thresholds(stats(p95=None), {'p95_response_time_ms': 1}) == []

    def test_scenario_limits_do_not_apply_to_totals(self):
        assert check_thresholds(stats(p95=1200), MIX_THRESHOLDS) == []


class TestCheckScenarioThresholds:

    def test_each_scenario_has_its_own_limit(self):
        violations = check_scenario_thresholds(
            {
                'signup_only': stats(p95=1400),
                'login_only': stats(p95=1200),
                'signup_and_login': stats(p95=2400),
            },
            MIX_THRESHOLDS
        )
        assert violations == ['login_only p95_response_time_ms: 1200ms >= 1000ms']

    def test_scenarios_without_stats_are_skipped(self):
        """A scenario allocated no VUs makes no requests"""
        assert check_scenario_thresholds({'login_only': stats()}, MIX_THRESHOLDS) == []

    def test_no_scenario_limits(self):
        assert check_scenario_thresholds({'login_only': stats(p95=9000)}, DEFAULT_THRESHOLDS) == []
        assert check_scenario_thresholds({}, {}) == []


class TestAggregatedStats:

    def test_from_storage_row(self):
        row = {
            'name': 'Aggregated',
            'num_requests': 40,
            'num_failures': 2,
            'max_response_time': 812.5,
            'p95': 420.0,
            'p99': None,
        }
        aggregated = AggregatedStats.from_row(row)

        assert aggregated.fail_ratio == 0.05
        assert aggregated.get_response_time_percentile(0.95) == 420.0
        assert aggregated.get_response_time_percentile(0.99) is None

    def test_empty_row(self):
        aggregated = AggregatedStats.from_row({})
        assert aggregated.num_requests == 0
        assert aggregated.fail_ratio == 0.0
