"""Main Locust entry point for Demoblaze load testing.

The run configuration is resolved once, here, from the environment. It
selects a test profile (VUs, duration, load shape, thresholds) and a
distribution profile (scenario weights); the VUs are split across the
weighted scenarios and each scenario runs as its own user class with a
fixed user count.

Usage:
    # Weighted signup/login mix (defaults: functional profile, auth_basic)
    locust -f locustfile.py --headless

    # Shopping-heavy mix at load-profile capacity
    TEST_PROFILE=load DISTRIBUTION_PROFILE=ecommerce \
        locust -f locustfile.py --headless

    # Single behavior with every VU
    TEST_PROFILE=functional SCENARIO=place_order \
        locust -f locustfile.py --headless

    # Smoke test
    TEST_PROFILE=smoke locust -f locustfile.py --headless

Environment variables: TEST_PROFILE, DISTRIBUTION_PROFILE, SCENARIO,
ENVIRONMENT, BASE_URL, WEB_URL, VUS, DURATION, USERNAME_PREFIX, PASSWORD,
DISTRIBUTION_PROFILES_FILE, SCENARIO_STATS_CSV.
"""

import logging

from locust import events

from distribution.allocator import InvalidConfiguration
from distribution.profiles import format_distribution
from reporting.scenario_stats import ScenarioStats
from reporting.thresholds import check_scenario_thresholds, check_thresholds
from scenarios.host import build_load_shape, build_user_classes, plan_for_config
from settings.config import resolve_config

logger = logging.getLogger('demoblaze-load-test')

try:
    CONFIG = resolve_config()
    PROFILE, PLAN = plan_for_config(CONFIG)
except InvalidConfiguration as e:
    logger.error(f"Invalid load test configuration: {e}")
    raise

# Expose one concrete user class per planned scenario so locust finds them
globals().update(
    {user_class.__name__: user_class for user_class in build_user_classes(PLAN, CONFIG)}
)

PlanShape = build_load_shape(PLAN, CONFIG.shape)

# Every request carries its user's plan tags; aggregate by scenario
SCENARIO_STATS = ScenarioStats()
events.request.add_listener(SCENARIO_STATS.on_request)


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    """Log the resolved configuration and VU distribution."""
    logger.info("=" * 60)
    CONFIG.log()
    logger.info("VU distribution:\n" + format_distribution(PROFILE, PLAN.allocation))
    logger.info("=" * 60)


@events.quitting.add_listener
def on_quitting(environment, **kwargs):
    """Write per-scenario stats and fail the run when any threshold is violated."""
    SCENARIO_STATS.write_csv(CONFIG.scenario_stats_csv)

    violations = check_thresholds(environment.stats.total, PLAN.thresholds)
    violations += check_scenario_thresholds(SCENARIO_STATS.totals(), PLAN.thresholds)
    for violation in violations:
        logger.error(f"Threshold violated: {violation}")
    if violations:
        environment.process_exit_code = 1
    else:
        logger.info("All thresholds passed")
