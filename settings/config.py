"""Run configuration.

The configuration is resolved once at startup into a frozen RunConfig and
passed explicitly to whatever needs it. Nothing else in the suite reads
environment variables.

Resolution order (later wins):
    1. Built-in defaults
    2. The named test profile and environment presets
    3. Environment variables (BASE_URL, ENVIRONMENT, TEST_PROFILE, ...)
    4. Explicit overrides (CLI flags, YAML run config)
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from distribution.allocator import InvalidConfiguration
from distribution.profiles import get_environment, get_test_profile

from . import constants

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent.parent / 'data'

_DURATION_RE = re.compile(r'^\s*(\d+)\s*(ms|s|m|h)?\s*$')
_DURATION_UNITS = {'ms': 0.001, 's': 1, 'm': 60, 'h': 3600}

# environment variable -> RunConfig field
ENV_VARS = {
    'BASE_URL': 'base_url',
    'WEB_URL': 'web_url',
    'API_TIMEOUT': 'timeout',
    'VUS': 'vus',
    'DURATION': 'duration',
    'USERNAME_PREFIX': 'username_prefix',
    'PASSWORD': 'password',
    'SCENARIO': 'scenario',
    'DISTRIBUTION_PROFILES_FILE': 'profiles_file',
    'SCENARIO_STATS_CSV': 'scenario_stats_csv',
}


def parse_duration(value: Any) -> float:
    """Convert a duration like '5s', '10m', '1h' or a number to seconds."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value < 0:
            raise InvalidConfiguration(f"Duration cannot be negative: {value}")
        return float(value)

    match = _DURATION_RE.match(str(value))
    if not match:
        raise InvalidConfiguration(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return int(amount) * _DURATION_UNITS[unit or 's']


@dataclass(frozen=True)
class RunConfig:
    """Fully resolved configuration for one test run."""
    environment: str = 'sit'
    base_url: str = 'https://api.demoblaze.com'
    web_url: str = constants.DEFAULT_WEB_URL
    timeout: str = '30s'
    test_profile: str = 'functional'
    distribution_profile: str = 'auth_basic'
    # Run every VU on this one scenario instead of a weighted mix
    scenario: Optional[str] = None
    profiles_file: Optional[str] = None
    # Where the locustfile writes per-scenario stats at exit
    scenario_stats_csv: Optional[str] = None
    shape: str = 'constant'
    vus: int = 2
    duration: str = '5s'
    thresholds: Dict[str, Any] = field(default_factory=dict)
    username_prefix: str = 'tango_'
    # base64 of the demo password
    password: str = 'MTIzNDU2'
    users_file: str = str(DATA_DIR / 'test-users.json')
    products_file: str = str(DATA_DIR / 'products.json')
    project_id: int = constants.PROJECT_ID
    project_name: str = constants.PROJECT_NAME

    @property
    def duration_seconds(self) -> float:
        return parse_duration(self.duration)

    @property
    def timeout_seconds(self) -> float:
        return parse_duration(self.timeout)

    def api_url(self, endpoint: str) -> str:
        """Full API URL for an endpoint key such as 'SIGN_UP'."""
        return self.base_url.rstrip('/') + constants.API_ENDPOINTS[endpoint]

    def web_page_url(self, page: str) -> str:
        """Full web URL for a page key such as 'LANDING'."""
        return self.web_url.rstrip('/') + constants.WEB_ENDPOINTS[page]

    def validate(self) -> bool:
        """Check required settings are present and sane.

        Raises:
            InvalidConfiguration: naming every missing or invalid setting
        """
        missing = [
            name for name in ('project_id', 'base_url', 'environment')
            if not getattr(self, name)
        ]
        if missing:
            raise InvalidConfiguration(
                f"Missing required configuration: {', '.join(missing)}"
            )
        if self.vus < 1:
            raise InvalidConfiguration(
                f"VUs must be at least 1 to run a load test, got {self.vus}"
            )
        parse_duration(self.duration)
        parse_duration(self.timeout)
        return True

    def summary(self) -> Dict[str, Any]:
        return {
            'project': f"{self.project_name} (ID: {self.project_id})",
            'environment': self.environment,
            'base_url': self.base_url,
            'test_profile': self.test_profile,
            'distribution_profile': self.distribution_profile,
            'scenario': self.scenario or '(weighted mix)',
            'vus': self.vus,
            'duration': self.duration,
        }

    def log(self):
        """Log the resolved configuration."""
        logger.info("=== Run configuration ===")
        for key, value in self.summary().items():
            logger.info(f"{key}: {value}")


def _coerce_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidConfiguration(f"{name} must be an integer, got {value!r}")


def resolve_config(
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> RunConfig:
    """Resolve the run configuration once.

    Args:
        environ: Environment mapping (defaults to os.environ)
        overrides: Explicit values that win over everything else; None
            values are ignored

    Returns:
        Validated RunConfig
    """
    environ = os.environ if environ is None else environ
    overrides = {k: v for k, v in (overrides or {}).items() if v is not None}

    test_profile_name = overrides.get(
        'test_profile', environ.get('TEST_PROFILE', 'functional')
    )
    environment_name = overrides.get(
        'environment', environ.get('ENVIRONMENT', 'sit')
    )
    distribution_name = overrides.get(
        'distribution_profile', environ.get('DISTRIBUTION_PROFILE', 'auth_basic')
    )

    test_profile = get_test_profile(test_profile_name)
    environment = get_environment(environment_name)

    values: Dict[str, Any] = {
        'environment': environment_name,
        'base_url': environment['base_url'],
        'timeout': environment['timeout'],
        'test_profile': test_profile_name,
        'distribution_profile': distribution_name,
        'scenario': test_profile.get('scenario'),
        'shape': test_profile['shape'],
        'vus': test_profile['vus'],
        'duration': test_profile['duration'],
        'thresholds': dict(test_profile['thresholds']),
    }

    for var, field_name in ENV_VARS.items():
        if environ.get(var):
            values[field_name] = environ[var]

    for key, value in overrides.items():
        if key not in RunConfig.__dataclass_fields__:
            raise InvalidConfiguration(f"Unknown configuration key: {key}")
        values[key] = value

    values['vus'] = _coerce_int('VUS', values['vus'])

    config = RunConfig(**values)
    config.validate()
    return config

