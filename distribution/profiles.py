"""Canned test, distribution and environment presets.

Presets are selected by string key. Lookups of unknown keys raise
InvalidConfiguration with the list of available names.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from tabulate import tabulate

from .allocator import DistributionProfile, InvalidConfiguration

logger = logging.getLogger(__name__)

# Response times in milliseconds, failure_ratio as a fraction of requests
DEFAULT_THRESHOLDS = {
    'p95_response_time_ms': 500,
    'p99_response_time_ms': 1000,
    'max_response_time_ms': 2000,
    'failure_ratio': 0.01,
}

MIX_THRESHOLDS = {
    'p95_response_time_ms': 2000,
    'p99_response_time_ms': 3000,
    'failure_ratio': 0.05,
    # Stricter for abandoning signups and returning users, lenient for
    # the full registration flow
    'scenarios': {
        'signup_only': {'p95_response_time_ms': 1500},
        'login_only': {'p95_response_time_ms': 1000},
        'signup_and_login': {'p95_response_time_ms': 2500},
    },
}

TEST_PROFILES: Dict[str, Dict[str, Any]] = {
    # Minimal load to verify the system is up
    'smoke': {
        'vus': 1,
        'duration': '5s',
        'shape': 'constant',
        'scenario': 'smoke',
        'thresholds': DEFAULT_THRESHOLDS,
    },
    # Low load for business workflow validation
    'functional': {
        'vus': 2,
        'duration': '5s',
        'shape': 'constant',
        'thresholds': DEFAULT_THRESHOLDS,
    },
    # Expected production load
    'load': {
        'vus': 3,
        'duration': '10s',
        'shape': 'ramp',
        'thresholds': DEFAULT_THRESHOLDS,
    },
    # Beyond expected load
    'stress': {
        'vus': 4,
        'duration': '10s',
        'shape': 'ramp',
        'thresholds': DEFAULT_THRESHOLDS,
    },
    # Sudden traffic spike
    'spike': {
        'vus': 5,
        'duration': '3s',
        'shape': 'spike',
        'thresholds': DEFAULT_THRESHOLDS,
    },
    # Mixed user behavior across weighted scenarios
    'mix': {
        'vus': 5,
        'duration': '5s',
        'shape': 'constant',
        'thresholds': MIX_THRESHOLDS,
    },
}

ENVIRONMENTS: Dict[str, Dict[str, str]] = {
    'dev': {
        'base_url': 'https://api-dev.demoblaze.com',
        'timeout': '30s',
    },
    'sit': {
        'base_url': 'https://api.demoblaze.com',
        'timeout': '30s',
    },
    'uat': {
        'base_url': 'https://api-uat.demoblaze.com',
        'timeout': '20s',
    },
    # Live environment, use with caution
    'prod': {
        'base_url': 'https://api-prod.demoblaze.com',
        'timeout': '15s',
    },
}

# (name, weight, description); a heaviest scenario goes last so it
# absorbs rounding drift
DISTRIBUTION_PROFILES: Dict[str, List[tuple]] = {
    'auth_basic': [
        ('signup_only', 2, 'New users who abandon after signup'),
        ('login_only', 2, 'Returning users'),
        ('signup_and_login', 6, 'New users completing registration'),
    ],
    'ecommerce': [
        ('signup_only', 1, 'New users who abandon after signup'),
        ('place_order', 1, 'Users completing the full cart flow'),
        ('login_only', 2, 'Returning users'),
        ('signup_and_login', 2, 'New users completing registration'),
        ('view_cart', 2, 'Users checking their cart'),
        ('add_to_cart', 2, 'Users adding products to cart'),
    ],
    'high_conversion': [
        ('login_only', 2, 'Returning users'),
        ('add_to_cart', 3, 'Users adding products to cart'),
        ('place_order', 5, 'Users completing the full cart flow'),
    ],
    'browse_heavy': [
        ('add_to_cart', 1, 'Users adding products to cart'),
        ('place_order', 1, 'Users completing the full cart flow'),
        ('login_only', 3, 'Returning users'),
        ('view_cart', 5, 'Users mostly browsing their cart'),
    ],
    'load_test': [
        ('signup_only', 1, 'New users who abandon after signup'),
        ('login_only', 1, 'Returning users'),
        ('signup_and_login', 1, 'New users completing registration'),
        ('view_cart', 1, 'Users checking their cart'),
        ('add_to_cart', 1, 'Users adding products to cart'),
        ('place_order', 1, 'Users completing the full cart flow'),
    ],
}


def _lookup(presets: Dict[str, Any], name: str, kind: str) -> Any:
    if name not in presets:
        raise InvalidConfiguration(
            f"{kind} {name!r} not found. Available: {', '.join(presets)}"
        )
    return presets[name]


def get_test_profile(name: str) -> Dict[str, Any]:
    """Get a test profile (vus, duration, shape, thresholds) by name."""
    return dict(_lookup(TEST_PROFILES, name, 'Test profile'))


def get_environment(name: str) -> Dict[str, str]:
    """Get an environment (base_url, timeout) by name."""
    return dict(_lookup(ENVIRONMENTS, name, 'Environment'))


def get_distribution_profile(
    name: str,
    presets: Optional[Dict[str, List[tuple]]] = None
) -> DistributionProfile:
    """Build the named distribution profile.

    Args:
        name: Preset key, e.g. 'auth_basic'
        presets: Preset table to search (defaults to DISTRIBUTION_PROFILES)
    """
    table = DISTRIBUTION_PROFILES if presets is None else presets
    triples = _lookup(table, name, 'Distribution profile')
    return DistributionProfile.from_triples(triples, name=name)


def load_distribution_profiles(path: str) -> Dict[str, List[tuple]]:
    """Load distribution presets from a YAML file.

    Expected layout:

        distribution_profiles:
          checkout_rush:
            - {name: login_only, weight: 1, description: Returning users}
            - {name: place_order, weight: 4}

    Returns:
        Preset table merged over the built-in DISTRIBUTION_PROFILES
    """
    preset_path = Path(path)
    if not preset_path.exists():
        raise FileNotFoundError(f"Preset file not found: {preset_path}")

    with open(preset_path) as f:
        data = yaml.safe_load(f) or {}

    raw_profiles = data.get('distribution_profiles')
    if not isinstance(raw_profiles, dict):
        raise InvalidConfiguration(
            f"{preset_path}: expected a 'distribution_profiles' mapping"
        )

    presets = dict(DISTRIBUTION_PROFILES)
    for profile_name, entries in raw_profiles.items():
        if not isinstance(entries, list) or not entries:
            raise InvalidConfiguration(
                f"{preset_path}: profile {profile_name!r} must be a non-empty list"
            )
        triples = []
        for entry in entries:
            if not isinstance(entry, dict) or 'name' not in entry or 'weight' not in entry:
                raise InvalidConfiguration(
                    f"{preset_path}: profile {profile_name!r} has an entry "
                    f"without name/weight: {entry!r}"
                )
            triples.append(
                (str(entry['name']), entry['weight'], str(entry.get('description', '')))
            )
        presets[profile_name] = triples
        logger.debug(f"Loaded distribution profile {profile_name} from {preset_path}")

    return presets


def format_distribution(
    profile: DistributionProfile,
    allocation: Dict[str, int]
) -> str:
    """Render an allocation as a table for logs and the console."""
    capacity = sum(allocation.values())
    rows = []
    for scenario in profile.scenarios():
        count = allocation.get(scenario.name, 0)
        percentage = (count / capacity * 100) if capacity else 0.0
        rows.append([
            scenario.name,
            scenario.weight,
            count,
            f"{percentage:.1f}%",
            scenario.description,
        ])
    return tabulate(
        rows,
        headers=['Scenario', 'Weight', 'VUs', 'Share', 'Description']
    )
