"""Weighted scenario distribution and canned presets."""

from .allocator import (
    DistributionProfile,
    ExecutionPlan,
    InvalidConfiguration,
    ScenarioPlanEntry,
    ScenarioWeight,
    allocate,
    generate_execution_plan,
)
from .profiles import (
    get_distribution_profile,
    get_environment,
    get_test_profile,
)

__all__ = [
    'DistributionProfile',
    'ExecutionPlan',
    'InvalidConfiguration',
    'ScenarioPlanEntry',
    'ScenarioWeight',
    'allocate',
    'generate_execution_plan',
    'get_distribution_profile',
    'get_environment',
    'get_test_profile',
]
