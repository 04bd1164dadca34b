"""Adapter between an ExecutionPlan and the locust runtime.

The plan says how many users run each scenario; locust decides how to
schedule them. Each plan entry becomes a concrete user class with a
fixed_count, and the plan's tags are attached to every request's context
so results can be filtered per scenario.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple, Type

from locust import LoadTestShape

from distribution.allocator import (
    DistributionProfile,
    ExecutionPlan,
    InvalidConfiguration,
    ScenarioWeight,
    generate_execution_plan,
)
from distribution.profiles import get_distribution_profile, load_distribution_profiles
from settings.config import RunConfig, parse_duration

from .shapes import SHAPES
from .workflows import SCENARIO_USERS, DemoblazeUser

logger = logging.getLogger(__name__)


def profile_for_config(config: RunConfig) -> DistributionProfile:
    """The distribution profile a run config asks for.

    A config naming a single scenario gets a one-scenario profile holding
    every VU; otherwise the named preset is used, looked up in the
    config's presets file when it has one.
    """
    if config.scenario:
        return DistributionProfile(
            [ScenarioWeight(config.scenario, 1, 'Single scenario run')],
            name=config.scenario
        )

    presets = None
    if config.profiles_file:
        presets = load_distribution_profiles(config.profiles_file)
    return get_distribution_profile(config.distribution_profile, presets)


def plan_for_config(config: RunConfig) -> Tuple[DistributionProfile, ExecutionPlan]:
    """Resolve the profile and build the execution plan for a run.

    Raises:
        InvalidConfiguration: unknown preset or unusable profile/capacity
    """
    profile = profile_for_config(config)
    plan = generate_execution_plan(
        profile,
        config.vus,
        config.duration,
        config.thresholds
    )
    return profile, plan


def _scenario_context(self) -> Dict[str, Any]:
    return dict(self.plan_tags)


def build_user_class(
    scenario: str,
    config: RunConfig,
    fixed_count: int = 0,
    tags: Optional[Dict[str, str]] = None
) -> Type[DemoblazeUser]:
    """Concrete, runnable user class for one scenario.

    Raises:
        InvalidConfiguration: no behavior is registered under scenario
    """
    template = SCENARIO_USERS.get(scenario)
    if template is None:
        raise InvalidConfiguration(
            f"No behavior registered for scenario {scenario!r}. "
            f"Available: {', '.join(SCENARIO_USERS)}"
        )

    return type(
        template.__name__,
        (template,),
        {
            'abstract': False,
            'fixed_count': fixed_count,
            'host': config.base_url,
            'config': config,
            'plan_tags': dict(tags or {'scenario': scenario}),
            'context': _scenario_context,
            '__module__': __name__,
        }
    )


def build_user_classes(
    plan: ExecutionPlan,
    config: RunConfig
) -> List[Type[DemoblazeUser]]:
    """One user class per plan entry, in plan order."""
    user_classes = [
        build_user_class(
            entry.name,
            config,
            fixed_count=entry.target_concurrency,
            tags=entry.tags
        )
        for entry in plan
    ]
    logger.debug(
        "Built user classes: "
        + ", ".join(f"{c.__name__} x{c.fixed_count}" for c in user_classes)
    )
    return user_classes


def build_load_shape(
    plan: ExecutionPlan,
    shape: str = 'constant',
    spawn_rate: Optional[int] = None
) -> Type[LoadTestShape]:
    """Concrete load shape running the plan's users for its duration."""
    base = SHAPES.get(shape)
    if base is None:
        raise InvalidConfiguration(
            f"Unknown load shape {shape!r}. Available: {', '.join(SHAPES)}"
        )

    users = sum(entry.target_concurrency for entry in plan)
    return type(
        f"{base.__name__}ForPlan",
        (base,),
        {
            'abstract': False,
            'users': users,
            'spawn_rate': spawn_rate or max(1, users),
            'duration': parse_duration(plan.duration),
            '__module__': __name__,
        }
    )

