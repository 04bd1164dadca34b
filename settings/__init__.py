"""Run configuration and shared constants."""

from .config import RunConfig, parse_duration, resolve_config

__all__ = ['RunConfig', 'parse_duration', 'resolve_config']
