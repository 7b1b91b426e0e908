"""Configuration utilities for the campus request pipeline."""

from .policies import (
    AggregationPolicy,
    ColorDefaults,
    GroupingStrategy,
    Policies,
    SubmissionPolicy,
    load_policies,
)
from .settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "Policies",
    "load_policies",
    "AggregationPolicy",
    "ColorDefaults",
    "GroupingStrategy",
    "SubmissionPolicy",
]
