"""Policy models controlling submission checks and the aggregation pipeline."""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, Field, field_validator

from ..layering import apply_env_overrides, read_yaml_mapping
from .aggregation import AggregationPolicy, ColorDefaults, GroupingStrategy, KindName
from .submission import SubmissionPolicy

POLICY_ENV_PREFIX = "CAMPUS_POLICY__"


class Policies(BaseModel):
    """Versioned bundle of every tunable pipeline policy."""

    policy_version: str = Field(default="2025-11-01")
    aggregation: AggregationPolicy = Field(default_factory=AggregationPolicy)
    submission: SubmissionPolicy = Field(default_factory=SubmissionPolicy)

    @field_validator("policy_version")
    @classmethod
    def _require_version(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("policy_version must be provided")
        return value.strip()


def load_policies(source: os.PathLike[str] | str | Mapping[str, Any]) -> Policies:
    """Build :class:`Policies` from a mapping or a YAML file.

    ``CAMPUS_POLICY__`` environment variables are applied on top, e.g.
    ``CAMPUS_POLICY__AGGREGATION__TRIGGER_THRESHOLD=20``. A mapping source is
    copied before overrides are applied.
    """

    if isinstance(source, Mapping):
        raw = copy.deepcopy(dict(source))
    else:
        raw = read_yaml_mapping(Path(source), required=True)
    return Policies.model_validate(apply_env_overrides(raw, POLICY_ENV_PREFIX))


__all__ = [
    "Policies",
    "load_policies",
    "AggregationPolicy",
    "ColorDefaults",
    "GroupingStrategy",
    "KindName",
    "SubmissionPolicy",
    "POLICY_ENV_PREFIX",
]
