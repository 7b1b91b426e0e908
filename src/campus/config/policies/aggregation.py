"""Policy models for request aggregation."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

KindName = Literal["university", "course", "organization", "professor"]


class GroupingStrategy(str, Enum):
    """How a candidate is compared against an open similarity group."""

    FOUNDER = "founder"
    ALL_MEMBERS = "all_members"


class ColorDefaults(BaseModel):
    """Fallback colour pair applied when no submission in a group provides one."""

    primary: str = Field(..., min_length=1)
    secondary: str = Field(..., min_length=1)


def _default_colors() -> Dict[str, ColorDefaults]:
    return {
        "university": ColorDefaults(primary="#182B49", secondary="#C69214"),
        "organization": ColorDefaults(primary="#6366f1", secondary="#8b92a7"),
    }


class AggregationPolicy(BaseModel):
    """Controls grouping, triggering and committing of pending submissions."""

    grouping_threshold: float = Field(
        default=0.75,
        ge=0.0,
        le=1.0,
        description="Minimum name similarity for two submissions to share a group.",
    )
    length_ratio_cutoff: float = Field(
        default=1.5,
        ge=1.0,
        description="Pairs whose longer name exceeds the shorter by this factor score zero.",
    )
    grouping_strategy: GroupingStrategy = Field(
        default=GroupingStrategy.FOUNDER,
        description="Compare joiners against the founding member only or against every member.",
    )
    trigger_threshold: int = Field(
        default=100,
        ge=1,
        description="Pending collection size that starts an aggregation run.",
    )
    trigger_overrides: Dict[KindName, int] = Field(
        default_factory=dict,
        description="Per-kind trigger thresholds overriding trigger_threshold.",
    )
    max_batch_size: int = Field(
        default=500,
        ge=1,
        description="Maximum operations per atomic batch commit.",
    )
    link_professors: bool = Field(
        default=True,
        description="Append newly canonicalized professors to courses that name them.",
    )
    colors: Dict[KindName, ColorDefaults] = Field(default_factory=_default_colors)

    @field_validator("trigger_overrides")
    @classmethod
    def _validate_overrides(cls, value: Dict[str, int]) -> Dict[str, int]:
        for kind, threshold in value.items():
            if threshold < 1:
                raise ValueError(f"trigger threshold for {kind} must be positive")
        return value

    @model_validator(mode="after")
    def _fill_color_defaults(self) -> "AggregationPolicy":
        for kind, colors in _default_colors().items():
            self.colors.setdefault(kind, colors)
        return self

    def trigger_threshold_for(self, kind: str) -> int:
        return self.trigger_overrides.get(kind, self.trigger_threshold)

    def colors_for(self, kind: str) -> ColorDefaults | None:
        return self.colors.get(kind)


__all__ = ["AggregationPolicy", "ColorDefaults", "GroupingStrategy", "KindName"]
