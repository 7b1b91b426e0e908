"""Domain entities for the campus request pipeline."""

from .core import CandidateEntity, CanonicalEntity, ColorPair, EntityKind, PendingSubmission
from .kinds import (
    DESCRIPTORS,
    ElectedField,
    EntityKindDescriptor,
    IdStrategy,
    build_descriptors,
    get_descriptor,
)

__all__ = [
    "EntityKind",
    "ColorPair",
    "PendingSubmission",
    "CanonicalEntity",
    "CandidateEntity",
    "IdStrategy",
    "ElectedField",
    "EntityKindDescriptor",
    "build_descriptors",
    "get_descriptor",
    "DESCRIPTORS",
]
