"""Artifact discovery and resource-sensitivity classification."""

from scheduler.classification.classifier import (
    DEFAULT_INDICATORS,
    ClassificationResult,
    Classifier,
    IndicatorPattern,
    TestArtifact,
    estimate_cost,
    indicators_from_config,
)
from scheduler.classification.discovery import ArtifactDescriptor, discover_artifacts, load_manifest

__all__ = [
    "DEFAULT_INDICATORS",
    "ArtifactDescriptor",
    "ClassificationResult",
    "Classifier",
    "IndicatorPattern",
    "TestArtifact",
    "discover_artifacts",
    "estimate_cost",
    "indicators_from_config",
    "load_manifest",
]
