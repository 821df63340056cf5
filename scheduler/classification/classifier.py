"""Test classifier: resource sensitivity and cost estimation.

Turns raw artifact descriptors into TestArtifact records.  An artifact is
``shared_resource`` when its category is integration or e2e, or when its
source matches any shared-resource indicator pattern (storage clients,
migrations, fixed-port network calls).  The indicators are plain data so
the decision table can be replaced from configuration and tested on its
own.

Malformed descriptors are rejected here and reported as warnings; they
never reach the group builder.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from scheduler.classification.discovery import ArtifactDescriptor

CATEGORIES = frozenset({"unit", "integration", "e2e"})
RESOURCE_NONE = "none"
RESOURCE_SHARED = "shared_resource"

# Base cost per test declaration, in estimated milliseconds
COST_PER_TEST = 100.0

CATEGORY_COST_FACTOR = {"unit": 1.0, "integration": 2.0, "e2e": 3.0}

TEST_DECLARATION_RE = re.compile(
    r"\bdef\s+test_?\w*\s*\(|\b(?:it|test|describe)\s*\("
)
ASYNC_RE = re.compile(r"\b(?:async|await)\b")
DELAY_RE = re.compile(r"\b(?:timeout|sleep|setTimeout)\b", re.IGNORECASE)


@dataclass(frozen=True)
class IndicatorPattern:
    """A named, case-insensitive regex flagging shared-resource use."""

    name: str
    pattern: str

    def __post_init__(self) -> None:
        # Fail at construction rather than on first match
        re.compile(self.pattern)

    def matches(self, text: str) -> bool:
        return re.search(self.pattern, text, re.IGNORECASE) is not None


DEFAULT_INDICATORS: tuple[IndicatorPattern, ...] = (
    IndicatorPattern("prisma", r"prisma"),
    IndicatorPattern("database", r"database"),
    IndicatorPattern("database_url", r"DATABASE_URL"),
    IndicatorPattern("db_handle", r"\bdb\."),
    IndicatorPattern("sqlalchemy", r"\bsqlalchemy\b"),
    IndicatorPattern("psycopg", r"\bpsycopg2?\b"),
    IndicatorPattern("sqlite_file", r"sqlite3|test\.db"),
    IndicatorPattern("redis", r"\bredis\b"),
    IndicatorPattern("migration", r"\bmigrat(e|ion)"),
    IndicatorPattern("test_user_fixture", r"createTestUser|create_test_user"),
    IndicatorPattern("database_cleanup", r"cleanupDatabase|cleanup_database"),
    IndicatorPattern("fixed_port", r"(localhost|127\.0\.0\.1):\d{2,5}"),
)


def indicators_from_config(
    entries: Iterable[dict[str, str]] | None,
) -> tuple[IndicatorPattern, ...]:
    """Build indicator patterns from config entries.

    Args:
        entries: Dicts with ``name`` and ``pattern`` keys, or None for the
            built-in DEFAULT_INDICATORS.

    Raises:
        ValueError: If an entry lacks a pattern or the regex is invalid.
    """
    if entries is None:
        return DEFAULT_INDICATORS

    indicators: list[IndicatorPattern] = []
    for entry in entries:
        pattern = entry.get("pattern")
        if not pattern:
            raise ValueError(f"Indicator entry has no pattern: {entry!r}")
        try:
            indicators.append(IndicatorPattern(entry.get("name", pattern), pattern))
        except re.error as e:
            raise ValueError(f"Invalid indicator pattern {pattern!r}: {e}")
    return tuple(indicators)


@dataclass(frozen=True)
class TestArtifact:
    """A classified unit of work ready for grouping."""

    __test__ = False

    identifier: str
    category: str
    resource_class: str
    cost_estimate: float = 0.0
    matched_indicators: tuple[str, ...] = ()

    @property
    def is_shared_resource(self) -> bool:
        return self.resource_class == RESOURCE_SHARED


@dataclass
class ClassificationResult:
    """Classified artifacts plus warnings for rejected descriptors."""

    artifacts: list[TestArtifact] = field(default_factory=list)
    rejected: list[str] = field(default_factory=list)


def estimate_cost(source_text: str, category: str = "unit") -> float:
    """Estimate relative cost from structural signals in the source.

    Deterministic and monotonic in the number of test declarations.
    """
    test_count = len(TEST_DECLARATION_RE.findall(source_text))
    cost = test_count * COST_PER_TEST

    if ASYNC_RE.search(source_text):
        cost *= 1.5
    if DELAY_RE.search(source_text):
        cost *= 2

    return cost * CATEGORY_COST_FACTOR.get(category, 1.0)


class Classifier:
    """Assigns resource class and cost estimate to artifact descriptors."""

    def __init__(
        self, indicators: Iterable[IndicatorPattern] = DEFAULT_INDICATORS,
    ) -> None:
        self.indicators = tuple(indicators)

    def matched_indicators(self, source_text: str) -> tuple[str, ...]:
        """Names of all indicator patterns matching the source text."""
        return tuple(i.name for i in self.indicators if i.matches(source_text))

    def classify_one(self, descriptor: ArtifactDescriptor) -> TestArtifact:
        """Classify a single, already validated descriptor."""
        matched = self.matched_indicators(descriptor.source_text)
        if descriptor.category in ("integration", "e2e") or matched:
            resource_class = RESOURCE_SHARED
        else:
            resource_class = RESOURCE_NONE

        assert descriptor.identifier is not None
        return TestArtifact(
            identifier=descriptor.identifier,
            category=descriptor.category,
            resource_class=resource_class,
            cost_estimate=estimate_cost(descriptor.source_text, descriptor.category),
            matched_indicators=matched,
        )

    def classify(
        self, descriptors: Iterable[ArtifactDescriptor],
    ) -> ClassificationResult:
        """Classify descriptors, rejecting malformed ones.

        A descriptor is rejected when its identifier is missing or blank,
        its category is unknown, or its identifier repeats an earlier one.
        Input order is preserved for accepted artifacts.

        Args:
            descriptors: Raw descriptors in discovery order.

        Returns:
            ClassificationResult with accepted artifacts and one warning
            string per rejected descriptor.
        """
        result = ClassificationResult()
        seen: set[str] = set()

        for index, descriptor in enumerate(descriptors):
            identifier = (descriptor.identifier or "").strip()
            if not identifier:
                result.rejected.append(
                    f"Artifact #{index} rejected: missing identifier"
                )
                continue
            if descriptor.category not in CATEGORIES:
                result.rejected.append(
                    f"Artifact {identifier} rejected: unknown category "
                    f"{descriptor.category!r}"
                )
                continue
            if identifier in seen:
                result.rejected.append(
                    f"Artifact {identifier} rejected: duplicate identifier"
                )
                continue

            seen.add(identifier)
            if identifier != descriptor.identifier:
                descriptor = ArtifactDescriptor(
                    identifier, descriptor.category, descriptor.source_text,
                )
            result.artifacts.append(self.classify_one(descriptor))

        return result
