"""Artifact descriptors: glob discovery and JSON manifest loading.

Descriptors are the raw input of a scheduling run: an identifier (usually
a file path), the category the discovery source assigned, and the source
text the classifier inspects.  They come either from walking a source
tree with per-category glob patterns or from a JSON manifest.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

# Discovery order of categories; also the order descriptors are emitted in
CATEGORY_ORDER = ("unit", "integration", "e2e")


@dataclass(frozen=True)
class ArtifactDescriptor:
    """Raw, unvalidated description of one test artifact."""

    identifier: str | None
    category: str
    source_text: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ArtifactDescriptor:
        """Build a descriptor from a manifest entry.

        Missing fields are kept empty so the classifier can reject them
        with a warning instead of failing the whole manifest.
        """
        identifier = data.get("identifier")
        if identifier is not None:
            identifier = str(identifier)
        return cls(
            identifier=identifier,
            category=str(data.get("category", "")),
            source_text=str(data.get("source_text", "")),
        )


def _read_source(path: Path) -> str:
    try:
        return path.read_text(errors="replace")
    except OSError:
        return ""


def discover_artifacts(
    root: Path,
    patterns: dict[str, list[str]],
) -> list[ArtifactDescriptor]:
    """Discover test files under ``root`` using per-category globs.

    Categories are visited in CATEGORY_ORDER, then any extra categories in
    sorted order.  Within a category, matches are sorted by path.  A file
    matched by several categories is reported once, under the first.

    Args:
        root: Directory to search.
        patterns: Mapping of category to glob patterns relative to root.

    Returns:
        Descriptors with identifiers relative to root.
    """
    categories = [c for c in CATEGORY_ORDER if c in patterns]
    categories += sorted(c for c in patterns if c not in CATEGORY_ORDER)

    seen: set[Path] = set()
    descriptors: list[ArtifactDescriptor] = []

    for category in categories:
        matches: set[Path] = set()
        for pattern in patterns[category]:
            for path in root.glob(pattern):
                if path.is_file() and "node_modules" not in path.parts:
                    matches.add(path)

        for path in sorted(matches):
            if path in seen:
                continue
            seen.add(path)
            descriptors.append(ArtifactDescriptor(
                identifier=str(path.relative_to(root)),
                category=category,
                source_text=_read_source(path),
            ))

    return descriptors


def load_manifest(path: Path) -> list[ArtifactDescriptor]:
    """Load descriptors from a JSON manifest.

    The manifest is either a list of descriptor objects or an object with
    an ``artifacts`` list.  An entry may give ``source_file`` instead of
    ``source_text``; the file is read relative to the manifest.

    Raises:
        ValueError: If the manifest cannot be read or has the wrong shape.
    """
    try:
        data = json.loads(path.read_text())
    except FileNotFoundError:
        raise ValueError(f"Manifest file not found: {path}")
    except OSError as e:
        raise ValueError(f"Cannot read manifest {path}: {e}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in manifest: {e}")

    if isinstance(data, dict):
        data = data.get("artifacts")
    if not isinstance(data, list):
        raise ValueError("Manifest must be a list or contain an 'artifacts' list")

    descriptors: list[ArtifactDescriptor] = []
    for entry in data:
        if not isinstance(entry, dict):
            raise ValueError(f"Manifest entry is not an object: {entry!r}")
        if "source_text" not in entry and entry.get("source_file"):
            entry = dict(entry)
            entry["source_text"] = _read_source(path.parent / entry["source_file"])
        descriptors.append(ArtifactDescriptor.from_dict(entry))

    return descriptors
