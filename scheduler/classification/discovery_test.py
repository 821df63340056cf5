"""Unit tests for artifact discovery and manifest loading."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path

import pytest

from scheduler.classification.discovery import ArtifactDescriptor, discover_artifacts, load_manifest


def _write(root: Path, rel: str, content: str = "def test_x(): pass\n") -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


class TestDiscoverArtifacts:
    """Tests for glob-based discovery."""

    def test_categories_in_fixed_order(self):
        """Unit artifacts come first, then integration, then e2e."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _write(root, "tests/e2e/test_flow.py")
            _write(root, "tests/integration/test_api.py")
            _write(root, "tests/unit/test_b.py")
            _write(root, "tests/unit/test_a.py")

            descriptors = discover_artifacts(root, {
                "e2e": ["tests/e2e/**/test_*.py"],
                "integration": ["tests/integration/**/test_*.py"],
                "unit": ["tests/unit/**/test_*.py"],
            })

            assert [(d.identifier, d.category) for d in descriptors] == [
                ("tests/unit/test_a.py", "unit"),
                ("tests/unit/test_b.py", "unit"),
                ("tests/integration/test_api.py", "integration"),
                ("tests/e2e/test_flow.py", "e2e"),
            ]

    def test_source_text_read(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _write(root, "tests/unit/test_db.py", "import psycopg2\n")
            descriptors = discover_artifacts(root, {"unit": ["tests/unit/*.py"]})
            assert descriptors[0].source_text == "import psycopg2\n"

    def test_file_matched_twice_reported_once(self):
        """A file matching several categories keeps the first category."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _write(root, "tests/test_shared.py")
            descriptors = discover_artifacts(root, {
                "unit": ["tests/*.py"],
                "integration": ["tests/test_*.py"],
            })
            assert len(descriptors) == 1
            assert descriptors[0].category == "unit"

    def test_node_modules_skipped(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _write(root, "node_modules/pkg/a.test.js")
            _write(root, "src/b.test.js")
            descriptors = discover_artifacts(root, {"unit": ["**/*.test.js"]})
            assert [d.identifier for d in descriptors] == ["src/b.test.js"]

    def test_no_matches(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            assert discover_artifacts(Path(tmpdir), {"unit": ["*.py"]}) == []


class TestLoadManifest:
    """Tests for JSON manifest loading."""

    def test_list_manifest(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "manifest.json"
            path.write_text(json.dumps([
                {"identifier": "a.py", "category": "unit", "source_text": "x"},
            ]))
            assert load_manifest(path) == [ArtifactDescriptor("a.py", "unit", "x")]

    def test_object_manifest_with_source_file(self):
        """source_file is read relative to the manifest."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _write(root, "src/test_a.py", "import redis\n")
            path = root / "manifest.json"
            path.write_text(json.dumps({"artifacts": [
                {"identifier": "src/test_a.py", "category": "unit",
                 "source_file": "src/test_a.py"},
            ]}))
            descriptors = load_manifest(path)
            assert descriptors[0].source_text == "import redis\n"

    def test_missing_fields_kept_for_classifier(self):
        """Entries without identifier load, so they can be rejected with a warning."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "manifest.json"
            path.write_text(json.dumps([{"category": "unit"}]))
            assert load_manifest(path) == [ArtifactDescriptor(None, "unit", "")]

    def test_missing_file_raises(self):
        with pytest.raises(ValueError, match="Manifest file not found"):
            load_manifest(Path("/nonexistent/manifest.json"))

    def test_directory_raises(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ValueError, match="Cannot read manifest"):
                load_manifest(Path(tmpdir))

    def test_invalid_json_raises(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "manifest.json"
            path.write_text("{ nope")
            with pytest.raises(ValueError, match="Invalid JSON"):
                load_manifest(path)

    def test_wrong_shape_raises(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "manifest.json"
            path.write_text(json.dumps({"tests": []}))
            with pytest.raises(ValueError, match="'artifacts' list"):
                load_manifest(path)

    def test_non_object_entry_raises(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "manifest.json"
            path.write_text(json.dumps(["a.py"]))
            with pytest.raises(ValueError, match="not an object"):
                load_manifest(path)
