"""Unit tests for the host resource probe."""

from __future__ import annotations

from unittest.mock import patch

from scheduler.planning.probe import HostFacts, is_ci, probe_host


class TestIsCi:
    """Tests for CI detection."""

    def test_true_value(self):
        assert is_ci({"CI": "true"}) is True

    def test_case_insensitive(self):
        assert is_ci({"CI": "TRUE"}) is True

    def test_one_value(self):
        assert is_ci({"CI": "1"}) is True

    def test_unset(self):
        assert is_ci({}) is False

    def test_other_value(self):
        assert is_ci({"CI": "false"}) is False


class TestProbeHost:
    """Tests for probe_host."""

    def test_real_host_facts_sane(self):
        """Probing the current host yields valid facts."""
        facts = probe_host({})
        assert facts.logical_cpu_count >= 1
        assert facts.total_memory_bytes >= 0
        assert facts.ci_mode is False

    def test_ci_from_environment(self):
        facts = probe_host({"CI": "true"})
        assert facts.ci_mode is True

    def test_force_ci(self):
        facts = probe_host({}, force_ci=True)
        assert facts.ci_mode is True

    def test_missing_cpu_count_defaults_to_one(self):
        """os.cpu_count() returning None gives 1."""
        with patch("scheduler.planning.probe.os.cpu_count", return_value=None):
            facts = probe_host({})
        assert facts.logical_cpu_count == 1

    def test_sysconf_failure_gives_zero_memory(self):
        """An unsupported sysconf name gives 0 bytes instead of raising."""
        with patch("scheduler.planning.probe.os.sysconf", side_effect=ValueError("unsupported")):
            facts = probe_host({})
        assert facts.total_memory_bytes == 0

    def test_to_dict(self):
        facts = HostFacts(logical_cpu_count=4, total_memory_bytes=1024, ci_mode=True)
        assert facts.to_dict() == {
            "logical_cpu_count": 4,
            "total_memory_bytes": 1024,
            "ci_mode": True,
        }
