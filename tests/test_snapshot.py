"""
Tests for the layered property snapshot.
"""

import pytest

from propbind.configuration import ConfigurationSource, DictConfigurationSource, PropertyLayer, load
from propbind.configuration.snapshot import relaxed_name
from propbind.exceptions import SourceLoadError


class _FailingSource(ConfigurationSource):
    def __init__(self, error):
        self.error = error

    @property
    def name(self):
        return "failing"

    def load(self):
        raise self.error

    def get_priority(self):
        return 10


class _NonStringSource(DictConfigurationSource):
    def load(self):
        return {"app.port": 8080}


class TestRelaxedName:
    """Test environment-style key spelling."""

    @pytest.mark.parametrize("key, expected", [
        ("app.defaultValue", "APP_DEFAULTVALUE"),
        ("db.maria.url", "DB_MARIA_URL"),
        ("app.friends[0]", "APP_FRIENDS_0"),
        ("app.user-name", "APP_USERNAME"),
    ])
    def test_relaxed_name(self, key, expected):
        assert relaxed_name(key) == expected


class TestPropertyLayer:
    """Test single layers."""

    def test_exact_lookup(self):
        layer = PropertyLayer("file", {"app.name": "demo"})

        assert layer.get("app.name") == "demo"
        assert layer.get("APP_NAME") is None

    def test_relaxed_lookup(self):
        """Test relaxed layers answer dotted keys from environment-style names."""
        layer = PropertyLayer("env", {"APP_DEFAULTVALUE": "from env"}, kind="environment", relaxed=True)

        assert layer.get("app.defaultValue") == "from env"
        assert layer.get("APP_DEFAULTVALUE") == "from env"

    def test_entries_are_read_only(self):
        layer = PropertyLayer("file", {"a": "1"})

        with pytest.raises(TypeError):
            layer.entries["a"] = "2"


class TestPropertySnapshot:
    """Test precedence and the merged view."""

    def test_highest_precedence_wins(self, make_snapshot):
        """Test the later layer overrides the earlier one for the same key."""
        snapshot = make_snapshot({"app.name": "low", "app.only": "x"}, {"app.name": "high"})

        assert snapshot.get_raw("app.name") == "high"
        assert snapshot.get_raw("app.only") == "x"
        assert snapshot.source_of("app.name") == "layer1"

    def test_environment_overrides_files(self, make_snapshot):
        """Test APP_NAME in the environment overrides app.name from a file."""
        snapshot = make_snapshot({"app.name": "file"}, environment={"APP_NAME": "env"})

        assert snapshot.get_raw("app.name") == "env"
        assert snapshot.source_of("app.name") == "systemEnvironment"

    def test_missing_key(self, make_snapshot):
        snapshot = make_snapshot({"a": "1"})

        assert snapshot.get_raw("b") is None
        assert snapshot.source_of("b") is None
        assert "b" not in snapshot
        assert "a" in snapshot

    def test_keys_and_children(self, make_snapshot):
        """Test key enumeration keeps first-seen order without duplicates."""
        snapshot = make_snapshot(
            {"app.cutline.A": "80", "app.name": "x"},
            {"app.cutline.B": "90", "app.name": "y", "application": "z"},
        )

        assert snapshot.keys() == ["app.cutline.A", "app.name", "app.cutline.B", "application"]
        assert snapshot.child_keys("app.cutline") == ["app.cutline.A", "app.cutline.B"]
        assert snapshot.child_keys("app") == ["app.cutline.A", "app.name", "app.cutline.B"]
        assert len(snapshot) == 4

    def test_as_dict(self, make_snapshot):
        snapshot = make_snapshot({"a": "1", "b": "2"}, {"b": "3"})

        assert snapshot.as_dict() == {"a": "1", "b": "3"}

    def test_layers_of_kind(self, make_snapshot):
        snapshot = make_snapshot({"a": "1"}, environment={}, system_properties={})

        assert [layer.name for layer in snapshot.layers_of_kind("environment")] == ["systemEnvironment"]
        assert [layer.name for layer in snapshot.layers_of_kind("system_properties")] == ["systemProperties"]


class TestLoad:
    """Test loading sources into a snapshot."""

    def test_sources_are_ordered_by_priority(self):
        """Test registration order does not matter, only priority."""
        high = DictConfigurationSource({"key": "high"}, name="high", priority=100)
        low = DictConfigurationSource({"key": "low"}, name="low", priority=1)

        snapshot = load([high, low])

        assert [layer.name for layer in snapshot.layers] == ["low", "high"]
        assert snapshot.get_raw("key") == "high"

    def test_equal_priority_keeps_registration_order(self):
        first = DictConfigurationSource({"key": "first"}, name="first", priority=5)
        second = DictConfigurationSource({"key": "second"}, name="second", priority=5)

        assert load([first, second]).get_raw("key") == "second"

    def test_source_load_error_propagates(self):
        error = SourceLoadError("boom", source_name="failing")

        with pytest.raises(SourceLoadError) as exc_info:
            load([_FailingSource(error)])

        assert exc_info.value is error

    def test_unexpected_error_is_wrapped(self):
        """Test arbitrary source failures surface as SourceLoadError."""
        with pytest.raises(SourceLoadError) as exc_info:
            load([_FailingSource(RuntimeError("disk on fire"))])

        assert isinstance(exc_info.value.cause, RuntimeError)
        assert exc_info.value.context["source"] == "failing"

    def test_non_string_values_are_rejected(self):
        with pytest.raises(SourceLoadError, match="non-string value"):
            load([_NonStringSource({})])
