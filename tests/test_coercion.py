"""
Tests for value coercion.
"""

import logging

import pytest

from propbind.configuration import ValueType, coerce
from propbind.exceptions import TypeCoercionError


class TestScalarCoercion:
    """Test string, integer and boolean conversion."""

    def test_string(self):
        assert coerce("  keep spaces ", ValueType.STRING) == "  keep spaces "
        assert coerce(["a", "b"], ValueType.STRING) == "a,b"

    def test_map_to_string(self):
        """Test a map result is spelled as a map literal."""
        assert coerce({"A": 80, "B": True}, ValueType.STRING) == "{A:80,B:true}"

    @pytest.mark.parametrize("raw, expected", [
        ("20", 20),
        (" 42 ", 42),
        ("-7", -7),
        ("+3", 3),
        ("007", 7),
        (5, 5),
    ])
    def test_integer(self, raw, expected):
        assert coerce(raw, ValueType.INTEGER) == expected

    @pytest.mark.parametrize("raw", ["twenty", "4.5", "", "1e3", True])
    def test_invalid_integer(self, raw):
        with pytest.raises(TypeCoercionError) as exc_info:
            coerce(raw, ValueType.INTEGER, key="student.user.age")

        assert exc_info.value.key == "student.user.age"
        assert exc_info.value.target_type == "integer"
        assert "student.user.age" in exc_info.value.message

    @pytest.mark.parametrize("raw, expected", [
        ("true", True),
        ("TRUE", True),
        ("yes", True),
        ("on", True),
        ("1", True),
        ("false", False),
        ("No", False),
        ("off", False),
        ("0", False),
    ])
    def test_boolean(self, raw, expected):
        assert coerce(raw, ValueType.BOOLEAN) is expected

    def test_invalid_boolean(self):
        with pytest.raises(TypeCoercionError):
            coerce("maybe", ValueType.BOOLEAN)


class TestListCoercion:
    """Test comma separated lists."""

    def test_split_and_trim(self):
        assert coerce("tom,jane, bob", ValueType.LIST) == ["tom", "jane", "bob"]

    @pytest.mark.parametrize("items", [
        ["tom"],
        ["tom", "jane", "bob"],
        ["b", "a", "b"],
        ["with space", "x"],
    ])
    def test_join_then_split_round_trip(self, items):
        """Test trimmed non-empty elements survive joining with commas."""
        assert coerce(",".join(items), ValueType.LIST) == items

    def test_order_and_duplicates_are_kept(self):
        assert coerce("b,a,b", ValueType.LIST) == ["b", "a", "b"]

    def test_blank_is_empty_list(self):
        assert coerce("", ValueType.LIST) == []
        assert coerce("   ", ValueType.LIST) == []

    def test_empty_elements_are_kept(self):
        assert coerce("a,,b", ValueType.LIST) == ["a", "", "b"]

    def test_typed_elements(self):
        assert coerce("1, 2,3", ValueType.LIST, item_type=ValueType.INTEGER) == [1, 2, 3]

    def test_list_input(self):
        """Test already split values (from #{...}.split) are trimmed and coerced."""
        assert coerce(["tom", " jane"], ValueType.LIST) == ["tom", "jane"]
        assert coerce(("1", "2"), ValueType.LIST, item_type=ValueType.INTEGER) == [1, 2]

    def test_invalid_element(self):
        with pytest.raises(TypeCoercionError):
            coerce("1,x", ValueType.LIST, item_type=ValueType.INTEGER, key="nums")

    def test_non_scalar_elements_rejected(self):
        with pytest.raises(TypeCoercionError, match="scalar"):
            coerce("a,b", ValueType.LIST, item_type=ValueType.LIST)


class TestMapCoercion:
    """Test {key:value,...} maps."""

    def test_map_literal(self):
        assert coerce("{A:80,B:90}", ValueType.MAP, value_type=ValueType.INTEGER) == {"A": 80, "B": 90}

    def test_whitespace_and_quotes(self):
        assert coerce("{ 'A' : x , B: \"y z\" }", ValueType.MAP) == {"A": "x", "B": "y z"}

    def test_empty_map(self):
        assert coerce("{}", ValueType.MAP) == {}

    def test_dict_input(self):
        assert coerce({"A": 80, "B": "90"}, ValueType.MAP, value_type=ValueType.INTEGER) == {"A": 80, "B": 90}

    def test_duplicate_key_last_wins(self, caplog):
        with caplog.at_level(logging.WARNING):
            result = coerce("{A:1,A:2}", ValueType.MAP, value_type=ValueType.INTEGER, key="app.cutline")

        assert result == {"A": 2}
        assert "Duplicate map key 'A'" in caplog.text

    @pytest.mark.parametrize("raw", ["A:80", "{A80}", "{:80}", "{A:80", 7])
    def test_malformed_map(self, raw):
        with pytest.raises(TypeCoercionError):
            coerce(raw, ValueType.MAP, key="app.cutline")

    def test_invalid_value_type(self):
        with pytest.raises(TypeCoercionError):
            coerce("{A:high}", ValueType.MAP, value_type=ValueType.INTEGER)


class TestRecordTarget:
    """Test records cannot be coerced from a raw value."""

    def test_record_target(self):
        with pytest.raises(TypeCoercionError):
            coerce("x", ValueType.RECORD)
