"""Unit tests for template rendering and cell value formatting."""

import pytest

from attachrename.templates import SEQUENCE_TOKEN, build_field_values, format_cell_value, render_template


class TestRenderTemplate:
    """Tests for render_template."""

    @pytest.mark.parametrize(
        "template,expected",
        [
            ("", ""),
            ("plain", "plain"),
            ("{{seq}}", "07"),
            ("{{Title}}", "Report"),
            ("{{Title}}{{seq}}", "Report07"),
            ("{{seq}}{{seq}}", "0707"),
            ("{{ Title }}-{{  seq  }}", "Report-07"),
            ("a_{{Title}}_b_{{Title}}", "a_Report_b_Report"),
        ],
    )
    def test_substitution(self, template, expected):
        """Test sequence and field placeholders in various positions."""
        assert render_template(template, "07", {"Title": "Report"}) == expected

    def test_unknown_variable_resolves_to_empty(self):
        """Test that a missing field never raises."""
        assert render_template("x{{Missing}}y", "1", {}) == "xy"

    def test_literal_sequence_token(self):
        """Test the literal token constant is substituted."""
        assert render_template(f"IMG{SEQUENCE_TOKEN}", "3", {}) == "IMG3"

    def test_substituted_values_are_not_rescanned(self):
        """Test that a field value containing placeholder syntax stays literal."""
        result = render_template("{{A}}", "1", {"A": "{{B}}", "B": "nope"})

        assert result == "{{B}}"

    def test_braces_inside_name_are_not_a_variable(self):
        """Test that unmatched brace runs are left alone."""
        assert render_template("{{a{{b}}", "1", {"b": "B"}) == "{{aB"

    def test_field_named_like_the_sequence(self):
        """Test that the reserved sequence name wins over a field of the same name."""
        assert render_template("{{seq}}", "9", {"seq": "field"}) == "9"


class TestFormatCellValue:
    """Tests for format_cell_value."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, ""),
            ("text", "text"),
            (14, "14"),
            (2.0, "2"),
            (2.5, "2.5"),
            (True, "Yes"),
            (False, "No"),
            (["a", 1, None, ""], "a,1"),
            ([{"name": "Alice"}, {"text": "Option"}, {"id": "x"}], "Alice,Option"),
            ({"status": "completed", "value": 14}, "14"),
            ({"value": "high"}, "high"),
            ({"name": "Bob", "id": "ou_1"}, "Bob"),
            ({"text": "rich"}, "rich"),
            ({"title": "Heading"}, "Heading"),
            ({"link": "https://example.com", "text": "Example"}, "Example"),
            ({"link": "https://example.com", "text": ""}, "https://example.com"),
            ({"link": "https://example.com"}, "https://example.com"),
            ({"location": "1 Main St", "full_address": "x"}, "1 Main St"),
            ({"address": "2 Side St"}, "2 Side St"),
            ({"unknown": 1}, ""),
            (object(), ""),
        ],
    )
    def test_formats(self, value, expected):
        """Test stringification of the supported cell shapes."""
        assert format_cell_value(value) == expected

    def test_custom_boolean_labels(self):
        """Test localized yes/no tokens."""
        assert format_cell_value(True, boolean_labels=("是", "否")) == "是"
        assert format_cell_value([True, False], boolean_labels=("Y", "N")) == "Y,N"

    def test_boolean_value_key_is_not_numeric(self):
        """Test that a boolean `value` is not treated as a number."""
        assert format_cell_value({"value": True, "name": "n"}) == "n"


def test_build_field_values():
    """Test building the name -> text map from raw cells."""
    raw = {"fld1": "Report", "fld2": 3, "fldFiles": [{"name": "a.png"}]}
    names = {"fld1": "Title", "fld2": "Count", "fld3": "Owner"}

    values = build_field_values(raw, names)

    assert values == {"Title": "Report", "Count": "3", "Owner": ""}
