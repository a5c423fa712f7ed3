"""Tests for tagged setting values."""

import pytest

from cc_sync.core.values import SettingValue, ValueKind


@pytest.mark.parametrize(
    "raw, kind, display",
    [
        pytest.param("opus", ValueKind.STRING, "opus", id="string"),
        pytest.param(True, ValueKind.BOOL, "true", id="bool-true"),
        pytest.param(False, ValueKind.BOOL, "false", id="bool-false"),
        pytest.param(3, ValueKind.NUMBER, "3", id="int"),
        pytest.param(2.0, ValueKind.NUMBER, "2", id="integral-float"),
        pytest.param(0.5, ValueKind.NUMBER, "0.5", id="float"),
        pytest.param({"b": 1, "a": [1]}, ValueKind.STRUCTURED, '{"a":[1],"b":1}', id="object"),
        pytest.param(None, ValueKind.STRUCTURED, "null", id="null"),
    ],
)
def test_classification_and_display(raw, kind, display):
    value = SettingValue.from_json(raw)
    assert value.kind is kind
    assert value.display() == display
    assert value.to_json() == raw


def test_long_structured_value_is_truncated():
    value = SettingValue.from_json({"key": "x" * 200})
    text = value.display()
    assert len(text) == 60
    assert text.endswith("...")
