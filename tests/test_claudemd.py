"""Tests for CLAUDE.md fragment splitting."""

import pytest

from cc_sync.core.claudemd import PREAMBLE_FRAGMENT, header_to_fragment_name, split


def test_split_preamble_and_sections():
    sections = split("intro line\n\n## Git Workflow\nrebase\n## Testing\nrun it")
    assert [s.header for s in sections] == ["", "Git Workflow", "Testing"]
    assert sections[0].content == "intro line\n"
    assert sections[1].content == "## Git Workflow\nrebase"
    assert sections[2].fragment_name == "testing"


def test_blank_preamble_is_dropped():
    sections = split("\n\n## Only\nbody")
    assert [s.header for s in sections] == ["Only"]


def test_document_without_headers_is_one_preamble():
    (section,) = split("just text")
    assert section.fragment_name == PREAMBLE_FRAGMENT
    assert section.label == "(preamble)"


@pytest.mark.parametrize("content", ["", "   \n\t\n"])
def test_blank_document_has_no_sections(content):
    assert split(content) == []


def test_level_three_headings_do_not_split():
    (section,) = split("## Top\n### Nested\ntext")
    assert section.header == "Top"
    assert "### Nested" in section.content


@pytest.mark.parametrize(
    "header, expected",
    [
        pytest.param("Git Workflow", "git-workflow", id="spaces"),
        pytest.param("C++ & Rust!", "c-rust", id="punctuation"),
        pytest.param("  Padded  ", "padded", id="padding"),
        pytest.param("", PREAMBLE_FRAGMENT, id="preamble"),
    ],
)
def test_header_to_fragment_name(header, expected):
    assert header_to_fragment_name(header) == expected
