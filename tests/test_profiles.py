"""Tests for the sparse profile representation and its diff conversion."""

import pytest

from cc_sync.core.profiles import (
    KeybindingsOverride,
    KeyedDiff,
    ListDiff,
    PermissionsDiff,
    Profile,
    ProfileValues,
    empty_section_diffs,
    profile_to_section_diffs,
    section_diffs_to_profile,
)
from cc_sync.core.section_diff import SectionDiff
from cc_sync.core.sections import ALL_SECTIONS, Section

VALUES = ProfileValues(
    settings={"model": "opus", "theme": "dark"},
    mcp={"github": {"command": "gh"}, "slack": {"env": {"SLACK_TOKEN": "xoxb-1"}}},
    hooks={"Stop": [{"hooks": [{"command": "n"}]}]},
    keybindings={"ctrl+k": "clear"},
)


def _full_profile() -> Profile:
    return Profile(
        plugins=ListDiff(add=["extra@m"], remove=["beta@m"]),
        settings=KeyedDiff(add={"theme": "dark"}, remove=["model"]),
        permissions=PermissionsDiff(add_allow=["Write"], remove_deny=["Bash(rm:*)"]),
        claude_md=ListDiff(add=["~/p/CLAUDE.md::testing"], remove=["git-workflow"]),
        mcp=KeyedDiff(add={"github": {"command": "gh"}}, remove=["linear"]),
        hooks=KeyedDiff(add={"Stop": [{"hooks": [{"command": "n"}]}]}, remove=["PreToolUse"]),
        keybindings=KeybindingsOverride(exclude=True),
        commands=ListDiff(add=["cmd:project:web:ship"], remove=["cmd:global:review"]),
        skills=ListDiff(remove=["skill:global:deploy"]),
    )


class TestPersistedForm:
    def test_empty_profile_serializes_to_empty_dict(self):
        assert Profile().to_dict() == {}
        assert Profile().is_empty()

    def test_sparse_parts_are_omitted(self):
        data = Profile(plugins=ListDiff(add=["a@m"])).to_dict()
        assert data == {"plugins": {"add": ["a@m"]}}

    def test_dict_round_trip(self):
        profile = _full_profile()
        assert Profile.from_dict(profile.to_dict()) == profile

    @pytest.mark.parametrize(
        "data",
        [
            pytest.param(None, id="none"),
            pytest.param([], id="list"),
            pytest.param({"plugins": "nonsense", "mcp": 3}, id="malformed-parts"),
        ],
    )
    def test_from_dict_tolerates_garbage(self, data):
        assert Profile.from_dict(data).is_empty()

    def test_keybindings_forms(self):
        assert KeybindingsOverride(exclude=True).to_dict() == {"exclude": True}
        assert KeybindingsOverride(override={"a": "b"}).to_dict() == {"override": {"a": "b"}}
        assert KeybindingsOverride().to_dict() == {}


class TestProfileToDiffs:
    def test_every_section_present(self):
        diffs = profile_to_section_diffs(Profile())
        assert set(diffs) == set(ALL_SECTIONS)
        assert all(d.is_empty for d in diffs.values())

    def test_permissions_are_prefixed(self):
        diffs = profile_to_section_diffs(_full_profile())
        assert diffs[Section.PERMISSIONS] == SectionDiff({"allow:Write"}, {"deny:Bash(rm:*)"})

    def test_commands_and_skills_recombine(self):
        diffs = profile_to_section_diffs(_full_profile())
        assert diffs[Section.COMMANDS_SKILLS].removes == {"cmd:global:review", "skill:global:deploy"}

    @pytest.mark.parametrize(
        "override, expected",
        [
            pytest.param(KeybindingsOverride(override={"a": "b"}), SectionDiff({"keybindings"}, set()), id="override"),
            pytest.param(KeybindingsOverride(exclude=True), SectionDiff(set(), {"keybindings"}), id="exclude"),
            pytest.param(KeybindingsOverride(), SectionDiff(), id="none"),
        ],
    )
    def test_keybindings(self, override, expected):
        diffs = profile_to_section_diffs(Profile(keybindings=override))
        assert diffs[Section.KEYBINDINGS] == expected


class TestDiffsToProfile:
    def test_round_trip_through_diffs(self):
        profile = _full_profile()
        again = section_diffs_to_profile(profile_to_section_diffs(profile), VALUES, redact=None)
        assert again == profile

    def test_keyed_adds_without_value_are_dropped(self):
        diffs = {Section.SETTINGS: SectionDiff(adds={"theme", "unknown"})}
        profile = section_diffs_to_profile(diffs, VALUES)
        assert profile.settings.add == {"theme": "dark"}

    def test_missing_sections_count_as_empty(self):
        assert section_diffs_to_profile({}, VALUES).is_empty()

    def test_keybindings_add_copies_the_whole_map(self):
        diffs = {Section.KEYBINDINGS: SectionDiff(adds={"keybindings"})}
        profile = section_diffs_to_profile(diffs, VALUES)
        assert profile.keybindings == KeybindingsOverride(override={"ctrl+k": "clear"})

    def test_mcp_adds_are_redacted_exactly_once(self):
        calls = []

        def redactor(servers):
            calls.append(dict(servers))
            return {k: {"redacted": True} for k in servers}

        diffs = {Section.MCP: SectionDiff(adds={"slack", "github"}, removes={"linear"})}
        profile = section_diffs_to_profile(diffs, VALUES, redact=redactor)
        assert len(calls) == 1
        assert set(calls[0]) == {"github", "slack"}
        assert profile.mcp.add == {"github": {"redacted": True}, "slack": {"redacted": True}}
        assert profile.mcp.remove == ["linear"]

    def test_redactor_not_called_without_mcp_adds(self):
        def redactor(servers):
            raise AssertionError("should not be called")

        diffs = {Section.MCP: SectionDiff(removes={"linear"})}
        section_diffs_to_profile(diffs, VALUES, redact=redactor)

    def test_default_redactor_templates_secrets(self):
        diffs = {Section.MCP: SectionDiff(adds={"slack"})}
        profile = section_diffs_to_profile(diffs, VALUES)
        assert profile.mcp.add["slack"]["env"]["SLACK_TOKEN"] == "${SLACK_TOKEN}"

    def test_lists_are_sorted(self):
        diffs = {Section.PLUGINS: SectionDiff(adds={"z@m", "a@m"})}
        assert section_diffs_to_profile(diffs, VALUES).plugins.add == ["a@m", "z@m"]


def test_empty_section_diffs_are_independent():
    diffs = empty_section_diffs()
    diffs[Section.PLUGINS].adds.add("x")
    assert diffs[Section.SETTINGS].is_empty
