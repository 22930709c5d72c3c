"""
Unit tests for command extraction from model replies.

Covers:
- the three marker strategies and their precedence
- brace repair of truncated JSON
- failures that must stay failures
"""

import json

import pytest

from backend.services.ai_chat.command_extractor import (
    extract_command,
    parse_parameters,
    repair_json,
)
from backend.services.ai_chat.errors import CommandParseError


class TestExtractCommand:
    def test_plain_marker(self):
        reply = 'Sure, switching now.\n[COMMAND: navigateToWorkspace] {"workspaceSlug": "marketing"}'
        cmd = extract_command(reply)
        assert cmd is not None
        assert cmd.name == "navigateToWorkspace"
        assert cmd.parameters == {"workspaceSlug": "marketing"}

    def test_emphasis_wrapped_marker(self):
        reply = 'Done!\n**[COMMAND: listWorkspaces]** {}'
        cmd = extract_command(reply)
        assert cmd is not None
        assert cmd.name == "listWorkspaces"
        assert cmd.parameters == {}

    def test_marker_in_middle_of_reply_ending_a_line(self):
        reply = (
            'Creating it.\n[COMMAND: searchTasks] {"workspaceSlug": "", "projectSlug": "", "query": "auth"}\n'
            "Let me know if you need anything else."
        )
        cmd = extract_command(reply)
        assert cmd is not None
        assert cmd.name == "searchTasks"
        assert cmd.parameters["query"] == "auth"

    def test_name_is_trimmed(self):
        cmd = extract_command('[COMMAND:   listProjects  ] {"workspaceSlug": "x"}')
        assert cmd is not None
        assert cmd.name == "listProjects"

    def test_nested_object_parameters(self):
        reply = '[COMMAND: editWorkspace] {"workspaceSlug": "dev", "updates": {"name": "Development"}}'
        cmd = extract_command(reply)
        assert cmd is not None
        assert cmd.parameters["updates"] == {"name": "Development"}

    def test_truncated_reply_is_repaired(self):
        reply = 'OK [COMMAND: editWorkspace] {"workspaceSlug": "dev", "updates": {"name": "Development"'
        cmd = extract_command(reply)
        assert cmd is not None
        assert cmd.parameters == {"workspaceSlug": "dev", "updates": {"name": "Development"}}

    def test_no_marker_returns_none(self):
        assert extract_command("I can help with tasks, projects and workspaces.") is None

    def test_empty_reply_returns_none(self):
        assert extract_command("") is None

    def test_marker_without_object_returns_none(self):
        assert extract_command("[COMMAND: listWorkspaces]") is None

    def test_unrepairable_json_raises(self):
        with pytest.raises(CommandParseError) as exc:
            extract_command('[COMMAND: createTask] {"taskTitle": "unterminated}')
        assert exc.value.command_name == "createTask"

    @pytest.mark.parametrize(
        "parameters",
        [
            {},
            {"workspaceSlug": "backend", "projectSlug": "core", "taskTitle": "Fix API"},
            {"workspaceSlug": "dev", "updates": {"name": "Dev [team]", "tags": ["a", "b"]}},
            {"query": "line one\nline two", "limit": 5, "flag": True},
        ],
    )
    def test_rendered_command_extracts_back(self, parameters):
        text = f"Here you go.\n[COMMAND: searchTasks] {json.dumps(parameters)}"
        cmd = extract_command(text)
        assert cmd is not None
        assert cmd.name == "searchTasks"
        assert cmd.parameters == parameters


class TestRepairJson:
    @pytest.mark.parametrize("k", [1, 2, 3, 4, 5])
    def test_missing_closers_are_appended(self, k):
        nested = {"a": {"b": {"c": {"d": {"e": {"f": 1}}}}}}
        text = json.dumps(nested, separators=(",", ":"))
        truncated = text[: len(text) - k]
        assert truncated.count("{") - truncated.count("}") == k
        assert json.loads(repair_json(truncated)) == nested

    def test_balanced_text_is_untouched(self):
        assert repair_json('{"a": 1}') == '{"a": 1}'

    def test_extra_closers_are_not_trimmed(self):
        text = '{"a": 1}}'
        assert repair_json(text) == text
        with pytest.raises(CommandParseError):
            parse_parameters(text)

    def test_broken_string_literal_still_fails(self):
        with pytest.raises(CommandParseError):
            parse_parameters('{"a": "b')

    def test_non_object_json_is_rejected(self):
        with pytest.raises(CommandParseError):
            parse_parameters('["not", "an", "object"]')
