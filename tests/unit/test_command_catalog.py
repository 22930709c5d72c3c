import pytest

from backend.services.ai_chat.command_catalog import (
    CommandSpec,
    ParamSpec,
    build_catalog,
    load_catalog,
)


def test_bundled_catalog_loads_and_is_cached() -> None:
    catalog = load_catalog()
    assert load_catalog() is catalog
    assert len(catalog.commands) == 16
    assert catalog.get("createTask") is not None
    assert catalog.get("launchRocket") is None


def test_optional_parameters_are_marked() -> None:
    spec = load_catalog().get("createTask")
    assert spec is not None
    assert spec.required_params == ["workspaceSlug", "projectSlug", "taskTitle"]
    assert spec.signature() == (
        "createTask(workspaceSlug, projectSlug, taskTitle, [workspaceName], "
        "[projectName], [priority], [description])"
    )


def test_command_without_parameters() -> None:
    spec = load_catalog().get("listWorkspaces")
    assert spec is not None
    assert spec.parameters == ()
    assert spec.signature() == "listWorkspaces()"


def test_build_catalog_from_mapping() -> None:
    catalog = build_catalog(
        {
            "version": 2,
            "commands": [
                {"name": "ping", "description": "Ping"},
                {"name": "echo", "parameters": ["text", "times?"]},
            ],
        }
    )
    assert catalog.version == 2
    assert catalog.names() == ["ping", "echo"]
    assert catalog.get("echo") == CommandSpec(
        name="echo",
        parameters=(ParamSpec("text"), ParamSpec("times", required=False)),
    )


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"commands": []},
        {"commands": ["ping"]},
        {"commands": [{"description": "no name"}]},
        {"commands": [{"name": "a"}, {"name": "a"}]},
        {"commands": [{"name": "a", "parameters": "x"}]},
        {"commands": [{"name": "a", "parameters": [" "]}]},
    ],
)
def test_invalid_documents_are_rejected(raw) -> None:
    with pytest.raises(ValueError):
        build_catalog(raw)


def test_alternate_path_bypasses_cache(tmp_path) -> None:
    path = tmp_path / "commands.yaml"
    path.write_text("version: 1\ncommands:\n  - name: ping\n", encoding="utf-8")
    custom = load_catalog(path)
    assert custom.names() == ["ping"]
    assert load_catalog() is not custom
    assert load_catalog().get("createTask") is not None


def test_missing_file_raises(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_catalog(tmp_path / "absent.yaml")


def test_prompt_line_appends_description() -> None:
    catalog = build_catalog(
        {
            "commands": [
                {"name": "ping", "description": "Check the service"},
                {"name": "echo", "parameters": ["text"]},
            ]
        }
    )
    assert catalog.get("ping").prompt_line() == "ping() - Check the service"
    assert catalog.get("echo").prompt_line() == "echo(text)"
