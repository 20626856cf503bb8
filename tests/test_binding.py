from __future__ import annotations

from pathlib import Path

import pytest

from vstfs.version_control.base import WorkspaceBindingError
from vstfs.version_control.binding import WorkspaceBindingResolver
from vstfs.version_control.runner import TfCommandRunner

SERVER = "https://dev.azure.com/contoso"
CWD = Path("C:/ws")


def _resolver(executor, *, server_url: str = SERVER, workspace: str = "ALICE-PC") -> WorkspaceBindingResolver:
    runner = TfCommandRunner(executor, "tf.exe", CWD, server_url=server_url)
    return WorkspaceBindingResolver(runner, workspace, "$/Proj/Main")


def test_existing_mapping_stops_after_workfold_check(scripted, replay) -> None:
    executor = scripted(replay((0, f"Workspace : ALICE-PC\n $/Proj/Main: {CWD}\n", "")))

    _resolver(executor).ensure_bound()

    assert executor.args() == [["workfold"]]


def test_unmapped_directory_is_mapped(scripted, replay) -> None:
    executor = scripted(replay((0, "Workspace : OTHER\n", ""), (0, "", "")))

    _resolver(executor).ensure_bound()

    assert executor.args()[1] == [
        "workfold",
        "/map",
        "$/Proj/Main",
        str(CWD),
        "/workspace:ALICE-PC",
        f"/collection:{SERVER}",
    ]


def test_failed_mapping_creates_workspace_then_maps(scripted, replay) -> None:
    executor = scripted(
        replay(
            (100, "", "TF14061: The workspace ALICE-PC does not exist."),
            (0, "", ""),
            (0, "", ""),
        )
    )

    _resolver(executor).ensure_bound()

    assert [args[:2] for args in executor.args()] == [
        ["workfold"],
        ["workspace", "/new"],
        ["workfold", "/map"],
    ]
    assert executor.args()[1] == [
        "workspace",
        "/new",
        "ALICE-PC",
        f"/collection:{SERVER}",
        "/location:server",
    ]


def test_failure_names_last_failing_step(scripted, replay) -> None:
    executor = scripted(
        replay(
            (100, "", "no workfold"),
            (0, "", ""),
            (100, "", "mapping conflict"),
        )
    )

    with pytest.raises(WorkspaceBindingError, match="workfold /map failed"):
        _resolver(executor).ensure_bound()


def test_workspace_creation_failure_is_reported(scripted, replay) -> None:
    executor = scripted(replay((100, "", "no workfold"), (100, "", "TF10158: denied")))

    with pytest.raises(WorkspaceBindingError, match="workspace /new failed"):
        _resolver(executor).ensure_bound()


def test_missing_configuration_skips_binding(scripted, replay) -> None:
    executor = scripted(replay())

    _resolver(executor, server_url="").ensure_bound()
    _resolver(executor, workspace="").ensure_bound()

    assert executor.commands == []


def test_missing_server_path_skips_binding(scripted, replay) -> None:
    executor = scripted(replay())
    runner = TfCommandRunner(executor, "tf.exe", CWD, server_url=SERVER)

    WorkspaceBindingResolver(runner, "ALICE-PC", "").ensure_bound()

    assert executor.commands == []
