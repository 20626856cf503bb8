from __future__ import annotations

from pathlib import Path

import pytest

from vstfs.version_control.base import ChangeKind, ExecutionFailure, PendingChange
from vstfs.version_control.runner import TfCommandRunner
from vstfs.version_control.tfvc_service import TfvcService

FIXTURES = Path(__file__).parent / "fixtures"
WORKING_DIR = Path("C:\\ws")


def _fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


def _service(executor, *, server_url: str = "", temp_dir: Path | None = None) -> TfvcService:
    runner = TfCommandRunner(executor, "tf.exe", WORKING_DIR, server_url=server_url)
    return TfvcService(
        runner,
        workspace="ALICE-PC",
        server_path="$/Proj/Main",
        temp_dir=temp_dir,
    )


def test_pending_changes_prefers_detailed_status(scripted, replay) -> None:
    executor = scripted(replay((0, _fixture("status_detailed.txt"), "")))

    items = _service(executor).pending_changes()

    assert items == [
        PendingChange(file="C:\\ws\\src\\Program.cs", action=ChangeKind.EDIT),
        PendingChange(file="C:\\ws\\src\\NewFile.cs", action=ChangeKind.ADD),
    ]
    assert executor.args() == [["status", "/recursive", "/format:detailed"]]


def test_pending_changes_falls_back_to_brief(scripted, replay) -> None:
    executor = scripted(
        replay(
            (0, "There are no pending changes.\n", ""),
            (0, _fixture("status_brief.txt"), ""),
        )
    )

    items = _service(executor).pending_changes()

    assert [item.action for item in items] == ["edit", "add", "delete", "rename"]
    assert executor.args()[1] == ["status", "/recursive", "/format:brief"]


def test_pending_changes_tries_every_variant_in_order(scripted, replay) -> None:
    executor = scripted(
        replay(
            (1, "", "TF10122: path not found"),
            (0, "", ""),
            (0, "", ""),
            (0, _fixture("status_brief_server_folder.txt"), ""),
        )
    )

    items = _service(executor).pending_changes()

    assert executor.args() == [
        ["status", "/recursive", "/format:detailed"],
        ["status", "/recursive", "/format:brief"],
        ["status", "/workspace:ALICE-PC", "/recursive", "/format:brief"],
        ["status", ".", "/recursive", "/format:brief", "/noprompt"],
    ]
    assert items == [
        PendingChange(file="C:\\ws\\docs\\Guide.md", action=ChangeKind.EDIT),
        PendingChange(file="C:\\ws\\docs\\Notes.md", action=ChangeKind.ADD),
    ]


def test_pending_changes_is_empty_when_every_variant_fails(scripted, replay) -> None:
    executor = scripted(replay(*[(1, "", "boom")] * 4))

    assert _service(executor).pending_changes() == []
    assert len(executor.commands) == 4


def test_check_in_adds_then_checks_in_everything(scripted, replay) -> None:
    executor = scripted(replay((0, "", ""), (0, "", "")))

    _service(executor).check_in("Fix build")

    assert executor.args() == [
        ["add", ".", "/recursive", "/noprompt"],
        ["checkin", ".", "/recursive", "/comment:Fix build", "/noprompt"],
    ]


def test_check_in_selected_files_ignores_add_failure(scripted, replay) -> None:
    executor = scripted(replay((1, "", "No arguments matched any files to add."), (0, "", "")))

    _service(executor).check_in("", ["C:\\ws\\a.cs", "C:\\ws\\b.cs"])

    assert executor.args()[1] == ["checkin", "C:\\ws\\a.cs", "C:\\ws\\b.cs", "/comment:", "/noprompt"]


def test_check_in_failure_propagates(scripted, replay) -> None:
    executor = scripted(replay((0, "", ""), (1, "", "TF10141: No files checked in")))

    with pytest.raises(ExecutionFailure, match="TF10141"):
        _service(executor).check_in("msg")


def test_undo_all_and_selected(scripted, replay) -> None:
    executor = scripted(replay((0, "", ""), (0, "", "")))
    service = _service(executor)

    service.undo()
    service.undo(["C:\\ws\\a.cs"])

    assert executor.args() == [
        ["undo", ".", "/recursive", "/noprompt"],
        ["undo", "C:\\ws\\a.cs", "/noprompt"],
    ]


def test_branch_operations(scripted, replay) -> None:
    executor = scripted(replay((0, _fixture("branches.txt"), ""), (0, "", ""), (0, "", ""), (0, "", "")))
    service = _service(executor)

    branches = service.list_branches()
    service.create_branch("$/Proj/Main", "$/Proj/Feature")
    service.merge("$/Proj/Feature", "$/Proj/Main", changeset_from=10, changeset_to=12)
    service.merge("$/Proj/Feature", "$/Proj/Main")

    assert branches == ["$/Proj/Main", "$/Proj/Dev", "$/Proj/Release/1.0"]
    assert executor.args() == [
        ["branches", "$/Proj/Main"],
        ["branch", "$/Proj/Main", "$/Proj/Feature", "/recursive"],
        ["merge", "$/Proj/Feature", "$/Proj/Main", "/version:C10~C12"],
        ["merge", "$/Proj/Feature", "$/Proj/Main"],
    ]


def test_resolve_reports_manual_resolution(scripted, replay) -> None:
    executor = scripted(replay((0, "", ""), (1, "", "conflicts remain")))
    service = _service(executor)

    assert service.resolve() is True
    assert service.resolve() is False
    assert executor.args()[0] == ["resolve", "/auto:AutoMerge"]


def test_history_uses_server_path_for_current_folder(scripted, replay) -> None:
    executor = scripted(replay((0, _fixture("history_detailed.txt"), "")))

    entries = _service(executor).history(".", 25)

    assert [entry.changeset_id for entry in entries] == [102, 101]
    assert executor.args() == [
        ["history", "$/Proj/Main", "/recursive", "/format:detailed", "/stopafter:25", "/noprompt"]
    ]


def test_changeset_lookup(scripted, replay) -> None:
    executor = scripted(replay((0, _fixture("history_detailed.txt"), ""), (0, "No history entries were found.", "")))
    service = _service(executor)

    entry = service.changeset(101)
    missing = service.changeset(999)

    assert entry is not None
    assert entry.author == "alice"
    assert missing is None
    assert executor.args()[0][-1] == "/version:C101~C101"


def test_get_file_at_changeset_writes_temp_file(scripted, replay, tmp_path: Path) -> None:
    executor = scripted(replay((0, "line one\r\nline two\r\n", "")))

    path = _service(executor, temp_dir=tmp_path).get_file_at_changeset("$/Proj/Main/src/Program.cs", 42)

    assert path == tmp_path / "vstfs-C42-Program.cs"
    assert path.read_text(encoding="utf-8").splitlines() == ["line one", "line two"]
    assert executor.args() == [["view", "$/Proj/Main/src/Program.cs;C42", "/noprompt"]]


def test_previous_changeset_for_file(scripted, replay) -> None:
    executor = scripted(replay((0, _fixture("history_detailed.txt"), "")))

    previous = _service(executor).previous_changeset_for_file("$/Proj/Main/src/Program.cs", 102)

    assert previous == 101
    assert executor.args() == [
        [
            "history",
            "$/Proj/Main/src/Program.cs",
            "/format:detailed",
            "/stopafter:2",
            "/version:C1~C102",
            "/noprompt",
        ]
    ]


def test_previous_changeset_is_none_on_failure(scripted, replay) -> None:
    executor = scripted(replay((1, "", "TF10122: not found")))

    assert _service(executor).previous_changeset_for_file("$/Proj/Main/x.cs", 5) is None


def test_rollback(scripted, replay) -> None:
    executor = scripted(replay((0, "", "")))

    _service(executor).rollback_to_changeset(77)

    assert executor.args() == [["rollback", "/changeset:C77"]]


def test_qualified_operations_bind_workspace_first(scripted, replay) -> None:
    executor = scripted(replay((0, "Workspace : ALICE-PC\n", ""), (0, "", "")))

    _service(executor, server_url="https://dev.azure.com/contoso").get_latest()

    assert executor.args() == [["workfold"], ["get", ".", "/recursive"]]


def test_basic_status_queries_skip_binding(scripted, replay) -> None:
    executor = scripted(replay((0, _fixture("status_detailed.txt"), "")))

    _service(executor, server_url="https://dev.azure.com/contoso").pending_changes()

    assert executor.args() == [["status", "/recursive", "/format:detailed"]]


def test_changeset_other_than_requested_is_not_found(scripted, replay) -> None:
    output = "Changeset: 4\nUser: bob\nDate: 03/03/2025 10:15:00 AM\n\nComment:\n  older\n\nItems:\n  edit $/Proj/Main/a.cs\n"
    executor = scripted(replay((0, output, "")))

    assert _service(executor).changeset(5) is None
