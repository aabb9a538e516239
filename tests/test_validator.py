# tests/test_validator.py

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError as PydanticValidationError

from liquitask.constants import StorageKey
from liquitask.errors import ParseError, ValidationError
from liquitask.schema.models import AppDataSnapshot, BoardColumn, Task
from liquitask.schema.validator import decode_value, encode_value, validate_snapshot


def test_import_missing_title_lists_field_path() -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_snapshot({"tasks": [{"id": "t1"}]})

    err = exc_info.value
    assert "tasks.0.title" in err.paths
    assert "tasks.0.title: Field required" in str(err)


def test_validation_collects_every_failing_path() -> None:
    raw = {
        "columns": [{"id": "c1", "title": "", "color": "blue"}],
        "priorities": [{"id": "p", "label": "P", "color": "#aabbcc", "level": 0}],
        "customFields": [{"id": "f", "label": "F", "type": "date"}],
    }
    with pytest.raises(ValidationError) as exc_info:
        validate_snapshot(raw)

    paths = exc_info.value.paths
    assert "columns.0.title" in paths
    assert "columns.0.color" in paths
    assert "priorities.0.level" in paths
    assert "customFields.0.type" in paths
    reasons = dict(exc_info.value.issues)
    assert reasons["columns.0.title"] == "Must not be empty"
    assert reasons["columns.0.color"] == "Color must be a valid hex code"


def test_non_object_document_is_rejected() -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_snapshot(["not", "an", "object"])
    assert exc_info.value.issues == [("", "Expected a JSON object")]


def test_partial_import_leaves_other_fields_absent() -> None:
    patch, warnings = validate_snapshot({"sidebarCollapsed": True})
    assert warnings == []
    assert patch.present() == {"sidebar_collapsed": True}


def test_task_defaults_are_filled() -> None:
    patch, _ = validate_snapshot({"tasks": [{"id": "t1", "title": "Write docs"}]})
    assert patch.tasks is not None
    task = patch.tasks[0]
    assert task.priority == "medium"
    assert task.subtasks == []
    assert task.links == []
    assert task.custom_field_values == {}
    assert task.time_estimate == 0
    assert task.created_at.tzinfo is not None


def test_unparsable_date_falls_back_to_now_with_warning() -> None:
    before = datetime.now(UTC)
    patch, warnings = validate_snapshot(
        {"tasks": [{"id": "t1", "title": "A", "createdAt": "not a date"}]}
    )
    assert patch.tasks is not None
    assert patch.tasks[0].created_at >= before
    assert len(warnings) == 1
    assert "created_at" in warnings[0]
    assert "not a date" in warnings[0]


def test_dates_accept_iso_epoch_millis_and_datetime() -> None:
    now = datetime(2024, 5, 1, 12, 30, tzinfo=UTC)
    task = Task.model_validate(
        {
            "id": "t1",
            "title": "A",
            "createdAt": "2024-05-01T12:30:00Z",
            "dueDate": 0,
            "completedAt": now,
            "updatedAt": "",
        }
    )
    assert task.created_at == now
    assert task.due_date == datetime(1970, 1, 1, tzinfo=UTC)
    assert task.completed_at == now
    assert task.updated_at is None


def test_naive_datetimes_become_utc() -> None:
    task = Task.model_validate({"id": "t1", "title": "A", "createdAt": "2024-05-01T12:30:00"})
    assert task.created_at.utcoffset() == timedelta(0)


def test_decode_value_rejects_corrupt_shapes() -> None:
    with pytest.raises(ParseError) as exc_info:
        decode_value(StorageKey.COLUMNS, [{"id": "c1", "title": "C", "color": "red"}])
    assert exc_info.value.key == StorageKey.COLUMNS

    with pytest.raises(ParseError):
        decode_value(StorageKey.SIDEBAR_COLLAPSED, {"nope": 1})


def test_decode_value_passes_unknown_keys_through() -> None:
    raw = {"anything": [1, 2, 3]}
    assert decode_value("liquitask-temp-scratch", raw) is raw


def test_encode_value_uses_wire_names_and_iso_dates() -> None:
    task = Task(id="t1", title="A", created_at=datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC))
    data = encode_value([task])[0]

    assert data["createdAt"] == "2024-01-02T03:04:05Z"
    assert "jobId" in data
    assert "customFieldValues" in data
    # None fields are dropped
    assert "dueDate" not in data
    assert "recurring" not in data


def test_snapshot_defaults_match_board_configuration() -> None:
    snap = AppDataSnapshot()
    assert [c.id for c in snap.columns] == ["Pending", "InProgress", "Completed", "Delivered"]
    assert [c.is_completed for c in snap.columns] == [None, None, True, None]
    assert [p.level for p in snap.priorities] == [1, 2, 3]
    assert snap.active_project_id == "p1"
    assert snap.grouping == "none"
    assert snap.schema_version == "1.0.0"
    assert isinstance(snap.columns[0], BoardColumn)


@pytest.mark.parametrize("color", ["#+12345", "#12_345", "# 1234 ", "#-12345", "#１２３４５６", "#abcdef\n"])
def test_column_color_must_be_six_hex_digits(color: str) -> None:
    with pytest.raises(PydanticValidationError) as excinfo:
        BoardColumn.model_validate({"id": "c1", "title": "C", "color": color})
    assert "Color must be a valid hex code" in str(excinfo.value)


def test_column_color_accepts_either_case() -> None:
    assert BoardColumn.model_validate({"id": "c1", "title": "C", "color": "#A1b2C3"}).color == "#A1b2C3"
