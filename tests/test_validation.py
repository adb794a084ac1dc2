from datetime import datetime, timedelta, timezone

import pytest

from tasktracker.core.errors import ValidationError
from tasktracker.services.validation import (
    ValidationResult,
    normalize_tags,
    normalize_task_fields,
    validate_name,
    validate_password,
    validate_task_fields,
)

NOW = datetime(2030, 1, 1, 12, 0, 0)


def test_normalize_tags_lowercases_trims_and_dedupes():
    assert normalize_tags(["Foo", "foo", " Bar "]) == ["foo", "bar"]


def test_normalize_tags_drops_empty_and_keeps_first_occurrence_order():
    assert normalize_tags(["b", "", "  ", "A", "b", "a"]) == ["b", "a"]
    assert normalize_tags(None) == []


def test_normalize_task_fields_trims_text_and_converts_due_date_to_naive_utc():
    due = datetime(2030, 1, 2, 9, 0, tzinfo=timezone(timedelta(hours=9)))
    out = normalize_task_fields({"title": "  Write docs ", "description": "   ", "due_date": due})

    assert out["title"] == "Write docs"
    assert out["description"] is None
    assert out["due_date"] == datetime(2030, 1, 2, 0, 0)
    assert out["due_date"].tzinfo is None


def test_create_requires_title():
    result = validate_task_fields({"title": ""}, now=NOW, creating=True)

    assert not result.ok
    assert "Task title is required" in result.errors


def test_length_and_tag_limits_are_all_reported():
    fields = {
        "title": "x" * 201,
        "description": "d" * 2001,
        "tags": [f"t{i}" for i in range(11)],
    }
    result = validate_task_fields(fields, now=NOW, creating=True)

    assert result.errors == [
        "Title cannot exceed 200 characters",
        "Description cannot exceed 2000 characters",
        "Cannot have more than 10 tags",
    ]


def test_boundary_lengths_are_accepted():
    fields = {"title": "x" * 200, "description": "d" * 2000, "tags": [f"t{i}" for i in range(10)]}

    assert validate_task_fields(fields, now=NOW, creating=True).ok


def test_due_date_must_be_in_the_future():
    past = NOW - timedelta(minutes=1)

    result = validate_task_fields({"title": "t", "due_date": past}, now=NOW, creating=True)

    assert result.errors == ["Due date must be in the future"]


def test_unchanged_past_due_date_is_allowed_on_update():
    past = NOW - timedelta(days=2)

    result = validate_task_fields({"due_date": past}, now=NOW, creating=False, current_due_date=past)

    assert result.ok


def test_update_rejects_null_for_required_fields():
    result = validate_task_fields({"title": None, "status": None}, now=NOW, creating=False)

    assert "Task title is required" in result.errors
    assert "Status cannot be empty" in result.errors


def test_raise_for_errors_joins_messages():
    result = ValidationResult()
    result.add("first")
    result.add("second")

    with pytest.raises(ValidationError) as exc_info:
        result.raise_for_errors()

    assert exc_info.value.message == "first, second"
    assert exc_info.value.details() == {"validation_errors": ["first", "second"]}


@pytest.mark.parametrize(
    ("password", "expected"),
    [
        ("abc12", "Password must be at least 6 characters long"),
        ("abcdefg", "Password must contain at least one number"),
        ("1234567", "Password must contain at least one letter"),
        ("a1" * 40, "Password must be at most 72 bytes long"),
    ],
)
def test_password_rules(password, expected):
    assert expected in validate_password(password).errors


def test_valid_password_passes():
    assert validate_password("secret123").ok


def test_validate_name_limits():
    assert validate_name("First name", "  ").errors == ["First name is required"]
    assert validate_name("Last name", "x" * 51).errors == ["Last name cannot exceed 50 characters"]
    assert validate_name("Last name", "x" * 50).ok
