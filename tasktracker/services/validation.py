from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from tasktracker.core.errors import ValidationError
from tasktracker.core.time_utils import to_naive_utc
from tasktracker.models.task import DESCRIPTION_MAX_LENGTH, MAX_TAGS, TITLE_MAX_LENGTH

NAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_BYTES = 72  # bcrypt limit

# PATCH에서 null로 보낼 수 없는 필드
_NON_NULLABLE = {
    "title": "Task title is required",
    "status": "Status cannot be empty",
    "priority": "Priority cannot be empty",
    "assignee": "Assignee is required",
    "tags": "Tags cannot be null",
}


@dataclass
class ValidationResult:
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add(self, message: str) -> None:
        self.errors.append(message)

    def raise_for_errors(self) -> None:
        if self.errors:
            raise ValidationError(self.errors)


def normalize_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """Lower-case, trim, drop empties and duplicates (first occurrence wins)."""
    out: List[str] = []
    for tag in tags or []:
        t = (tag or "").strip().lower()
        if t and t not in out:
            out.append(t)
    return out


def normalize_task_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(fields)
    for key in ("title", "description"):
        if isinstance(out.get(key), str):
            out[key] = out[key].strip()
    if out.get("description") == "":
        out["description"] = None
    if out.get("tags") is not None:
        out["tags"] = normalize_tags(out["tags"])
    if isinstance(out.get("due_date"), datetime):
        out["due_date"] = to_naive_utc(out["due_date"])
    return out


def validate_task_fields(
    fields: Dict[str, Any],
    *,
    now: datetime,
    creating: bool,
    current_due_date: Optional[datetime] = None,
) -> ValidationResult:
    """
    Check normalized task fields.
    - creating=True: title is required
    - due date must be in the future unless it is unchanged on update
    """
    result = ValidationResult()

    if creating and not fields.get("title"):
        result.add("Task title is required")
    if not creating:
        for key, message in _NON_NULLABLE.items():
            if key in fields and fields[key] is None:
                result.add(message)
        if "title" in fields and fields["title"] == "":
            result.add("Task title is required")

    title = fields.get("title")
    if title and len(title) > TITLE_MAX_LENGTH:
        result.add(f"Title cannot exceed {TITLE_MAX_LENGTH} characters")

    description = fields.get("description")
    if description and len(description) > DESCRIPTION_MAX_LENGTH:
        result.add(f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters")

    tags = fields.get("tags")
    if tags is not None and len(tags) > MAX_TAGS:
        result.add(f"Cannot have more than {MAX_TAGS} tags")

    due_date = fields.get("due_date")
    if due_date is not None and due_date <= now:
        if creating or due_date != current_due_date:
            result.add("Due date must be in the future")

    return result


_LETTER_RE = re.compile(r"[A-Za-z]")
_DIGIT_RE = re.compile(r"\d")


def validate_password(password: Optional[str]) -> ValidationResult:
    result = ValidationResult()
    password = password or ""
    if len(password) < PASSWORD_MIN_LENGTH:
        result.add(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        result.add(f"Password must be at most {PASSWORD_MAX_BYTES} bytes long")
    if not _LETTER_RE.search(password):
        result.add("Password must contain at least one letter")
    if not _DIGIT_RE.search(password):
        result.add("Password must contain at least one number")
    return result


def validate_name(label: str, value: Optional[str], result: Optional[ValidationResult] = None) -> ValidationResult:
    result = result or ValidationResult()
    value = (value or "").strip()
    if not value:
        result.add(f"{label} is required")
    elif len(value) > NAME_MAX_LENGTH:
        result.add(f"{label} cannot exceed {NAME_MAX_LENGTH} characters")
    return result
