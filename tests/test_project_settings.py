from datetime import datetime

import pytest

from models import ProjectSettings, TaskPriority
from models.base import utc_now
from services import ProjectSettingsService
from utils.exceptions import ResourceNotFoundException, ValidationException


def test_missing_row_returns_defaults(db, seed) -> None:
    data = ProjectSettingsService(db).get_project_settings(seed.org_a, seed.p1)

    assert data["default_task_due_days"] == 2
    assert data["default_task_priority"] == TaskPriority.MEDIUM
    assert data["updated_at"] is None
    assert db.query(ProjectSettings).count() == 0


def test_partial_update_keeps_other_fields(db, seed) -> None:
    service = ProjectSettingsService(db)
    service.update_project_settings(seed.org_a, seed.p1, default_task_priority=TaskPriority.HIGH)
    data = service.update_project_settings(seed.org_a, seed.p1, default_task_due_days=7)

    assert data["default_task_due_days"] == 7
    assert data["default_task_priority"] == TaskPriority.HIGH
    assert db.query(ProjectSettings).filter(ProjectSettings.project_id == seed.p1).count() == 1


def test_negative_due_days_rejected(db, seed) -> None:
    with pytest.raises(ValidationException):
        ProjectSettingsService(db).update_project_settings(seed.org_a, seed.p1, default_task_due_days=-1)


def test_settings_of_other_org_project_not_found(db, seed) -> None:
    with pytest.raises(ResourceNotFoundException):
        ProjectSettingsService(db).get_project_settings(seed.org_a, seed.p3)


def test_resolve_defaults(db, seed) -> None:
    service = ProjectSettingsService(db)
    before = utc_now()

    priority, due_at = service.resolve_task_defaults(seed.org_a, seed.p1)
    assert priority == TaskPriority.MEDIUM
    assert (due_at - before).days in (1, 2)

    explicit = datetime(2030, 1, 1)
    priority, due_at = service.resolve_task_defaults(seed.org_a, seed.p1, TaskPriority.URGENT, explicit)
    assert (priority, due_at) == (TaskPriority.URGENT, explicit)


def test_zero_due_days_leaves_due_date_empty(db, seed) -> None:
    service = ProjectSettingsService(db)
    service.update_project_settings(seed.org_a, seed.p1, default_task_due_days=0)

    _, due_at = service.resolve_task_defaults(seed.org_a, seed.p1)
    assert due_at is None
