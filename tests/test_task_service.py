import threading

import pytest
from sqlalchemy.exc import IntegrityError

from models import TaskAssignment, TaskStatus, TaskPriority, TaskStatusLog, TASK_STATUS_ORDER
from services import TaskService
from utils.exceptions import ResourceNotFoundException, ValidationException


def test_create_task_defaults_to_open(db, seed) -> None:
    task = TaskService(db).create_task(seed.org_a, seed.p1, "  Write docs  ", seed.alice)

    assert task.id.startswith("T_")
    assert task.title == "Write docs"
    assert task.status == TaskStatus.OPEN
    assert task.priority == TaskPriority.MEDIUM
    assert task.created_by == seed.alice
    assert task.org_id == seed.org_a


def test_create_task_rejects_blank_title(db, seed) -> None:
    with pytest.raises(ValidationException):
        TaskService(db).create_task(seed.org_a, seed.p1, "   ", seed.alice)


def test_create_task_in_other_org_project_is_not_found(db, seed) -> None:
    with pytest.raises(ResourceNotFoundException):
        TaskService(db).create_task(seed.org_a, seed.p3, "Sneaky", seed.alice)


def test_create_task_with_assignees_is_atomic(db, seed) -> None:
    service = TaskService(db)
    with pytest.raises(ValidationException):
        service.create_task(seed.org_a, seed.p1, "Bad assignee", seed.alice, assignee_ids=[seed.bob, seed.dave])

    board = service.get_tasks_by_status(seed.org_a, seed.p1, seed.root, is_super_admin=True)
    assert all(not tasks for tasks in board.values())


def test_get_task_hides_other_org(db, seed) -> None:
    task = TaskService(db).create_task(seed.org_b, seed.p3, "Globex task", seed.dave)

    with pytest.raises(ResourceNotFoundException):
        TaskService(db).get_task(seed.org_a, task.id)


def test_board_always_has_every_status_bucket(db, seed) -> None:
    board = TaskService(db).get_tasks_by_status(seed.org_a, seed.p1, seed.bob)

    assert list(board.keys()) == [status.value for status in TASK_STATUS_ORDER]
    assert all(tasks == [] for tasks in board.values())


def test_board_only_shows_assigned_tasks_to_members(db, seed) -> None:
    service = TaskService(db)
    mine = service.create_task(seed.org_a, seed.p1, "For bob", seed.alice, assignee_ids=[seed.bob])
    service.create_task(seed.org_a, seed.p1, "Unassigned", seed.alice)

    board = service.get_tasks_by_status(seed.org_a, seed.p1, seed.bob)
    assert [t.id for t in board["OPEN"]] == [mine.id]

    admin_board = service.get_tasks_by_status(seed.org_a, seed.p1, seed.root, is_super_admin=True)
    assert len(admin_board["OPEN"]) == 2


def test_board_groups_by_status_newest_first(db, seed) -> None:
    service = TaskService(db)
    first = service.create_task(seed.org_a, seed.p1, "First", seed.alice)
    second = service.create_task(seed.org_a, seed.p1, "Second", seed.alice)
    blocked = service.create_task(seed.org_a, seed.p1, "Blocked", seed.alice)
    service.update_task_status(seed.org_a, blocked.id, TaskStatus.BLOCKED, seed.alice)

    board = service.get_tasks_by_status(seed.org_a, seed.p1, seed.root, is_super_admin=True)
    assert [t.id for t in board["OPEN"]] == [second.id, first.id]
    assert [t.id for t in board["BLOCKED"]] == [blocked.id]


def test_assign_is_additive_and_idempotent(db, seed) -> None:
    service = TaskService(db)
    task = service.create_task(seed.org_a, seed.p1, "Pair", seed.alice)

    service.assign_users_to_task(seed.org_a, task.id, [seed.bob])
    users = service.assign_users_to_task(seed.org_a, task.id, [seed.alice, seed.bob, seed.bob])

    assert [u.id for u in users] == [seed.alice, seed.bob]
    assert db.query(TaskAssignment).filter(TaskAssignment.task_id == task.id).count() == 2


def test_assign_rejects_users_outside_org(db, seed) -> None:
    service = TaskService(db)
    task = service.create_task(seed.org_a, seed.p1, "Pair", seed.alice)

    with pytest.raises(ValidationException) as exc_info:
        service.assign_users_to_task(seed.org_a, task.id, [seed.dave])
    assert exc_info.value.data == {"user_ids": [seed.dave]}


def test_concurrent_assignment_inserts_once(session_factory, db, seed) -> None:
    task = TaskService(db).create_task(seed.org_a, seed.p1, "Race", seed.alice)
    barrier = threading.Barrier(6)
    errors = []

    def worker() -> None:
        session = session_factory()
        try:
            barrier.wait()
            TaskService(session).assign_users_to_task(seed.org_a, task.id, [seed.bob])
        except Exception as e:  # noqa: BLE001
            errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert db.query(TaskAssignment).filter(TaskAssignment.task_id == task.id).count() == 1


def test_status_change_appends_log_entry(db, seed) -> None:
    service = TaskService(db)
    task = service.create_task(seed.org_a, seed.p1, "Flow", seed.alice)

    service.update_task_status(seed.org_a, task.id, TaskStatus.IN_PROGRESS, seed.bob)
    service.update_task_status(seed.org_a, task.id, TaskStatus.BLOCKED, seed.bob)

    logs = service.get_task_status_log(seed.org_a, task.id)
    assert [(log.from_status, log.to_status) for log in logs] == [
        (TaskStatus.OPEN, TaskStatus.IN_PROGRESS),
        (TaskStatus.IN_PROGRESS, TaskStatus.BLOCKED),
    ]
    assert logs[0].changed_by == seed.bob
    assert logs[0].changer.name == "Bob"
    assert service.get_task(seed.org_a, task.id).status == logs[-1].to_status


def test_same_status_does_not_log(db, seed) -> None:
    service = TaskService(db)
    task = service.create_task(seed.org_a, seed.p1, "Idle", seed.alice)

    service.update_task_status(seed.org_a, task.id, TaskStatus.OPEN, seed.alice)

    assert db.query(TaskStatusLog).filter(TaskStatusLog.task_id == task.id).count() == 0


def test_update_status_of_missing_task(db, seed) -> None:
    with pytest.raises(ResourceNotFoundException):
        TaskService(db).update_task_status(seed.org_a, "T_404", TaskStatus.BLOCKED, seed.alice)


def test_task_assignments_listed_by_name(db, seed) -> None:
    service = TaskService(db)
    task = service.create_task(seed.org_a, seed.p1, "Review", seed.alice, assignee_ids=[seed.bob, seed.alice])

    assert [u.name for u in service.get_task_assignments(seed.org_a, task.id)] == ["Alice", "Bob"]
    with pytest.raises(ResourceNotFoundException):
        service.get_task_assignments(seed.org_b, task.id)


def test_status_change_racing_another_session_keeps_log_consistent(session_factory, db, seed, monkeypatch) -> None:
    task = TaskService(db).create_task(seed.org_a, seed.p1, "Contended", seed.alice)
    find_task = TaskService._find_task_for_update
    raced = []

    def find_then_race(self, org_id, task_id):
        found = find_task(self, org_id, task_id)
        if not raced:
            # 读取之后、写入之前，另一个会话先改掉状态
            raced.append(True)
            other = session_factory()
            try:
                TaskService(other).update_task_status(org_id, task_id, TaskStatus.BLOCKED, seed.bob)
            finally:
                other.close()
        return found

    monkeypatch.setattr(TaskService, "_find_task_for_update", find_then_race)
    updated = TaskService(db).update_task_status(seed.org_a, task.id, TaskStatus.IN_PROGRESS, seed.alice)

    logs = TaskService(db).get_task_status_log(seed.org_a, task.id)
    assert updated.status == TaskStatus.IN_PROGRESS
    assert [(log.from_status, log.to_status) for log in logs] == [
        (TaskStatus.OPEN, TaskStatus.BLOCKED),
        (TaskStatus.BLOCKED, TaskStatus.IN_PROGRESS),
    ]


def test_failed_log_write_rolls_back_status(db, seed) -> None:
    service = TaskService(db)
    task = service.create_task(seed.org_a, seed.p1, "Atomic", seed.alice)

    # 操作人不存在，日志写入触发外键约束失败
    with pytest.raises(IntegrityError):
        service.update_task_status(seed.org_a, task.id, TaskStatus.IN_PROGRESS, "U_missing")

    assert service.get_task(seed.org_a, task.id).status == TaskStatus.OPEN
    assert db.query(TaskStatusLog).filter(TaskStatusLog.task_id == task.id).count() == 0
