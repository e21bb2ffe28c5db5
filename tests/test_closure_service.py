import pytest

from models import ClosureRequestStatus, TaskClosureRequest, TaskStatus
from services import TaskClosureService, TaskService
from utils.exceptions import PermissionException, ValidationException
from utils.status_codes import TASK_CLOSE_FORBIDDEN


@pytest.fixture()
def task(db, seed):
    return TaskService(db).create_task(seed.org_a, seed.p1, "Ship it", seed.alice, assignee_ids=[seed.bob])


def test_non_creator_cannot_close(db, seed, task) -> None:
    with pytest.raises(PermissionException) as exc_info:
        TaskClosureService(db).close_task(seed.org_a, task.id, TaskStatus.DONE, seed.bob)

    assert exc_info.value.code == TASK_CLOSE_FORBIDDEN
    assert TaskService(db).get_task(seed.org_a, task.id).status == TaskStatus.OPEN


def test_creator_closes_and_log_records_it(db, seed, task) -> None:
    closed = TaskClosureService(db).close_task(seed.org_a, task.id, TaskStatus.CANCELED, seed.alice)

    assert closed.status == TaskStatus.CANCELED
    logs = TaskService(db).get_task_status_log(seed.org_a, task.id)
    assert logs[-1].to_status == TaskStatus.CANCELED
    assert logs[-1].changed_by == seed.alice


def test_close_requires_terminal_status(db, seed, task) -> None:
    with pytest.raises(ValidationException):
        TaskClosureService(db).close_task(seed.org_a, task.id, TaskStatus.IN_PROGRESS, seed.alice)


def test_request_closure_is_idempotent_while_pending(db, seed, task) -> None:
    service = TaskClosureService(db)
    first = service.request_closure(seed.org_a, task.id, seed.bob)
    second = service.request_closure(seed.org_a, task.id, seed.bob)

    assert first.id == second.id
    assert second.status == ClosureRequestStatus.PENDING
    assert db.query(TaskClosureRequest).filter(TaskClosureRequest.task_id == task.id).count() == 1


def test_closing_leaves_requests_untouched(db, seed, task) -> None:
    service = TaskClosureService(db)
    service.request_closure(seed.org_a, task.id, seed.bob)

    service.close_task(seed.org_a, task.id, TaskStatus.DONE, seed.alice)

    requests = service.get_closure_requests(seed.org_a, task.id)
    assert [r.status for r in requests] == [ClosureRequestStatus.PENDING]


def test_creator_acknowledges_requests(db, seed, task) -> None:
    service = TaskClosureService(db)
    service.request_closure(seed.org_a, task.id, seed.bob)

    with pytest.raises(PermissionException):
        service.acknowledge_closure_requests(seed.org_a, task.id, seed.bob)

    requests = service.acknowledge_closure_requests(seed.org_a, task.id, seed.alice)
    assert requests[0].status == ClosureRequestStatus.ACKNOWLEDGED
    assert requests[0].acknowledged_by == seed.alice
    assert requests[0].acknowledged_at is not None


def test_request_after_acknowledge_reopens(db, seed, task) -> None:
    service = TaskClosureService(db)
    original = service.request_closure(seed.org_a, task.id, seed.bob)
    service.acknowledge_closure_requests(seed.org_a, task.id, seed.alice)

    again = service.request_closure(seed.org_a, task.id, seed.bob)

    assert again.id == original.id
    assert again.status == ClosureRequestStatus.PENDING
    assert again.acknowledged_at is None


@pytest.mark.parametrize("start", list(TaskStatus))
@pytest.mark.parametrize("target", [TaskStatus.DONE, TaskStatus.CANCELED])
def test_non_creator_forbidden_from_any_status(db, seed, task, start, target) -> None:
    TaskService(db).update_task_status(seed.org_a, task.id, start, seed.alice)

    with pytest.raises(PermissionException):
        TaskClosureService(db).close_task(seed.org_a, task.id, target, seed.bob)
    assert TaskService(db).get_task(seed.org_a, task.id).status == start


def test_ship_scenario(db, seed) -> None:
    tasks = TaskService(db)
    closure = TaskClosureService(db)
    task = tasks.create_task(seed.org_a, seed.p1, "Ship v1", seed.alice, assignee_ids=[seed.bob])

    closure.request_closure(seed.org_a, task.id, seed.bob)
    with pytest.raises(PermissionException):
        closure.close_task(seed.org_a, task.id, TaskStatus.DONE, seed.bob)
    closed = closure.close_task(seed.org_a, task.id, TaskStatus.DONE, seed.alice)

    assert closed.status == TaskStatus.DONE
    logs = tasks.get_task_status_log(seed.org_a, task.id)
    assert [(log.from_status, log.to_status, log.changed_by) for log in logs] == [
        (TaskStatus.OPEN, TaskStatus.DONE, seed.alice)
    ]
