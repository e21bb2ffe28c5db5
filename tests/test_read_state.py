import random
import threading
from datetime import timedelta

from models import ChatMention
from models.base import utc_now
from services import ChatRoomService, ChatMessageService, ReadStateService


def _room(db, seed, project=None):
    return ChatRoomService(db).get_or_create_room(seed.org_a, project or seed.p1)


def test_unread_count_excludes_own_messages(db, seed) -> None:
    room = _room(db, seed)
    messages = ChatMessageService(db)
    read_state = ReadStateService(db)

    messages.send_message(seed.org_a, room.id, seed.alice, "one")
    messages.send_message(seed.org_a, room.id, seed.alice, "two")
    messages.send_message(seed.org_a, room.id, seed.bob, "mine")

    assert read_state.get_unread_count(seed.org_a, room.id, seed.bob) == 2
    assert read_state.get_unread_count(seed.org_a, room.id, seed.alice) == 1


def test_unread_count_after_cursor(db, seed) -> None:
    room = _room(db, seed)
    messages = ChatMessageService(db)
    read_state = ReadStateService(db)

    messages.send_message(seed.org_a, room.id, seed.alice, "before")
    read_state.mark_as_read(seed.org_a, room.id, seed.bob)
    messages.send_message(seed.org_a, room.id, seed.alice, "after")

    assert read_state.get_unread_count(seed.org_a, room.id, seed.bob) == 1


def test_cursor_never_moves_backwards(db, seed) -> None:
    room = _room(db, seed)
    read_state = ReadStateService(db)
    later = utc_now()
    earlier = later - timedelta(hours=1)

    assert read_state.mark_as_read(seed.org_a, room.id, seed.bob, later) == later
    assert read_state.mark_as_read(seed.org_a, room.id, seed.bob, earlier) == later
    assert read_state.get_last_read_at(seed.org_a, room.id, seed.bob) == later


def test_concurrent_marks_converge_to_latest(session_factory, db, seed) -> None:
    room = _room(db, seed)
    base = utc_now()
    stamps = [base + timedelta(seconds=i) for i in range(8)]
    random.shuffle(stamps)
    barrier = threading.Barrier(len(stamps))
    errors = []

    def worker(stamp) -> None:
        session = session_factory()
        try:
            barrier.wait()
            ReadStateService(session).mark_as_read(seed.org_a, room.id, seed.bob, stamp)
        except Exception as e:  # noqa: BLE001
            errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=worker, args=(stamp,)) for stamp in stamps]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert ReadStateService(db).get_last_read_at(seed.org_a, room.id, seed.bob) == max(stamps)


def test_mark_as_read_clears_room_mentions(db, seed) -> None:
    room = _room(db, seed)
    ChatMessageService(db).send_message(seed.org_a, room.id, seed.alice, "@bob hi")
    read_state = ReadStateService(db)

    read_state.mark_as_read(seed.org_a, room.id, seed.bob)

    assert read_state.get_user_unread_mentions(seed.org_a, seed.bob) == 0


def test_mark_single_mention_read_is_idempotent(db, seed) -> None:
    room = _room(db, seed)
    message = ChatMessageService(db).send_message(seed.org_a, room.id, seed.alice, "@bob hi")
    read_state = ReadStateService(db)

    assert read_state.mark_mentions_as_read(seed.org_a, message.id, seed.bob) == 1
    first_read_at = db.query(ChatMention.read_at).filter(ChatMention.message_id == message.id).scalar()
    assert read_state.mark_mentions_as_read(seed.org_a, message.id, seed.bob) == 0
    assert db.query(ChatMention.read_at).filter(ChatMention.message_id == message.id).scalar() == first_read_at


def test_mentions_by_project_respects_membership(db, seed) -> None:
    apollo = _room(db, seed, seed.p1)
    borealis = _room(db, seed, seed.p2)
    messages = ChatMessageService(db)
    messages.send_message(seed.org_a, apollo.id, seed.bob, "@alice one")
    messages.send_message(seed.org_a, borealis.id, seed.carol, "@alice two")
    messages.send_message(seed.org_a, borealis.id, seed.carol, "@alice three")
    # carol 不在 p1，但被 p1 的消息提及
    messages.send_message(seed.org_a, apollo.id, seed.bob, "@carol fyi")
    read_state = ReadStateService(db)

    assert read_state.get_user_mentions_by_project(seed.org_a, seed.alice) == [
        {"project_id": seed.p2, "project_name": "Borealis", "mention_count": 2},
        {"project_id": seed.p1, "project_name": "Apollo", "mention_count": 1},
    ]
    assert read_state.get_user_unread_mentions(seed.org_a, seed.alice) == 3
    assert read_state.get_user_mentions_by_project(seed.org_a, seed.carol) == []
    assert read_state.get_user_unread_mentions(seed.org_a, seed.carol) == 0
    assert read_state.get_user_unread_mentions(seed.org_a, seed.carol, is_super_admin=True) == 1


def test_mark_all_room_mentions(db, seed) -> None:
    room = _room(db, seed)
    messages = ChatMessageService(db)
    messages.send_message(seed.org_a, room.id, seed.alice, "@bob one")
    messages.send_message(seed.org_a, room.id, seed.alice, "@bob two")
    read_state = ReadStateService(db)

    assert read_state.mark_all_room_mentions_as_read(seed.org_a, room.id, seed.bob) == 2
    assert read_state.get_user_unread_mentions(seed.org_a, seed.bob) == 0
    # 未读数和提及已读相互独立
    assert read_state.get_unread_count(seed.org_a, room.id, seed.bob) == 2


def test_marking_up_to_shown_message_keeps_later_ones_unread(db, seed) -> None:
    room = _room(db, seed)
    messages = ChatMessageService(db)
    read_state = ReadStateService(db)
    messages.send_message(seed.org_a, room.id, seed.alice, "@bob first")
    shown = messages.get_messages_with_mentions(seed.org_a, room.id, seed.bob)
    later = messages.send_message(seed.org_a, room.id, seed.alice, "@bob second")
    assert later.created_at > shown[-1]["created_at"]

    read_state.mark_as_read(seed.org_a, room.id, seed.bob, read_at=shown[-1]["created_at"])

    assert read_state.get_unread_count(seed.org_a, room.id, seed.bob) == 1
    assert read_state.get_user_unread_mentions(seed.org_a, seed.bob) == 1
    unread = db.query(ChatMention.message_id).filter(
        ChatMention.mentioned_user_id == seed.bob, ChatMention.read_at.is_(None)
    ).all()
    assert [row.message_id for row in unread] == [later.id]
