import threading

import pytest
from sqlalchemy.exc import OperationalError

from models import ChatMention, ChatMessage, ChatRoom
from services import ChatRoomService, ChatMessageService, ReadStateService, extract_mentions
from utils.exceptions import ResourceNotFoundException, ValidationException


@pytest.mark.parametrize(
    "content, expected",
    [
        ("hi @bob", ["bob"]),
        ("@bob and @carol, then @bob again", ["bob", "carol"]),
        ("mail alice@acme.test please", []),
        ("(@carol_2)", ["carol_2"]),
        ("no mentions here", []),
        ("@ alone", []),
    ],
)
def test_extract_mentions(content, expected) -> None:
    assert extract_mentions(content) == expected


def test_room_is_created_once_per_project(db, seed) -> None:
    service = ChatRoomService(db)
    room = service.get_or_create_room(seed.org_a, seed.p1)
    again = service.get_or_create_room(seed.org_a, seed.p1)

    assert room.id.startswith("CR_")
    assert room.id == again.id
    assert room.name == "Project Chat"


def test_room_for_other_org_project_is_not_found(db, seed) -> None:
    with pytest.raises(ResourceNotFoundException):
        ChatRoomService(db).get_or_create_room(seed.org_a, seed.p3)


def test_concurrent_first_access_creates_single_room(session_factory, db, seed) -> None:
    barrier = threading.Barrier(8)
    room_ids = []
    errors = []

    def worker() -> None:
        session = session_factory()
        try:
            barrier.wait()
            room_ids.append(ChatRoomService(session).get_or_create_room(seed.org_a, seed.p1).id)
        except Exception as e:  # noqa: BLE001
            errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(set(room_ids)) == 1
    assert db.query(ChatRoom).filter(ChatRoom.project_id == seed.p1).count() == 1


def test_send_message_records_mentions(db, seed) -> None:
    room = ChatRoomService(db).get_or_create_room(seed.org_a, seed.p1)

    message = ChatMessageService(db).send_message(
        seed.org_a, room.id, seed.alice, "  @bob @carol @dave @ghost @alice review please  "
    )

    assert message.content == "@bob @carol @dave @ghost @alice review please"
    mentioned = {
        m.mentioned_user_id for m in db.query(ChatMention).filter(ChatMention.message_id == message.id)
    }
    # dave 属于其他组织，ghost 不存在，作者自己不记录
    assert mentioned == {seed.bob, seed.carol}


def test_send_empty_message_is_rejected(db, seed) -> None:
    room = ChatRoomService(db).get_or_create_room(seed.org_a, seed.p1)

    with pytest.raises(ValidationException):
        ChatMessageService(db).send_message(seed.org_a, room.id, seed.alice, "   ")


def test_send_to_other_org_room_is_not_found(db, seed) -> None:
    room = ChatRoomService(db).get_or_create_room(seed.org_b, seed.p3)

    with pytest.raises(ResourceNotFoundException):
        ChatMessageService(db).send_message(seed.org_a, room.id, seed.alice, "hello")


def test_replying_clears_authors_own_mentions(db, seed) -> None:
    room = ChatRoomService(db).get_or_create_room(seed.org_a, seed.p1)
    service = ChatMessageService(db)
    read_state = ReadStateService(db)

    service.send_message(seed.org_a, room.id, seed.alice, "@bob ping")
    assert read_state.get_user_unread_mentions(seed.org_a, seed.bob) == 1

    service.send_message(seed.org_a, room.id, seed.bob, "on it")
    assert read_state.get_user_unread_mentions(seed.org_a, seed.bob) == 0


def test_messages_carry_mention_flags(db, seed) -> None:
    room = ChatRoomService(db).get_or_create_room(seed.org_a, seed.p1)
    service = ChatMessageService(db)
    first = service.send_message(seed.org_a, room.id, seed.alice, "@bob look")
    second = service.send_message(seed.org_a, room.id, seed.alice, "general note")

    messages = service.get_messages_with_mentions(seed.org_a, room.id, seed.bob)

    assert [m["id"] for m in messages] == [first.id, second.id]
    assert messages[0]["mentions_me"] is True
    assert messages[0]["mention_read"] is False
    assert messages[0]["mentioned_user_ids"] == [seed.bob]
    assert messages[0]["author_name"] == "Alice"
    assert messages[1]["mentions_me"] is False
    assert messages[1]["mention_read"] is None


def test_message_listing_keeps_latest_in_order(db, seed) -> None:
    room = ChatRoomService(db).get_or_create_room(seed.org_a, seed.p1)
    service = ChatMessageService(db)
    sent = [service.send_message(seed.org_a, room.id, seed.alice, f"msg {i}").id for i in range(5)]

    messages = service.get_messages_with_mentions(seed.org_a, room.id, seed.bob, limit=3)

    assert [m["id"] for m in messages] == sent[-3:]


def test_self_mention_creates_no_rows(db, seed) -> None:
    room = ChatRoomService(db).get_or_create_room(seed.org_a, seed.p1)

    message = ChatMessageService(db).send_message(seed.org_a, room.id, seed.alice, "note to @alice")

    assert db.query(ChatMention).filter(ChatMention.message_id == message.id).count() == 0


def test_mention_scenario_by_project(db, seed) -> None:
    room = ChatRoomService(db).get_or_create_room(seed.org_a, seed.p1)
    ChatMessageService(db).send_message(seed.org_a, room.id, seed.alice, "hello @bob")
    read_state = ReadStateService(db)

    assert read_state.get_user_mentions_by_project(seed.org_a, seed.bob) == [
        {"project_id": seed.p1, "project_name": "Apollo", "mention_count": 1}
    ]
    read_state.mark_all_room_mentions_as_read(seed.org_a, room.id, seed.bob)
    assert read_state.get_user_mentions_by_project(seed.org_a, seed.bob) == []


def test_concurrent_senders_share_new_room(session_factory, db, seed) -> None:
    barrier = threading.Barrier(6)
    room_ids = []
    errors = []

    def worker(author_id: str, n: int) -> None:
        session = session_factory()
        try:
            barrier.wait()
            room = ChatRoomService(session).get_or_create_room(seed.org_a, seed.p2)
            message = ChatMessageService(session).send_message(seed.org_a, room.id, author_id, f"@bob ping {n}")
            room_ids.append(message.room_id)
        except Exception as e:  # noqa: BLE001
            errors.append(e)
        finally:
            session.close()

    authors = [seed.alice, seed.carol] * 3
    threads = [threading.Thread(target=worker, args=(author, n)) for n, author in enumerate(authors)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(set(room_ids)) == 1
    assert db.query(ChatRoom).filter(ChatRoom.project_id == seed.p2).count() == 1
    assert db.query(ChatMention).filter(ChatMention.mentioned_user_id == seed.bob).count() == 6


def test_failed_mention_write_rolls_back_message(db, seed, monkeypatch) -> None:
    room = ChatRoomService(db).get_or_create_room(seed.org_a, seed.p1)
    service = ChatMessageService(db)
    service.send_message(seed.org_a, room.id, seed.bob, "@alice earlier")

    def failing_insert(*args, **kwargs):
        raise OperationalError("INSERT INTO chat_mentions", {}, Exception("disk I/O error"))

    monkeypatch.setattr("services.chat_service.insert_ignore", failing_insert)
    with pytest.raises(OperationalError):
        service.send_message(seed.org_a, room.id, seed.alice, "@bob this should vanish")

    assert db.query(ChatMessage).filter(ChatMessage.room_id == room.id).count() == 1
    assert db.query(ChatMention).filter(ChatMention.mentioned_user_id == seed.bob).count() == 0
    # 作者自己的未读提及保持不变
    assert ReadStateService(db).get_user_unread_mentions(seed.org_a, seed.alice) == 1
