from milk_center.domain.events import EventChannel, EventName


def test_delivery_is_synchronous_in_registration_order():
    channel = EventChannel()
    seen: list[str] = []
    channel.subscribe(EventName.COLLECTION_UPDATED, lambda e: seen.append(f"first:{e.payload['id']}"))
    channel.subscribe(EventName.COLLECTION_UPDATED, lambda e: seen.append(f"second:{e.payload['id']}"))

    event = channel.emit(EventName.COLLECTION_UPDATED, {"id": "c1"})

    assert seen == ["first:c1", "second:c1"]
    assert event.name is EventName.COLLECTION_UPDATED


def test_unsubscribe_and_no_replay():
    channel = EventChannel()
    seen: list[str] = []
    channel.emit(EventName.USER_UPDATED, {"userId": "early"})

    unsubscribe = channel.subscribe(EventName.USER_UPDATED, lambda e: seen.append(e.payload["userId"]))
    channel.emit(EventName.USER_UPDATED, {"userId": "f1"})
    unsubscribe()
    channel.emit(EventName.USER_UPDATED, {"userId": "f2"})

    assert seen == ["f1"]
    assert channel.subscribers(EventName.USER_UPDATED) == 0


def test_failing_subscriber_does_not_block_others():
    channel = EventChannel()
    seen: list[str] = []

    def broken(event):
        raise RuntimeError("boom")

    channel.subscribe(EventName.DATA_REFRESH_NEEDED, broken)
    channel.subscribe(EventName.DATA_REFRESH_NEEDED, lambda e: seen.append("ok"))
    channel.emit(EventName.DATA_REFRESH_NEEDED)

    assert seen == ["ok"]


def test_events_are_scoped_by_name():
    channel = EventChannel()
    seen: list[str] = []
    channel.subscribe(EventName.USER_DELETED, lambda e: seen.append("deleted"))

    channel.emit(EventName.USER_DEACTIVATED, {"userId": "f1"})

    assert seen == []
