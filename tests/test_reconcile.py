import random

from app.dashboard.reconcile import (
    BookmarkRecord,
    contains_id,
    index_of,
    prepend,
    prepend_if_absent,
    remove_id,
    replace_all,
    restore_at,
)


def _record(record_id, created_at=""):
    return BookmarkRecord(
        id=record_id,
        url=f"https://example.com/{record_id}",
        title=f"Item {record_id}",
        created_at=created_at,
    )


def test_from_payload_tolerates_missing_optional_fields():
    record = BookmarkRecord.from_payload({"id": "abc"})

    assert record.id == "abc"
    assert (record.url, record.title, record.created_at, record.user_id) == (
        "",
        "",
        "",
        None,
    )


def test_replace_all_discards_previous_contents():
    previous = [_record(1), _record(2), _record(3)]

    result = replace_all([_record(9)])

    assert [item.id for item in result] == [9]
    assert [item.id for item in previous] == [1, 2, 3]


def test_prepend_does_not_resort_by_timestamp():
    current = [_record(2, "2024-01-02"), _record(1, "2024-01-01")]

    result = prepend(current, _record(0, "2023-12-31"))

    assert [item.id for item in result] == [0, 2, 1]


def test_prepend_if_absent_keeps_single_entry():
    current = [_record(1)]

    assert [item.id for item in prepend_if_absent(current, _record(1))] == [1]
    assert [item.id for item in prepend_if_absent(current, _record(2))] == [2, 1]


def test_remove_id_drops_every_match_and_ignores_unknown():
    current = [_record(2), _record(2), _record(1)]

    assert [item.id for item in remove_id(current, 2)] == [1]
    assert remove_id(current, 42) == current


def test_restore_at_clamps_index_and_skips_present_ids():
    current = [_record(1), _record(3)]

    assert [item.id for item in restore_at(current, _record(2), 1)] == [1, 2, 3]
    assert [item.id for item in restore_at(current, _record(4), 10)] == [1, 3, 4]
    assert restore_at(current, _record(3), 0) == current


def test_index_and_contains():
    current = [_record("a"), _record("b")]

    assert index_of(current, "b") == 1
    assert index_of(current, "z") is None
    assert contains_id(current, "a")
    assert not contains_id(current, "z")


def test_event_sequences_yield_fetched_plus_inserted_minus_deleted():
    rng = random.Random(20240601)
    for _ in range(50):
        fetched_ids = rng.sample(range(0, 100), rng.randint(0, 10))
        state = replace_all(_record(record_id) for record_id in fetched_ids)
        expected = set(fetched_ids)
        next_id = 1000

        for _ in range(rng.randint(0, 30)):
            if expected and rng.random() < 0.4:
                victim = rng.choice(sorted(expected))
                state = remove_id(state, victim)
                expected.discard(victim)
            else:
                state = prepend(state, _record(next_id))
                expected.add(next_id)
                next_id += 1

        ids = [item.id for item in state]
        assert len(ids) == len(set(ids))
        assert set(ids) == expected
