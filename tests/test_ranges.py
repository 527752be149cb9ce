import pytest

from textus.config import settings
from textus.datastore.base import MatchClause, RangeClause, query_matches
from textus.datastore.memory import InMemoryDocumentStore
from textus.exceptions import ContiguityError
from textus.text.chunking import split_text
from textus.text.ranges import (
    build_overlap_query,
    build_text_query,
    check_contiguity,
    reconstruct_range,
)

TEXT = "The quick brown fox jumps over the lazy dog while the cat watches quietly"

CHUNKS = [
    {"text": "The quick ", "start": 0, "end": 10},
    {"text": "brown fox ", "start": 10, "end": 20},
    {"text": "jumps", "start": 20, "end": 25},
]


def test_overlap_query_shape():
    query = build_overlap_query("t1", 10, 12, index="texts", size=50)
    assert query.must == [
        MatchClause("textId", "t1"),
        RangeClause("start", lt=12),
        RangeClause("end", gte=10),
    ]
    assert query.index == "texts"
    assert query.size == 50
    assert query.types is None


def test_overlap_query_defaults_from_settings():
    query = build_overlap_query("t1", 0, 5)
    assert query.index == settings.store_index
    assert query.size == settings.max_query_size


def test_text_query_matches_only_text_id():
    query = build_text_query("t1", index="texts")
    assert query.must == [MatchClause("textId", "t1")]


@pytest.mark.parametrize(
    "record,expected",
    [
        ({"textId": "t1", "start": 5, "end": 15}, True),
        ({"textId": "t1", "start": 0, "end": 5}, False),
        ({"textId": "t1", "start": 0, "end": 10}, True),
        ({"textId": "t1", "start": 12, "end": 20}, False),
        ({"textId": "t1", "start": 11, "end": 12}, True),
        ({"textId": "t2", "start": 5, "end": 15}, False),
        ({"textId": "t1", "start": 5}, False),
    ],
)
def test_overlap_predicate(record, expected):
    query = build_overlap_query("t1", 10, 12)
    assert query_matches(query, "text", record) is expected


def test_reconstruct_whole_window():
    result = reconstruct_range(0, 25, CHUNKS)
    assert result.text == "The quick brown fox jumps"
    assert (result.start, result.end) == (0, 25)


def test_reconstruct_unordered_partial_window():
    shuffled = [CHUNKS[2], CHUNKS[0], CHUNKS[1]]
    result = reconstruct_range(4, 19, shuffled)
    assert result.text == "quick brown fox"
    assert (result.start, result.end) == (4, 19)


def test_reconstruct_window_not_starting_at_first_chunk():
    result = reconstruct_range(12, 22, CHUNKS[1:])
    assert result.text == "own fox ju"


def test_reconstruct_unbounded_has_no_offsets():
    result = reconstruct_range(None, None, list(reversed(CHUNKS)))
    assert result.as_dict() == {"text": "The quick brown fox jumps"}


def test_reconstruct_empty_records():
    assert reconstruct_range(10, 20, []).as_dict() == {"text": "", "start": 0, "end": 0}
    assert reconstruct_range(None, None, []).as_dict() == {"text": "", "start": 0, "end": 0}


def test_reconstruct_rejects_half_open_request():
    with pytest.raises(ValueError):
        reconstruct_range(0, None, CHUNKS)


def test_gap_is_not_checked_by_default():
    gapped = [CHUNKS[0], CHUNKS[2]]
    result = reconstruct_range(0, 15, gapped)
    assert result.text == "The quick jumps"


def test_contiguity_check_reports_gap_and_overlap():
    with pytest.raises(ContiguityError):
        reconstruct_range(0, 15, [CHUNKS[0], CHUNKS[2]], verify_contiguity=True)
    overlapping = CHUNKS + [{"text": "fox", "start": 16, "end": 19}]
    with pytest.raises(ContiguityError):
        check_contiguity(overlapping)
    check_contiguity(CHUNKS)


def test_contiguity_check_requires_window_coverage():
    with pytest.raises(ContiguityError):
        check_contiguity(CHUNKS[1:], 0, 20)
    with pytest.raises(ContiguityError):
        check_contiguity(CHUNKS[:1], 0, 20)
    with pytest.raises(ContiguityError):
        reconstruct_range(5, 15, CHUNKS[1:2], verify_contiguity=True)
    check_contiguity(CHUNKS[:2], 3, 17)


@pytest.mark.asyncio
@pytest.mark.parametrize("window", [(0, len(TEXT)), (3, 17), (10, 11), (len(TEXT) - 1, len(TEXT))])
async def test_overlap_query_round_trip_through_store(window):
    store = InMemoryDocumentStore()
    for chunk in split_text([{"sequence": 0, "text": TEXT}], 10):
        await store.index("textus", "text", chunk.to_record("t1"))
    await store.index("textus", "text", {"textId": "other", "text": "noise", "start": 0, "end": 5})
    await store.refresh("textus")

    start, end = window
    hits = await store.search(build_overlap_query("t1", start, end, index="textus"))
    result = reconstruct_range(start, end, [hit.source for hit in hits])
    assert result.text == TEXT[start:end]
