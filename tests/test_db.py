"""Tests for the Supabase query layer (client replaced by a chaining mock)."""
from datetime import datetime, timezone
from unittest.mock import MagicMock, call, patch

import pytest

from pulse_recs import db
from pulse_recs.models import TagCategory

START = datetime(2025, 4, 2, 4, 0, tzinfo=timezone.utc)
END = datetime(2025, 4, 3, 4, 0, tzinfo=timezone.utc)

ROW = {
    "id": "e1",
    "title": "Dub Club",
    "start_at": "2025-04-02T23:00:00+00:00",
    "status": "SCHEDULED",
    "favorites_count": 4,
    "event_tags": [
        {"category": "genre", "value": "reggae"},
        {"category": "style", "value": "dub"},
        {"category": "public", "value": "18+"},
    ],
    "venues": {"neighborhood": "  mile   end "},
    "genre_filter": [{"category": "genre", "value": "reggae"}],
}


@pytest.fixture
def query() -> MagicMock:
    q = MagicMock()
    for name in ("table", "select", "in_", "gte", "lt", "eq", "order", "limit"):
        getattr(q, name).return_value = q
    q.execute.return_value = MagicMock(data=[ROW])
    with patch("pulse_recs.db.get_client", return_value=q):
        yield q


def test_candidate_events_without_filters(query: MagicMock) -> None:
    events = db.get_candidate_events(START, END, limit=50)

    query.table.assert_called_once_with("events")
    query.select.assert_called_once_with(db.EVENT_COLUMNS)
    query.eq.assert_not_called()
    query.lt.assert_called_once_with("start_at", END.isoformat())
    query.limit.assert_called_once_with(50)
    assert [e.id for e in events] == ["e1"]


def test_genre_filter_runs_inside_the_events_query(query: MagicMock) -> None:
    db.get_candidate_events(START, genre="reggae")

    (columns,), _ = query.select.call_args
    assert columns.startswith(db.EVENT_COLUMNS)
    assert "genre_filter:event_tags!inner(category, value)" in columns
    assert query.eq.call_args_list == [
        call("genre_filter.category", "genre"),
        call("genre_filter.value", "reggae"),
    ]
    # no id list is shipped in the query string
    assert all(c.args[0] != "id" for c in query.in_.call_args_list)
    query.lt.assert_not_called()


def test_genre_and_style_filters_use_separate_joins(query: MagicMock) -> None:
    db.get_candidate_events(START, END, genre="reggae", style="dub")

    (columns,), _ = query.select.call_args
    assert "genre_filter:event_tags!inner" in columns
    assert "style_filter:event_tags!inner" in columns
    assert call("style_filter.category", "style") in query.eq.call_args_list
    assert call("style_filter.value", "dub") in query.eq.call_args_list


def test_parse_event_keeps_scoring_tags(query: MagicMock) -> None:
    (event,) = db.get_candidate_events(START, genre="reggae")

    assert event.tag_values(TagCategory.GENRE) == ["reggae"]
    assert event.tag_values(TagCategory.STYLE) == ["dub"]
    assert len(event.tags) == 2
    assert event.neighborhood == "Mile End"
    assert event.favorites_count == 4
