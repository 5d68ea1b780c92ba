"""Tests for confidence rating rules."""

from datetime import datetime
from types import SimpleNamespace

import pytest

from app.core.confidence import AFTER_LEARNING, add_rating, get_trend
from app.core.errors import ValidationError

NOW = datetime(2024, 4, 2, 9, 30)


def _record():
    return SimpleNamespace(
        ratings=[],
        current_confidence=None,
        needs_review=False,
        review_count=0,
        last_reviewed=None,
    )


class TestAddRating:
    def test_updates_derived_fields(self):
        record = _record()
        rating = add_rating(record, 2, "shaky", AFTER_LEARNING, NOW, rating_factory=SimpleNamespace)

        assert record.ratings == [rating]
        assert rating.sequence == 1
        assert rating.context == AFTER_LEARNING
        assert record.current_confidence == 2
        assert record.needs_review is True
        assert record.review_count == 1
        assert record.last_reviewed == NOW

    def test_second_rating_clears_review_flag(self):
        record = _record()
        add_rating(record, 2, "", "", NOW, rating_factory=SimpleNamespace)
        second = add_rating(record, 4, "", "", NOW, rating_factory=SimpleNamespace)

        assert second.sequence == 2
        assert second.context == "general"
        assert record.needs_review is False
        assert record.review_count == 2

    @pytest.mark.parametrize("score", [0, 6, None])
    def test_rejects_out_of_range(self, score):
        record = _record()
        with pytest.raises(ValidationError):
            add_rating(record, score, "", "", NOW, rating_factory=SimpleNamespace)
        assert record.ratings == []


class TestTrend:
    def test_insufficient(self):
        assert get_trend([]) == "insufficient_data"
        assert get_trend([3]) == "insufficient_data"

    def test_improving(self):
        assert get_trend([1, 2, 4]) == "improving"

    def test_declining_uses_last_three(self):
        assert get_trend([1, 5, 4, 3]) == "declining"

    def test_stable(self):
        assert get_trend([5, 1, 3, 2, 3]) == "stable"
