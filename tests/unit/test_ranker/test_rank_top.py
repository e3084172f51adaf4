"""Unit tests for one-shot ranking."""

from tests.helpers.items import make_item
from tests.helpers.time import FIXED_NOW
from v2ex_digest.ranker.ranker import normalize_nodes, rank_top


class TestNormalizeNodes:
    """Tests for normalize_nodes."""

    def test_lowercases(self) -> None:
        """Should lower-case node names."""
        assert normalize_nodes(["Python", "GO"]) == frozenset({"python", "go"})


class TestRankTop:
    """Tests for rank_top."""

    def test_sorted_descending(self) -> None:
        """Should return the best score first."""
        items = [
            make_item("1", replies=5),
            make_item("2", replies=50),
            make_item("3", replies=20),
        ]
        result = rank_top(items, 10, FIXED_NOW)
        assert [r.item.id for r in result] == ["2", "3", "1"]

    def test_truncates_to_top_n(self) -> None:
        """Should return at most top_n items."""
        items = [make_item(str(i), replies=10 + i) for i in range(8)]
        assert len(rank_top(items, 3, FIXED_NOW)) == 3

    def test_dedupes_keeping_first(self) -> None:
        """Should keep the first occurrence of a duplicated id."""
        items = [
            make_item("1", replies=10, title="first"),
            make_item("1", replies=99, title="second"),
        ]
        result = rank_top(items, 10, FIXED_NOW)
        assert len(result) == 1
        assert result[0].item.title == "first"

    def test_skip_ids_excluded(self) -> None:
        """Should drop ids listed in skip_ids."""
        items = [make_item("1"), make_item("2")]
        result = rank_top(items, 10, FIXED_NOW, skip_ids={"1"})
        assert [r.item.id for r in result] == ["2"]

    def test_excluded_nodes_case_insensitive(self) -> None:
        """Should drop items from excluded nodes regardless of case."""
        items = [
            make_item("1", node_name="Promotions"),
            make_item("2", node_name="python"),
        ]
        result = rank_top(items, 10, FIXED_NOW, exclude_nodes=["promotions"])
        assert [r.item.id for r in result] == ["2"]

    def test_zero_scores_dropped(self) -> None:
        """Should drop items that score zero."""
        items = [make_item("1", replies=0), make_item("2", replies=1), make_item("3")]
        result = rank_top(items, 10, FIXED_NOW)
        assert [r.item.id for r in result] == ["3"]

    def test_ties_keep_input_order(self) -> None:
        """Should keep input order among equal scores."""
        items = [make_item(str(i), replies=10) for i in range(5)]
        result = rank_top(items, 10, FIXED_NOW)
        assert [r.item.id for r in result] == ["0", "1", "2", "3", "4"]

    def test_empty_input(self) -> None:
        """Should return an empty list for no items."""
        assert rank_top([], 5, FIXED_NOW) == []

    def test_non_positive_top_n(self) -> None:
        """Should return an empty list when top_n is zero."""
        assert rank_top([make_item()], 0, FIXED_NOW) == []
