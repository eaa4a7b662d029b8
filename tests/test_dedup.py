"""Tests for cross-analyzer issue deduplication."""

import itertools

from querydoctor.analyzer.collections import IssueCollection
from querydoctor.analyzer.dedup import IssueDeduplicator, issue_family
from querydoctor.analyzer.models import Issue, Severity


def make_issue(
    issue_type: str = "n_plus_one",
    severity: Severity = Severity.WARNING,
    queries: tuple[str, ...] = ("SELECT * FROM users WHERE id = 1",),
    subject: str | None = None,
    title: str | None = None,
) -> Issue:
    return Issue(
        type=issue_type,
        title=title or f"{issue_type} issue",
        severity=severity,
        origin_queries=queries,
        subject=subject,
    )


class TestIssueDeduplicator:
    """One issue per (family, identity)."""

    def test_repetition_family_keeps_n_plus_one(self):
        """N+1 wins over a frequent-query report of the same signature."""
        n_plus_one = make_issue(
            "n_plus_one",
            queries=("SELECT * FROM users WHERE id = 1", "SELECT * FROM users WHERE id = 2"),
        )
        frequent = make_issue(
            "frequent_query",
            severity=Severity.CRITICAL,
            queries=("SELECT * FROM users WHERE id = 3",),
        )

        unique = IssueDeduplicator().deduplicate([frequent, n_plus_one])

        assert len(unique) == 1
        assert unique[0].type == "n_plus_one"
        assert set(unique[0].origin_queries) == {
            "SELECT * FROM users WHERE id = 1",
            "SELECT * FROM users WHERE id = 2",
            "SELECT * FROM users WHERE id = 3",
        }

    def test_lazy_loading_beats_frequent_query(self):
        lazy = make_issue("lazy_loading")
        frequent = make_issue("frequent_query")

        unique = IssueDeduplicator().deduplicate([frequent, lazy])

        assert [i.type for i in unique] == ["lazy_loading"]

    def test_different_signatures_are_kept(self):
        users = make_issue(queries=("SELECT * FROM users WHERE id = 1",))
        orders = make_issue(queries=("SELECT * FROM orders WHERE id = 1",))

        assert len(IssueDeduplicator().deduplicate([users, orders])) == 2

    def test_subject_is_the_identity(self):
        first = make_issue("cascade_all", subject="Order.customer", queries=())
        second = make_issue("cascade_all", subject="Order.customer", queries=(), severity=Severity.CRITICAL)
        other = make_issue("cascade_all", subject="Order.items", queries=())

        unique = IssueDeduplicator().deduplicate([first, second, other])

        assert len(unique) == 2
        assert unique[0].severity == Severity.CRITICAL

    def test_types_outside_the_family_never_merge(self):
        slow = make_issue("slow_query")
        n_plus_one = make_issue("n_plus_one")

        assert len(IssueDeduplicator().deduplicate([slow, n_plus_one])) == 2

    def test_result_does_not_depend_on_input_order(self):
        issues = [
            make_issue("n_plus_one", queries=("SELECT * FROM users WHERE id = 1",)),
            make_issue("frequent_query", queries=("SELECT * FROM users WHERE id = 2",)),
            make_issue("slow_query", severity=Severity.CRITICAL, queries=("SELECT * FROM big",)),
            make_issue("lazy_loading", queries=("SELECT * FROM users WHERE id = 9",)),
            make_issue("find_all", subject="SELECT * FROM BIG", queries=("SELECT * FROM big",)),
        ]
        deduplicator = IssueDeduplicator()
        expected = deduplicator.deduplicate(issues).to_list()

        for permutation in itertools.permutations(issues):
            assert deduplicator.deduplicate(permutation).to_list() == expected

    def test_output_is_most_severe_first(self):
        issues = [
            make_issue("slow_query", severity=Severity.INFO, queries=("SELECT 1",)),
            make_issue("hydration", severity=Severity.CRITICAL, queries=("SELECT 2",)),
            make_issue("find_all", severity=Severity.WARNING, queries=("SELECT 3",)),
        ]

        unique = IssueDeduplicator().deduplicate(issues)

        assert [i.severity for i in unique] == [Severity.CRITICAL, Severity.WARNING, Severity.INFO]

    def test_issue_family(self):
        assert issue_family("lazy_loading") == "repetition"
        assert issue_family("slow_query") == "slow_query"

    def test_collection_in_collection_out(self):
        issues = IssueCollection.from_generator(
            make_issue("n_plus_one", queries=(f"SELECT * FROM users WHERE id = {i}",))
            for i in range(3)
        )

        unique = IssueDeduplicator().deduplicate(issues)

        assert isinstance(unique, IssueCollection)
        assert len(unique) == 1
        assert len(unique.first().origin_queries) == 3
