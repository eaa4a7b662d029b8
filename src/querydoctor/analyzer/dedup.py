"""
Issue deduplication across analyzers.

Several analyzers can report the same underlying problem: a burst of
identical PK lookups is an N+1, a lazy load and a frequent query at once.
The deduplicator keeps one issue per dedup key and folds the origin
queries of the losers into the winner.

Dedup key: (family, identity)
    family    "repetition" for n_plus_one / lazy_loading / frequent_query,
              otherwise the issue type itself
    identity  issue.subject when set, else the smallest normalized
              signature among the origin queries, else the title

The result does not depend on the order candidates arrive in: they are
folded in a canonical order and the output is sorted by Issue.sort_key.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from querydoctor.analyzer.collections import IssueCollection
from querydoctor.analyzer.models import Issue
from querydoctor.analyzer.normalizer import QueryNormalizer

logger = logging.getLogger(__name__)

REPETITION_FAMILY = "repetition"

# Higher wins within the repetition family
FAMILY_PRIORITY: dict[str, int] = {
    "n_plus_one": 3,
    "lazy_loading": 2,
    "frequent_query": 1,
}


def issue_family(issue_type: str) -> str:
    return REPETITION_FAMILY if issue_type in FAMILY_PRIORITY else issue_type


class IssueDeduplicator:
    """
    Collapses issues that describe the same problem.

    Example:
        deduplicator = IssueDeduplicator()
        unique = deduplicator.deduplicate(IssueCollection(issues))
    """

    def __init__(self, normalizer: QueryNormalizer | None = None) -> None:
        self.normalizer = normalizer if normalizer is not None else QueryNormalizer()

    def dedup_key(self, issue: Issue) -> tuple[str, str]:
        family = issue_family(issue.type)
        if issue.subject:
            return family, issue.subject
        if issue.origin_queries:
            return family, min(self.normalizer.normalize(sql) for sql in issue.origin_queries)
        return family, issue.title

    def deduplicate(self, issues: Iterable[Issue]) -> IssueCollection:
        """Return one issue per dedup key, most severe first.

        Accepts an IssueCollection or any iterable of issues.
        """
        keyed = [(self.dedup_key(issue), issue) for issue in issues]
        keyed.sort(key=lambda pair: (pair[0], _canonical(pair[1])))

        winners: dict[tuple[str, str], Issue] = {}
        for key, issue in keyed:
            current = winners.get(key)
            if current is None:
                winners[key] = issue
                continue
            winners[key] = self._merge(current, issue)

        dropped = len(keyed) - len(winners)
        if dropped:
            logger.debug("Deduplication dropped %d of %d issues", dropped, len(keyed))

        return IssueCollection.from_issues(sorted(winners.values(), key=_canonical))

    @staticmethod
    def _merge(left: Issue, right: Issue) -> Issue:
        """Pick the stronger issue and give it the union of both origin sets."""
        winner, loser = (left, right) if _beats(left, right) else (right, left)
        merged = tuple(dict.fromkeys(winner.origin_queries + loser.origin_queries))
        if merged == winner.origin_queries:
            return winner
        return winner.model_copy(update={"origin_queries": merged})


def _beats(a: Issue, b: Issue) -> bool:
    """True when a should be kept over b."""
    priority_a = FAMILY_PRIORITY.get(a.type, 0)
    priority_b = FAMILY_PRIORITY.get(b.type, 0)
    if priority_a != priority_b:
        return priority_a > priority_b
    if a.severity != b.severity:
        return a.severity.rank < b.severity.rank
    if len(a.origin_queries) != len(b.origin_queries):
        return len(a.origin_queries) > len(b.origin_queries)
    return _canonical(a) <= _canonical(b)


def _canonical(issue: Issue) -> tuple[object, ...]:
    # sort_key plus metrics so that issues equal on sort_key still order stably
    return issue.sort_key + (tuple(sorted((k, float(v)) for k, v in issue.metrics.items())),)
