"""Consolidation of provider candidates into de-duplicated company records.

Candidates from every provider are grouped by normalized domain. Within a
group the first candidate (in input order) with a non-empty value wins each
field, sources are unioned, and the best relevance score is the maximum
reported score. Records below the relevance floor are dropped and the rest
are ordered by score, highest first, ties in first-seen order.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable

from navigator.models import CompanyCandidate, CompanyRecord
from navigator.services.domain import normalize_domain

logger = logging.getLogger(__name__)

MERGED_FIELDS: tuple[str, ...] = (
    "name",
    "industry",
    "region",
    "employee_count",
    "description",
    "website",
)


def _has_value(value: Any) -> bool:
    """Check whether a field value carries information."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, int):
        # Providers report an unknown headcount as 0
        return value > 0
    return True


@dataclass
class _CompanyGroup:
    """Accumulates every candidate that resolved to one normalized domain."""
    normalized_domain: str
    fields: dict[str, Any] = field(default_factory=dict)
    sources: list[str] = field(default_factory=list)
    best_relevance_score: float | None = None
    exact_match: bool = False

    def add(self, candidate: CompanyCandidate) -> None:
        for name in MERGED_FIELDS:
            if name in self.fields:
                continue
            value = getattr(candidate, name)
            if _has_value(value):
                self.fields[name] = value

        if candidate.source_tag not in self.sources:
            self.sources.append(candidate.source_tag)

        score = candidate.relevance_score
        if score is not None and math.isfinite(score):
            if self.best_relevance_score is None or score > self.best_relevance_score:
                self.best_relevance_score = score

        self.exact_match = self.exact_match or candidate.exact_match

    def to_record(self) -> CompanyRecord:
        fields = dict(self.fields)
        fields.setdefault("name", self.normalized_domain)
        return CompanyRecord(
            normalized_domain=self.normalized_domain,
            sources=list(self.sources),
            best_relevance_score=self.best_relevance_score,
            exact_match=self.exact_match,
            **fields,
        )


def _sort_key(record: CompanyRecord) -> tuple[bool, float]:
    # Unscored records sort after every scored one
    if record.best_relevance_score is None:
        return (True, 0.0)
    return (False, -record.best_relevance_score)


def consolidate(
    candidates: Iterable[CompanyCandidate],
    relevance_floor: float = 0.0,
) -> list[CompanyRecord]:
    """Merge provider candidates into one record per normalized domain.

    Pure and deterministic for a given input order.

    Args:
        candidates: Candidates from all providers, in the order they were
            collected. Earlier candidates win field conflicts.
        relevance_floor: Records whose best relevance score is below this are
            dropped. Records with no score at all are kept. A floor of 0
            disables filtering; a negative floor still drops scores below it.

    Returns:
        Consolidated records, highest relevance first.
    """
    groups: dict[str, _CompanyGroup] = {}
    total = 0

    for candidate in candidates:
        total += 1
        key = normalize_domain(candidate.domain)
        if not key:
            logger.debug(f"Skipping {candidate.source_tag} candidate without a usable domain")
            continue

        group = groups.get(key)
        if group is None:
            group = _CompanyGroup(normalized_domain=key)
            groups[key] = group
        group.add(candidate)

    records = [group.to_record() for group in groups.values()]

    if relevance_floor != 0:
        kept = [
            r for r in records
            if r.best_relevance_score is None or r.best_relevance_score >= relevance_floor
        ]
        dropped = len(records) - len(kept)
        if dropped:
            logger.info(f"Dropped {dropped} companies below relevance floor {relevance_floor}")
        records = kept

    # sorted() is stable, so equal scores keep first-seen order
    records = sorted(records, key=_sort_key)

    logger.info(f"Consolidated {total} candidates into {len(records)} companies")
    return records
