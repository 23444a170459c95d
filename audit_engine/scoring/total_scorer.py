"""
scoring/total_scorer.py

Aggregates section scores into an audit-level total.

Formula:
    total = sum(earned of included sections) / sum(max of included sections) x 100

The original total includes every section; the adjusted total skips the
sections currently marked as excluded. A zero denominator yields None.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import AbstractSet, Iterable, List, Optional

from audit_engine.models.audit import ItemResponse
from audit_engine.scoring.section_scorer import SectionScoreResult, SectionScorer
from audit_engine.scoring.utils import ratio_percentage

logger = logging.getLogger(__name__)


@dataclass
class TotalScoreResult:
    """Output of TotalScorer.calculate_both()."""
    original_total: Optional[Decimal]   # all sections, quantized to 0.1
    adjusted_total: Optional[Decimal]   # excluded sections removed, quantized to 0.1
    excluded_count: int


class TotalScorer:
    """Calculate audit totals from section scores."""

    def __init__(self, section_scorer: Optional[SectionScorer] = None):
        self.section_scorer = section_scorer or SectionScorer()

    def calculate(
        self,
        sections: Iterable[SectionScoreResult],
        excluded_section_ids: AbstractSet[int] = frozenset(),
    ) -> Optional[Decimal]:
        """
        Weighted total over the sections not in excluded_section_ids.

        Returns:
            Percentage rounded to one decimal, or None if the included
            sections carry no scorable points.
        """
        earned = Decimal("0")
        maximum = Decimal("0")
        for section in sections:
            if section.section_id in excluded_section_ids:
                continue
            earned += section.earned_points
            maximum += section.max_points
        return ratio_percentage(earned, maximum)

    def calculate_both(
        self,
        sections: List[SectionScoreResult],
        excluded_section_ids: AbstractSet[int],
    ) -> TotalScoreResult:
        present = {s.section_id for s in sections}
        result = TotalScoreResult(
            original_total=self.calculate(sections),
            adjusted_total=self.calculate(sections, excluded_section_ids),
            excluded_count=len(present & set(excluded_section_ids)),
        )
        logger.debug(
            "totals_calculated",
            extra={
                "original_total": result.original_total,
                "adjusted_total": result.adjusted_total,
                "excluded_count": result.excluded_count,
            },
        )
        return result

    def live_estimate(self, responses: Iterable[ItemResponse]) -> Optional[Decimal]:
        """
        Running score of an in-progress audit, computed without persisting.

        Goes through the same SectionScorer as audit completion so the estimate
        always equals the total a completion run would store.
        """
        return self.calculate(self.section_scorer.score_audit(responses))
