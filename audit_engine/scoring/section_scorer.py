"""
scoring/section_scorer.py

Aggregates checklist item responses into per-section scores.

Weighting:
    Yes        -> coefficient
    Partially  -> coefficient x 0.5
    No         -> 0
    NA, empty  -> excluded from both earned and max

    percentage = round(earned / max x 100, 1)  when max > 0, else 0

NA and unanswered items still count toward total_questions.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from audit_engine.models.audit import ItemResponse, SectionScoreRecord
from audit_engine.models.enumerations import SelectedChoice
from audit_engine.scoring.utils import POINTS_PLACES, ratio_percentage, to_decimal

logger = logging.getLogger(__name__)

CHOICE_WEIGHTS: Dict[SelectedChoice, Decimal] = {
    SelectedChoice.YES: Decimal("1"),
    SelectedChoice.PARTIALLY: Decimal("0.5"),
    SelectedChoice.NO: Decimal("0"),
}


@dataclass
class SectionScoreResult:
    """Output of SectionScorer for one section."""
    section_id: int
    section_name: str
    section_number: Optional[int]
    earned_points: Decimal     # quantized to 0.01
    max_points: Decimal        # quantized to 0.01
    percentage: Decimal        # [0, 100] quantized to 0.1, 0 when max is 0
    total_questions: int
    answered_questions: int
    na_questions: int

    @classmethod
    def unanswered(cls, section_id: int, section_name: str, section_number: Optional[int]) -> "SectionScoreResult":
        """Zero result for a catalog section with no responses."""
        return cls(
            section_id=section_id,
            section_name=section_name,
            section_number=section_number,
            earned_points=Decimal("0").quantize(POINTS_PLACES),
            max_points=Decimal("0").quantize(POINTS_PLACES),
            percentage=Decimal("0.0"),
            total_questions=0,
            answered_questions=0,
            na_questions=0,
        )

    @classmethod
    def from_record(cls, record: SectionScoreRecord) -> "SectionScoreResult":
        """Rebuild a result from a persisted snapshot row."""
        return cls(
            section_id=record.section_id,
            section_name=record.section_name,
            section_number=record.section_number,
            earned_points=to_decimal(record.earned_points, 2),
            max_points=to_decimal(record.max_points, 2),
            percentage=to_decimal(record.percentage, 1),
            total_questions=record.total_questions,
            answered_questions=record.answered_questions,
            na_questions=record.na_questions,
        )


def item_points(response: ItemResponse) -> Decimal:
    """Earned points for a single response (0 for NA and unanswered)."""
    weight = CHOICE_WEIGHTS.get(response.selected_choice, Decimal("0"))
    return Decimal(response.coefficient) * weight


class SectionScorer:
    """Calculate section-level earned/max/percentage from item responses."""

    def score_section(self, responses: List[ItemResponse]) -> SectionScoreResult:
        """
        Score the responses of a single section.

        Args:
            responses: Non-empty list of responses sharing one section_id

        Returns:
            SectionScoreResult

        Examples:
            >>> scorer = SectionScorer()
            >>> result = scorer.score_section(responses)  # 2xYes, 2xPartially, 2xNo, 2xNA
            >>> result.earned_points, result.max_points, result.percentage
            (Decimal('3.00'), Decimal('6.00'), Decimal('50.0'))
        """
        if not responses:
            raise ValueError("score_section requires at least one response")

        first = responses[0]
        earned = Decimal("0")
        maximum = Decimal("0")
        answered = 0
        na = 0

        for response in responses:
            choice = response.selected_choice
            if choice != SelectedChoice.UNANSWERED:
                answered += 1
            if choice == SelectedChoice.NA:
                na += 1
            if not choice.is_scored:
                continue
            maximum += Decimal(response.coefficient)
            earned += item_points(response)

        percentage = ratio_percentage(earned, maximum)

        return SectionScoreResult(
            section_id=first.section_id,
            section_name=first.section_name,
            section_number=first.section_number,
            earned_points=earned.quantize(POINTS_PLACES),
            max_points=maximum.quantize(POINTS_PLACES),
            percentage=percentage if percentage is not None else Decimal("0.0"),
            total_questions=len(responses),
            answered_questions=answered,
            na_questions=na,
        )

    def score_audit(self, responses: Iterable[ItemResponse]) -> List[SectionScoreResult]:
        """
        Group responses by section and score each group.

        Sections are ordered by section_number, then section_id.
        An empty input yields an empty list.
        """
        grouped: "OrderedDict[int, List[ItemResponse]]" = OrderedDict()
        for response in responses:
            grouped.setdefault(response.section_id, []).append(response)

        results = [self.score_section(group) for group in grouped.values()]
        results.sort(
            key=lambda r: (
                r.section_number if r.section_number is not None else 10**9,
                r.section_id,
            )
        )

        logger.debug(
            "sections_scored",
            extra={
                "section_count": len(results),
                "response_count": sum(r.total_questions for r in results),
            },
        )
        return results
