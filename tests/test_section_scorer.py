"""
Section Scorer Tests
tests/test_section_scorer.py
"""

from decimal import Decimal

import pytest

from audit_engine.models.audit import SectionScoreRecord
from audit_engine.models.enumerations import SelectedChoice
from audit_engine.scoring.section_scorer import SectionScoreResult, SectionScorer, item_points
from tests.conftest import make_responses


class TestScoreSection:

    def test_scenario_a(self):
        """One each of Yes / Partially / No / NA at coefficient 2."""
        responses = make_responses(1, 1, ["Yes", "Partially", "No", "NA"])
        result = SectionScorer().score_section(responses)

        assert result.earned_points == Decimal("3.00")
        assert result.max_points == Decimal("6.00")
        assert result.percentage == Decimal("50.0")

    def test_question_counts(self):
        responses = make_responses(1, 1, ["Yes", "Partially", "No", "NA", ""])
        result = SectionScorer().score_section(responses)

        assert result.total_questions == 5
        assert result.answered_questions == 4
        assert result.na_questions == 1

    def test_all_na_section_scores_zero_not_none(self):
        responses = make_responses(1, 1, ["NA", "NA", "NA"])
        result = SectionScorer().score_section(responses)

        assert result.max_points == Decimal("0")
        assert result.earned_points == Decimal("0")
        assert result.percentage == Decimal("0.0")
        assert result.percentage is not None

    def test_unanswered_excluded_from_ratio(self):
        responses = make_responses(1, 1, ["Yes", "", ""])
        result = SectionScorer().score_section(responses)

        assert result.max_points == Decimal("2.00")
        assert result.percentage == Decimal("100.0")
        assert result.answered_questions == 1

    def test_percentage_rounds_half_up(self):
        # 0.5 / 3 -> 16.66.. -> 16.7
        responses = make_responses(1, 1, ["Partially", "No", "No"], coefficient=1)
        result = SectionScorer().score_section(responses)

        assert result.earned_points == Decimal("0.50")
        assert result.max_points == Decimal("3.00")
        assert result.percentage == Decimal("16.7")

    def test_mixed_coefficients(self):
        responses = make_responses(1, 1, ["Yes"], coefficient=3) + make_responses(1, 1, ["No"], coefficient=1)
        result = SectionScorer().score_section(responses)

        assert result.earned_points == Decimal("3.00")
        assert result.max_points == Decimal("4.00")
        assert result.percentage == Decimal("75.0")

    def test_empty_input_rejected(self):
        with pytest.raises(ValueError):
            SectionScorer().score_section([])


class TestScoreAudit:

    def test_groups_and_orders_sections(self):
        responses = (
            make_responses(1, 3, ["Yes"])
            + make_responses(1, 1, ["No"])
            + make_responses(1, 2, ["Partially"])
        )
        results = SectionScorer().score_audit(responses)

        assert [r.section_id for r in results] == [1, 2, 3]
        assert [r.section_name for r in results] == ["Storage", "Hygiene", "Pest Control"]

    def test_empty_audit_has_no_sections(self):
        assert SectionScorer().score_audit([]) == []


class TestItemPoints:

    @pytest.mark.parametrize(
        "choice,expected",
        [("Yes", Decimal("4")), ("Partially", Decimal("2.0")), ("No", Decimal("0")),
         ("NA", Decimal("0")), ("", Decimal("0"))],
    )
    def test_weights(self, choice, expected):
        response = make_responses(1, 1, [choice], coefficient=4)[0]
        assert item_points(response) == expected


class TestFromRecord:

    def test_snapshot_row_round_trip(self):
        record = SectionScoreRecord(
            audit_id=5,
            section_id=2,
            section_number=2,
            section_name="Hygiene",
            earned_points=3.0,
            max_points=4.0,
            percentage=75.0,
            total_questions=2,
            answered_questions=2,
            na_questions=0,
        )
        result = SectionScoreResult.from_record(record)

        assert result.earned_points == Decimal("3.00")
        assert result.max_points == Decimal("4.00")
        assert result.percentage == Decimal("75.0")
        assert result.section_name == "Hygiene"

    def test_choice_enum_on_responses(self):
        response = make_responses(1, 1, ["yes"])[0]
        assert response.selected_choice is SelectedChoice.YES
