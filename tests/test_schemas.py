"""
Тести для Pydantic схем

Запуск: pytest tests/test_schemas.py -v
Або демо: python tests/test_schemas.py
"""

import json
from datetime import date

import pytest
from pydantic import ValidationError


def test_matched_pair():
    """Тест MatchedPair"""
    from scd_cohort.schemas import MatchedPair

    pair = MatchedPair(
        case_pnr=" 0101101234 ",
        case_birth_date=date(2010, 1, 1),
        control_pnr="0501105678",
        control_birth_date=date(2009, 12, 20),
        match_date=date(2024, 1, 1),
    )
    assert pair.case_pnr == "0101101234"
    assert pair.birth_date_difference_days == 12

    print(f"✓ MatchedPair: {pair.case_pnr} ↔ {pair.control_pnr}")


def test_matched_pair_validation():
    """Тест валідації MatchedPair"""
    from scd_cohort.schemas import MatchedPair

    with pytest.raises(ValidationError):
        MatchedPair(
            case_pnr="P1",
            case_birth_date=date(2010, 1, 1),
            control_pnr="P1",
            control_birth_date=date(2010, 1, 1),
            match_date=date(2024, 1, 1),
        )

    with pytest.raises(ValidationError):
        MatchedPair(
            case_pnr="",
            case_birth_date=date(2010, 1, 1),
            control_pnr="P2",
            control_birth_date=date(2010, 1, 1),
            match_date=date(2024, 1, 1),
        )

    print("✓ Self-match rejected")


def test_matching_summary_json():
    """Тест MatchingSummary та серіалізації"""
    from scd_cohort.schemas import MatchingSummary

    summary = MatchingSummary(
        total_cases=10,
        matched_cases=8,
        unmatched_cases=2,
        matched_controls=30,
        match_rate=0.8,
        matching_ratio=4,
    )
    assert summary.match_rate_percent == 80.0

    data = json.loads(summary.model_dump_json())
    assert data["matched_controls"] == 30
    assert data["matching_ratio"] == 4

    with pytest.raises(ValidationError):
        MatchingSummary(
            total_cases=1, matched_cases=1, unmatched_cases=0,
            matched_controls=1, match_rate=1.5,
        )


def test_summary_from_result():
    """Тест MatchingResult.to_summary"""
    from scd_cohort.matching import GroupMatches, MatchingResult

    matches = GroupMatches()
    matches.add_match(0, [3, 4])
    matches.add_match(2, [1])
    matches.add_unmatched(1)

    result = MatchingResult.from_matches(matches, total_case_count=3, matching_time=0.5)
    summary = result.to_summary()

    assert summary.matched_cases == 2
    assert summary.unmatched_cases == 1
    assert summary.matched_controls == 3
    assert summary.min_controls_per_case == 1
    assert summary.max_controls_per_case == 2
    assert summary.mean_controls_per_case == pytest.approx(1.5)
    assert summary.match_rate == pytest.approx(2 / 3)

    assert [(c, list(r)) for c, r in result.iter_matches()] == [(0, [3, 4]), (2, [1])]
    assert list(result.case_rows_per_control()) == [0, 0, 2]

    empty = MatchingResult.empty()
    assert empty.to_summary().total_cases == 0
    assert empty.match_rate == 0.0


def test_diagnosis_and_scd_result():
    """Тест Diagnosis та ScdResult"""
    from scd_cohort.schemas import Diagnosis, ScdResult

    diagnosis = Diagnosis(pnr="P1", code=" de84 ", diagnosis_date=date(2012, 5, 3))
    assert diagnosis.code == "DE84"

    result = ScdResult(pnr="P1")
    result.add_scd_diagnosis(diagnosis, category=3, is_congenital=False, severity=3)
    result.add_scd_diagnosis(
        Diagnosis(pnr="P1", code="J45", diagnosis_date=date(2011, 1, 1)),
        category=6, is_congenital=False, severity=1,
    )
    result.add_scd_diagnosis(
        Diagnosis(pnr="P1", code="E84"), category=3, is_congenital=False, severity=3,
    )

    assert result.has_scd
    assert result.first_scd_date == date(2011, 1, 1)
    assert result.scd_categories == [3, 6]
    assert result.max_severity == 3
    assert len(result.scd_diagnoses) == 3


def demo():
    print("=" * 50)
    print("SCD-Cohort — Тест схем")
    print("=" * 50)

    test_matched_pair()
    test_matched_pair_validation()
    test_summary_from_result()

    print("=" * 50)
    print("✅ Успішно!")


if __name__ == "__main__":
    demo()
