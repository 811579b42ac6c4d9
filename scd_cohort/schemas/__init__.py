"""
SCD-Cohort — Модуль схем даних (schemas)

Pydantic моделі для валідації та серіалізації даних.

Компоненти:
- matching.py: MatchedPair, MatchingSummary
- scd.py: Diagnosis, ScdResult

Приклад використання:
    from scd_cohort.schemas import MatchedPair, MatchingSummary

    pair = MatchedPair(
        case_pnr="0101101234",
        case_birth_date=date(2010, 1, 1),
        control_pnr="0501105678",
        control_birth_date=date(2010, 1, 5),
        match_date=date(2024, 1, 1),
    )

    # Серіалізація в JSON
    json_data = pair.model_dump_json()
"""

from .matching import MatchedPair, MatchingSummary
from .scd import Diagnosis, ScdResult


__all__ = [
    "MatchedPair",
    "MatchingSummary",
    "Diagnosis",
    "ScdResult",
]
