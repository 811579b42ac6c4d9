"""
SCD-Cohort — Модуль класифікації SCD (Severe Chronic Disease)

Визначає осіб з тяжкими хронічними захворюваннями за кодами ICD-10.
Результат визначає поділ популяції на кейси та контролі.

Компоненти:
- ScdCategory: система органів
- SeverityLevel: рівень тяжкості та евристики тяжкості
- categorize_diagnosis: класифікація одного коду
- apply_scd_algorithm / ScdClassifier: агрегація по особах

Приклад використання:
    from scd_cohort.scd import ScdClassifier, get_individuals_with_scd
    from scd_cohort.config import ScdConfig

    classifier = ScdClassifier(ScdConfig(start_date=date(2000, 1, 1)))
    results = classifier.classify_table(diagnoses_table, population_table)

    case_pnrs = get_individuals_with_scd(results)
    print(f"SCD: {len(case_pnrs)}")
"""

from .categories import ScdCategory
from .severity import (
    SeverityLevel,
    hospitalization_severity,
    category_severity,
    age_at_diagnosis_severity,
    combined_severity,
)
from .classifier import (
    ScdClassifier,
    normalize_code,
    categorize_diagnosis,
    apply_scd_algorithm,
    diagnoses_from_table,
    birth_dates_from_table,
    get_individuals_with_scd,
    get_individuals_by_category,
    get_individuals_by_severity,
)


__all__ = [
    "ScdCategory",
    "SeverityLevel",
    "hospitalization_severity",
    "category_severity",
    "age_at_diagnosis_severity",
    "combined_severity",
    "ScdClassifier",
    "normalize_code",
    "categorize_diagnosis",
    "apply_scd_algorithm",
    "diagnoses_from_table",
    "birth_dates_from_table",
    "get_individuals_with_scd",
    "get_individuals_by_category",
    "get_individuals_by_severity",
]
