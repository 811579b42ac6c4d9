"""
SCD-Cohort — Класифікація тяжких хронічних захворювань (SCD)

Визначає, чи має особа SCD, за кодами ICD-10 з реєстру госпіталізацій.

Pipeline:
1. Таблиця діагнозів → список Diagnosis
2. Кожен код → (категорія, вроджене, тяжкість) за таблицею префіксів
3. Фільтри: вікно дат, вік на момент діагнозу, вроджені вади
4. Агрегація по PNR → ScdResult

Результат використовується для поділу популяції на кейси та контролі.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

import numpy as np

from scd_cohort.config import ColumnNames, ScdConfig
from scd_cohort.io import column_to_dates, column_to_strings, get_column
from scd_cohort.schemas import Diagnosis, ScdResult
from .categories import ScdCategory
from .severity import SeverityLevel


logger = logging.getLogger(__name__)

Classification = Tuple[ScdCategory, bool, SeverityLevel]


# =============================================================================
# ICD-10 RULES
# =============================================================================

def _codes(letter: str, *numbers: int) -> FrozenSet[str]:
    return frozenset(f"{letter}{n:02d}" for n in numbers)


def _span(letter: str, first: int, last: int) -> FrozenSet[str]:
    return _codes(letter, *range(first, last + 1))


@dataclass(frozen=True)
class _Rule:
    """Група трисимвольних кодів з однаковою категорією"""
    codes: FrozenSet[str]
    category: ScdCategory
    congenital: bool = False
    severity: SeverityLevel = SeverityLevel.MODERATE
    severe: Tuple[str, ...] = ()
    mild: Tuple[str, ...] = ()

    def classify(self, code: str) -> Classification:
        severity = self.severity
        if code.startswith(self.severe):
            severity = SeverityLevel.SEVERE
        elif code.startswith(self.mild):
            severity = SeverityLevel.MILD
        return self.category, self.congenital, severity


_RULES: Tuple[_Rule, ...] = (
    _Rule(_codes("D", 80, 81, 82, 83, 84, 86, 89), ScdCategory.IMMUNE),
    _Rule(_span("D", 55, 61) | _span("D", 64, 73) | _codes("D", 76),
          ScdCategory.BLOOD, severe=("D57",)),
    _Rule(_span("E", 22, 27) | _codes("E", 31, 34) | _span("E", 70, 80) | _codes("E", 83, 84, 85, 88),
          ScdCategory.ENDOCRINE, severe=("E84",)),
    _Rule(_codes("F", 84), ScdCategory.NEUROLOGICAL),
    _Rule(_span("G", 11, 13) | _span("G", 23, 25) | _codes("G", 31, 40, 41)
          | _span("G", 70, 72) | _span("G", 80, 82),
          ScdCategory.NEUROLOGICAL, severe=("G12", "G71")),
    _Rule(_codes("I", 27, 42, 43, 50, 81, 82, 83), ScdCategory.CARDIOVASCULAR, severe=("I50",)),
    _Rule(_span("J", 41, 45) | _codes("J", 47) | _span("J", 60, 70) | _codes("J", 84, 96),
          ScdCategory.RESPIRATORY, severe=("J44", "J96"), mild=("J45",)),
    _Rule(_codes("K", 50, 51, 73, 74, 86, 87, 90), ScdCategory.GASTROINTESTINAL, severe=("K74",)),
    _Rule(_span("M", 5, 9) | _span("M", 30, 35) | _span("M", 40, 43) | _codes("M", 45, 46),
          ScdCategory.MUSCULOSKELETAL, severe=("M32", "M34")),
    _Rule(_span("N", 1, 8) | _span("N", 11, 16) | _span("N", 18, 29), ScdCategory.RENAL),
    _Rule(_codes("P", 27), ScdCategory.RESPIRATORY, congenital=True),
    # Вроджені вади
    _Rule(_span("Q", 1, 7), ScdCategory.NEUROLOGICAL, True, SeverityLevel.SEVERE),
    _Rule(_span("Q", 20, 28), ScdCategory.CARDIOVASCULAR, True, SeverityLevel.SEVERE),
    _Rule(_span("Q", 30, 34), ScdCategory.RESPIRATORY, True),
    _Rule(_span("Q", 35, 37), ScdCategory.CONGENITAL, True),
    _Rule(_span("Q", 38, 45), ScdCategory.GASTROINTESTINAL, True),
    _Rule(_span("Q", 60, 64), ScdCategory.RENAL, True),
    _Rule(_span("Q", 77, 79), ScdCategory.MUSCULOSKELETAL, True),
    _Rule(_span("Q", 80, 87) | _codes("Q", 89), ScdCategory.CONGENITAL, True),
)

_RULE_BY_CODE: Dict[str, _Rule] = {code: rule for rule in _RULES for code in rule.codes}


def normalize_code(code: str) -> str:
    """
    Нормалізація коду ICD-10.

    Верхній регістр, без пробілів і крапок; датський префікс "D"
    перед літерою глави відкидається ("DE840" → "E840").
    """
    clean = code.strip().upper().replace(".", "")
    if len(clean) >= 4 and clean[0] == "D" and clean[1].isalpha():
        clean = clean[1:]
    return clean


def categorize_diagnosis(code: Optional[str]) -> Optional[Classification]:
    """
    Класифікувати код ICD-10.

    Args:
        code: Код діагнозу

    Returns:
        (категорія, чи вроджене, тяжкість) або None, якщо це не SCD
    """
    if not code:
        return None
    clean = normalize_code(code)
    if not clean:
        return None

    # Злоякісні новоутворення
    if clean.startswith("C"):
        return ScdCategory.BLOOD, False, SeverityLevel.SEVERE

    rule = _RULE_BY_CODE.get(clean[:3])
    if rule is None:
        return None

    category, congenital, severity = rule.classify(clean)

    # Хронічна хвороба нирок: стадія 4-5 тяжка
    if clean[:3] in ("N18", "N19") and len(clean) > 3 and clean[3].isdigit():
        severity = SeverityLevel.SEVERE if int(clean[3]) >= 4 else SeverityLevel.MODERATE

    return category, congenital, severity


# =============================================================================
# SCD ALGORITHM
# =============================================================================

def _age_years(birth_date: date, on_date: date) -> int:
    days = (on_date - birth_date).days
    return int(days / 365)


def _in_window(diagnosis: Diagnosis, config: ScdConfig, birth_date: Optional[date]) -> bool:
    when = diagnosis.diagnosis_date
    if when is None:
        return True
    if config.start_date is not None and when < config.start_date:
        return False
    if config.end_date is not None and when > config.end_date:
        return False
    if birth_date is not None:
        age = _age_years(birth_date, when)
        if config.min_age_years is not None and age < config.min_age_years:
            return False
        if config.max_age_years is not None and age > config.max_age_years:
            return False
    return True


def apply_scd_algorithm(
    diagnoses: Iterable[Diagnosis],
    config: Optional[ScdConfig] = None,
    birth_dates: Optional[Mapping[str, date]] = None,
) -> Dict[str, ScdResult]:
    """
    Застосувати алгоритм SCD до діагнозів.

    Args:
        diagnoses: Діагнози (будь-який порядок)
        config: Параметри класифікації
        birth_dates: PNR → дата народження (для вікового фільтра)

    Returns:
        PNR → ScdResult для кожної особи з хоча б одним діагнозом
    """
    config = config or ScdConfig()
    birth_dates = birth_dates or {}

    by_pnr: "OrderedDict[str, List[Diagnosis]]" = OrderedDict()
    for diagnosis in diagnoses:
        by_pnr.setdefault(diagnosis.pnr, []).append(diagnosis)

    results: Dict[str, ScdResult] = {}
    for pnr, person_diagnoses in by_pnr.items():
        result = ScdResult(pnr=pnr, hospitalization_count=len(person_diagnoses))
        birth_date = birth_dates.get(pnr)

        for diagnosis in person_diagnoses:
            if not _in_window(diagnosis, config, birth_date):
                continue
            classification = categorize_diagnosis(diagnosis.code)
            if classification is None:
                continue
            category, congenital, severity = classification
            if congenital and not config.include_congenital:
                continue
            result.add_scd_diagnosis(diagnosis, int(category), congenital, int(severity))

        results[pnr] = result

    n_scd = sum(1 for r in results.values() if r.has_scd)
    logger.info(f"SCD classification: {n_scd} of {len(results)} individuals with SCD")
    return results


def diagnoses_from_table(table, config: Optional[ScdConfig] = None) -> List[Diagnosis]:
    """
    Прочитати діагнози з колонкового батчу.

    Рядки без PNR або коду пропускаються.
    """
    config = config or ScdConfig()
    pnrs = column_to_strings(get_column(table, config.pnr_column))
    codes = column_to_strings(get_column(table, config.code_column))
    dates = column_to_dates(get_column(table, config.date_column))

    diagnoses = [
        Diagnosis(pnr=pnr, code=code, diagnosis_date=when.item())
        for pnr, code, when in zip(pnrs, codes, dates)
        if pnr is not None and code is not None
    ]
    skipped = table.num_rows - len(diagnoses)
    if skipped:
        logger.info(f"Skipped {skipped} diagnosis rows with missing PNR or code")
    return diagnoses


def birth_dates_from_table(table, columns: Optional[ColumnNames] = None) -> Dict[str, date]:
    """PNR → дата народження з таблиці популяції"""
    columns = columns or ColumnNames()
    pnrs = column_to_strings(get_column(table, columns.pnr))
    dates = column_to_dates(get_column(table, columns.birth_date))
    return {
        pnr: when.item()
        for pnr, when in zip(pnrs, dates)
        if pnr is not None and not np.isnat(when)
    }


# =============================================================================
# SELECTORS
# =============================================================================

def get_individuals_with_scd(results: Mapping[str, ScdResult]) -> List[str]:
    return [pnr for pnr, result in results.items() if result.has_scd]


def get_individuals_by_category(
    results: Mapping[str, ScdResult],
    category: ScdCategory,
) -> List[str]:
    return [
        pnr for pnr, result in results.items()
        if result.has_scd and int(category) in result.scd_categories
    ]


def get_individuals_by_severity(
    results: Mapping[str, ScdResult],
    min_severity: SeverityLevel,
) -> List[str]:
    return [
        pnr for pnr, result in results.items()
        if result.has_scd and result.max_severity >= int(min_severity)
    ]


class ScdClassifier:
    """
    Класифікатор SCD для таблиць реєстру.

    Приклад використання:
        classifier = ScdClassifier(ScdConfig(include_congenital=False))
        results = classifier.classify_table(diagnosis_table, population_table)
        case_pnrs = get_individuals_with_scd(results)
    """

    def __init__(self, config: Optional[ScdConfig] = None, columns: Optional[ColumnNames] = None):
        self.config = config or ScdConfig()
        self.columns = columns or ColumnNames()

    def classify(
        self,
        diagnoses: Iterable[Diagnosis],
        birth_dates: Optional[Mapping[str, date]] = None,
    ) -> Dict[str, ScdResult]:
        return apply_scd_algorithm(diagnoses, self.config, birth_dates)

    def classify_table(self, diagnosis_table, population=None) -> Dict[str, ScdResult]:
        """
        Args:
            diagnosis_table: Таблиця діагнозів (колонки з ScdConfig)
            population: Таблиця популяції для вікового фільтра (опційно)
        """
        birth_dates = None
        if population is not None:
            birth_dates = birth_dates_from_table(population, self.columns)
        return self.classify(diagnoses_from_table(diagnosis_table, self.config), birth_dates)

    def __repr__(self) -> str:
        return f"ScdClassifier(include_congenital={self.config.include_congenital})"
