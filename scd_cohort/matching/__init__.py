"""
SCD-Cohort — Модуль матчингу кейс-контроль

Для кожного кейсу підбирає до matching_ratio контролів з близькою
датою народження, тією ж статтю та схожим розміром сім'ї. Кожен
контроль використовується не більше одного разу.

Компоненти:
- AttributeExtractor: колонки батчу → ExtractedAttributes
- ControlData: контролі, відсортовані за днем народження, з пошуком діапазону
- SequentialMatcher / ParallelMatcher: алгоритми матчингу
- Matcher: точка входу (валідація, вибір алгоритму, результат)
- MatchingResult: індекси рядків зматчених кейсів та контролів
- BalanceCalculator: оцінка балансу коваріат після матчингу

Приклад використання:
    from scd_cohort.config import MatchingConfig, MatchingCriteria
    from scd_cohort.matching import Matcher, BalanceCalculator, build_matched_pairs

    criteria = MatchingCriteria.builder().birth_date_window(30).build()
    config = (
        MatchingConfig.builder()
        .criteria(criteria)
        .matching_ratio(4)
        .random_seed(42)
        .build()
    )

    result = Matcher(config).perform_matching(cases, controls)
    print(f"Match rate: {result.match_rate:.1%}")

    # Пари для звіту
    pairs = build_matched_pairs(result, cases, controls)

    # Баланс коваріат
    report = BalanceCalculator().calculate_balance(
        result.select_cases(cases),
        result.select_controls(controls),
    )
    print(report.to_string())
"""

from .types import (
    ExtractedAttributes,
    CaseGroup,
    GroupMatches,
    MatchingResult,
    dates_to_ordinals,
)
from .validation import validate_batch, BatchValidation
from .extraction import AttributeExtractor, extract_attributes
from .control_data import ControlData, UsedControls, select_random
from .sequential import SequentialMatcher, eligible_controls, make_rng
from .parallel import ParallelMatcher, control_span, group_cases_by_birth_day_range
from .matcher import Matcher, perform_matching
from .filtering import filter_batch_by_indices, build_matched_pairs, matched_pairs_to_table
from .preparation import split_cases_controls, prepare_scd_cohort
from .balance import (
    BalanceCalculator,
    BalanceMetric,
    BalanceReport,
    BalanceSummary,
    standardized_difference,
)
from scd_cohort.schemas import MatchedPair


__all__ = [
    "ExtractedAttributes",
    "CaseGroup",
    "GroupMatches",
    "MatchingResult",
    "dates_to_ordinals",
    "validate_batch",
    "BatchValidation",
    "AttributeExtractor",
    "extract_attributes",
    "ControlData",
    "UsedControls",
    "select_random",
    "SequentialMatcher",
    "eligible_controls",
    "make_rng",
    "ParallelMatcher",
    "group_cases_by_birth_day_range",
    "control_span",
    "Matcher",
    "perform_matching",
    "filter_batch_by_indices",
    "build_matched_pairs",
    "matched_pairs_to_table",
    "split_cases_controls",
    "prepare_scd_cohort",
    "BalanceCalculator",
    "BalanceMetric",
    "BalanceReport",
    "BalanceSummary",
    "standardized_difference",
    "MatchedPair",
]
