"""
SCD-Cohort — Матчер кейс-контроль

Точка входу матчингу:
1. Валідація та витяг атрибутів кейсів і контролів (помилки → одразу)
2. Побудова індексу контролів (ControlData)
3. Послідовний або паралельний матчинг (за кількістю кейсів та конфігурацією)
4. Збирання MatchingResult з часом виконання

Прогін без жодного збігу повертає коректний порожній результат.
"""

import logging
import time
from typing import Optional

from scd_cohort.config import ColumnNames, MatchingConfig
from .control_data import ControlData
from .extraction import AttributeExtractor
from .parallel import ParallelMatcher
from .sequential import SequentialMatcher
from .types import GroupMatches, MatchingResult


logger = logging.getLogger(__name__)


class Matcher:
    """
    Матчер кейс-контроль.

    Приклад використання:
        config = MatchingConfig.builder().matching_ratio(4).random_seed(42).build()
        matcher = Matcher(config)

        result = matcher.perform_matching(cases_table, controls_table)
        print(f"Matched {result.matched_case_count}/{result.total_case_count}")

        matched_controls = result.select_controls(controls_table)
    """

    def __init__(self, config: Optional[MatchingConfig] = None, columns: Optional[ColumnNames] = None):
        """
        Args:
            config: Конфігурація матчингу
            columns: Назви колонок реєстру
        """
        self.config = config or MatchingConfig()
        self.columns = columns or ColumnNames()
        self.extractor = AttributeExtractor(self.columns)

    def perform_matching(self, cases, controls, verbose: bool = False) -> MatchingResult:
        """
        Виконати матчинг.

        Args:
            cases: pa.Table / pa.RecordBatch кейсів
            controls: pa.Table / pa.RecordBatch контролів
            verbose: Показувати прогрес

        Returns:
            MatchingResult з індексами рядків у cases / controls
        """
        start_time = time.perf_counter()

        logger.info(
            f"Starting matching: {cases.num_rows} cases, {controls.num_rows} controls, "
            f"ratio 1:{self.config.matching_ratio}"
        )
        unenforced = self.config.criteria.unenforced_criteria()
        if unenforced:
            logger.warning(f"Criteria enabled but not applied by matching: {', '.join(unenforced)}")

        case_attrs = self.extractor.extract(cases, self.config, role="cases")
        control_attrs = self.extractor.extract(controls, self.config, role="controls")

        if case_attrs.is_empty:
            logger.warning("No valid cases to match")
            return MatchingResult.empty(time.perf_counter() - start_time)

        if control_attrs.is_empty:
            logger.warning("No valid controls available, all cases unmatched")
            matches = GroupMatches(unmatched_cases=[int(i) for i in case_attrs.indices])
            return MatchingResult.from_matches(
                matches, len(case_attrs), time.perf_counter() - start_time
            )

        control_data = ControlData(control_attrs)

        if self.config.should_use_parallel(len(case_attrs)):
            matches = ParallelMatcher(self.config).match(case_attrs, control_data, verbose=verbose)
        else:
            logger.info(f"Sequential matching: {len(case_attrs)} cases")
            matches = SequentialMatcher(self.config).match(
                case_attrs, control_data, verbose=verbose
            )

        elapsed = time.perf_counter() - start_time
        result = MatchingResult.from_matches(matches, len(case_attrs), elapsed)

        if result.matched_case_count == 0:
            logger.warning(f"No cases matched out of {result.total_case_count}")
        else:
            rate = result.total_case_count / elapsed if elapsed > 0 else float("inf")
            logger.info(
                f"Matched {result.matched_case_count}/{result.total_case_count} cases "
                f"({result.match_rate:.1%}) with {result.matched_control_count} controls "
                f"in {elapsed:.2f}s ({rate:.0f} cases/sec)"
            )
        return result

    def __repr__(self) -> str:
        return f"Matcher(ratio={self.config.matching_ratio}, parallel={self.config.use_parallel})"


def perform_matching(
    cases,
    controls,
    config: Optional[MatchingConfig] = None,
    columns: Optional[ColumnNames] = None,
    verbose: bool = False,
) -> MatchingResult:
    """Скорочення для Matcher(config, columns).perform_matching(...)"""
    return Matcher(config, columns).perform_matching(cases, controls, verbose=verbose)
