"""
SCD-Cohort — Послідовний матчинг

Для кожного кейсу (у порядку масиву кейсів):
1. Діапазон контролів за вікном дати народження (бінарний пошук)
2. Фільтр: не використаний, не той самий PNR, стать, розмір сім'ї
3. Випадковий відбір до matching_ratio контролів (частковий Fisher–Yates)
4. Позначення обраних контролів як використаних

Раніші кейси мають пріоритет у виборі контролів.
"""

import logging
from typing import Optional

import numpy as np
from tqdm import tqdm

from scd_cohort.config import MatchingConfig
from .control_data import ControlData, UsedControls
from .types import ExtractedAttributes, GroupMatches


logger = logging.getLogger(__name__)


def make_rng(seed: Optional[int], group_index: Optional[int] = None) -> np.random.Generator:
    """
    Генератор випадкових чисел.

    seed=None → ентропія ОС. Для груп паралельного матчингу seed
    комбінується з group_index, тому кожна група має власний потік.
    """
    if seed is None:
        return np.random.default_rng()
    if group_index is None:
        return np.random.default_rng(seed)
    return np.random.default_rng([seed, group_index])


def eligible_controls(
    control_data: ControlData,
    start: int,
    end: int,
    case_pnr: str,
    case_gender: Optional[str],
    case_family_size: float,
    check_gender: bool,
    check_family_size: bool,
    family_size_tolerance: int,
) -> np.ndarray:
    """
    Маска придатних контролів у діапазоні [start, end).

    Стать: невідома у будь-кого з пари → контроль відхилено.
    Розмір сім'ї: невідомий у кейсу → перевірка вимкнена,
    невідомий у контролю → контроль відхилено.
    """
    window = slice(start, end)
    mask = np.asarray(control_data.pnrs[window] != case_pnr, dtype=bool)

    if check_gender:
        if case_gender is None:
            return np.zeros(end - start, dtype=bool)
        mask &= np.asarray(control_data.genders[window] == case_gender, dtype=bool)

    if check_family_size and not np.isnan(case_family_size):
        diff = np.abs(control_data.family_sizes[window] - case_family_size)
        mask &= diff <= family_size_tolerance

    return mask


class SequentialMatcher:
    """
    Однопотоковий матчинг.

    Приклад використання:
        matcher = SequentialMatcher(config)
        matches = matcher.match(case_attrs, ControlData(control_attrs))
        print(len(matches.matched_cases))
    """

    def __init__(self, config: MatchingConfig):
        """
        Args:
            config: Конфігурація матчингу
        """
        self.config = config

    def match(
        self,
        cases: ExtractedAttributes,
        control_data: ControlData,
        used: Optional[UsedControls] = None,
        rng: Optional[np.random.Generator] = None,
        verbose: bool = False,
    ) -> GroupMatches:
        """
        Зматчити всі кейси.

        Args:
            cases: Атрибути кейсів
            control_data: Індекс контролів
            used: Реєстр використаних контролів (новий, якщо None)
            rng: Генератор (з config.random_seed, якщо None)
            verbose: Показувати прогрес

        Returns:
            GroupMatches
        """
        if used is None:
            used = UsedControls(len(control_data))
        if rng is None:
            rng = make_rng(self.config.random_seed)

        with tqdm(total=len(cases), desc="Matching", disable=not verbose) as progress:
            return self.match_cases(cases, control_data, used, rng, progress)

    def match_cases(
        self,
        cases: ExtractedAttributes,
        control_data: ControlData,
        used: UsedControls,
        rng: np.random.Generator,
        progress: Optional[tqdm] = None,
    ) -> GroupMatches:
        """Основний цикл; використовується також паралельним матчером для кожної групи"""
        criteria = self.config.criteria
        ratio = self.config.matching_ratio
        window = criteria.birth_date_window_days
        tolerance = criteria.family_size_tolerance

        check_gender = (
            criteria.require_same_gender and cases.has_gender and control_data.has_gender
        )
        check_family_size = (
            criteria.match_family_size and cases.has_family_size and control_data.has_family_size
        )

        matches = GroupMatches()
        case_days = cases.birth_days

        for i in range(len(cases)):
            start, end = control_data.find_birth_day_range(int(case_days[i]), window)

            chosen = np.empty(0, dtype="int64")
            if end > start:
                eligible = eligible_controls(
                    control_data,
                    start,
                    end,
                    case_pnr=cases.pnrs[i],
                    case_gender=cases.genders[i],
                    case_family_size=cases.family_sizes[i],
                    check_gender=check_gender,
                    check_family_size=check_family_size,
                    family_size_tolerance=tolerance,
                )
                if eligible.any():
                    chosen = used.select_and_claim(start, eligible, ratio, rng)

            if len(chosen):
                matches.add_match(cases.indices[i], control_data.indices[chosen])
            else:
                matches.add_unmatched(cases.indices[i])

            if progress is not None:
                progress.update(1)

        return matches

    def __repr__(self) -> str:
        return f"SequentialMatcher(ratio={self.config.matching_ratio})"
