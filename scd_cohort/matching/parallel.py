"""
SCD-Cohort — Паралельний матчинг

Кейси розбиваються на групи за діапазонами днів народження,
кожна група обробляється SequentialMatcher у пулі потоків або процесів.

Групи виконуються двома хвилями: спочатку парні слоти розбиття, потім
непарні. Ширина групи не менша за 2 * birth_date_window_days, тому
групи однієї хвилі ніколи не претендують на ті самі контролі, і
результат з фіксованим seed не залежить від планування.

executor="thread": контролі спільні для всіх груп (ControlData лише
читається), використані контролі реєструються в одному UsedControls під Lock.

executor="process": кожна група отримує зріз контролів свого діапазону
та знімок маски використаних; обрані позиції зливаються в UsedControls
після кожної хвилі. Цикл по кейсах не обмежений GIL.
"""

import logging
import os
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Tuple

import numpy as np
from tqdm import tqdm

from scd_cohort.config import MatchingConfig
from .control_data import ControlData, UsedControls
from .sequential import SequentialMatcher, make_rng
from .types import CaseGroup, ExtractedAttributes, GroupMatches


logger = logging.getLogger(__name__)


def group_cases_by_birth_day_range(
    cases: ExtractedAttributes,
    num_groups: int,
) -> List[CaseGroup]:
    """
    Розбити кейси на групи суміжних діапазонів днів народження.

    [min_day, max_day + 1) ділиться на num_groups діапазонів однакової
    ширини; останній діапазон доходить до max_day + 1. Порожні групи
    відкидаються, тому груп може бути менше за num_groups.

    Args:
        cases: Атрибути кейсів
        num_groups: Бажана кількість груп

    Returns:
        Групи у порядку зростання діапазону
    """
    if len(cases) == 0:
        return []

    days = cases.birth_days
    order = np.argsort(days, kind="stable")
    sorted_cases = cases.take(order)
    sorted_days = days[order]

    min_day = int(sorted_days[0])
    max_day = int(sorted_days[-1])
    total_range = max_day + 1 - min_day

    num_groups = max(1, min(int(num_groups), total_range))
    group_range_size = max(1, total_range // num_groups)

    slots = np.minimum((sorted_days - min_day) // group_range_size, num_groups - 1)

    groups: List[CaseGroup] = []
    for slot in range(num_groups):
        positions = np.flatnonzero(slots == slot)
        if len(positions) == 0:
            continue
        start = min_day + slot * group_range_size
        end = max_day + 1 if slot == num_groups - 1 else start + group_range_size
        groups.append(CaseGroup.from_attributes(
            sorted_cases.take(positions),
            birth_day_range=(start, end),
            group_index=slot,
        ))

    return groups


def control_span(group: CaseGroup, control_data: ControlData, window_days: int) -> Tuple[int, int]:
    """Позиції контролів [lo, hi), досяжні з будь-якого кейсу групи"""
    start, end = group.birth_day_range
    lo, _ = control_data.find_birth_day_range(start, window_days)
    _, hi = control_data.find_birth_day_range(end - 1, window_days)
    return lo, max(lo, hi)


def match_group_in_process(
    config: MatchingConfig,
    group: CaseGroup,
    controls: ControlData,
    used_mask: np.ndarray,
) -> Tuple[GroupMatches, np.ndarray]:
    """
    Воркер процесного пулу: зматчити групу на зрізі контролів.

    Returns:
        (GroupMatches, позиції у зрізі, обрані цією групою)
    """
    used = UsedControls.from_mask(used_mask)
    rng = make_rng(config.random_seed, group.group_index)
    matches = SequentialMatcher(config).match_cases(group, controls, used, rng)
    claimed = np.flatnonzero(used.snapshot(0, len(used)) & ~used_mask)
    return matches, claimed


class ParallelMatcher:
    """
    Паралельний матчинг у пулі потоків або процесів.

    Приклад використання:
        matcher = ParallelMatcher(config)
        matches = matcher.match(case_attrs, ControlData(control_attrs))
    """

    def __init__(
        self,
        config: MatchingConfig,
        num_workers: Optional[int] = None,
        executor: Optional[str] = None,
    ):
        """
        Args:
            config: Конфігурація матчингу
            num_workers: Кількість воркерів (config.num_workers або CPU count)
            executor: "thread" або "process" (config.executor, якщо None)
        """
        self.config = config
        self.num_workers = num_workers or config.num_workers or os.cpu_count() or 1
        self.executor = executor or config.executor
        self.sequential = SequentialMatcher(config)

    def plan_group_count(self, cases: ExtractedAttributes) -> int:
        """
        Кількість груп: по дві на воркер, але не вужчі за 2 * вікно.
        """
        if len(cases) == 0:
            return 0
        days = cases.birth_days
        total_range = int(days.max()) + 1 - int(days.min())
        desired = 2 * self.num_workers
        window = self.config.criteria.birth_date_window_days
        if window > 0:
            desired = min(desired, max(1, total_range // (2 * window)))
        return max(1, desired)

    def match(
        self,
        cases: ExtractedAttributes,
        control_data: ControlData,
        verbose: bool = False,
    ) -> GroupMatches:
        """
        Зматчити всі кейси паралельно.

        Returns:
            GroupMatches у порядку груп, всередині групи у порядку дня народження
        """
        groups = group_cases_by_birth_day_range(cases, self.plan_group_count(cases))
        used = UsedControls(len(control_data))

        logger.info(
            f"Parallel matching: {len(cases)} cases in {len(groups)} groups, "
            f"{self.num_workers} {self.executor} workers"
        )

        waves = [[g for g in groups if g.group_index % 2 == parity] for parity in (0, 1)]
        with tqdm(total=len(cases), desc="Matching", disable=not verbose) as progress:
            if self.executor == "process":
                results = self._run_processes(waves, control_data, used, progress)
            else:
                results = self._run_threads(waves, control_data, used, progress)

        merged = GroupMatches()
        for group in groups:
            merged.extend(results[group.group_index])
        return merged

    def _run_threads(
        self,
        waves: List[List[CaseGroup]],
        control_data: ControlData,
        used: UsedControls,
        progress: tqdm,
    ) -> Dict[int, GroupMatches]:
        results: Dict[int, GroupMatches] = {}

        def run_group(group: CaseGroup) -> GroupMatches:
            rng = make_rng(self.config.random_seed, group.group_index)
            matches = self.sequential.match_cases(group, control_data, used, rng, progress)
            self._log_group(group, matches)
            return matches

        with ThreadPoolExecutor(max_workers=self.num_workers) as executor:
            for wave in waves:
                for group, matches in zip(wave, executor.map(run_group, wave)):
                    results[group.group_index] = matches
        return results

    def _run_processes(
        self,
        waves: List[List[CaseGroup]],
        control_data: ControlData,
        used: UsedControls,
        progress: tqdm,
    ) -> Dict[int, GroupMatches]:
        results: Dict[int, GroupMatches] = {}
        window = self.config.criteria.birth_date_window_days

        with ProcessPoolExecutor(max_workers=self.num_workers) as executor:
            for wave in waves:
                spans = {}
                futures = {}
                for group in wave:
                    lo, hi = control_span(group, control_data, window)
                    spans[group.group_index] = lo
                    future = executor.submit(
                        match_group_in_process,
                        self.config,
                        group,
                        control_data.slice(lo, hi),
                        used.snapshot(lo, hi),
                    )
                    futures[future] = group

                # Знімки наступної хвилі беруться вже після злиття цієї
                for future in as_completed(futures):
                    group = futures[future]
                    matches, claimed = future.result()
                    used.claim(claimed + spans[group.group_index])
                    results[group.group_index] = matches
                    progress.update(len(group))
                    self._log_group(group, matches)
        return results

    def _log_group(self, group: CaseGroup, matches: GroupMatches) -> None:
        logger.debug(
            f"Group {group.group_index} {group.birth_day_range}: "
            f"{len(matches.matched_cases)}/{len(group)} matched"
        )

    def __repr__(self) -> str:
        return (
            f"ParallelMatcher(workers={self.num_workers}, executor={self.executor}, "
            f"ratio={self.config.matching_ratio})"
        )
