"""
SCD-Cohort — Типи даних матчингу

- ExtractedAttributes: паралельні numpy-масиви атрибутів (pnr, дата народження,
  стать, розмір сім'ї) + індекси рядків у вихідному батчі
- CaseGroup: частина кейсів з діапазоном днів народження
- GroupMatches: накопичувач результатів однієї групи / одного прогону
- MatchingResult: фінальний результат матчингу

Кейси та контролі ідентифікуються лише цілими позиціями у вихідних
батчах; повні записи не копіюються.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterator, List, Optional, Tuple

import numpy as np

from scd_cohort.schemas import MatchingSummary


# date(1970, 1, 1).toordinal(): datetime64[D] → пролептичний григоріанський ординал
EPOCH_ORDINAL = 719163


def dates_to_ordinals(dates: np.ndarray) -> np.ndarray:
    """datetime64[D] → ординали днів (сумісні з date.toordinal())"""
    return dates.astype("datetime64[D]").astype("int64") + EPOCH_ORDINAL


def ordinal_to_date(ordinal: int) -> date:
    return date.fromordinal(int(ordinal))


@dataclass(eq=False)
class ExtractedAttributes:
    """
    Атрибути для матчингу, вирівняні за індексом.

    Відсутні значення: genders → None, family_sizes → NaN.
    has_gender / has_family_size = False, якщо відповідної колонки
    немає у батчі (вимір матчингу вимкнено).
    """
    pnrs: np.ndarray          # object
    birth_dates: np.ndarray   # datetime64[D]
    genders: np.ndarray       # object, None = невідомо
    family_sizes: np.ndarray  # float64, NaN = невідомо
    indices: np.ndarray       # int64, рядок у вихідному батчі
    has_gender: bool = True
    has_family_size: bool = True

    def __post_init__(self):
        n = len(self.pnrs)
        lengths = {
            "birth_dates": len(self.birth_dates),
            "genders": len(self.genders),
            "family_sizes": len(self.family_sizes),
            "indices": len(self.indices),
        }
        bad = {k: v for k, v in lengths.items() if v != n}
        if bad:
            raise ValueError(f"Attribute arrays must have length {n}, got {bad}")

    @classmethod
    def empty(cls) -> "ExtractedAttributes":
        return cls(
            pnrs=np.empty(0, dtype=object),
            birth_dates=np.empty(0, dtype="datetime64[D]"),
            genders=np.empty(0, dtype=object),
            family_sizes=np.empty(0, dtype="float64"),
            indices=np.empty(0, dtype="int64"),
        )

    def __len__(self) -> int:
        return len(self.pnrs)

    @property
    def is_empty(self) -> bool:
        return len(self) == 0

    @property
    def birth_days(self) -> np.ndarray:
        """Ординали днів народження"""
        return dates_to_ordinals(self.birth_dates)

    def take(self, positions: np.ndarray) -> "ExtractedAttributes":
        """Підмножина / перестановка за позиціями"""
        positions = np.asarray(positions, dtype="int64")
        return ExtractedAttributes(
            pnrs=self.pnrs[positions],
            birth_dates=self.birth_dates[positions],
            genders=self.genders[positions],
            family_sizes=self.family_sizes[positions],
            indices=self.indices[positions],
            has_gender=self.has_gender,
            has_family_size=self.has_family_size,
        )

    def gender_at(self, i: int) -> Optional[str]:
        return self.genders[i]

    def family_size_at(self, i: int) -> Optional[int]:
        value = self.family_sizes[i]
        return None if np.isnan(value) else int(value)

    def __repr__(self) -> str:
        return (
            f"ExtractedAttributes(n={len(self)}, "
            f"gender={self.has_gender}, family_size={self.has_family_size})"
        )


@dataclass(eq=False)
class CaseGroup(ExtractedAttributes):
    """
    Група кейсів для паралельної обробки.

    birth_day_range — напіввідкритий інтервал ординалів [start, end),
    за який відповідає група. group_index — номер слоту розбиття
    (зберігається навіть коли порожні групи відкинуті).
    """
    birth_day_range: Tuple[int, int] = (0, 0)
    group_index: int = 0

    @classmethod
    def from_attributes(
        cls,
        attrs: ExtractedAttributes,
        birth_day_range: Tuple[int, int],
        group_index: int,
    ) -> "CaseGroup":
        return cls(
            pnrs=attrs.pnrs,
            birth_dates=attrs.birth_dates,
            genders=attrs.genders,
            family_sizes=attrs.family_sizes,
            indices=attrs.indices,
            has_gender=attrs.has_gender,
            has_family_size=attrs.has_family_size,
            birth_day_range=birth_day_range,
            group_index=group_index,
        )

    def __repr__(self) -> str:
        start, end = self.birth_day_range
        return f"CaseGroup(index={self.group_index}, range=[{start}, {end}), n={len(self)})"


@dataclass(eq=False)
class GroupMatches:
    """Результати однієї групи (або послідовного прогону)"""
    matched_cases: List[int] = field(default_factory=list)
    matched_controls: List[int] = field(default_factory=list)
    controls_per_case: List[int] = field(default_factory=list)
    unmatched_cases: List[int] = field(default_factory=list)

    def add_match(self, case_index: int, control_indices: np.ndarray) -> None:
        self.matched_cases.append(int(case_index))
        self.matched_controls.extend(int(c) for c in control_indices)
        self.controls_per_case.append(len(control_indices))

    def add_unmatched(self, case_index: int) -> None:
        self.unmatched_cases.append(int(case_index))

    def extend(self, other: "GroupMatches") -> None:
        self.matched_cases.extend(other.matched_cases)
        self.matched_controls.extend(other.matched_controls)
        self.controls_per_case.extend(other.controls_per_case)
        self.unmatched_cases.extend(other.unmatched_cases)


def _int_array(values) -> np.ndarray:
    return np.asarray(values, dtype="int64").reshape(-1)


@dataclass(frozen=True, eq=False)
class MatchingResult:
    """
    Результат матчингу.

    matched_cases — індекси рядків зматчених кейсів (у батчі кейсів),
    matched_controls — плоский масив індексів контролів (у батчі контролів).
    controls_per_case[i] — скільки контролів з matched_controls належить
    кейсу matched_cases[i]; контролі йдуть послідовно в тому ж порядку.

    Приклад використання:
        for case_row, control_rows in result.iter_matches():
            print(case_row, control_rows)
    """
    matched_cases: np.ndarray
    matched_controls: np.ndarray
    controls_per_case: np.ndarray
    unmatched_cases: np.ndarray
    total_case_count: int
    matching_time: float = 0.0  # секунди

    @classmethod
    def from_matches(
        cls,
        matches: GroupMatches,
        total_case_count: int,
        matching_time: float,
    ) -> "MatchingResult":
        return cls(
            matched_cases=_int_array(matches.matched_cases),
            matched_controls=_int_array(matches.matched_controls),
            controls_per_case=_int_array(matches.controls_per_case),
            unmatched_cases=_int_array(matches.unmatched_cases),
            total_case_count=int(total_case_count),
            matching_time=float(matching_time),
        )

    @classmethod
    def empty(cls, matching_time: float = 0.0) -> "MatchingResult":
        """Результат без жодного кейсу"""
        return cls.from_matches(GroupMatches(), 0, matching_time)

    @property
    def matched_case_count(self) -> int:
        return len(self.matched_cases)

    @property
    def matched_control_count(self) -> int:
        return len(self.matched_controls)

    @property
    def unmatched_case_count(self) -> int:
        return self.total_case_count - self.matched_case_count

    @property
    def match_rate(self) -> float:
        if self.total_case_count == 0:
            return 0.0
        return self.matched_case_count / self.total_case_count

    def iter_matches(self) -> Iterator[Tuple[int, np.ndarray]]:
        """(рядок кейсу, масив рядків його контролів)"""
        offsets = np.concatenate([[0], np.cumsum(self.controls_per_case)])
        for i, case_row in enumerate(self.matched_cases):
            yield int(case_row), self.matched_controls[offsets[i]:offsets[i + 1]]

    def case_rows_per_control(self) -> np.ndarray:
        """Індекс кейсу для кожного елемента matched_controls"""
        return np.repeat(self.matched_cases, self.controls_per_case)

    def select_cases(self, batch):
        """Рядки зматчених кейсів з вихідного батчу"""
        from .filtering import filter_batch_by_indices
        return filter_batch_by_indices(batch, self.matched_cases)

    def select_controls(self, batch):
        """Рядки зматчених контролів з вихідного батчу"""
        from .filtering import filter_batch_by_indices
        return filter_batch_by_indices(batch, self.matched_controls)

    def to_summary(self) -> MatchingSummary:
        counts = self.controls_per_case
        return MatchingSummary(
            total_cases=self.total_case_count,
            matched_cases=self.matched_case_count,
            unmatched_cases=self.unmatched_case_count,
            matched_controls=self.matched_control_count,
            match_rate=self.match_rate,
            matching_time_seconds=self.matching_time,
            min_controls_per_case=int(counts.min()) if len(counts) else 0,
            mean_controls_per_case=float(counts.mean()) if len(counts) else 0.0,
            max_controls_per_case=int(counts.max()) if len(counts) else 0,
        )

    def __repr__(self) -> str:
        return (
            f"MatchingResult(matched_cases={self.matched_case_count}/{self.total_case_count}, "
            f"controls={self.matched_control_count}, time={self.matching_time:.2f}s)"
        )
