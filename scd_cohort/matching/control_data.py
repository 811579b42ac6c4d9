"""
SCD-Cohort — Індекс контролів

- ControlData: атрибути контролів, стабільно відсортовані за днем народження,
  з бінарним пошуком діапазону [start, end) за вікном дат
- UsedControls: спільний реєстр використаних контролів (numpy + Lock)
- select_random: частковий Fisher–Yates відбір k різних елементів

Пошук діапазону O(log n) після одноразового сортування O(n log n).
"""

import threading
from typing import Tuple

import numpy as np

from .types import ExtractedAttributes


class ControlData:
    """
    Контролі, відсортовані за ординалом дня народження.

    Приклад використання:
        control_data = ControlData(control_attrs)
        start, end = control_data.find_birth_day_range(case_day, 30)
        candidates = control_data.indices[start:end]
    """

    def __init__(self, attributes: ExtractedAttributes):
        """
        Args:
            attributes: Атрибути контролів у порядку вихідного батчу
        """
        order = np.argsort(attributes.birth_days, kind="stable")
        self.attributes = attributes.take(order)
        self.birth_days = self.attributes.birth_days

    # Доступ до відсортованих масивів
    @property
    def pnrs(self) -> np.ndarray:
        return self.attributes.pnrs

    @property
    def birth_dates(self) -> np.ndarray:
        return self.attributes.birth_dates

    @property
    def genders(self) -> np.ndarray:
        return self.attributes.genders

    @property
    def family_sizes(self) -> np.ndarray:
        return self.attributes.family_sizes

    @property
    def indices(self) -> np.ndarray:
        return self.attributes.indices

    @property
    def has_gender(self) -> bool:
        return self.attributes.has_gender

    @property
    def has_family_size(self) -> bool:
        return self.attributes.has_family_size

    def __len__(self) -> int:
        return len(self.attributes)

    def find_birth_day_range(self, center_day: int, window_days: int) -> Tuple[int, int]:
        """
        Діапазон позицій контролів з днем народження у
        [center_day - window_days, center_day + window_days] (включно).

        Returns:
            (start, end) — напіввідкритий діапазон; (k, k) якщо порожньо
        """
        start = int(np.searchsorted(self.birth_days, center_day - window_days, side="left"))
        end = int(np.searchsorted(self.birth_days, center_day + window_days, side="right"))
        return start, max(start, end)

    @classmethod
    def from_sorted(cls, attributes: ExtractedAttributes) -> "ControlData":
        """Атрибути вже відсортовані за днем народження (без повторного сортування)"""
        control_data = cls.__new__(cls)
        control_data.attributes = attributes
        control_data.birth_days = attributes.birth_days
        return control_data

    def slice(self, start: int, end: int) -> "ControlData":
        """Позиції [start, end) як окремий ControlData (позиції зсуваються на start)"""
        return ControlData.from_sorted(self.attributes.take(np.arange(start, end)))

    def __repr__(self) -> str:
        if len(self) == 0:
            return "ControlData(n=0)"
        return (
            f"ControlData(n={len(self)}, "
            f"birth_dates={self.birth_dates[0]}..{self.birth_dates[-1]})"
        )


def select_random(pool: np.ndarray, k: int, rng: np.random.Generator) -> np.ndarray:
    """
    Обрати min(k, len(pool)) різних елементів частковим перемішуванням.

    Результат залежить лише від pool, k та стану rng.
    """
    pool = np.array(pool, copy=True)
    n = len(pool)
    k = min(k, n)
    for i in range(k):
        j = int(rng.integers(i, n))
        pool[i], pool[j] = pool[j], pool[i]
    return pool[:k]


class UsedControls:
    """
    Реєстр використаних контролів (за позицією в ControlData).

    Відбір та позначення виконуються атомарно під одним Lock,
    тому жоден контроль не може бути виданий двом кейсам.
    """

    def __init__(self, size: int):
        self._used = np.zeros(size, dtype=bool)
        self._lock = threading.Lock()

    @classmethod
    def from_mask(cls, mask: np.ndarray) -> "UsedControls":
        used = cls(len(mask))
        used._used[:] = mask
        return used

    def __len__(self) -> int:
        return len(self._used)

    @property
    def used_count(self) -> int:
        with self._lock:
            return int(self._used.sum())

    def is_used(self, position: int) -> bool:
        with self._lock:
            return bool(self._used[position])

    def snapshot(self, start: int, end: int) -> np.ndarray:
        """Копія маски використаних для позицій [start, end)"""
        with self._lock:
            return self._used[start:end].copy()

    def claim(self, positions: np.ndarray) -> None:
        """
        Позначити позиції, обрані поза цим реєстром (у процесі-воркері).

        ValueError, якщо якась позиція вже використана.
        """
        positions = np.asarray(positions, dtype="int64")
        with self._lock:
            if self._used[positions].any():
                raise ValueError("Control claimed twice across parallel groups")
            self._used[positions] = True

    def select_and_claim(
        self,
        start: int,
        eligible: np.ndarray,
        k: int,
        rng: np.random.Generator,
    ) -> np.ndarray:
        """
        Обрати до k вільних контролів серед eligible та позначити їх.

        Args:
            start: Позиція першого елемента eligible у ControlData
            eligible: Булева маска кандидатів для позицій [start, start + len)
            k: Скільки контролів потрібно
            rng: Генератор випадкових чисел

        Returns:
            Позиції обраних контролів у ControlData
        """
        end = start + len(eligible)
        with self._lock:
            free = eligible & ~self._used[start:end]
            pool = np.flatnonzero(free) + start
            chosen = select_random(pool, k, rng)
            self._used[chosen] = True
        return chosen

    def __repr__(self) -> str:
        return f"UsedControls(used={self.used_count}/{len(self)})"
