"""
SCD-Cohort — Рівні тяжкості SCD

Тяжкість оцінюється кількома способами:
- за діагнозом (таблиця кодів ICD-10)
- за кількістю госпіталізацій
- за кількістю уражених систем
- за віком на момент діагнозу

Комбінована тяжкість — максимум з усіх оцінок.
"""

from enum import IntEnum
from typing import Optional


class SeverityLevel(IntEnum):
    """Рівень тяжкості"""
    MILD = 1
    MODERATE = 2
    SEVERE = 3

    @classmethod
    def from_int(cls, value: int) -> "SeverityLevel":
        """Невідомі значення → MODERATE"""
        try:
            return cls(value)
        except ValueError:
            return cls.MODERATE

    @property
    def description(self) -> str:
        return self.name.capitalize()

    def __str__(self) -> str:
        return self.description


def hospitalization_severity(hospitalization_count: int) -> SeverityLevel:
    if hospitalization_count >= 5:
        return SeverityLevel.SEVERE
    if hospitalization_count >= 2:
        return SeverityLevel.MODERATE
    return SeverityLevel.MILD


def category_severity(category_count: int) -> SeverityLevel:
    """Більше уражених систем → тяжче"""
    if category_count > 2:
        return SeverityLevel.SEVERE
    if category_count == 2:
        return SeverityLevel.MODERATE
    return SeverityLevel.MILD


def age_at_diagnosis_severity(age_in_years: int) -> SeverityLevel:
    """Раніший початок → тяжче"""
    if age_in_years < 2:
        return SeverityLevel.SEVERE
    if age_in_years < 10:
        return SeverityLevel.MODERATE
    return SeverityLevel.MILD


def combined_severity(
    diagnosis: SeverityLevel,
    hospitalization: SeverityLevel,
    category: SeverityLevel,
    age_at_diagnosis: Optional[SeverityLevel] = None,
) -> SeverityLevel:
    levels = [diagnosis, hospitalization, category]
    if age_at_diagnosis is not None:
        levels.append(age_at_diagnosis)
    return max(levels)
