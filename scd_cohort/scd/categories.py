"""SCD-Cohort — Категорії тяжких хронічних захворювань"""

from enum import IntEnum
from typing import List


class ScdCategory(IntEnum):
    """Система органів, до якої належить SCD діагноз"""
    NONE = 0
    BLOOD = 1
    IMMUNE = 2
    ENDOCRINE = 3
    NEUROLOGICAL = 4
    CARDIOVASCULAR = 5
    RESPIRATORY = 6
    GASTROINTESTINAL = 7
    MUSCULOSKELETAL = 8
    RENAL = 9
    CONGENITAL = 10

    @classmethod
    def from_int(cls, value: int) -> "ScdCategory":
        """Невідомі значення → NONE"""
        try:
            return cls(value)
        except ValueError:
            return cls.NONE

    @classmethod
    def all_categories(cls) -> List["ScdCategory"]:
        return [c for c in cls if c is not cls.NONE]

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def is_valid(self) -> bool:
        return self is not ScdCategory.NONE

    def __str__(self) -> str:
        return self.display_name


_DISPLAY_NAMES = {
    ScdCategory.NONE: "No SCD Category",
    ScdCategory.BLOOD: "Blood Disorder",
    ScdCategory.IMMUNE: "Immune System Disorder",
    ScdCategory.ENDOCRINE: "Endocrine Disorder",
    ScdCategory.NEUROLOGICAL: "Neurological Disorder",
    ScdCategory.CARDIOVASCULAR: "Cardiovascular Disorder",
    ScdCategory.RESPIRATORY: "Respiratory Disorder",
    ScdCategory.GASTROINTESTINAL: "Gastrointestinal Disorder",
    ScdCategory.MUSCULOSKELETAL: "Musculoskeletal Disorder",
    ScdCategory.RENAL: "Renal Disorder",
    ScdCategory.CONGENITAL: "Other Congenital Disorder",
}
