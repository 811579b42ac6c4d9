"""
SCD-Cohort — Схеми діагнозів та SCD

Pydantic моделі для:
- Diagnosis: один запис діагнозу з реєстру госпіталізацій
- ScdResult: результат класифікації SCD для однієї особи
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class Diagnosis(BaseModel):
    """
    Діагноз особи.

    Приклад:
        diagnosis = Diagnosis(pnr="0101101234", code="DE84", diagnosis_date=date(2012, 5, 3))
    """
    pnr: str = Field(..., min_length=1, description="PNR особи")
    code: str = Field(..., description="Код ICD-10")
    diagnosis_date: Optional[date] = Field(default=None, description="Дата діагнозу")

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        """Нормалізація коду"""
        return v.strip().upper()


class ScdResult(BaseModel):
    """Результат класифікації SCD для однієї особи"""
    pnr: str
    has_scd: bool = False
    first_scd_date: Optional[date] = None
    scd_diagnoses: List[Diagnosis] = Field(default_factory=list)
    scd_categories: List[int] = Field(default_factory=list, description="Коди ScdCategory")
    max_severity: int = Field(default=0, ge=0, le=3, description="0 = немає SCD")
    has_congenital: bool = False
    hospitalization_count: int = Field(default=0, ge=0)

    def add_scd_diagnosis(
        self,
        diagnosis: Diagnosis,
        category: int,
        is_congenital: bool,
        severity: int,
    ) -> None:
        """Врахувати SCD діагноз"""
        self.has_scd = True
        self.scd_diagnoses.append(diagnosis)

        if diagnosis.diagnosis_date is not None:
            if self.first_scd_date is None or diagnosis.diagnosis_date < self.first_scd_date:
                self.first_scd_date = diagnosis.diagnosis_date

        if category not in self.scd_categories:
            self.scd_categories.append(category)

        self.max_severity = max(self.max_severity, int(severity))

        if is_congenital:
            self.has_congenital = True

    @property
    def category_count(self) -> int:
        return len(self.scd_categories)
