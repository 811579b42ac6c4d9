"""
SCD-Cohort — Схеми результатів матчингу

Pydantic моделі для звітності:
- MatchedPair: одна пара кейс-контроль
- MatchingSummary: підсумкова статистика прогону
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class MatchedPair(BaseModel):
    """
    Пара кейс-контроль.

    Проєкція для звітів; всередині матчингу не використовується.

    Приклад:
        pair = MatchedPair(
            case_pnr="0101101234",
            case_birth_date=date(2010, 1, 1),
            control_pnr="0501105678",
            control_birth_date=date(2010, 1, 5),
            match_date=date(2024, 1, 1)
        )
    """
    case_pnr: str = Field(..., min_length=1, description="PNR кейсу")
    case_birth_date: date = Field(..., description="Дата народження кейсу")
    control_pnr: str = Field(..., min_length=1, description="PNR контролю")
    control_birth_date: date = Field(..., description="Дата народження контролю")
    match_date: date = Field(..., description="Дата матчингу")

    @field_validator("case_pnr", "control_pnr")
    @classmethod
    def strip_pnr(cls, v: str) -> str:
        return v.strip()

    @model_validator(mode="after")
    def check_not_self_match(self) -> "MatchedPair":
        if self.case_pnr == self.control_pnr:
            raise ValueError(f"Case and control have the same PNR: {self.case_pnr}")
        return self

    @property
    def birth_date_difference_days(self) -> int:
        """Абсолютна різниця дат народження, дні"""
        return abs((self.case_birth_date - self.control_birth_date).days)

    class Config:
        json_schema_extra = {
            "example": {
                "case_pnr": "0101101234",
                "case_birth_date": "2010-01-01",
                "control_pnr": "0501105678",
                "control_birth_date": "2010-01-05",
                "match_date": "2024-01-01"
            }
        }


class MatchingSummary(BaseModel):
    """Підсумок прогону матчингу"""
    total_cases: int = Field(..., ge=0, description="Кейсів з валідними атрибутами")
    matched_cases: int = Field(..., ge=0)
    unmatched_cases: int = Field(..., ge=0)
    matched_controls: int = Field(..., ge=0)
    match_rate: float = Field(..., ge=0.0, le=1.0, description="Частка зматчених кейсів")
    matching_time_seconds: float = Field(default=0.0, ge=0.0)

    min_controls_per_case: int = Field(default=0, ge=0)
    mean_controls_per_case: float = Field(default=0.0, ge=0.0)
    max_controls_per_case: int = Field(default=0, ge=0)

    matching_ratio: Optional[int] = Field(default=None, ge=1)

    @property
    def match_rate_percent(self) -> float:
        return round(self.match_rate * 100, 2)

    class Config:
        json_schema_extra = {
            "example": {
                "total_cases": 1000,
                "matched_cases": 982,
                "unmatched_cases": 18,
                "matched_controls": 3890,
                "match_rate": 0.982,
                "matching_time_seconds": 4.2,
                "min_controls_per_case": 1,
                "mean_controls_per_case": 3.96,
                "max_controls_per_case": 4,
                "matching_ratio": 4
            }
        }
