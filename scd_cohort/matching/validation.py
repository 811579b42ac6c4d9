"""
SCD-Cohort — Валідація батчів для матчингу

Перевірки виконуються до будь-якої роботи з матчингу:
- PNR та дата народження: обов'язкові колонки → ValidationError
- PNR: рядковий або цілочисельний тип → інакше ValidationError
- дата народження: date/timestamp/рядок → інакше ValidationError
- стать / розмір сім'ї: опційні, відсутність або непридатний тип
  (наприклад, дробова стать) → попередження в лог, вимір вимикається
"""

import logging
from dataclasses import dataclass
from typing import List

import pyarrow as pa

from scd_cohort.config import ColumnNames, MatchingCriteria
from scd_cohort.exceptions import ValidationError
from scd_cohort.io import get_column, has_column, to_array


logger = logging.getLogger(__name__)


@dataclass
class BatchValidation:
    """Результат перевірки батчу"""
    role: str
    num_rows: int
    gender_available: bool
    family_size_available: bool
    warnings: List[str]


def _is_label_type(dtype: pa.DataType) -> bool:
    if pa.types.is_dictionary(dtype):
        dtype = dtype.value_type
    return pa.types.is_string(dtype) or pa.types.is_large_string(dtype) or pa.types.is_integer(dtype)


def _is_family_size_type(dtype: pa.DataType) -> bool:
    if pa.types.is_dictionary(dtype):
        dtype = dtype.value_type
    return pa.types.is_integer(dtype) or pa.types.is_floating(dtype)


def _is_date_type(dtype: pa.DataType) -> bool:
    if pa.types.is_dictionary(dtype):
        dtype = dtype.value_type
    return (
        pa.types.is_date(dtype)
        or pa.types.is_timestamp(dtype)
        or pa.types.is_string(dtype)
        or pa.types.is_large_string(dtype)
    )


def validate_batch(
    batch,
    criteria: MatchingCriteria,
    columns: ColumnNames = ColumnNames(),
    role: str = "batch",
) -> BatchValidation:
    """
    Перевірити батч кейсів або контролів.

    Args:
        batch: pa.RecordBatch або pa.Table
        criteria: Критерії матчингу (визначають, які колонки потрібні)
        columns: Назви колонок
        role: "cases" / "controls" для повідомлень

    Returns:
        BatchValidation
    """
    for name in (columns.pnr, columns.birth_date):
        if not has_column(batch, name):
            raise ValidationError(
                f"{role}: mandatory column '{name}' is missing "
                f"(available: {', '.join(batch.schema.names)})"
            )

    pnr_type = batch.schema.field(columns.pnr).type
    if not _is_label_type(pnr_type):
        raise ValidationError(f"{role}: column '{columns.pnr}' has unsupported type {pnr_type}")

    date_type = batch.schema.field(columns.birth_date).type
    if not _is_date_type(date_type):
        raise ValidationError(
            f"{role}: column '{columns.birth_date}' has unsupported type {date_type}"
        )

    warnings: List[str] = []
    gender_available = has_column(batch, columns.gender)
    family_size_available = has_column(batch, columns.family_size)

    if criteria.require_same_gender:
        if not gender_available:
            warnings.append(
                f"{role}: column '{columns.gender}' not found, gender matching disabled"
            )
        else:
            gender_type = batch.schema.field(columns.gender).type
            if not _is_label_type(gender_type):
                gender_available = False
                warnings.append(
                    f"{role}: column '{columns.gender}' has unsupported type {gender_type}, "
                    f"gender matching disabled"
                )
    if criteria.match_family_size:
        if not family_size_available:
            warnings.append(
                f"{role}: column '{columns.family_size}' not found, family size matching disabled"
            )
        else:
            size_type = batch.schema.field(columns.family_size).type
            if not _is_family_size_type(size_type):
                family_size_available = False
                warnings.append(
                    f"{role}: column '{columns.family_size}' has unsupported type {size_type}, "
                    f"family size matching disabled"
                )

    if batch.num_rows > 0:
        null_pnrs = to_array(get_column(batch, columns.pnr)).null_count
        if null_pnrs:
            logger.debug(f"{role}: {null_pnrs} rows with null {columns.pnr} will be skipped")

    for message in warnings:
        logger.warning(message)

    return BatchValidation(
        role=role,
        num_rows=batch.num_rows,
        gender_available=gender_available,
        family_size_available=family_size_available,
        warnings=warnings,
    )
