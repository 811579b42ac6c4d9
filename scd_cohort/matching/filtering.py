"""
SCD-Cohort — Проєкція результатів матчингу

- filter_batch_by_indices: рядки батчу за позиціями
- build_matched_pairs: MatchedPair для кожної пари кейс-контроль
"""

import logging
from datetime import date
from typing import List, Optional, Sequence

import numpy as np
import pyarrow as pa
from pydantic import ValidationError as PydanticValidationError

from scd_cohort.config import ColumnNames
from scd_cohort.exceptions import ValidationError
from scd_cohort.io import column_to_dates, column_to_strings, get_column
from scd_cohort.schemas import MatchedPair
from .types import MatchingResult


logger = logging.getLogger(__name__)


def filter_batch_by_indices(batch, indices: Sequence[int]):
    """
    Рядки батчу у заданому порядку.

    Args:
        batch: pa.RecordBatch або pa.Table
        indices: Позиції рядків

    Returns:
        Батч того ж типу
    """
    indices = np.asarray(indices, dtype="int64").reshape(-1)
    if len(indices):
        bad = indices[(indices < 0) | (indices >= batch.num_rows)]
        if len(bad):
            raise ValidationError(
                f"Row index {int(bad[0])} out of bounds for batch with {batch.num_rows} rows"
            )
    return batch.take(pa.array(indices, type=pa.int64()))


def build_matched_pairs(
    result: MatchingResult,
    cases,
    controls,
    match_date: Optional[date] = None,
    columns: Optional[ColumnNames] = None,
) -> List[MatchedPair]:
    """
    Побудувати список MatchedPair з результату.

    Args:
        result: Результат матчингу
        cases: Батч кейсів (той самий, що передавався в матчинг)
        controls: Батч контролів
        match_date: Дата матчингу (сьогодні, якщо None)
        columns: Назви колонок

    Returns:
        Одна пара на кожне призначення кейс-контроль
    """
    columns = columns or ColumnNames()
    match_date = match_date or date.today()

    case_rows = result.case_rows_per_control()
    control_rows = result.matched_controls

    case_batch = filter_batch_by_indices(cases, case_rows)
    control_batch = filter_batch_by_indices(controls, control_rows)

    case_pnrs = column_to_strings(get_column(case_batch, columns.pnr))
    case_dates = column_to_dates(get_column(case_batch, columns.birth_date))
    control_pnrs = column_to_strings(get_column(control_batch, columns.pnr))
    control_dates = column_to_dates(get_column(control_batch, columns.birth_date))

    try:
        pairs = [
            MatchedPair(
                case_pnr=case_pnrs[i],
                case_birth_date=case_dates[i].item(),
                control_pnr=control_pnrs[i],
                control_birth_date=control_dates[i].item(),
                match_date=match_date,
            )
            for i in range(len(control_rows))
        ]
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid matched pair: {e}") from e
    logger.debug(f"Built {len(pairs)} matched pairs")
    return pairs


def matched_pairs_to_table(pairs: Sequence[MatchedPair]) -> pa.Table:
    """MatchedPair → pa.Table (для запису у CSV/Parquet)"""
    schema = pa.schema([
        ("case_pnr", pa.string()),
        ("case_birth_date", pa.date32()),
        ("control_pnr", pa.string()),
        ("control_birth_date", pa.date32()),
        ("match_date", pa.date32()),
    ])
    return pa.Table.from_pylist([p.model_dump() for p in pairs], schema=schema)
