"""
SCD-Cohort — Витяг атрибутів для матчингу

Переносить колонки PNR, дата народження, стать та розмір сім'ї
з колонкового батчу у вирівняні numpy-масиви (ExtractedAttributes).

PNR обрізаються від пробілів. Рядки з відсутнім (або порожнім) PNR
чи нерозпізнаною датою народження пропускаються. Стать і розмір
сім'ї беруться за можливістю: відсутня колонка або непридатний тип
вимикає відповідний вимір матчингу.
"""

import logging
from typing import Optional, Union

import numpy as np

from scd_cohort.config import ColumnNames, MatchingConfig, MatchingCriteria
from scd_cohort.io import column_to_dates, column_to_ints, column_to_strings, get_column
from .types import ExtractedAttributes
from .validation import validate_batch


logger = logging.getLogger(__name__)


def normalize_pnrs(pnrs: np.ndarray) -> np.ndarray:
    """Обрізати пробіли; порожній PNR → None"""
    return np.array(
        [None if p is None else (p.strip() or None) for p in pnrs],
        dtype=object,
    ).reshape(-1)


class AttributeExtractor:
    """
    Витяг атрибутів з батчу.

    Приклад використання:
        extractor = AttributeExtractor()
        cases = extractor.extract(case_table, config, role="cases")
        print(len(cases), cases.indices[:5])
    """

    def __init__(self, columns: Optional[ColumnNames] = None):
        """
        Args:
            columns: Назви колонок (за замовчуванням PNR/FOED_DAG/KOEN/ANTAL_BOERN)
        """
        self.columns = columns or ColumnNames()

    def extract(
        self,
        batch,
        config: Union[MatchingConfig, MatchingCriteria],
        role: str = "batch",
    ) -> ExtractedAttributes:
        """
        Витягти атрибути.

        Args:
            batch: pa.RecordBatch або pa.Table
            config: MatchingConfig або MatchingCriteria
            role: "cases" / "controls" для повідомлень у лог

        Returns:
            ExtractedAttributes у порядку рядків батчу
        """
        criteria = config.criteria if isinstance(config, MatchingConfig) else config
        validation = validate_batch(batch, criteria, self.columns, role=role)

        n = batch.num_rows
        pnrs = normalize_pnrs(column_to_strings(get_column(batch, self.columns.pnr)))
        birth_dates = column_to_dates(get_column(batch, self.columns.birth_date))

        use_gender = criteria.require_same_gender and validation.gender_available
        if use_gender:
            genders = column_to_strings(get_column(batch, self.columns.gender))
        else:
            genders = np.full(n, None, dtype=object)

        use_family_size = criteria.match_family_size and validation.family_size_available
        if use_family_size:
            family_sizes = column_to_ints(get_column(batch, self.columns.family_size))
        else:
            family_sizes = np.full(n, np.nan, dtype="float64")

        has_pnr = np.fromiter((p is not None for p in pnrs), dtype=bool, count=n)
        valid = has_pnr & ~np.isnat(birth_dates)
        indices = np.flatnonzero(valid).astype("int64")

        skipped = n - len(indices)
        if skipped:
            logger.info(f"{role}: skipped {skipped} of {n} rows with missing PNR or birth date")

        return ExtractedAttributes(
            pnrs=pnrs[indices],
            birth_dates=birth_dates[indices],
            genders=genders[indices],
            family_sizes=family_sizes[indices],
            indices=indices,
            has_gender=use_gender,
            has_family_size=use_family_size,
        )

    def __repr__(self) -> str:
        return f"AttributeExtractor(columns={self.columns})"


def extract_attributes(
    batch,
    config: Union[MatchingConfig, MatchingCriteria],
    columns: Optional[ColumnNames] = None,
    role: str = "batch",
) -> ExtractedAttributes:
    """Скорочення для AttributeExtractor(columns).extract(...)"""
    return AttributeExtractor(columns).extract(batch, config, role=role)
