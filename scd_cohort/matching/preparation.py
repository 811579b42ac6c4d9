"""
SCD-Cohort — Підготовка кейсів та контролів

Поділ популяції на два батчі за множиною PNR кейсів.
Порядок рядків зберігається.
"""

import logging
from typing import Iterable, Optional, Tuple

import pyarrow as pa
import pyarrow.compute as pc

from scd_cohort.config import ColumnNames, ScdConfig
from scd_cohort.io import get_column, to_array
from scd_cohort.scd import ScdClassifier, get_individuals_with_scd


logger = logging.getLogger(__name__)


def split_cases_controls(
    population,
    case_pnrs: Iterable[str],
    pnr_column: str = "PNR",
) -> Tuple[pa.Table, pa.Table]:
    """
    Розділити популяцію на кейси та контролі.

    Args:
        population: pa.Table або pa.RecordBatch
        case_pnrs: PNR кейсів
        pnr_column: Назва колонки PNR

    Returns:
        (кейси, контролі)
    """
    if isinstance(population, pa.RecordBatch):
        population = pa.Table.from_batches([population])

    pnrs = to_array(get_column(population, pnr_column))
    if not (pa.types.is_string(pnrs.type) or pa.types.is_large_string(pnrs.type)):
        pnrs = pc.cast(pnrs, pa.string())

    value_set = pa.array(sorted(set(case_pnrs)), type=pa.string())
    is_case = pc.fill_null(pc.is_in(pnrs, value_set=value_set), False)

    cases = population.filter(is_case)
    controls = population.filter(pc.invert(is_case))

    logger.info(f"Split population: {cases.num_rows} cases, {controls.num_rows} controls")
    if cases.num_rows == 0:
        logger.warning("No cases found in population")
    if controls.num_rows == 0:
        logger.warning("No controls found in population")
    return cases, controls


def prepare_scd_cohort(
    population,
    diagnoses,
    scd_config: Optional[ScdConfig] = None,
    columns: Optional[ColumnNames] = None,
) -> Tuple[pa.Table, pa.Table]:
    """
    Кейси = особи з SCD, контролі = решта популяції.

    Args:
        population: Таблиця популяції (PNR, дата народження, ...)
        diagnoses: Таблиця діагнозів
        scd_config: Параметри класифікації SCD
        columns: Назви колонок популяції

    Returns:
        (кейси, контролі)
    """
    columns = columns or ColumnNames()
    classifier = ScdClassifier(scd_config, columns)
    results = classifier.classify_table(diagnoses, population)
    return split_cases_controls(population, get_individuals_with_scd(results), columns.pnr)
