"""
SCD-Cohort — Модуль вводу/виводу

Читання реєстрових витягів Parquet та перетворення колонок Arrow
у масиви numpy.

Компоненти:
- read_parquet / load_parquet_files: завантаження таблиць
- write_parquet: запис результатів
- column_to_dates / column_to_strings / column_to_ints: конвертери колонок

Приклад використання:
    from scd_cohort.io import find_parquet_files, load_parquet_files

    files = find_parquet_files("data/bef")
    population = load_parquet_files(
        files,
        columns=["PNR", "FOED_DAG", "KOEN", "ANTAL_BOERN"],
        verbose=True,
    )
"""

from .arrow_utils import (
    DATE_FORMATS,
    has_column,
    get_column,
    to_array,
    column_to_dates,
    column_to_strings,
    column_to_ints,
)
from .parquet import (
    find_parquet_files,
    filter_by_pnr,
    read_parquet,
    load_parquet_files,
    write_parquet,
)


__all__ = [
    "DATE_FORMATS",
    "has_column",
    "get_column",
    "to_array",
    "column_to_dates",
    "column_to_strings",
    "column_to_ints",
    "find_parquet_files",
    "filter_by_pnr",
    "read_parquet",
    "load_parquet_files",
    "write_parquet",
]
