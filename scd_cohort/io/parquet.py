"""
SCD-Cohort — Читання та запис Parquet

Завантаження реєстрових витягів у pa.Table:
- find_parquet_files: пошук файлів у директорії
- read_parquet: один файл, проєкція колонок, фільтр за PNR
- load_parquet_files: багато файлів паралельно (пул потоків)
- write_parquet: запис результатів
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

import pyarrow as pa
import pyarrow.compute as pc
import pyarrow.parquet as pq
from tqdm import tqdm

from scd_cohort.exceptions import DataLoadError, ValidationError


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def find_parquet_files(directory: PathLike) -> List[Path]:
    """
    Знайти всі .parquet файли (рекурсивно, відсортовані).

    Якщо передано шлях до файлу, повертається список з одного файлу.
    """
    directory = Path(directory)
    if directory.is_file():
        return [directory]
    if not directory.is_dir():
        raise DataLoadError(f"Directory not found: {directory}")

    files = sorted(p for p in directory.rglob("*.parquet") if p.is_file())
    logger.debug(f"Found {len(files)} parquet files in {directory}")
    return files


def filter_by_pnr(table: pa.Table, pnrs: Iterable[str], pnr_column: str = "PNR") -> pa.Table:
    """Залишити рядки, PNR яких входить у множину pnrs"""
    if pnr_column not in table.schema.names:
        raise ValidationError(f"Column '{pnr_column}' not found in table")
    column = table.column(pnr_column)
    value_set = pa.array(sorted(set(pnrs)), type=pa.string())
    if not pa.types.is_string(column.type):
        column = pc.cast(column, pa.string())
    return table.filter(pc.is_in(column, value_set=value_set))


def read_parquet(
    path: PathLike,
    columns: Optional[Sequence[str]] = None,
    pnr_filter: Optional[Iterable[str]] = None,
    pnr_column: str = "PNR",
) -> pa.Table:
    """
    Прочитати один Parquet файл.

    Args:
        path: Шлях до файлу
        columns: Потрібні колонки (відсутні у файлі ігноруються)
        pnr_filter: Множина PNR для фільтрації рядків
        pnr_column: Назва колонки PNR

    Returns:
        pa.Table
    """
    path = Path(path)
    if not path.exists():
        raise DataLoadError(f"File not found: {path}")

    try:
        read_columns = None
        if columns is not None:
            available = set(pq.read_schema(path).names)
            read_columns = [c for c in columns if c in available]
            missing = [c for c in columns if c not in available]
            if missing:
                logger.warning(f"{path.name}: columns not present, skipped: {missing}")
        table = pq.read_table(path, columns=read_columns)
    except (OSError, pa.ArrowInvalid) as e:
        raise DataLoadError(f"Failed to read {path}: {e}") from e

    if pnr_filter is not None:
        table = filter_by_pnr(table, pnr_filter, pnr_column)

    logger.debug(f"Read {table.num_rows} rows from {path.name}")
    return table


def load_parquet_files(
    paths: Sequence[PathLike],
    columns: Optional[Sequence[str]] = None,
    pnr_filter: Optional[Iterable[str]] = None,
    pnr_column: str = "PNR",
    max_workers: Optional[int] = None,
    verbose: bool = False,
) -> pa.Table:
    """
    Прочитати кілька файлів паралельно та об'єднати в одну таблицю.

    Порядок рядків відповідає порядку paths. Схеми зводяться
    до спільної (promote), відсутні колонки заповнюються null.
    """
    paths = [Path(p) for p in paths]
    if not paths:
        raise DataLoadError("No parquet files to load")

    pnr_set = set(pnr_filter) if pnr_filter is not None else None

    def _read(path: Path) -> pa.Table:
        return read_parquet(path, columns=columns, pnr_filter=pnr_set, pnr_column=pnr_column)

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        tables = list(tqdm(
            executor.map(_read, paths),
            total=len(paths),
            desc="Loading parquet",
            disable=not verbose,
        ))

    table = pa.concat_tables(tables, promote_options="default")
    logger.info(f"Loaded {table.num_rows} rows from {len(paths)} files")
    return table


def write_parquet(table: pa.Table, path: PathLike) -> Path:
    """Записати таблицю у Parquet (створює батьківські директорії)"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    pq.write_table(table, path)
    logger.debug(f"Wrote {table.num_rows} rows to {path}")
    return path
