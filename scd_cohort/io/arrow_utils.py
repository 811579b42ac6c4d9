"""
SCD-Cohort — Утиліти для колонок Arrow

Векторне перетворення колонок pyarrow у масиви numpy:
- column_to_dates: дати (date32/date64/timestamp/рядки) → datetime64[D], NaT для відсутніх
- column_to_strings: рядки або цілі → object-масив, None для відсутніх
- column_to_ints: цілі/дробові → float64, NaN для відсутніх

Всі функції приймають і pa.Array, і pa.ChunkedArray, тобто колонки
як pa.RecordBatch, так і pa.Table.
"""

import logging
from typing import Sequence, Union

import numpy as np
import pyarrow as pa
import pyarrow.compute as pc

from scd_cohort.exceptions import ValidationError


logger = logging.getLogger(__name__)

Batch = Union[pa.RecordBatch, pa.Table]
ArrayLike = Union[pa.Array, pa.ChunkedArray]

# Порядок важливий: перший формат, що підійшов, виграє
DATE_FORMATS: Sequence[str] = ("%Y-%m-%d", "%d-%m-%Y", "%Y/%m/%d", "%d/%m/%Y")

# Форма рядка для кожного формату, щоб "05-01-2010" не читався як рік 5
_DATE_SHAPES = {
    "%Y-%m-%d": r"^\d{4}-\d{1,2}-\d{1,2}$",
    "%d-%m-%Y": r"^\d{1,2}-\d{1,2}-\d{4}$",
    "%Y/%m/%d": r"^\d{4}/\d{1,2}/\d{1,2}$",
    "%d/%m/%Y": r"^\d{1,2}/\d{1,2}/\d{4}$",
}


def has_column(batch: Batch, name: str) -> bool:
    return name in batch.schema.names


def get_column(batch: Batch, name: str) -> ArrayLike:
    """Колонка за назвою; ValidationError якщо її немає"""
    index = batch.schema.get_field_index(name)
    if index < 0:
        raise ValidationError(
            f"Column '{name}' not found. Available: {', '.join(batch.schema.names)}"
        )
    return batch.column(index)


def to_array(array: ArrayLike) -> pa.Array:
    """ChunkedArray → Array; словникові колонки розкодовуються"""
    if isinstance(array, pa.ChunkedArray):
        if array.num_chunks == 1:
            array = array.chunk(0)
        elif array.num_chunks == 0:
            array = pa.array([], type=array.type)
        else:
            array = pa.concat_arrays(array.chunks)
    if pa.types.is_dictionary(array.type):
        array = array.dictionary_decode()
    return array


def _valid_mask(array: pa.Array) -> np.ndarray:
    return np.asarray(array.is_valid().to_numpy(zero_copy_only=False), dtype=bool)


def _date32_to_numpy(array: pa.Array) -> np.ndarray:
    valid = _valid_mask(array)
    days = pc.cast(array, pa.int32()).fill_null(0)
    out = np.asarray(days.to_numpy(zero_copy_only=False), dtype="int64").astype("datetime64[D]")
    out[~valid] = np.datetime64("NaT")
    return out


def _parse_date_strings(array: pa.Array) -> np.ndarray:
    array = pc.utf8_trim_whitespace(array)
    out = np.full(len(array), np.datetime64("NaT"), dtype="datetime64[D]")
    for fmt in DATE_FORMATS:
        pending = np.isnat(out)
        if not pending.any():
            break
        shape = pc.fill_null(pc.match_substring_regex(array, _DATE_SHAPES[fmt]), False)
        shape = np.asarray(shape.to_numpy(zero_copy_only=False), dtype=bool)
        if not (pending & shape).any():
            continue
        parsed = pc.strptime(array, format=fmt, unit="s", error_is_null=True)
        parsed = _date32_to_numpy(pc.cast(parsed, pa.date32(), safe=False))
        take = pending & shape & ~np.isnat(parsed)
        out[take] = parsed[take]
    return out


def column_to_dates(array: ArrayLike) -> np.ndarray:
    """
    Перетворити колонку дат у datetime64[D].

    Підтримуються date32, date64, timestamp та рядки у форматах
    DATE_FORMATS. Null і нерозпізнані значення → NaT.
    """
    array = to_array(array)
    dtype = array.type

    if pa.types.is_date32(dtype):
        return _date32_to_numpy(array)
    if pa.types.is_date64(dtype) or pa.types.is_timestamp(dtype):
        return _date32_to_numpy(pc.cast(array, pa.date32(), safe=False))
    if pa.types.is_string(dtype) or pa.types.is_large_string(dtype):
        return _parse_date_strings(array)

    logger.warning(f"Unsupported date column type {dtype}; all values treated as missing")
    return np.full(len(array), np.datetime64("NaT"), dtype="datetime64[D]")


def column_to_strings(array: ArrayLike) -> np.ndarray:
    """
    Перетворити колонку у object-масив рядків.

    Цілі числа конвертуються в рядки, інші типи → всі None.
    """
    array = to_array(array)
    dtype = array.type

    if pa.types.is_integer(dtype):
        array = pc.cast(array, pa.string())
    elif not (pa.types.is_string(dtype) or pa.types.is_large_string(dtype)):
        return np.full(len(array), None, dtype=object)

    return np.array(array.to_pylist(), dtype=object)


def column_to_ints(array: ArrayLike) -> np.ndarray:
    """
    Перетворити числову колонку у float64 з NaN для відсутніх значень.

    Дробові значення відкидають дробову частину; нечислові типи → всі NaN.
    """
    array = to_array(array)
    dtype = array.type

    if not (pa.types.is_integer(dtype) or pa.types.is_floating(dtype)):
        return np.full(len(array), np.nan, dtype="float64")

    valid = _valid_mask(array)
    values = pc.cast(array, pa.float64()).fill_null(0.0)
    out = np.trunc(np.asarray(values.to_numpy(zero_copy_only=False), dtype="float64"))
    out[~valid] = np.nan
    return out
