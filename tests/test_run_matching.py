"""
Тести для скрипта scripts/run_matching.py

Запуск: pytest tests/test_run_matching.py -v
"""

import importlib.util
import json
import logging
from datetime import date, timedelta
from pathlib import Path

import pyarrow as pa
import pyarrow.csv as pacsv
import pyarrow.parquet as pq
import pytest

SCRIPT = Path(__file__).parent.parent / "scripts" / "run_matching.py"


@pytest.fixture
def run_matching():
    spec = importlib.util.spec_from_file_location("run_matching", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    logger = logging.getLogger("scd_cohort")
    level, handlers = logger.level, list(logger.handlers)
    yield module
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)


def _write_population(path, prefix, n, offset=0):
    base = date(2010, 1, 1)
    table = pa.table({
        "PNR": pa.array([f"{prefix}{i:04d}" for i in range(n)]),
        "FOED_DAG": pa.array([base + timedelta(days=offset + i % 90) for i in range(n)]),
        "KOEN": pa.array(["M" if i % 2 else "F" for i in range(n)]),
        "ANTAL_BOERN": pa.array([1 + i % 3 for i in range(n)], pa.int32()),
        "age": pa.array([float(i % 7) for i in range(n)]),
    })
    pq.write_table(table, path)
    return table


def test_cases_and_controls(run_matching, tmp_path):
    """Повний прогін: кейси + контролі → файли результатів"""
    _write_population(tmp_path / "cases.parquet", "K", 40)
    _write_population(tmp_path / "controls.parquet", "C", 400)
    output_dir = tmp_path / "out"

    code = run_matching.main([
        "--cases", str(tmp_path / "cases.parquet"),
        "--controls", str(tmp_path / "controls.parquet"),
        "--ratio", "2",
        "--seed", "42",
        "--no-parallel",
        "--output-dir", str(output_dir),
    ])
    assert code == 0

    for name in [
        "matched_cases.parquet", "matched_controls.parquet",
        "matched_pairs.csv", "matching_summary.json", "balance_report.csv",
    ]:
        assert (output_dir / name).exists(), name

    summary = json.loads((output_dir / "matching_summary.json").read_text(encoding="utf-8"))
    assert summary["total_cases"] == 40
    assert summary["matching_ratio"] == 2
    assert pq.read_table(output_dir / "matched_controls.parquet").num_rows == summary["matched_controls"]


def test_population_and_diagnoses(run_matching, tmp_path):
    """Прогін з поділом популяції за SCD"""
    _write_population(tmp_path / "population.parquet", "P", 200)
    pq.write_table(pa.table({
        "PNR": pa.array(["P0001", "P0002", "P0003"]),
        "C_ADIAG": pa.array(["DE84", "DJ45", "A09"]),
        "D_INDDTO": pa.array([date(2012, 1, 1)] * 3),
    }), tmp_path / "diagnoses.parquet")
    output_dir = tmp_path / "out"

    code = run_matching.main([
        "--population", str(tmp_path / "population.parquet"),
        "--diagnoses", str(tmp_path / "diagnoses.parquet"),
        "--seed", "1",
        "--output-dir", str(output_dir),
    ])
    assert code == 0

    summary = json.loads((output_dir / "matching_summary.json").read_text(encoding="utf-8"))
    assert summary["total_cases"] == 2


def test_config_file_and_overrides(run_matching, tmp_path):
    """YAML конфігурація + аргументи командного рядка"""
    config_path = tmp_path / "study.yaml"
    config_path.write_text(
        "matching:\n"
        "  matching_ratio: 3\n"
        "  criteria:\n"
        "    birth_date_window_days: 10\n",
        encoding="utf-8",
    )
    args = run_matching.parse_args([
        "--cases", "a", "--controls", "b",
        "--config", str(config_path),
        "--window", "5",
        "--workers", "2",
    ])
    config = run_matching.build_config(args)

    assert config.matching.matching_ratio == 3
    assert config.matching.criteria.birth_date_window_days == 5
    assert config.matching.num_workers == 2


def test_missing_inputs(run_matching, tmp_path):
    """Без вхідних даних → помилка argparse; відсутній файл → код 1"""
    with pytest.raises(SystemExit):
        run_matching.parse_args([])

    code = run_matching.main([
        "--cases", str(tmp_path / "nope"),
        "--controls", str(tmp_path / "nope"),
        "--output-dir", str(tmp_path / "out"),
    ])
    assert code == 1


def test_output_errors_return_exit_code(run_matching, tmp_path):
    """Помилка запису результатів → код 1, без traceback"""
    _write_population(tmp_path / "cases.parquet", "K", 10)
    _write_population(tmp_path / "controls.parquet", "C", 50)
    blocked = tmp_path / "out"
    blocked.write_text("not a directory", encoding="utf-8")

    code = run_matching.main([
        "--cases", str(tmp_path / "cases.parquet"),
        "--controls", str(tmp_path / "controls.parquet"),
        "--no-parallel",
        "--output-dir", str(blocked),
    ])
    assert code == 1


def test_padded_pnrs_end_to_end(run_matching, tmp_path):
    """PNR з пробілами не ламають побудову пар"""
    pq.write_table(pa.table({
        "PNR": pa.array(["123"]),
        "FOED_DAG": pa.array([date(2010, 1, 1)]),
    }), tmp_path / "cases.parquet")
    pq.write_table(pa.table({
        "PNR": pa.array(["123 ", "456"]),
        "FOED_DAG": pa.array([date(2010, 1, 1)] * 2),
    }), tmp_path / "controls.parquet")
    output_dir = tmp_path / "out"

    code = run_matching.main([
        "--cases", str(tmp_path / "cases.parquet"),
        "--controls", str(tmp_path / "controls.parquet"),
        "--seed", "1",
        "--output-dir", str(output_dir),
    ])
    assert code == 0

    pairs = pacsv.read_csv(output_dir / "matched_pairs.csv").to_pylist()
    assert [(str(p["case_pnr"]), str(p["control_pnr"])) for p in pairs] == [("123", "456")]


def test_executor_option(run_matching):
    """--executor потрапляє в MatchingConfig"""
    args = run_matching.parse_args(["--cases", "a", "--controls", "b", "--executor", "process"])
    assert run_matching.build_config(args).matching.executor == "process"

    with pytest.raises(SystemExit):
        run_matching.parse_args(["--cases", "a", "--controls", "b", "--executor", "gpu"])
