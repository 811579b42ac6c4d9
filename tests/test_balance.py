"""
Тести для оцінки балансу коваріат

Запуск: pytest tests/test_balance.py -v
Або демо: python tests/test_balance.py
"""

import csv
import logging
from datetime import date

import pyarrow as pa
import pytest


def _tables():
    cases = pa.table({
        "PNR": pa.array([f"K{i}" for i in range(5)]),
        "age": pa.array([2, 4, 6, 8, 10], pa.int64()),
        "region": pa.array(["a", "a", "a", "b", "b"]),
        "flag": pa.array([True, True, False, False, None]),
        "FOED_DAG": pa.array([date(2010, 1, i + 1) for i in range(5)]),
    })
    controls = pa.table({
        "PNR": pa.array([f"C{i}" for i in range(5)]),
        "age": pa.array([1, 2, 3, 4, 5], pa.int64()),
        "region": pa.array(["a", "b", "b", "b", "b"]),
        "flag": pa.array([True, False, False, False, False]),
        "FOED_DAG": pa.array([date(2010, 2, i + 1) for i in range(5)]),
    })
    return cases, controls


def _config(min_observations=4, threshold=0.1):
    from scd_cohort.config import BalanceConfig
    return BalanceConfig(min_observations=min_observations, imbalance_threshold=threshold)


def test_standardized_difference():
    """Формула стандартизованої різниці"""
    from scd_cohort.matching import standardized_difference

    assert standardized_difference(6.0, 3.0, 10 ** 0.5, 2.5 ** 0.5) == pytest.approx(1.2)
    assert standardized_difference(1.0, 1.0, 0.0, 0.0) == 0.0
    assert standardized_difference(2.0, 1.0, 0.0, 0.0) == 0.0


def test_numeric_balance():
    """Числова колонка: середні, SD з ddof=1"""
    from scd_cohort.matching import BalanceCalculator

    cases, controls = _tables()
    report = BalanceCalculator(_config()).calculate_balance(cases, controls)
    metric = next(m for m in report.metrics if m.name == "age")

    assert metric.case_mean == pytest.approx(6.0)
    assert metric.control_mean == pytest.approx(3.0)
    assert metric.case_std == pytest.approx(10 ** 0.5)
    assert metric.control_std == pytest.approx(2.5 ** 0.5)
    assert metric.standardized_difference == pytest.approx(1.2)
    assert metric.covariate_type == "Continuous"

    print(f"✓ age: d = {metric.standardized_difference:.4f}")


def test_categorical_balance():
    """Рядкова колонка: найчастіша категорія"""
    from scd_cohort.matching import BalanceCalculator

    cases, controls = _tables()
    report = BalanceCalculator(_config()).calculate_balance(cases, controls)
    metric = next(m for m in report.metrics if m.name.startswith("region"))

    # a: 3 + 1 = 4, b: 2 + 4 = 6
    assert metric.name == "region_b"
    assert metric.case_mean == pytest.approx(0.4)
    assert metric.control_mean == pytest.approx(0.8)
    assert metric.standardized_difference == pytest.approx(-0.4 / 0.2 ** 0.5)
    assert metric.categorical


def test_boolean_balance_and_skipped_columns(caplog):
    """Булева колонка; PNR виключено, дати пропущено"""
    from scd_cohort.matching import BalanceCalculator

    cases, controls = _tables()
    with caplog.at_level(logging.WARNING, logger="scd_cohort"):
        report = BalanceCalculator(_config()).calculate_balance(cases, controls)

    names = {m.name for m in report.metrics}
    assert names == {"age", "region_b", "flag_TRUE"}

    flag = next(m for m in report.metrics if m.name == "flag_TRUE")
    assert flag.case_mean == pytest.approx(0.5)
    assert flag.control_mean == pytest.approx(0.2)

    assert any("FOED_DAG" in r.getMessage() for r in caplog.records)


def test_too_few_observations_skipped():
    """Колонки з малою кількістю значень пропускаються"""
    from scd_cohort.matching import BalanceCalculator

    cases, controls = _tables()
    report = BalanceCalculator(_config(min_observations=5)).calculate_balance(cases, controls)

    # flag має лише 4 непорожні значення у кейсів
    assert {m.name for m in report.metrics} == {"age", "region_b"}


def test_summary_and_report(tmp_path):
    """Підсумок, текстовий звіт та CSV"""
    from scd_cohort.matching import BalanceCalculator

    cases, controls = _tables()
    report = BalanceCalculator(_config(threshold=1.0)).calculate_balance(cases, controls)

    summary = report.summary
    assert summary.total_covariates == 3
    assert summary.imbalanced_covariates == 1  # лише age: |1.2| > 1.0
    assert summary.max_standardized_difference == pytest.approx(1.2)
    assert report.sorted_metrics()[0].name == "age"

    text = report.to_string()
    assert "Balance Summary:" in text
    assert "age" in text

    path = report.write_to_csv(tmp_path / "reports" / "balance.csv")
    with open(path, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0][0] == "Covariate"
    assert rows[1][0] == "age"
    assert ["Summary Statistics"] in rows

    assert report.to_dict()["summary"]["total_covariates"] == 3

    print(text)


def test_empty_batch_rejected():
    """Порожній батч → ValidationError"""
    from scd_cohort.exceptions import ValidationError
    from scd_cohort.matching import BalanceCalculator

    cases, controls = _tables()
    with pytest.raises(ValidationError):
        BalanceCalculator().calculate_balance(cases.slice(0, 0), controls)


def demo():
    print("=" * 60)
    print("SCD-Cohort — Тест балансу коваріат")
    print("=" * 60)

    test_numeric_balance()
    test_categorical_balance()

    from scd_cohort.matching import BalanceCalculator
    cases, controls = _tables()
    print(BalanceCalculator(_config()).calculate_balance(cases, controls).to_string())

    print("=" * 60)
    print("✅ Всі тести пройдено успішно!")


if __name__ == "__main__":
    demo()
