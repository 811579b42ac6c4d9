"""
Тести для матчингу кейс-контроль

Запуск: pytest tests/test_matching.py -v
Або демо: python tests/test_matching.py
"""

import logging
from datetime import date, timedelta

import numpy as np
import pyarrow as pa
import pytest

BASE = date(2010, 1, 1)


def _table(rows):
    """rows: (pnr, дата народження, стать, розмір сім'ї)"""
    return pa.table({
        "PNR": pa.array([r[0] for r in rows], pa.string()),
        "FOED_DAG": pa.array([r[1] for r in rows], pa.date32()),
        "KOEN": pa.array([r[2] for r in rows], pa.string()),
        "ANTAL_BOERN": pa.array([r[3] for r in rows], pa.int32()),
    })


def _population(n, seed, prefix, days=365):
    rng = np.random.default_rng(seed)
    rows = [
        (
            f"{prefix}{i:06d}",
            BASE + timedelta(days=int(rng.integers(0, days))),
            "M" if rng.random() < 0.5 else "F",
            int(rng.integers(1, 6)),
        )
        for i in range(n)
    ]
    return _table(rows)


def _config(
    window=30, ratio=1, seed=42, gender=True, family=True, parallel=False, workers=4,
    executor="thread",
):
    from scd_cohort.config import MatchingConfig, MatchingCriteria

    criteria = (
        MatchingCriteria.builder()
        .birth_date_window(window)
        .require_same_gender(gender)
        .match_family_size(family)
        .build()
    )
    return (
        MatchingConfig.builder()
        .criteria(criteria)
        .matching_ratio(ratio)
        .random_seed(seed)
        .use_parallel(parallel)
        .parallel_threshold(0)
        .num_workers(workers)
        .executor(executor)
        .build()
    )


def _run(cases, controls, config):
    from scd_cohort.matching import Matcher
    return Matcher(config).perform_matching(cases, controls)


# =============================================================================
# БАЗОВІ СЦЕНАРІЇ
# =============================================================================

def test_window_scenario():
    """Контролі 100, 101, 130; три кейси 105; вікно 10"""
    controls = _table([
        ("C1", BASE + timedelta(days=100), "M", 2),
        ("C2", BASE + timedelta(days=101), "M", 2),
        ("C3", BASE + timedelta(days=130), "M", 2),
    ])
    cases = _table([
        (f"K{i}", BASE + timedelta(days=105), "M", 2) for i in range(3)
    ])

    result = _run(cases, controls, _config(window=10))

    assert list(result.matched_cases) == [0, 1]
    assert sorted(result.matched_controls) == [0, 1]
    assert list(result.unmatched_cases) == [2]
    assert result.total_case_count == 3

    print(f"✓ {result}")


def test_earlier_case_has_priority():
    """Один контроль на двох кейсів: отримує перший"""
    controls = _table([("C1", BASE, "F", 2)])
    cases = _table([("K1", BASE, "F", 2), ("K2", BASE, "F", 2)])

    result = _run(cases, controls, _config())

    assert list(result.matched_cases) == [0]
    assert list(result.matched_controls) == [0]
    assert list(result.unmatched_cases) == [1]


def test_ratio_and_result_layout():
    """Не більше matching_ratio контролів на кейс, розкладка controls_per_case"""
    cases = _population(100, seed=1, prefix="K")
    controls = _population(1000, seed=2, prefix="C")

    result = _run(cases, controls, _config(ratio=4))

    assert result.matched_case_count > 0
    assert (result.controls_per_case >= 1).all()
    assert (result.controls_per_case <= 4).all()
    assert result.controls_per_case.sum() == result.matched_control_count

    pairs = list(result.iter_matches())
    assert len(pairs) == result.matched_case_count
    assert sum(len(c) for _, c in pairs) == result.matched_control_count
    assert len(result.case_rows_per_control()) == result.matched_control_count

    summary = result.to_summary()
    assert summary.max_controls_per_case <= 4
    assert summary.matched_cases + summary.unmatched_cases == summary.total_cases

    print(f"✓ {summary.matched_cases} cases, mean {summary.mean_controls_per_case:.2f} controls")


# =============================================================================
# ІНВАРІАНТИ
# =============================================================================

@pytest.mark.parametrize("parallel", [False, True])
def test_each_control_used_once(parallel):
    """Жоден контроль не призначений двічі"""
    cases = _population(400, seed=3, prefix="K")
    controls = _population(1200, seed=4, prefix="C")

    result = _run(cases, controls, _config(window=15, ratio=3, parallel=parallel))

    controls_used = list(result.matched_controls)
    assert len(controls_used) == len(set(controls_used))
    assert result.matched_control_count > 0


@pytest.mark.parametrize("parallel", [False, True])
def test_every_case_reported_once(parallel):
    """Кожен кейс або зматчений, або незматчений, рівно один раз"""
    cases = _population(300, seed=5, prefix="K")
    controls = _population(400, seed=6, prefix="C")

    result = _run(cases, controls, _config(window=10, ratio=2, parallel=parallel))

    matched = list(result.matched_cases)
    unmatched = list(result.unmatched_cases)
    assert len(matched) == len(set(matched))
    assert not set(matched) & set(unmatched)
    assert sorted(matched + unmatched) == list(range(300))


@pytest.mark.parametrize("parallel", [False, True])
def test_criteria_respected(parallel):
    """Вікно дат, стать та розмір сім'ї дотримані для кожної пари"""
    cases = _population(200, seed=7, prefix="K")
    controls = _population(2000, seed=8, prefix="C")
    window = 20

    result = _run(cases, controls, _config(window=window, ratio=3, parallel=parallel))

    case_rows = cases.to_pylist()
    control_rows = controls.to_pylist()
    for case_row, control_indices in result.iter_matches():
        case = case_rows[case_row]
        for c in control_indices:
            control = control_rows[c]
            assert abs((case["FOED_DAG"] - control["FOED_DAG"]).days) <= window
            assert case["KOEN"] == control["KOEN"]
            assert abs(case["ANTAL_BOERN"] - control["ANTAL_BOERN"]) <= 1
            assert case["PNR"] != control["PNR"]


def test_no_self_match():
    """Та сама особа не може бути власним контролем"""
    from scd_cohort.matching import build_matched_pairs

    population = _population(200, seed=9, prefix="P", days=60)

    result = _run(population, population, _config(window=5, ratio=2, gender=False, family=False))

    pnrs = population.column("PNR").to_pylist()
    for case_row, control_indices in result.iter_matches():
        assert all(pnrs[c] != pnrs[case_row] for c in control_indices)

    pairs = build_matched_pairs(result, population, population, date(2024, 1, 1))
    assert len(pairs) == result.matched_control_count


@pytest.mark.parametrize("parallel", [False, True])
def test_fixed_seed_is_reproducible(parallel):
    """Однаковий seed → однаковий результат"""
    cases = _population(500, seed=10, prefix="K")
    controls = _population(1500, seed=11, prefix="C")
    config = _config(window=15, ratio=2, seed=123, parallel=parallel)

    first = _run(cases, controls, config)
    second = _run(cases, controls, config)

    assert np.array_equal(first.matched_cases, second.matched_cases)
    assert np.array_equal(first.matched_controls, second.matched_controls)
    assert np.array_equal(first.controls_per_case, second.controls_per_case)
    assert np.array_equal(first.unmatched_cases, second.unmatched_cases)

    print(f"✓ parallel={parallel}: {first.matched_case_count} matched, reproducible")


def test_padded_pnr_is_same_person():
    """PNR з пробілами: та сама особа, не контроль сама собі; пари будуються"""
    from scd_cohort.matching import build_matched_pairs

    cases = _table([("123", BASE, "M", 2)])
    only_self = _table([("123 ", BASE, "M", 2)])

    result = _run(cases, only_self, _config())
    assert result.matched_case_count == 0
    assert build_matched_pairs(result, cases, only_self, date(2024, 1, 1)) == []

    controls = _table([
        ("123 ", BASE, "M", 2),
        (" 456", BASE, "M", 2),
    ])
    result = _run(cases, controls, _config(ratio=2))
    assert list(result.matched_controls) == [1]

    pairs = build_matched_pairs(result, cases, controls, date(2024, 1, 1))
    assert [(p.case_pnr, p.control_pnr) for p in pairs] == [("123", "456")]


def test_process_executor_matches_thread_executor():
    """Пул процесів дає той самий результат, що й пул потоків"""
    cases = _population(500, seed=12, prefix="K")
    controls = _population(1500, seed=13, prefix="C")

    threads = _run(cases, controls, _config(window=15, ratio=2, parallel=True, workers=2))
    processes = _run(
        cases, controls,
        _config(window=15, ratio=2, parallel=True, workers=2, executor="process"),
    )

    assert np.array_equal(threads.matched_cases, processes.matched_cases)
    assert np.array_equal(threads.matched_controls, processes.matched_controls)
    assert np.array_equal(threads.controls_per_case, processes.controls_per_case)
    assert np.array_equal(threads.unmatched_cases, processes.unmatched_cases)

    controls_used = list(processes.matched_controls)
    assert len(controls_used) == len(set(controls_used))
    assert processes.matched_case_count > 0


# =============================================================================
# ВІДСУТНІ ЗНАЧЕННЯ
# =============================================================================

def test_unknown_gender_rejected():
    """Невідома стать у кейсу або контролю → пару відхилено"""
    controls = _table([
        ("C1", BASE, None, 2),
        ("C2", BASE, "M", 2),
    ])
    cases = _table([
        ("K1", BASE, None, 2),
        ("K2", BASE, "M", 2),
    ])

    result = _run(cases, controls, _config(ratio=2))

    assert list(result.matched_cases) == [1]
    assert list(result.matched_controls) == [1]
    assert list(result.unmatched_cases) == [0]


def test_unknown_family_size():
    """Невідомий розмір сім'ї кейсу вимикає перевірку; невідомий у контролю → відхилено"""
    controls = _table([
        ("C1", BASE, "F", None),
        ("C2", BASE, "F", 10),
    ])

    unknown_case = _run(_table([("K1", BASE, "F", None)]), controls, _config(ratio=2))
    assert sorted(unknown_case.matched_controls) == [0, 1]

    known_case = _run(_table([("K1", BASE, "F", 9)]), controls, _config(ratio=2))
    assert list(known_case.matched_controls) == [1]

    far_case = _run(_table([("K1", BASE, "F", 2)]), controls, _config(ratio=2))
    assert far_case.matched_case_count == 0


def test_missing_gender_column_disables_dimension():
    """Без колонки статі матчинг за статтю не застосовується"""
    cases = pa.table({
        "PNR": pa.array(["K1"]),
        "FOED_DAG": pa.array([BASE]),
    })
    controls = _table([("C1", BASE, "F", 2)])

    result = _run(cases, controls, _config())
    assert result.matched_case_count == 1


def test_float_gender_column_disables_dimension(caplog):
    """Дробова колонка статі (1.0/2.0) → попередження, матчинг без статі"""
    cases = pa.table({
        "PNR": pa.array(["K1"]),
        "FOED_DAG": pa.array([BASE]),
        "KOEN": pa.array([1.0]),
    })
    controls = pa.table({
        "PNR": pa.array(["C1"]),
        "FOED_DAG": pa.array([BASE]),
        "KOEN": pa.array([2.0]),
    })

    with caplog.at_level(logging.WARNING, logger="scd_cohort"):
        result = _run(cases, controls, _config())

    assert result.matched_case_count == 1
    assert any(
        "KOEN" in r.getMessage() and "gender matching disabled" in r.getMessage()
        for r in caplog.records
    )


# =============================================================================
# ПОРОЖНІ РЕЗУЛЬТАТИ
# =============================================================================

def test_no_matches_is_valid_result(caplog):
    """Жодного збігу → коректний порожній результат і попередження"""
    cases = _population(20, seed=12, prefix="K")
    controls = _table([("C1", date(2020, 1, 1), "M", 2)])

    with caplog.at_level(logging.WARNING, logger="scd_cohort"):
        result = _run(cases, controls, _config())

    assert result.matched_case_count == 0
    assert result.matched_control_count == 0
    assert result.unmatched_case_count == 20
    assert result.match_rate == 0.0
    assert result.to_summary().mean_controls_per_case == 0.0
    assert any("No cases matched" in r.getMessage() for r in caplog.records)


def test_empty_inputs():
    """Порожні кейси або контролі"""
    cases = _population(5, seed=13, prefix="K")
    no_rows = cases.slice(0, 0)

    result = _run(no_rows, cases, _config())
    assert result.total_case_count == 0
    assert result.matched_case_count == 0

    result = _run(cases, no_rows, _config())
    assert result.total_case_count == 5
    assert sorted(result.unmatched_cases) == [0, 1, 2, 3, 4]


def test_invalid_batch_fails_before_matching():
    """Відсутня обов'язкова колонка → ValidationError"""
    from scd_cohort.exceptions import ValidationError

    cases = pa.table({"PNR": pa.array(["K1"])})
    controls = _population(5, seed=14, prefix="C")

    with pytest.raises(ValidationError):
        _run(cases, controls, _config())


def test_unenforced_criteria_warning(caplog):
    """Увімкнені, але незастосовні критерії → попередження"""
    from scd_cohort.config import MatchingConfig, MatchingCriteria
    from scd_cohort.matching import Matcher

    config = MatchingConfig(
        criteria=MatchingCriteria(match_geography=True, match_education_level=True),
        random_seed=1,
    )
    cases = _population(5, seed=15, prefix="K")
    controls = _population(50, seed=16, prefix="C")

    with caplog.at_level(logging.WARNING, logger="scd_cohort"):
        Matcher(config).perform_matching(cases, controls)

    messages = " ".join(r.getMessage() for r in caplog.records)
    assert "match_geography" in messages
    assert "match_education_level" in messages


# =============================================================================
# ПРОЄКЦІЯ РЕЗУЛЬТАТІВ
# =============================================================================

def test_select_rows_and_pairs():
    """select_cases / select_controls та MatchedPair"""
    from scd_cohort.matching import build_matched_pairs, matched_pairs_to_table

    cases = _population(50, seed=17, prefix="K")
    controls = _population(500, seed=18, prefix="C")
    result = _run(cases, controls, _config(ratio=2))

    matched_cases = result.select_cases(cases)
    matched_controls = result.select_controls(controls)
    assert matched_cases.num_rows == result.matched_case_count
    assert matched_controls.num_rows == result.matched_control_count

    pairs = build_matched_pairs(result, cases, controls, date(2024, 1, 1))
    assert len(pairs) == result.matched_control_count
    assert all(p.birth_date_difference_days <= 30 for p in pairs)
    assert all(p.match_date == date(2024, 1, 1) for p in pairs)

    table = matched_pairs_to_table(pairs)
    assert table.num_rows == len(pairs)
    assert table.schema.names == [
        "case_pnr", "case_birth_date", "control_pnr", "control_birth_date", "match_date",
    ]


def test_filter_batch_by_indices():
    """Рядки у заданому порядку; індекс поза межами → ValidationError"""
    from scd_cohort.exceptions import ValidationError
    from scd_cohort.matching import filter_batch_by_indices

    batch = _table([(f"P{i}", BASE, "M", 1) for i in range(4)]).to_batches()[0]

    selected = filter_batch_by_indices(batch, [3, 0, 3])
    assert isinstance(selected, pa.RecordBatch)
    assert selected.column(0).to_pylist() == ["P3", "P0", "P3"]

    assert filter_batch_by_indices(batch, []).num_rows == 0

    with pytest.raises(ValidationError):
        filter_batch_by_indices(batch, [4])
    with pytest.raises(ValidationError):
        filter_batch_by_indices(batch, [-1])


def demo():
    print("=" * 60)
    print("SCD-Cohort — Тест матчингу")
    print("=" * 60)

    test_window_scenario()
    test_ratio_and_result_layout()
    test_fixed_seed_is_reproducible(False)
    test_fixed_seed_is_reproducible(True)

    print("=" * 60)
    print("✅ Всі тести пройдено успішно!")


if __name__ == "__main__":
    demo()
