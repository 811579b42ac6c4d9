"""
SCD-Cohort — Запуск матчингу кейс-контроль

Запуск:
    # Готові батчі кейсів та контролів
    python scripts/run_matching.py --cases data/cases.parquet --controls data/controls.parquet

    # Популяція + діагнози: кейси визначаються алгоритмом SCD
    python scripts/run_matching.py --population data/bef --diagnoses data/lpr --ratio 4 --seed 42

Результати (у --output-dir):
    matched_cases.parquet, matched_controls.parquet,
    matched_pairs.csv, matching_summary.json, balance_report.csv
"""

import argparse
import logging
import sys
from pathlib import Path

import pyarrow.csv as pacsv

# Додаємо корінь проекту до path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from scd_cohort.config import (
    MatchingConfigBuilder,
    MatchingCriteriaBuilder,
    get_default_config,
    load_config,
)
from scd_cohort.exceptions import ScdCohortError
from scd_cohort.io import find_parquet_files, load_parquet_files, write_parquet
from scd_cohort.matching import (
    BalanceCalculator,
    Matcher,
    build_matched_pairs,
    matched_pairs_to_table,
    prepare_scd_cohort,
)
from scd_cohort.utils import setup_logging


logger = logging.getLogger("scd_cohort.scripts.run_matching")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="SCD-Cohort case-control matching")

    inputs = parser.add_argument_group("input")
    inputs.add_argument("--cases", help="Parquet файл або директорія з кейсами")
    inputs.add_argument("--controls", help="Parquet файл або директорія з контролями")
    inputs.add_argument("--population", help="Parquet популяції (для поділу за SCD)")
    inputs.add_argument("--diagnoses", help="Parquet діагнозів (для поділу за SCD)")

    parser.add_argument("--config", help="YAML конфігурація")
    parser.add_argument("--ratio", type=int, help="Контролів на кейс")
    parser.add_argument("--seed", type=int, help="Seed для відтворюваності")
    parser.add_argument("--window", type=int, help="Вікно дати народження, дні")
    parser.add_argument("--no-parallel", action="store_true", help="Лише послідовний матчинг")
    parser.add_argument("--workers", type=int, help="Кількість воркерів")
    parser.add_argument(
        "--executor", choices=["thread", "process"], help="Пул паралельного матчингу"
    )
    parser.add_argument("--output-dir", help="Директорія результатів")
    parser.add_argument("--verbose", action="store_true", help="Прогрес та DEBUG лог")

    args = parser.parse_args(argv)

    has_split = args.cases and args.controls
    has_population = args.population and args.diagnoses
    if not (has_split or has_population):
        parser.error("either --cases/--controls or --population/--diagnoses is required")
    return args


def build_config(args):
    config = load_config(args.config) if args.config else get_default_config()

    criteria_builder = MatchingCriteriaBuilder(config.matching.criteria)
    if args.window is not None:
        criteria_builder.birth_date_window(args.window)

    builder = MatchingConfigBuilder(config.matching).criteria(criteria_builder.build())
    if args.ratio is not None:
        builder.matching_ratio(args.ratio)
    if args.seed is not None:
        builder.random_seed(args.seed)
    if args.no_parallel:
        builder.use_parallel(False)
    if args.workers is not None:
        builder.num_workers(args.workers)
    if args.executor:
        builder.executor(args.executor)
    config.matching = builder.build()

    if args.output_dir:
        config.output_dir = args.output_dir
    if args.verbose:
        config.verbose = True
        config.logging.level = "DEBUG"
    return config


def load_table(path: str, verbose: bool):
    return load_parquet_files(find_parquet_files(path), verbose=verbose)


def write_results(result, cases, controls, config, output_dir: Path):
    """Записати результати; повертає (MatchingSummary, BalanceReport або None)"""
    output_dir.mkdir(parents=True, exist_ok=True)

    matched_cases = result.select_cases(cases)
    matched_controls = result.select_controls(controls)
    write_parquet(matched_cases, output_dir / "matched_cases.parquet")
    write_parquet(matched_controls, output_dir / "matched_controls.parquet")

    pairs = build_matched_pairs(result, cases, controls, config.matching.matching_date, config.columns)
    pacsv.write_csv(matched_pairs_to_table(pairs), str(output_dir / "matched_pairs.csv"))

    summary = result.to_summary().model_copy(update={"matching_ratio": config.matching.matching_ratio})
    (output_dir / "matching_summary.json").write_text(summary.model_dump_json(indent=2), encoding="utf-8")

    report = None
    if result.matched_case_count > 0:
        report = BalanceCalculator(config.balance).calculate_balance(matched_cases, matched_controls)
        report.write_to_csv(output_dir / "balance_report.csv")
    return summary, report


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        config = build_config(args)
    except ScdCohortError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    setup_logging(config.logging.level, config.logging.log_file, config.logging.console)

    print("=" * 70)
    print("SCD-Cohort — МАТЧИНГ КЕЙС-КОНТРОЛЬ")
    print("=" * 70)
    print(config.matching.to_string_representation())

    try:
        if args.cases:
            cases = load_table(args.cases, config.verbose)
            controls = load_table(args.controls, config.verbose)
        else:
            population = load_table(args.population, config.verbose)
            diagnoses = load_table(args.diagnoses, config.verbose)
            cases, controls = prepare_scd_cohort(population, diagnoses, config.scd, config.columns)

        matcher = Matcher(config.matching, config.columns)
        result = matcher.perform_matching(cases, controls, verbose=config.verbose)
    except ScdCohortError as e:
        logger.error(f"Matching failed: {e}")
        return 1

    output_dir = Path(config.output_dir)
    try:
        summary, report = write_results(result, cases, controls, config, output_dir)
    except (ScdCohortError, OSError) as e:
        logger.error(f"Writing results failed: {e}")
        return 1

    if report is not None:
        print("\n" + report.to_string())

    print("\n📊 Результати:")
    print(f"   Кейсів: {summary.total_cases}")
    print(f"   Зматчено: {summary.matched_cases} ({summary.match_rate_percent}%)")
    print(f"   Контролів: {summary.matched_controls}")
    print(f"   Час: {summary.matching_time_seconds:.2f}s")
    print(f"\n📁 Результати збережено: {output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
