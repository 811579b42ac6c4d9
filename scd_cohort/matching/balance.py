"""
SCD-Cohort — Оцінка балансу коваріат

Порівнює розподіли коваріат між зматченими кейсами та контролями
через стандартизовану різницю:

    d = (m_case - m_control) / sqrt((s_case² + s_control²) / 2)

- числові колонки: середнє та вибіркове SD (ddof=1)
- рядкові: частка найпоширенішої категорії (метрика "<колонка>_<категорія>")
- булеві: частка True (метрика "<колонка>_TRUE")
- дати та інші типи пропускаються з попередженням

|d| > imbalance_threshold вважається дисбалансом.
"""

import csv
import logging
import math
from collections import Counter
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pyarrow as pa

from scd_cohort.config import BalanceConfig
from scd_cohort.exceptions import ValidationError
from scd_cohort.io import column_to_strings, get_column, to_array


logger = logging.getLogger(__name__)


@dataclass
class BalanceMetric:
    """Баланс однієї коваріати"""
    name: str
    standardized_difference: float
    case_mean: float
    control_mean: float
    case_std: float
    control_std: float
    categorical: bool = False

    @property
    def abs_difference(self) -> float:
        return abs(self.standardized_difference)

    @property
    def covariate_type(self) -> str:
        return "Categorical" if self.categorical else "Continuous"


@dataclass
class BalanceSummary:
    """Підсумок по всіх коваріатах"""
    imbalanced_covariates: int = 0
    max_standardized_difference: float = 0.0
    mean_absolute_standardized_difference: float = 0.0
    total_covariates: int = 0

    @property
    def imbalanced_percent(self) -> float:
        if self.total_covariates == 0:
            return 0.0
        return 100.0 * self.imbalanced_covariates / self.total_covariates


@dataclass
class BalanceReport:
    """
    Звіт про баланс.

    Приклад використання:
        report = BalanceCalculator().calculate_balance(matched_cases, matched_controls)
        print(report.to_string())
        report.write_to_csv("output/balance_report.csv")
    """
    metrics: List[BalanceMetric] = field(default_factory=list)
    summary: BalanceSummary = field(default_factory=BalanceSummary)
    imbalance_threshold: float = 0.1

    def sorted_metrics(self) -> List[BalanceMetric]:
        """Метрики за спаданням |d|"""
        return sorted(self.metrics, key=lambda m: m.abs_difference, reverse=True)

    def to_string(self) -> str:
        s = self.summary
        lines = [
            "Balance Summary:",
            f"- Total covariates: {s.total_covariates}",
            f"- Imbalanced covariates (std diff > {self.imbalance_threshold}): "
            f"{s.imbalanced_covariates} ({s.imbalanced_percent:.1f}%)",
            f"- Maximum standardized difference: {s.max_standardized_difference:.4f}",
            f"- Mean absolute standardized difference: "
            f"{s.mean_absolute_standardized_difference:.4f}",
            "",
            f"{'Covariate':<30} | {'Type':<11} | {'Case Mean':>9} | {'Control Mean':>12} | "
            f"{'Case SD':>8} | {'Control SD':>10} | {'Std Diff':>8}",
            "-" * 106,
        ]
        for m in self.sorted_metrics():
            lines.append(
                f"{m.name[:30]:<30} | {m.covariate_type:<11} | {m.case_mean:>9.4f} | "
                f"{m.control_mean:>12.4f} | {m.case_std:>8.4f} | {m.control_std:>10.4f} | "
                f"{m.standardized_difference:>8.4f}"
            )
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metrics": [asdict(m) for m in self.sorted_metrics()],
            "summary": asdict(self.summary),
            "imbalance_threshold": self.imbalance_threshold,
        }

    def write_to_csv(self, path: Union[str, Path]) -> Path:
        """Записати метрики та підсумок у CSV"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow([
                "Covariate", "Type", "Case Mean", "Control Mean",
                "Case SD", "Control SD", "Std Diff",
            ])
            for m in self.sorted_metrics():
                writer.writerow([
                    m.name, m.covariate_type,
                    f"{m.case_mean:.6f}", f"{m.control_mean:.6f}",
                    f"{m.case_std:.6f}", f"{m.control_std:.6f}",
                    f"{m.standardized_difference:.6f}",
                ])
            s = self.summary
            writer.writerow([])
            writer.writerow(["Summary Statistics"])
            writer.writerow(["Total covariates", s.total_covariates])
            writer.writerow([
                f"Imbalanced covariates (std diff > {self.imbalance_threshold})",
                s.imbalanced_covariates,
            ])
            writer.writerow(["Maximum standardized difference", f"{s.max_standardized_difference:.6f}"])
            writer.writerow([
                "Mean absolute standardized difference",
                f"{s.mean_absolute_standardized_difference:.6f}",
            ])
        logger.info(f"Balance report written to {path}")
        return path


def standardized_difference(
    case_mean: float,
    control_mean: float,
    case_std: float,
    control_std: float,
) -> float:
    """Стандартизована різниця; 0 якщо обидва SD нульові"""
    pooled = math.sqrt((case_std ** 2 + control_std ** 2) / 2.0)
    if pooled == 0.0:
        return 0.0
    return (case_mean - control_mean) / pooled


def _proportion_metric(
    name: str,
    case_hits: int,
    case_total: int,
    control_hits: int,
    control_total: int,
) -> BalanceMetric:
    case_p = case_hits / case_total
    control_p = control_hits / control_total
    case_std = math.sqrt(case_p * (1.0 - case_p))
    control_std = math.sqrt(control_p * (1.0 - control_p))
    return BalanceMetric(
        name=name,
        standardized_difference=standardized_difference(case_p, control_p, case_std, control_std),
        case_mean=case_p,
        control_mean=control_p,
        case_std=case_std,
        control_std=control_std,
        categorical=True,
    )


class BalanceCalculator:
    """
    Розрахунок балансу коваріат між кейсами та контролями.

    Приклад використання:
        calculator = BalanceCalculator(BalanceConfig(imbalance_threshold=0.2))
        report = calculator.calculate_balance(cases_table, controls_table)
    """

    def __init__(self, config: Optional[BalanceConfig] = None):
        """
        Args:
            config: Параметри (виключені колонки, мінімум спостережень, поріг)
        """
        self.config = config or BalanceConfig()

    def calculate_balance(self, cases, controls) -> BalanceReport:
        """
        Розрахувати баланс для всіх спільних колонок.

        Args:
            cases: pa.Table / pa.RecordBatch зматчених кейсів
            controls: pa.Table / pa.RecordBatch зматчених контролів

        Returns:
            BalanceReport
        """
        if cases.num_rows == 0 or controls.num_rows == 0:
            raise ValidationError("No records found in case or control batch")

        control_names = set(controls.schema.names)
        metrics: List[BalanceMetric] = []

        for case_field in cases.schema:
            name = case_field.name
            if name in self.config.exclude_columns or name not in control_names:
                continue

            case_array = to_array(get_column(cases, name))
            control_array = to_array(get_column(controls, name))
            dtype = case_array.type

            try:
                if pa.types.is_integer(dtype) or pa.types.is_floating(dtype):
                    metric = self._numeric_balance(name, case_array, control_array)
                elif pa.types.is_string(dtype) or pa.types.is_large_string(dtype):
                    metric = self._categorical_balance(name, case_array, control_array)
                elif pa.types.is_boolean(dtype):
                    metric = self._boolean_balance(name, case_array, control_array)
                elif pa.types.is_date(dtype) or pa.types.is_timestamp(dtype):
                    logger.warning(f"Date column {name} not supported for balance calculation")
                    continue
                else:
                    logger.warning(f"Column {name} has unsupported type for balance: {dtype}")
                    continue
            except (ValidationError, pa.ArrowInvalid, pa.ArrowNotImplementedError) as e:
                logger.warning(f"Skipping balance for column {name}: {e}")
                continue

            metrics.append(metric)

        summary = self._summarize(metrics)
        logger.info(
            f"Balance: {summary.imbalanced_covariates}/{summary.total_covariates} "
            f"covariates imbalanced, max |d| = {summary.max_standardized_difference:.4f}"
        )
        return BalanceReport(
            metrics=metrics,
            summary=summary,
            imbalance_threshold=self.config.imbalance_threshold,
        )

    def _check_observations(self, name: str, n_case: int, n_control: int) -> None:
        if n_case < self.config.min_observations or n_control < self.config.min_observations:
            raise ValidationError(
                f"Too few non-missing values for column {name} "
                f"(case: {n_case}, control: {n_control})"
            )

    def _numeric_balance(self, name: str, case_array, control_array) -> BalanceMetric:
        case_values = _to_float(case_array)
        control_values = _to_float(control_array)
        case_values = case_values[~np.isnan(case_values)]
        control_values = control_values[~np.isnan(control_values)]
        self._check_observations(name, len(case_values), len(control_values))

        case_mean = float(case_values.mean())
        control_mean = float(control_values.mean())
        case_std = float(case_values.std(ddof=1))
        control_std = float(control_values.std(ddof=1))

        return BalanceMetric(
            name=name,
            standardized_difference=standardized_difference(
                case_mean, control_mean, case_std, control_std
            ),
            case_mean=case_mean,
            control_mean=control_mean,
            case_std=case_std,
            control_std=control_std,
        )

    def _categorical_balance(self, name: str, case_array, control_array) -> BalanceMetric:
        case_counts = Counter(v for v in column_to_strings(case_array) if v is not None)
        control_counts = Counter(v for v in column_to_strings(control_array) if v is not None)
        case_total = sum(case_counts.values())
        control_total = sum(control_counts.values())
        self._check_observations(name, case_total, control_total)

        combined = case_counts + control_counts
        # Найчастіша категорія, при рівності перша за алфавітом
        category = min(combined, key=lambda c: (-combined[c], c))

        return _proportion_metric(
            f"{name}_{category}",
            case_counts[category], case_total,
            control_counts[category], control_total,
        )

    def _boolean_balance(self, name: str, case_array, control_array) -> BalanceMetric:
        case_values = [v for v in case_array.to_pylist() if v is not None]
        control_values = [v for v in control_array.to_pylist() if v is not None]
        self._check_observations(name, len(case_values), len(control_values))

        return _proportion_metric(
            f"{name}_TRUE",
            sum(case_values), len(case_values),
            sum(control_values), len(control_values),
        )

    def _summarize(self, metrics: List[BalanceMetric]) -> BalanceSummary:
        if not metrics:
            return BalanceSummary()
        diffs = [m.abs_difference for m in metrics]
        return BalanceSummary(
            imbalanced_covariates=sum(1 for d in diffs if d > self.config.imbalance_threshold),
            max_standardized_difference=max(diffs),
            mean_absolute_standardized_difference=sum(diffs) / len(diffs),
            total_covariates=len(metrics),
        )

    def __repr__(self) -> str:
        return f"BalanceCalculator(threshold={self.config.imbalance_threshold})"


def _to_float(array) -> np.ndarray:
    """Числова колонка → float64 без відкидання дробової частини"""
    values = array.cast(pa.float64()).to_numpy(zero_copy_only=False)
    return np.asarray(values, dtype="float64")
