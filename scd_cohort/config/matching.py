"""
SCD-Cohort — Критерії та конфігурація матчингу

Незмінні (frozen) dataclass-и, які описують правила підбору контролів:
- MatchingCriteria: вікна дат народження, стать, розмір сім'ї тощо
- MatchingConfig: критерії + співвідношення контролів, паралелізм, seed

Обидва типи створюються через fluent builder і після цього
лише читаються (у тому числі з кількох потоків одночасно).
"""

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Dict, List, Optional

from scd_cohort.exceptions import ConfigurationError


# Критерії, які зберігаються в конфігурації, але не перевіряються циклом матчингу
UNENFORCED_CRITERIA = (
    "require_both_parents",
    "match_education_level",
    "match_geography",
    "match_parental_status",
    "match_immigrant_background",
)

# Пул для паралельного матчингу: потоки (спільна пам'ять) або процеси (без GIL)
EXECUTORS = ("thread", "process")


# =============================================================================
# MATCHING CRITERIA
# =============================================================================

@dataclass(frozen=True)
class MatchingCriteria:
    """
    Критерії відповідності кейс-контроль.

    Приклад використання:
        criteria = (
            MatchingCriteria.builder()
            .birth_date_window(30)
            .require_same_gender(True)
            .family_size_tolerance(1)
            .build()
        )
        criteria.is_birth_date_match(date(2010, 1, 1), date(2010, 1, 20))  # True
    """

    # Дати народження
    birth_date_window_days: int = 30
    parent_birth_date_window_days: int = 365
    require_both_parents: bool = False

    # Демографія
    require_same_gender: bool = True
    match_family_size: bool = True
    family_size_tolerance: int = 1

    # Соціально-економічні виміри
    match_education_level: bool = False
    match_geography: bool = False
    match_parental_status: bool = False
    match_immigrant_background: bool = False

    def __post_init__(self):
        if self.birth_date_window_days < 0:
            raise ConfigurationError(
                f"birth_date_window_days must be >= 0, got {self.birth_date_window_days}"
            )
        if self.parent_birth_date_window_days < 0:
            raise ConfigurationError(
                f"parent_birth_date_window_days must be >= 0, "
                f"got {self.parent_birth_date_window_days}"
            )
        if self.family_size_tolerance < 0:
            raise ConfigurationError(
                f"family_size_tolerance must be >= 0, got {self.family_size_tolerance}"
            )

    @classmethod
    def builder(cls) -> "MatchingCriteriaBuilder":
        """Створити builder з параметрами за замовчуванням"""
        return MatchingCriteriaBuilder()

    def is_birth_date_match(self, case_birth_date: date, control_birth_date: date) -> bool:
        """Чи різниця дат народження не перевищує birth_date_window_days"""
        diff = abs((case_birth_date - control_birth_date).days)
        return diff <= self.birth_date_window_days

    def unenforced_criteria(self) -> List[str]:
        """Увімкнені критерії, які цикл матчингу не застосовує"""
        return [name for name in UNENFORCED_CRITERIA if getattr(self, name)]

    def to_string_representation(self) -> str:
        """Людинозрозумілий дамп критеріїв"""
        lines = [
            "Matching Criteria:",
            f"  Birth date window: {self.birth_date_window_days} days",
            f"  Parent birth date window: {self.parent_birth_date_window_days} days",
            f"  Require both parents: {self.require_both_parents}",
            f"  Require same gender: {self.require_same_gender}",
            f"  Match family size: {self.match_family_size}",
            f"  Family size tolerance: {self.family_size_tolerance}",
            f"  Match education level: {self.match_education_level}",
            f"  Match geography: {self.match_geography}",
            f"  Match parental status: {self.match_parental_status}",
            f"  Match immigrant background: {self.match_immigrant_background}",
        ]
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.to_string_representation()


class MatchingCriteriaBuilder:
    """Fluent builder для MatchingCriteria"""

    def __init__(self, base: Optional[MatchingCriteria] = None):
        self._criteria = base or MatchingCriteria()
        self._changes: Dict[str, Any] = {}

    def _set(self, name: str, value: Any) -> "MatchingCriteriaBuilder":
        self._changes[name] = value
        return self

    def birth_date_window(self, days: int) -> "MatchingCriteriaBuilder":
        return self._set("birth_date_window_days", int(days))

    def parent_birth_date_window(self, days: int) -> "MatchingCriteriaBuilder":
        return self._set("parent_birth_date_window_days", int(days))

    def require_both_parents(self, required: bool) -> "MatchingCriteriaBuilder":
        return self._set("require_both_parents", bool(required))

    def require_same_gender(self, required: bool) -> "MatchingCriteriaBuilder":
        return self._set("require_same_gender", bool(required))

    def match_family_size(self, enabled: bool) -> "MatchingCriteriaBuilder":
        return self._set("match_family_size", bool(enabled))

    def family_size_tolerance(self, tolerance: int) -> "MatchingCriteriaBuilder":
        return self._set("family_size_tolerance", int(tolerance))

    def match_education_level(self, enabled: bool) -> "MatchingCriteriaBuilder":
        return self._set("match_education_level", bool(enabled))

    def match_geography(self, enabled: bool) -> "MatchingCriteriaBuilder":
        return self._set("match_geography", bool(enabled))

    def match_parental_status(self, enabled: bool) -> "MatchingCriteriaBuilder":
        return self._set("match_parental_status", bool(enabled))

    def match_immigrant_background(self, enabled: bool) -> "MatchingCriteriaBuilder":
        return self._set("match_immigrant_background", bool(enabled))

    def build(self) -> MatchingCriteria:
        return replace(self._criteria, **self._changes)


# =============================================================================
# MATCHING CONFIG
# =============================================================================

@dataclass(frozen=True)
class MatchingConfig:
    """
    Конфігурація запуску матчингу.

    Приклад використання:
        config = (
            MatchingConfig.builder()
            .criteria(criteria)
            .matching_ratio(4)
            .random_seed(42)
            .build()
        )
    """

    criteria: MatchingCriteria = field(default_factory=MatchingCriteria)
    matching_ratio: int = 1
    use_parallel: bool = True
    random_seed: Optional[int] = None
    matching_date: Optional[date] = None

    # Паралельне виконання
    parallel_threshold: int = 1000   # менше кейсів → послідовний матчинг
    num_workers: Optional[int] = None  # None = кількість CPU
    executor: str = "thread"         # "thread" або "process"

    def __post_init__(self):
        if self.matching_ratio < 1:
            raise ConfigurationError(f"matching_ratio must be >= 1, got {self.matching_ratio}")
        if self.random_seed is not None and self.random_seed < 0:
            raise ConfigurationError(f"random_seed must be >= 0, got {self.random_seed}")
        if self.parallel_threshold < 0:
            raise ConfigurationError(
                f"parallel_threshold must be >= 0, got {self.parallel_threshold}"
            )
        if self.num_workers is not None and self.num_workers < 1:
            raise ConfigurationError(f"num_workers must be >= 1, got {self.num_workers}")
        if self.executor not in EXECUTORS:
            raise ConfigurationError(
                f"executor must be one of {', '.join(EXECUTORS)}, got {self.executor!r}"
            )

    @classmethod
    def builder(cls) -> "MatchingConfigBuilder":
        """Створити builder з параметрами за замовчуванням"""
        return MatchingConfigBuilder()

    def should_use_parallel(self, case_count: int) -> bool:
        """Чи запускати паралельний матчинг для заданої кількості кейсів"""
        return self.use_parallel and case_count >= self.parallel_threshold

    def to_string_representation(self) -> str:
        seed = self.random_seed if self.random_seed is not None else "random"
        lines = [
            "Matching Config:",
            f"  Matching ratio: 1:{self.matching_ratio}",
            f"  Use parallel: {self.use_parallel} (threshold {self.parallel_threshold} cases)",
            f"  Executor: {self.executor}",
            f"  Random seed: {seed}",
            f"  Matching date: {self.matching_date or 'today'}",
            self.criteria.to_string_representation(),
        ]
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.to_string_representation()


class MatchingConfigBuilder:
    """Fluent builder для MatchingConfig"""

    def __init__(self, base: Optional[MatchingConfig] = None):
        self._config = base or MatchingConfig()
        self._changes: Dict[str, Any] = {}

    def _set(self, name: str, value: Any) -> "MatchingConfigBuilder":
        self._changes[name] = value
        return self

    def criteria(self, criteria: MatchingCriteria) -> "MatchingConfigBuilder":
        return self._set("criteria", criteria)

    def matching_ratio(self, ratio: int) -> "MatchingConfigBuilder":
        return self._set("matching_ratio", int(ratio))

    def use_parallel(self, parallel: bool) -> "MatchingConfigBuilder":
        return self._set("use_parallel", bool(parallel))

    def random_seed(self, seed: Optional[int]) -> "MatchingConfigBuilder":
        return self._set("random_seed", None if seed is None else int(seed))

    def matching_date(self, match_date: Optional[date]) -> "MatchingConfigBuilder":
        return self._set("matching_date", match_date)

    def parallel_threshold(self, case_count: int) -> "MatchingConfigBuilder":
        return self._set("parallel_threshold", int(case_count))

    def num_workers(self, workers: Optional[int]) -> "MatchingConfigBuilder":
        return self._set("num_workers", None if workers is None else int(workers))

    def executor(self, kind: str) -> "MatchingConfigBuilder":
        return self._set("executor", str(kind))

    def build(self) -> MatchingConfig:
        return replace(self._config, **self._changes)
