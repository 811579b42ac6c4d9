"""
SCD-Cohort — Налаштування дослідження

Всі параметри зібрані в dataclass-и для:
- Типізації та валідації
- Легкого доступу через config.matching.matching_ratio
- Серіалізації в YAML
"""

from dataclasses import asdict, dataclass, field, fields
from datetime import date
from typing import Any, Dict, List, Optional

from scd_cohort.exceptions import ConfigurationError
from .matching import MatchingConfig, MatchingCriteria


# =============================================================================
# COLUMN NAMES
# =============================================================================

@dataclass(frozen=True)
class ColumnNames:
    """Назви колонок реєстру, з яких береться інформація для матчингу"""
    pnr: str = "PNR"
    birth_date: str = "FOED_DAG"
    gender: str = "KOEN"
    family_size: str = "ANTAL_BOERN"


# =============================================================================
# SCD CONFIGURATION
# =============================================================================

@dataclass
class ScdConfig:
    """Параметри класифікації тяжких хронічних захворювань (SCD)"""

    # Вікно дат діагнозу (включно)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    # Вроджені вади враховуються як SCD
    include_congenital: bool = True

    # Вік на момент діагнозу, роки (включно)
    min_age_years: Optional[float] = None
    max_age_years: Optional[float] = None

    # Колонки таблиці діагнозів
    pnr_column: str = "PNR"
    code_column: str = "C_ADIAG"
    date_column: str = "D_INDDTO"

    def __post_init__(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ConfigurationError(
                f"start_date {self.start_date} is after end_date {self.end_date}"
            )
        if (
            self.min_age_years is not None
            and self.max_age_years is not None
            and self.min_age_years > self.max_age_years
        ):
            raise ConfigurationError(
                f"min_age_years {self.min_age_years} > max_age_years {self.max_age_years}"
            )


# =============================================================================
# BALANCE CONFIGURATION
# =============================================================================

@dataclass
class BalanceConfig:
    """Параметри оцінки балансу коваріат"""
    exclude_columns: List[str] = field(default_factory=lambda: ["PNR"])
    min_observations: int = 5
    imbalance_threshold: float = 0.1   # |стандартизована різниця|


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

@dataclass
class LoggingConfig:
    """Параметри логування"""
    level: str = "INFO"
    log_file: Optional[str] = None
    console: bool = True


# =============================================================================
# MAIN CONFIGURATION
# =============================================================================

@dataclass
class StudyConfig:
    """
    Головна конфігурація дослідження

    Об'єднує всі параметри в одному місці.

    Приклад використання:
        config = StudyConfig()
        print(config.matching.criteria.birth_date_window_days)  # 30
        print(config.balance.imbalance_threshold)  # 0.1
    """

    # Метадані
    version: str = "1.0.0"
    project_name: str = "SCD-Cohort"

    # Компоненти
    columns: ColumnNames = field(default_factory=ColumnNames)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    scd: ScdConfig = field(default_factory=ScdConfig)
    balance: BalanceConfig = field(default_factory=BalanceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Шляхи (відносні)
    data_dir: str = "data"
    output_dir: str = "output"

    verbose: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Словник з простими типами (дати → ISO рядки)"""
        return _dates_to_iso(asdict(self))

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "StudyConfig":
        """
        Створити конфігурацію зі словника (наприклад, з YAML).

        Відсутні ключі беруть значення за замовчуванням,
        невідомі ключі → ConfigurationError.
        """
        data = dict(data or {})
        _check_keys(cls, data, "config")

        kwargs: Dict[str, Any] = {}
        if "columns" in data:
            kwargs["columns"] = _build(ColumnNames, data.pop("columns"), "columns")
        if "matching" in data:
            kwargs["matching"] = _build_matching(data.pop("matching"))
        if "scd" in data:
            scd = dict(data.pop("scd") or {})
            for key in ("start_date", "end_date"):
                if key in scd:
                    scd[key] = _parse_date(scd[key], f"scd.{key}")
            kwargs["scd"] = _build(ScdConfig, scd, "scd")
        if "balance" in data:
            kwargs["balance"] = _build(BalanceConfig, data.pop("balance"), "balance")
        if "logging" in data:
            kwargs["logging"] = _build(LoggingConfig, data.pop("logging"), "logging")

        kwargs.update(data)
        return cls(**kwargs)


def get_default_config() -> StudyConfig:
    """Отримати конфігурацію за замовчуванням"""
    return StudyConfig()


# =============================================================================
# HELPERS
# =============================================================================

def _check_keys(cls, data: Dict[str, Any], section: str) -> None:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown keys in '{section}': {', '.join(unknown)}")


def _build(cls, data: Optional[Dict[str, Any]], section: str):
    data = dict(data or {})
    _check_keys(cls, data, section)
    return cls(**data)


def _build_matching(data: Optional[Dict[str, Any]]) -> MatchingConfig:
    data = dict(data or {})
    _check_keys(MatchingConfig, data, "matching")
    if "criteria" in data:
        data["criteria"] = _build(MatchingCriteria, data["criteria"], "matching.criteria")
    if "matching_date" in data:
        data["matching_date"] = _parse_date(data["matching_date"], "matching.matching_date")
    return MatchingConfig(**data)


def _parse_date(value: Any, name: str) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise ConfigurationError(f"Invalid date for '{name}': {value!r}") from e


def _dates_to_iso(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _dates_to_iso(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_dates_to_iso(v) for v in value]
    if isinstance(value, date):
        return value.isoformat()
    return value
