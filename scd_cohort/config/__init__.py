"""SCD-Cohort — Модуль конфігурації"""
from .matching import (
    MatchingCriteria,
    MatchingCriteriaBuilder,
    MatchingConfig,
    MatchingConfigBuilder,
    UNENFORCED_CRITERIA,
    EXECUTORS,
)
from .settings import (
    StudyConfig,
    get_default_config,
    ColumnNames,
    ScdConfig,
    BalanceConfig,
    LoggingConfig,
)
from .loader import save_config, load_config, save_yaml, load_yaml

__all__ = [
    "MatchingCriteria",
    "MatchingCriteriaBuilder",
    "MatchingConfig",
    "MatchingConfigBuilder",
    "UNENFORCED_CRITERIA",
    "EXECUTORS",
    "StudyConfig",
    "get_default_config",
    "ColumnNames",
    "ScdConfig",
    "BalanceConfig",
    "LoggingConfig",
    "save_config",
    "load_config",
    "save_yaml",
    "load_yaml",
]
