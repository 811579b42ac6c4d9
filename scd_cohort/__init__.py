"""
SCD-Cohort — Матчинг кейс-контроль для епідеміологічного дослідження
тяжких хронічних захворювань (SCD)

Архітектура: реєстрові витяги Parquet → класифікація SCD →
поділ на кейси/контролі → матчинг за датою народження → звіти

Модулі:
- config: Конфігурація дослідження та матчингу
- io: Читання/запис Parquet, конвертери колонок Arrow
- scd: Класифікація SCD за кодами ICD-10
- matching: Матчинг кейс-контроль, баланс коваріат
- schemas: Pydantic моделі для звітів
- utils: Логування
"""

__version__ = "0.1.0"

from .config import MatchingConfig, MatchingCriteria, StudyConfig, get_default_config
from .exceptions import ScdCohortError, ValidationError, ConfigurationError, DataLoadError
