"""
SCD-Cohort — Винятки

Ієрархія помилок пакету:
- ScdCohortError: базовий клас
- ValidationError: некоректні вхідні дані (відсутні колонки, індекси поза межами)
- ConfigurationError: некоректні параметри конфігурації
- DataLoadError: файл або директорію з даними не знайдено / не прочитано

ValidationError та ConfigurationError також є ValueError,
DataLoadError також є IOError, тому зовнішній код може ловити
стандартні винятки.
"""


class ScdCohortError(Exception):
    """Базова помилка SCD-Cohort"""


class ValidationError(ScdCohortError, ValueError):
    """Вхідні дані не відповідають очікуваній схемі"""


class ConfigurationError(ScdCohortError, ValueError):
    """Некоректна конфігурація"""


class DataLoadError(ScdCohortError, IOError):
    """Не вдалося завантажити дані"""
