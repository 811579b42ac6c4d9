"""SCD-Cohort — Завантаження конфігурації"""
import yaml
from pathlib import Path
from typing import Union

from scd_cohort.exceptions import ConfigurationError
from .settings import StudyConfig


def save_yaml(config: StudyConfig, path: Union[str, Path]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)


def load_yaml(path: Union[str, Path]) -> dict:
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config root must be a mapping, got {type(data).__name__}")
    return data


def save_config(config: StudyConfig, path: Union[str, Path]) -> None:
    save_yaml(config, path)


def load_config(path: Union[str, Path]) -> StudyConfig:
    return StudyConfig.from_dict(load_yaml(path))
