"""
Configuration Loader (``batch_config.loader``).

Responsibility
--------------
Loads the engine settings YAML file and parses it into the frozen
``batch_config.schema`` dataclasses.

Expected shape::

    engine:
      default_chunk_size: 20
      log_level: INFO
      database_url: sqlite:///batch.db
      max_iterations: 10000
    jobs:
      - name: chunkProcessingJob
        parameters:
          chunkSize: 25

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``name`` on a job entry  -> ``ValueError``.
* Wrong value types or ranges  -> ``ValueError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from batch_config.schema import VALID_LOG_LEVELS, EngineSettings, JobLaunchDef


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _positive_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"{field_name} must be a positive integer, got {value!r}")
    return value


def parse_job_launch(data: dict[str, Any]) -> JobLaunchDef:
    """Parse one ``jobs`` entry.

    Parameter values must be strings or numbers, the same types a job run
    accepts; YAML booleans, lists and nulls are rejected here.
    """
    if not isinstance(data, dict):
        raise ValueError(f"jobs entries must be mappings, got {data!r}")
    if not data.get("name"):
        raise ValueError(f"jobs entry is missing a name: {data!r}")
    name = str(data["name"])
    parameters = data.get("parameters") or {}
    if not isinstance(parameters, dict):
        raise ValueError(f"jobs[{name}].parameters must be a mapping")
    for key, value in parameters.items():
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise ValueError(
                f"jobs[{name}].parameters.{key} must be a string or number, got {value!r}"
            )
    return JobLaunchDef(name=name, parameters={str(k): v for k, v in parameters.items()})


def parse_engine_settings(data: dict[str, Any]) -> EngineSettings:
    """Parse the full settings document."""
    engine = data.get("engine") or {}
    if not isinstance(engine, dict):
        raise ValueError("engine must be a mapping")

    default_chunk_size = _positive_int(
        engine.get("default_chunk_size", 10), "engine.default_chunk_size",
    )

    log_level = str(engine.get("log_level", "INFO")).upper()
    if log_level not in VALID_LOG_LEVELS:
        raise ValueError(
            f"engine.log_level must be one of {sorted(VALID_LOG_LEVELS)}, got {log_level!r}"
        )

    max_iterations = engine.get("max_iterations")
    if max_iterations is not None:
        max_iterations = _positive_int(max_iterations, "engine.max_iterations")

    database_url = engine.get("database_url")
    if database_url is not None:
        database_url = str(database_url)

    jobs_data = data.get("jobs") or []
    if not isinstance(jobs_data, list):
        raise ValueError("jobs must be a list")

    return EngineSettings(
        default_chunk_size=default_chunk_size,
        log_level=log_level,
        database_url=database_url,
        max_iterations=max_iterations,
        jobs=tuple(parse_job_launch(j) for j in jobs_data),
    )


def load_engine_settings(path: str | Path) -> EngineSettings:
    """Load and parse an engine settings file."""
    return parse_engine_settings(load_yaml_file(Path(path)))
