"""
batch_config -- YAML engine settings for the batch engine.

``load_engine_settings(path)`` is the public entry point; with no file the
defaults of ``EngineSettings()`` apply.
"""

from batch_config.loader import load_engine_settings, parse_engine_settings
from batch_config.schema import EngineSettings, JobLaunchDef

__all__ = [
    "EngineSettings",
    "JobLaunchDef",
    "load_engine_settings",
    "parse_engine_settings",
]
