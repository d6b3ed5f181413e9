"""
Launch a registered job from the command line.

Usage:
    batch-engine <job_name> [name=value ...] [--config settings.yaml]
    batch-engine --list

Examples:
    # Run the sample chunk job with its default chunk size
    batch-engine chunk_processing_job

    # Override the chunk size for this run
    batch-engine chunk_processing_job chunkSize=20

    # Persist execution metadata (database_url set in the settings file)
    batch-engine chunk_processing_job --config batch.yaml

Exit codes: 0 COMPLETED, 1 FAILED, 2 usage or configuration error.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

import yaml

from batch_config.loader import load_engine_settings
from batch_config.schema import EngineSettings
from batch_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from batch_kernel.exceptions import ConfigurationError
from batch_kernel.logging_config import configure_logging, get_logger

from batch_engine.domain.types import JobParameters
from batch_engine.jobs.registry import JobRegistry, default_job_registry
from batch_engine.services.repository import InMemoryJobRepository, JobRepository
from batch_engine.services.runner import JobRunner
from batch_engine.services.sql_repository import SqlJobRepository

logger = get_logger("batch.launcher")

EXIT_COMPLETED = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def parse_job_parameters(pairs: Sequence[str]) -> dict[str, str]:
    """Parse ``name=value`` arguments into a parameter mapping.

    Values stay strings; a later duplicate name wins.

    Raises:
        ValueError: If an argument has no ``=`` or an empty name.
    """
    parameters: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        name = name.strip()
        if not sep or not name:
            raise ValueError(f"Job parameters must look like name=value, got {pair!r}")
        parameters[name] = value
    return parameters


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="batch-engine",
        description="Run a registered batch job.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("job", nargs="?", help="Registered job name.")
    parser.add_argument(
        "parameters",
        nargs="*",
        metavar="name=value",
        help="Job parameters (e.g. chunkSize=20).",
    )
    parser.add_argument(
        "--config",
        help="Engine settings YAML file.",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List registered jobs and exit.",
    )
    return parser


def _build_repository(settings: EngineSettings) -> JobRepository:
    if settings.database_url is None:
        return InMemoryJobRepository()
    init_engine_from_url(settings.database_url)
    create_tables()
    return SqlJobRepository(get_session_factory())


def main(
    argv: Sequence[str] | None = None,
    registry: JobRegistry | None = None,
) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    registry = registry or default_job_registry()

    if args.list:
        for name in registry.list_jobs():
            print(name)
        return EXIT_COMPLETED

    if not args.job:
        parser.print_usage(sys.stderr)
        return EXIT_USAGE

    try:
        parameters = parse_job_parameters(args.parameters)
        settings = load_engine_settings(args.config) if args.config else EngineSettings()
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"batch-engine: {exc}", file=sys.stderr)
        return EXIT_USAGE

    configure_logging(level=settings.log_level)

    try:
        job = registry.create(args.job, settings)
        run_parameters = JobParameters({**settings.job_defaults(job.name), **parameters})
    except ConfigurationError as exc:
        logger.error("job_configuration_failed", exc_info=True)
        print(f"batch-engine: {exc}", file=sys.stderr)
        return EXIT_USAGE

    runner = JobRunner(
        repository=_build_repository(settings),
        max_iterations=settings.max_iterations,
    )
    result = runner.run(job, run_parameters)

    if result.completed:
        print(f"{result.job_name} run {result.run_id}: {result.status.value}")
        return EXIT_COMPLETED

    print(
        f"{result.job_name} run {result.run_id}: {result.status.value} "
        f"at step {result.failed_step}: {result.error}",
        file=sys.stderr,
    )
    return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
