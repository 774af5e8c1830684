"""CLI interface for the video processing service."""
import sys
import argparse
import dataclasses
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml
from dotenv import load_dotenv

from videoproc.application.factories import PipelineFactory
from videoproc.domain.exceptions import ConfigurationError, DomainException
from videoproc.domain.models import Job, JobOutcome
from videoproc.infrastructure.config import ConfigLoader, ServiceConfig
from videoproc.shared.logging import setup_logger, get_logger


def build_job(
    config: ServiceConfig,
    source_key: str,
    target_key: Optional[str] = None,
    height: Optional[int] = None,
    width: Optional[int] = None,
    job_id: Optional[str] = None
) -> Job:
    """Create a job, filling unset transform options from the config."""
    try:
        job = Job.for_source(
            source_key,
            height=height if height is not None else config.target_height,
            width=width if width is not None else config.target_width,
            target_key=target_key,
            job_id=job_id
        )
        options = dataclasses.replace(job.transform_options, video_codec=config.video_codec)
        return dataclasses.replace(job, transform_options=options)
    except ValueError as e:
        raise ConfigurationError(f"Invalid job for {source_key!r}: {e}") from e


def load_jobs(jobs_file: Path, config: ServiceConfig) -> List[Job]:
    """
    Read a YAML list of jobs.

    Each entry is either a source key string or a mapping with
    ``source_key`` and optional ``target_key``, ``height``, ``width`` and
    ``job_id``.
    """
    try:
        with open(jobs_file, 'r', encoding='utf-8') as f:
            entries = yaml.safe_load(f) or []
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read jobs file {jobs_file}: {e}") from e

    if isinstance(entries, dict):
        entries = entries.get('jobs', [])
    if not isinstance(entries, list):
        raise ConfigurationError(f"{jobs_file} must contain a list of jobs")

    jobs = []
    for index, entry in enumerate(entries):
        if isinstance(entry, str):
            entry = {'source_key': entry}
        if not isinstance(entry, dict) or not entry.get('source_key'):
            raise ConfigurationError(f"Job #{index + 1} in {jobs_file} has no source_key")
        jobs.append(build_job(
            config,
            source_key=entry['source_key'],
            target_key=entry.get('target_key'),
            height=entry.get('height'),
            width=entry.get('width'),
            job_id=entry.get('job_id')
        ))
    return jobs


def _report(outcome: JobOutcome, logger) -> None:
    job = outcome.job
    if outcome.success:
        upload = outcome.upload
        visibility = "public" if upload and upload.public else "private"
        logger.info(f"[done] {job.source_key} -> {upload.bucket.name}/{upload.key} ({visibility})")
    else:
        logger.error(
            f"[failed] {job.source_key}: {outcome.failure_kind.value}: {outcome.failure_message}"
        )


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="videoproc",
        description="Download, rescale and re-upload videos between storage buckets"
    )
    parser.add_argument('--config', type=Path, help='Config YAML file (default: ./config.yaml)')
    parser.add_argument('--raw-bucket', help='Bucket holding raw videos')
    parser.add_argument('--processed-bucket', help='Bucket receiving processed videos')
    parser.add_argument('--storage', choices=['s3', 'local'], help='Storage backend')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose')

    sub = parser.add_subparsers(dest='command', required=True)

    sub.add_parser('setup', help='Create the local staging directories')

    process = sub.add_parser('process', help='Process a single video')
    process.add_argument('source_key', help='Object key in the raw bucket')
    process.add_argument('--target-key', help='Object key in the processed bucket')
    process.add_argument('--height', type=int, help='Target height in pixels')
    process.add_argument('--width', type=int, help='Target width (-1 keeps aspect ratio)')
    process.add_argument('--no-public', action='store_true', help='Do not make the result public')
    process.add_argument('--job-id', help='Job id (default: random)')

    batch = sub.add_parser('batch', help='Process every job listed in a YAML file')
    batch.add_argument('jobs_file', type=Path)
    batch.add_argument('--max-jobs', type=int, help='Concurrent job limit')

    delete = sub.add_parser('delete', help='Delete a leftover staged file by name')
    delete.add_argument('role', choices=['raw', 'processed'])
    delete.add_argument('file_name')

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    args = create_parser().parse_args(argv)

    load_dotenv()
    setup_logger('videoproc', level='DEBUG' if args.verbose else 'INFO')
    logger = get_logger('videoproc.cli')

    overrides: Dict[str, Any] = {
        'raw_bucket': args.raw_bucket,
        'processed_bucket': args.processed_bucket,
        'storage_backend': args.storage,
    }
    if args.command == 'process' and args.no_public:
        overrides['make_public'] = False
    if args.command == 'batch' and args.max_jobs:
        overrides['max_concurrent_jobs'] = args.max_jobs

    try:
        config = ConfigLoader(config_path=args.config).load(overrides=overrides)
        setup_logger(
            'videoproc',
            level='DEBUG' if args.verbose else config.log_level,
            log_file=config.log_file
        )

        factory = PipelineFactory(config)

        if args.command == 'setup':
            factory.create_staging().setup()
            return 0

        if args.command == 'delete':
            staging = factory.create_staging()
            if args.role == 'raw':
                staging.delete_raw(args.file_name)
            else:
                staging.delete_processed(args.file_name)
            return 0

        if args.command == 'process':
            job = build_job(
                config,
                source_key=args.source_key,
                target_key=args.target_key,
                height=args.height,
                width=args.width,
                job_id=args.job_id
            )
            logger.info(f"Raw bucket: {config.raw_bucket} | Processed bucket: {config.processed_bucket}")
            outcome = factory.create_coordinator().run(job)
            _report(outcome, logger)
            return 0 if outcome.success else 1

        if args.command == 'batch':
            jobs = load_jobs(args.jobs_file, config)
            outcomes = factory.create_batch_runner().run_all(jobs)
            for outcome in outcomes:
                _report(outcome, logger)
            return 0 if all(o.success for o in outcomes) else 1

        logger.error(f"Unknown command: {args.command}")
        return 2

    except DomainException as e:
        logger.error(f"Pipeline error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130


if __name__ == '__main__':
    sys.exit(main())
