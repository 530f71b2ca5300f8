"""
Command-line interface for Service IP Mapper.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from .aws_utils import build_providers
from .config import DefaultConfiguration, MapperConfig
from .logging_utils import generate_run_id, log_run_end, log_run_start, setup_logger
from .mapper import MappingReport, ServiceIpMapper
from .reporter import CorrelationReporter


class ArgumentParser:
    """Handles command-line argument parsing."""

    @classmethod
    def parse_args(cls, argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
        """Parse and return command-line arguments."""
        parser = argparse.ArgumentParser(
            description="Find which client IPs in a log group belong to our own infrastructure"
        )

        cls._add_positional_args(parser)
        cls._add_aws_args(parser)
        cls._add_throttle_args(parser)
        cls._add_report_args(parser)

        return parser.parse_args(argv)

    @staticmethod
    def _add_positional_args(parser: argparse.ArgumentParser) -> None:
        # Optional at the argparse level so a missing group is a ConfigurationError
        parser.add_argument("group_name", nargs="?", help="CloudWatch Logs group name")
        parser.add_argument(
            "stream_prefix", nargs="?", help="Only harvest streams with this name prefix"
        )

    @staticmethod
    def _add_aws_args(parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--profile", help="AWS profile name to use for API calls")
        parser.add_argument(
            "--region",
            help=f"AWS region (default: $AWS_REGION or {DefaultConfiguration.DEFAULT_REGION})",
        )

    @staticmethod
    def _add_throttle_args(parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--batch-size",
            type=int,
            default=DefaultConfiguration.DEFAULT_BATCH_SIZE,
            help="Page fetches started per queue tick",
        )
        parser.add_argument(
            "--tick-interval",
            type=float,
            default=DefaultConfiguration.DEFAULT_TICK_INTERVAL,
            help="Seconds between queue ticks",
        )
        parser.add_argument(
            "--max-lines",
            type=int,
            default=DefaultConfiguration.DEFAULT_MAX_LINES,
            help="Stop a stream after this many request lines",
        )
        parser.add_argument(
            "--job-timeout",
            type=float,
            default=DefaultConfiguration.DEFAULT_JOB_TIMEOUT,
            help="Fail a stream when one page fetch takes longer than this (seconds)",
        )

    @staticmethod
    def _add_report_args(parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--top",
            type=int,
            default=DefaultConfiguration.DEFAULT_TOP_LIMIT,
            help="Number of request paths listed per matched IP",
        )
        parser.add_argument(
            "--debug",
            action="store_true",
            help="Enable debug logging of pagination decisions",
        )


def config_from_args(args: argparse.Namespace) -> MapperConfig:
    config = MapperConfig(
        group_name=args.group_name,
        stream_prefix=args.stream_prefix,
        profile=args.profile,
        region=args.region,
        batch_size=args.batch_size,
        tick_interval=args.tick_interval,
        max_lines=args.max_lines,
        top_limit=args.top,
        job_timeout=args.job_timeout,
        debug=args.debug,
    )
    config.validate()
    return config


class ConfigurationPrinter:
    """Handles printing configuration information."""

    @staticmethod
    def print_configuration(config: MapperConfig) -> None:
        print("\n=== Service IP Mapper ===")
        print(f"Log group: {config.group_name}")
        if config.stream_prefix:
            print(f"Stream prefix: {config.stream_prefix}")
        print(f"AWS Region: {config.resolved_region}")
        if config.profile:
            print(f"AWS Profile: {config.profile}")
        print(
            f"Throttle: {config.batch_size} pages every {config.tick_interval}s, "
            f"{config.max_lines} lines per stream"
        )


def print_summary(report: MappingReport) -> None:
    print(
        f"\nStreams with events: {report.streams_listed}, "
        f"with requests: {report.streams_with_requests}, "
        f"request lines: {report.lines_retained}, "
        f"known infrastructure IPs: {report.registry_size}"
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the CLI."""
    logger = setup_logger("service_ip_mapper")
    run_id = generate_run_id()

    try:
        args = ArgumentParser.parse_args(argv)
        config = config_from_args(args)
        if config.debug:
            logger.setLevel(logging.DEBUG)

        log_run_start(
            logger,
            run_id,
            group_name=config.group_name,
            stream_prefix=config.stream_prefix,
            profile=config.profile,
        )
        ConfigurationPrinter.print_configuration(config)

        providers = build_providers(config.region, config.profile)
        mapper = ServiceIpMapper(
            config,
            providers.logs,
            providers.dns,
            providers.load_balancers,
            providers.interfaces,
        )
        report = asyncio.run(mapper.generate_ip_mapping())

        print_summary(report)
        CorrelationReporter.print_report(
            report.results, report.oldest_markers, report.failures
        )

        log_run_end(
            logger,
            run_id,
            True,
            matches=len(report.results),
            failures=len(report.failures),
        )
        return 0

    except (ValueError, RuntimeError) as e:
        log_run_end(logger, run_id, False, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        log_run_end(logger, run_id, False, error=str(e))
        print(f"Unexpected error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
