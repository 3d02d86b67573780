#!/usr/bin/env python3
"""
Command line entry point for the image pull statistics report.

One run reads pull events from the node's CRI-O journal (or an exported log
file), counts pulls per image, marks images still referenced by pods in the
cluster and prints a ranked table. Docker Hub and GitHub rate-limit
sub-reports are printed first on a best-effort basis.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from zim import __version__
from zim.aggregator import PullEventAggregator
from zim.inventory import ClusterImageInventory, KubernetesPodLister
from zim.log_extractor import LogEventExtractor, get_extraction_strategy
from zim.log_source import create_log_source
from zim.ratelimit import (
    DockerHubCredentials,
    DockerHubRateLimitClient,
    GitHubRateLimitClient,
    render_rate_limit,
)
from zim.report import build_report, describe_period, render_report
from zim.utils.config_manager import ConfigManager, ConfigValidationError, VALID_LOG_FORMATS
from zim.utils.error_utils import ActionableError, RateLimitQueryError
from zim.utils.logging_utils import get_logger, log_exception, setup_logging
from zim.utils.report_utils import save_report_files

logger = get_logger(__name__)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="zim",
        description="Image pull statistics for a CRI-O node, joined with images in use by the cluster",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Configuration:
  Defaults come from config.yaml (or the file named by ZIM_CONFIG_FILE).
  Environment variables:
  - KUBECONFIG: kubeconfig path
  - GITHUB_TOKEN: GitHub token for the GitHub rate-limit report
  - DOCKER_USERNAME, DOCKER_PASSWORD, DOCKER_TOKEN: Docker Hub credentials
  - ZIM_SINCE, ZIM_LOG_UNIT, ZIM_LOG_FORMAT, ZIM_REGISTRY_TIMEOUT

Examples:
  # Pulls in the last 24 hours
  zim

  # Pulls in the last 6 hours, skipping the registry rate-limit reports
  zim --since 6 --skip-rate-limits

  # Pulls since a date, from structured journal output, saved to files
  zim --since 2024-05-01 --log-format json --output reports/pulls

  # Read an exported log instead of the journal
  zim --log-file crio.log
        """,
    )
    parser.add_argument("--version", action="version", version=f"zim version {__version__}")
    parser.add_argument("--since", help="Hours to look back, or a date journalctl understands (default: 24)")
    parser.add_argument("--kubeconfig", help="Path to kubeconfig (default: $KUBECONFIG or ~/.kube/config)")
    parser.add_argument("--config", help="Path to YAML configuration file (default: config.yaml)")
    parser.add_argument("--unit", help="Systemd unit whose journal holds pull events (default: crio)")
    parser.add_argument("--log-format", choices=VALID_LOG_FORMATS, help="Journal line format (default: plain)")
    parser.add_argument("--log-file", help="Read log lines from this file instead of journalctl")
    parser.add_argument("--output", help="Save the report as <output>.txt and <output>.json")
    parser.add_argument("--github-token", default=os.environ.get("GITHUB_TOKEN"),
                        help="GitHub token for the GitHub rate-limit report")
    parser.add_argument("--docker-username", default=os.environ.get("DOCKER_USERNAME"),
                        help="Docker Hub username")
    parser.add_argument("--docker-password", default=os.environ.get("DOCKER_PASSWORD"),
                        help="Docker Hub password")
    parser.add_argument("--docker-token", default=os.environ.get("DOCKER_TOKEN"),
                        help="Docker Hub personal access token (used instead of the password)")
    parser.add_argument("--skip-rate-limits", action="store_true", help="Do not query registry rate limits")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ConfigManager:
    """Load the configuration file and apply command line overrides.

    Raises:
        ConfigValidationError if the merged configuration is invalid
    """
    config = ConfigManager(config_file=args.config, validate=False)
    config.set("kubernetes", "kubeconfig", args.kubeconfig)
    config.set("logs", "since", args.since)
    config.set("logs", "unit", args.unit)
    config.set("logs", "format", args.log_format)
    if args.log_file:
        config.set("logs", "source", "file")
        config.set("logs", "file", args.log_file)
    config.set("output", "path", args.output)
    config.validate_config()
    return config


def print_rate_limits(args: argparse.Namespace, config: ConfigManager) -> None:
    """Print the registry rate-limit sub-reports. Failures are logged and skipped."""
    timeout = config.get_registry_timeout()
    retry_settings = config.get_retry_settings()

    clients = []
    if args.github_token:
        clients.append(GitHubRateLimitClient(args.github_token, timeout=timeout, retry_settings=retry_settings))
    credentials = DockerHubCredentials(
        username=args.docker_username or "",
        password=args.docker_password or "",
        token=args.docker_token or "",
    )
    clients.append(DockerHubRateLimitClient(credentials, timeout=timeout, retry_settings=retry_settings))

    for rate_limit_client in clients:
        try:
            status = rate_limit_client.get_rate_limit()
        except RateLimitQueryError as e:
            logger.warning(e.format_message())
            continue
        except Exception as e:
            logger.warning(f"{rate_limit_client.registry} rate limit report skipped: {type(e).__name__}: {e}")
            logger.debug("Traceback:", exc_info=e)
            continue
        print(render_rate_limit(status))


def run(args: argparse.Namespace) -> int:
    config = build_config(args)
    since = config.get_since()

    if not args.skip_rate_limits:
        print_rate_limits(args, config)

    log_source = create_log_source(config)
    lines = log_source.fetch_log_lines(since)

    extractor = LogEventExtractor(get_extraction_strategy(config.get_log_format(), config.get_log_markers()))
    aggregator = PullEventAggregator().add_all(extractor.extract_events(lines))
    if aggregator.skipped:
        logger.debug(f"{aggregator.skipped} log lines held no image reference")
    logger.info(f"Counted {aggregator.total} pull events across {len(aggregator.counts())} images")

    pod_lister = KubernetesPodLister(
        kubeconfig=config.get_kubeconfig(),
        timeout=config.get_kubernetes_timeout(),
        retry_settings=config.get_retry_settings(),
    )
    live_images = ClusterImageInventory(pod_lister).list_live_images()

    report = build_report(aggregator.counts(), live_images, describe_period(since))
    text = render_report(report)
    print(text)

    output_path = config.get_output_path()
    if output_path:
        save_report_files(output_path, text, report.to_dict())

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)
    level = logging.DEBUG if args.verbose else logging.INFO
    setup_logging(level)
    logging.getLogger().setLevel(level)

    try:
        return run(args)
    except ConfigValidationError as e:
        logger.error(str(e))
        return 1
    except ActionableError as e:
        logger.error(e.format_message())
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130
    except Exception as e:
        log_exception(logger, "Unexpected error", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
