import argparse
import asyncio
import logging
import sys

from scrapwatch.core.backoff import DEFAULT_MAX_DELAY_SECONDS, ReconnectPolicy
from scrapwatch.core.config import load_settings
from scrapwatch.core.errors import ConfigurationError
from scrapwatch.core.utils.logging_filters import configure_logging
from scrapwatch.plugins import PluginKind, build_default_registry
from scrapwatch.service import WatchService, build_channels

logger = logging.getLogger("scrapwatch")


def _run(args) -> int:
    try:
        settings = load_settings(args.config)
        configure_logging(settings.log_level, settings.secrets())
        service = WatchService.from_settings(settings, build_default_registry())
    except ConfigurationError as exc:
        configure_logging()
        logger.error("Configuration error: %s", exc)
        return 2
    asyncio.run(service.run_forever())
    return 0


def _check_config(args) -> int:
    configure_logging()
    try:
        settings = load_settings(args.config)
        registry = build_default_registry()
        channels = build_channels(settings, registry)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    print(f"Login mode: {'anonymous' if settings.is_anonymous else 'credentialed'}")
    print(f"Poll interval: {settings.poll_interval_seconds:g}s")
    print(f"Max reconnect delay: {settings.max_reconnect_delay_seconds:g}s")
    print(f"Progress state: {settings.state_file or 'memory only'}")
    print("Tracked apps:")
    for app_id, name in settings.tracked_apps.items():
        print(f"  {app_id}: {name}")
    print("Destinations:")
    for channel in channels:
        print(f"  {channel.destination_id} ({channel.name})")
    installed = registry.names(PluginKind.FEED_CLIENT)
    print(f"Installed feed clients: {', '.join(installed) or 'none'}")
    if not registry.has_plugin(PluginKind.FEED_CLIENT, settings.feed_client):
        print(f"Warning: feed client {settings.feed_client!r} is not installed", file=sys.stderr)
        return 1
    return 0


def _backoff(args) -> int:
    try:
        policy = ReconnectPolicy(max_delay=args.max_delay)
    except ConfigurationError as exc:
        print(exc, file=sys.stderr)
        return 2
    for attempt, delay in enumerate(policy.schedule(args.attempts), start=1):
        print(f"Attempt {attempt}: {delay:g}s")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description="Relay change-feed updates to chat webhooks")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run the watcher until interrupted")
    run_parser.add_argument("--config", help="Settings YAML file (default: scrapwatch.yaml)")

    check_parser = subparsers.add_parser("check-config", help="Validate settings and destinations")
    check_parser.add_argument("--config", help="Settings YAML file (default: scrapwatch.yaml)")

    backoff_parser = subparsers.add_parser("backoff", help="Print the reconnect delay schedule")
    backoff_parser.add_argument("--max-delay", type=float, default=DEFAULT_MAX_DELAY_SECONDS)
    backoff_parser.add_argument("--attempts", type=int, default=6)

    args = parser.parse_args(argv)

    if args.command == "run":
        return _run(args)
    if args.command == "check-config":
        return _check_config(args)
    if args.command == "backoff":
        return _backoff(args)
    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
