##########################################################################################
#
# Script name: main.py
#
# Description: CLI entrypoint that runs the refresh scheduler and exports each snapshot.
#
##########################################################################################

import argparse
import functools
import logging
import os
import sys
from dataclasses import replace
from datetime import date

from .cache import SnapshotCache
from .config import DEFAULT_FEEDS_FILE, DEFAULT_OUTPUT_DIR, EngineConfig, config_from_env
from .dispatcher import FetchDispatcher
from .export import write_snapshot
from .registry import FeedRegistry, load_registry
from .samples import sample_fetch
from .scheduler import RefreshScheduler
from .transport import fetch


# ****************************************************************************************
# Global data and configuration
# ****************************************************************************************

log = logging.getLogger(os.path.basename(sys.argv[0]))
log.setLevel(logging.DEBUG)
log.propagate = False
formatter = logging.Formatter(
    '%(asctime)-15s [%(funcName)25s:%(lineno)-5s] %(levelname)-8s %(message)s'
)

# File handler for logging
fh = logging.FileHandler('realssa_news.log', mode='w', delay=True)
fh.setLevel(logging.DEBUG)
fh.setFormatter(formatter)
if not any(isinstance(handler, logging.FileHandler) for handler in log.handlers):
    log.addHandler(fh)

root_log = logging.getLogger()
root_log.setLevel(logging.DEBUG)
if not any(isinstance(handler, logging.FileHandler) for handler in root_log.handlers):
    root_log.addHandler(fh)


# ****************************************************************************************
# Functions
# ****************************************************************************************


def build_engine(
    registry: FeedRegistry,
    config: EngineConfig,
    output_dir: str | None = None,
    use_sample_data: bool = False,
) -> RefreshScheduler:
    if use_sample_data:
        fetcher = sample_fetch
        log.debug('Using sample documents; no network requests will be made.')
    else:
        fetcher = functools.partial(fetch, max_bytes=config.max_body_bytes, verify=config.verify_tls)

    dispatcher = FetchDispatcher(
        fetcher=fetcher,
        timeout=config.fetch_timeout,
        max_items=config.max_items_per_source,
        max_workers=config.max_workers,
    )
    cache = SnapshotCache()
    on_publish = None
    if output_dir:
        on_publish = lambda snapshot: write_snapshot(cache, output_dir)  # noqa: E731
    return RefreshScheduler(
        sources=registry,
        cache=cache,
        dispatcher=dispatcher,
        interval=config.refresh_interval,
        on_publish=on_publish,
    )


def run(args: argparse.Namespace) -> int:
    registry = load_registry(args.feeds_file)
    log.debug('Countries: %s', ', '.join(registry.countries()))
    log.debug('Categories: %s', ', '.join(registry.categories()))
    config = config_from_env()
    overrides = {
        key: value
        for key, value in {
            'fetch_timeout': args.timeout,
            'max_items_per_source': args.max_items,
            'refresh_interval': args.interval,
            'max_workers': args.max_workers,
        }.items()
        if value is not None
    }
    if args.insecure:
        overrides['verify_tls'] = False
    config = replace(config, **overrides)
    log.debug('Engine configuration: %s', config)

    scheduler = build_engine(
        registry,
        config,
        output_dir=args.output_dir,
        use_sample_data=args.sample,
    )
    if args.once:
        snapshot = scheduler.run_once()
        log.info('Single cycle complete: %d item(s).', len(snapshot.items))
        return 0

    scheduler.start()
    log.info('Serving snapshots to %s; refreshing every %ss.', args.output_dir, config.refresh_interval)
    try:
        scheduler.wait()
    except KeyboardInterrupt:
        log.info('Interrupted; stopping refresh scheduler.')
    finally:
        scheduler.stop(timeout=config.fetch_timeout + 5)
    return 0


# ****************************************************************************************
# Handle the arguments
# ****************************************************************************************


def handle_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Aggregate news feeds into periodically refreshed snapshots.')
    parser.add_argument(
        '--feeds-file',
        default=os.getenv('NEWS_FEEDS_FILE') or DEFAULT_FEEDS_FILE,
        help='Path to the YAML feed registry.',
    )
    parser.add_argument(
        '--output-dir',
        default=os.getenv('NEWS_OUTPUT_DIR') or DEFAULT_OUTPUT_DIR,
        help='Directory where snapshot JSON is written after every refresh.',
    )
    parser.add_argument('--interval', type=float, default=None, help='Seconds between refresh cycles.')
    parser.add_argument('--timeout', type=float, default=None, help='Per-source fetch timeout in seconds.')
    parser.add_argument('--max-items', type=int, default=None, help='Maximum items kept per source.')
    parser.add_argument('--max-workers', type=int, default=None, help='Bound on concurrent fetches.')
    parser.add_argument('--insecure', action='store_true', help='Disable TLS certificate verification.')
    parser.add_argument('--once', action='store_true', help='Run a single refresh cycle and exit.')
    parser.add_argument(
        '--sample',
        action='store_true',
        help='Use built-in sample documents and skip all network requests.',
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose output to stdout.')
    parser.add_argument('-q', '--quiet', action='store_true', help='Minimal stdout.')
    args = parser.parse_args(argv)

    # Configure stdout logging based on arguments
    ch = logging.StreamHandler(sys.stdout)
    if args.verbose:
        ch.setLevel(logging.DEBUG)
    elif args.quiet:
        ch.setLevel(logging.ERROR)
    else:
        ch.setLevel(logging.INFO)
    ch.setFormatter(formatter)
    log.addHandler(ch)
    root_log.addHandler(ch)

    log.debug('Checking script requirements...')
    if not os.path.exists(args.feeds_file):
        parser.error(f'feed registry not found: {args.feeds_file}')
    if not args.verbose and not args.quiet:
        log.debug('No output level specified. Defaulting to INFO.')

    log.info('++++++++++++++++++++++++++++++++++++++++++++++')
    log.info('+  %s', os.path.basename(sys.argv[0]))
    log.info('+  Python Version: %s', sys.version.split()[0])
    log.info('+  Today is: %s', date.today())
    log.info('+  Feed registry: %s', args.feeds_file)
    log.info('++++++++++++++++++++++++++++++++++++++++++++++')
    return args


# ****************************************************************************************
# Main
# ****************************************************************************************


def main(argv: list[str] | None = None) -> None:
    args = handle_args(argv)
    try:
        sys.exit(run(args))
    except ValueError as exc:
        log.error('Invalid configuration: %s', exc)
        sys.exit(2)


if __name__ == '__main__':
    main()
