"""Main CLI entry point for versionrecommender."""

import argparse
import logging
import os
import sys
from typing import Dict, List, Optional

from . import __version__
from .config import DEFAULT_CONFIG_FILE, load_config
from .errors import ConfigurationError, VersionRecommenderError
from .formatters import FORMATS, OutputFormatter
from .models import ModuleCoordinate
from .resolver import VersionRecommender

logger = logging.getLogger(__name__)

LOG_LEVELS = ['TRACE', 'DEBUG', 'INFO', 'WARN', 'ERROR']


def setup_logging(verbose: bool = False, log_level: Optional[str] = None):
    """Configure logging based on verbosity flags."""
    if log_level:
        name = {'TRACE': 'DEBUG', 'WARN': 'WARNING'}.get(log_level.upper(), log_level.upper())
        level = getattr(logging, name, logging.WARNING)
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s'
    )


def parse_parameters(values: Optional[List[str]]) -> Dict[str, str]:
    """Parse repeated -P key=value options."""
    parameters = {}
    for value in values or []:
        if '=' not in value:
            raise ConfigurationError(f"Invalid parameter '{value}' (expected key=value)")
        key, val = value.split('=', 1)
        parameters[key.strip()] = val.strip()
    return parameters


def create_recommender(args) -> VersionRecommender:
    config = load_config(args.config, parse_parameters(args.parameters))
    return VersionRecommender.from_config(config).initialize()


def handle_lookup(args, recommender: VersionRecommender) -> int:
    coordinate = ModuleCoordinate.parse(args.coordinate)
    print(recommender.resolve(coordinate.group, coordinate.name, coordinate.version, args.scope))
    return 0


def handle_show(args, recommender: VersionRecommender) -> int:
    if not args.provider:
        sys.stdout.write(OutputFormatter.format_provider_states(recommender.providers))
        return 0
    provider = recommender.provider(args.provider)
    sys.stdout.write(FORMATS[args.output_format](provider.versions))
    return 0


def handle_set(args, recommender: VersionRecommender) -> int:
    path = recommender.set_version(args.provider, args.version)
    print(f"{args.provider}: {recommender.provider(args.provider).override_version} ({path})")
    return 0


def handle_set_local(args, recommender: VersionRecommender) -> int:
    path = recommender.set_local(args.provider, args.version)
    print(f"{args.provider}: {recommender.provider(args.provider).override_version} ({path})")
    return 0


def handle_set_snapshot(args, recommender: VersionRecommender) -> int:
    path = recommender.set_snapshot(args.provider, args.version)
    print(f"{args.provider}: {recommender.provider(args.provider).override_version} ({path})")
    return 0


def handle_set_all(args, recommender: VersionRecommender) -> int:
    written = recommender.set_all()
    for path in written:
        print(path)
    if not written:
        print("No provider version parameters given")
    return 0


def handle_reset(args, recommender: VersionRecommender) -> int:
    if args.provider:
        recommender.reset(args.provider)
    else:
        recommender.reset_all()
    return 0


def handle_store(args, recommender: VersionRecommender) -> int:
    if args.provider:
        written = [recommender.store(args.provider)]
    else:
        written = recommender.store_all()
    for path in written:
        print(path)
    return 0


def handle_update(args, recommender: VersionRecommender) -> int:
    if args.provider:
        results = [recommender.update(args.provider)]
    else:
        results = recommender.update_all()
    sys.stdout.write(OutputFormatter.format_update_results(results))
    return 1 if any(result.failed for result in results) else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='versionrecommender',
        description='Recommend dependency versions from Ivy, Maven BOM and properties sources',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  versionrecommender lookup org.example:library
  versionrecommender show filter --format json
  versionrecommender set filter 10.1.0
  versionrecommender set-local filter
  versionrecommender update
  versionrecommender store
        """
    )
    parser.add_argument('--version', action='version', version=f'versionrecommender {__version__}')
    parser.add_argument('-c', '--config', default=DEFAULT_CONFIG_FILE,
                        help=f'Configuration file (default: {DEFAULT_CONFIG_FILE})')
    parser.add_argument('-P', dest='parameters', action='append', metavar='NAME=VALUE',
                        help='Provider version parameter, e.g. -P filterVersion=10.1.0')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')
    parser.add_argument('--loglevel', choices=LOG_LEVELS, help='Set log level')

    subparsers = parser.add_subparsers(dest='command', help='Subcommands')

    lookup_parser = subparsers.add_parser('lookup', help='Print the recommended version of a module')
    lookup_parser.add_argument('coordinate', help='group:name or group:name:version')
    lookup_parser.add_argument('--scope', help='Scope (configuration) of the request')
    lookup_parser.set_defaults(func=handle_lookup)

    show_parser = subparsers.add_parser('show', help='Show providers or the version map of a provider')
    show_parser.add_argument('provider', nargs='?', help='Provider name')
    show_parser.add_argument('--format', dest='output_format', default='list', choices=sorted(FORMATS),
                             help='Output format (list, json). Default: list')
    show_parser.set_defaults(func=handle_show)

    for command, handler, help_text in (
        ('set', handle_set, 'Set the working version of a provider'),
        ('set-local', handle_set_local, 'Set a -LOCAL working version of a provider'),
        ('set-snapshot', handle_set_snapshot, 'Set a -SNAPSHOT working version of a provider'),
    ):
        sub = subparsers.add_parser(command, help=help_text)
        sub.add_argument('provider', help='Provider name')
        sub.add_argument('version', nargs='?', help='Version (default: parameter <provider>Version)')
        sub.set_defaults(func=handler)

    set_all_parser = subparsers.add_parser('set-all', help='Set all providers with a version parameter')
    set_all_parser.set_defaults(func=handle_set_all)

    for command, handler, help_text in (
        ('reset', handle_reset, 'Remove working versions'),
        ('store', handle_store, 'Store working versions in the config directories'),
        ('update', handle_update, 'Update providers to newer versions'),
    ):
        sub = subparsers.add_parser(command, help=help_text)
        sub.add_argument('provider', nargs='?', help='Provider name (default: all providers)')
        sub.set_defaults(func=handler)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose, args.loglevel)
    logger.debug(f"Working directory: {os.getcwd()}")

    recommender = None
    try:
        recommender = create_recommender(args)
        return args.func(args, recommender)
    except (VersionRecommenderError, ValueError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if recommender is not None:
            recommender.close()


if __name__ == '__main__':
    sys.exit(main())
