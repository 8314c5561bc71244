#!/usr/bin/env python3
"""
Check outdated npm dependencies - fails a build when an outdated, non-ignored dependency exists
Usage:
  check-outdated                                   # Check the project in the current directory
  check-outdated --ignore-packages pkg1,pkg2@1.2.3 # Ignore packages, optionally only at one version
  check-outdated --columns name,current,latest     # Choose and order the report columns
  check-outdated --global --depth 1                # Check globally installed packages

Exit code 0 when nothing is outdated, 1 when something is or when the check failed.
"""

import argparse
import os
import sys
from dataclasses import replace
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from config import load_settings, load_toml, parse_depth, parse_ignore_packages
from errors import ArgumentsError, ConfigError, SourceInvocationError, UnexpectedResponseShape
from filters import FilterOptions, run_check
from links import LinkResolver
from npm_source import gather_outdated
from render import (
    format_error,
    format_source_error,
    format_summary,
    format_up_to_date,
    format_warning,
    render_table,
)
from report import COLUMNS, ManifestReferences, build_rows, column_titles, parse_columns

DIST_NAME = 'check-outdated'

# Placeholder for an option given without its value
MISSING = object()


def get_version():
    """Read the version from the installed distribution, or from pyproject.toml in a checkout."""
    try:
        return version(DIST_NAME)
    except PackageNotFoundError:
        pass

    pyproject_path = Path(__file__).parent / "pyproject.toml"
    try:
        if pyproject_path.exists():
            ver = load_toml(pyproject_path).get('project', {}).get('version')
            if ver:
                return ver
    except (OSError, ValueError):
        pass

    return 'unknown'


__version__ = get_version()


class VersionAction(argparse.Action):
    """Print the version and exit."""

    def __call__(self, parser, namespace, values, option_string=None):
        print(f"{parser.prog} {__version__}")
        parser.exit()


class HelpAction(argparse.Action):
    """Print the help and exit with status 1, so a pipeline step never passes on --help."""

    def __call__(self, parser, namespace, values, option_string=None):
        parser.print_help()
        parser.exit(1)


class ArgumentParser(argparse.ArgumentParser):
    """Raises ArgumentsError instead of printing usage and exiting with status 2."""

    def error(self, message):
        raise ArgumentsError(message)


def build_parser():
    parser = ArgumentParser(
        prog='check-outdated',
        description='Fail when npm reports outdated dependencies that are not ignored.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        allow_abbrev=False,
        epilog=f'''
COLUMNS:
  {", ".join(COLUMNS)}

EXAMPLES:
  check-outdated --ignore-pre-releases --ignore-dev-dependencies
  check-outdated --ignore-packages typescript@4.9.5,@types/node
  check-outdated --columns name,current,latest,changes
        ''')

    group = parser.add_argument_group('Arguments')
    group.add_argument('--ignore-pre-releases', action='store_const', const=True, default=None,
                       help="Don't recommend to update to the latest version, if it contains a hyphen (e.g. \"2.1.0-alpha\")")
    group.add_argument('--ignore-dev-dependencies', action='store_const', const=True, default=None,
                       help="Do not warn if devDependencies are outdated")
    group.add_argument('--ignore-packages', nargs='?', const=MISSING, metavar='<comma-separated-list-of-package-names>',
                       help="Ignore the listed packages, a package@version entry only while that version is the latest")
    group.add_argument('--columns', nargs='?', const=MISSING, metavar='<comma-separated-list-of-columns>',
                       help="Defines which columns should be shown in which order")
    group.add_argument('--global', dest='global_scope', action='store_const', const=True, default=None,
                       help="Check packages in the global install prefix")
    group.add_argument('--depth', nargs='?', const=MISSING, metavar='<number>',
                       help="Max depth for checking dependency tree")
    group.add_argument('--no-color', dest='color', action='store_const', const=False, default=None,
                       help="Print the report without colors")
    group.add_argument('--config', nargs='?', const=MISSING, metavar='<path>',
                       help="Read option defaults from this TOML file")
    group.add_argument('--version', action=VersionAction, nargs=0, help="Show version information")
    group.add_argument('-h', '--help', action=HelpAction, nargs=0, help="Show this help message")

    return parser


def parse_arguments(argv=None, parser=None):
    """Parse the command line, rejecting unknown arguments and options given without a value."""
    parser = parser or build_parser()
    args, unknown = parser.parse_known_args(argv)

    if unknown:
        label = 'argument' if len(unknown) == 1 else 'arguments'
        raise ArgumentsError(f"Unknown {label}: {', '.join(unknown)}")

    for option in ('ignore_packages', 'columns', 'depth', 'config'):
        value = getattr(args, option)
        if value is MISSING or (isinstance(value, str) and not value.strip()):
            raise ArgumentsError(f"Invalid value of --{option.replace('_', '-')}")

    return args


def resolve_settings(args, environ=None, cwd=None):
    """Merge config-file defaults with the options given on the command line."""
    settings = load_settings(args.config, environ=environ, cwd=cwd)

    overrides = {}
    for option in ('ignore_pre_releases', 'ignore_dev_dependencies', 'global_scope', 'color'):
        value = getattr(args, option)
        if value is not None:
            overrides[option] = value
    if args.ignore_packages is not None:
        overrides['ignore_rules'] = parse_ignore_packages(args.ignore_packages)
    if args.columns is not None:
        overrides['columns'] = parse_columns(args.columns)
    if args.depth is not None:
        overrides['depth'] = parse_depth(args.depth)

    return replace(settings, **overrides)


def print_report(result, settings, links, references=None):
    color = settings.color

    for warning in result.warnings:
        print(format_warning(warning, color))
    if result.warnings:
        print()

    if not result.has_outdated:
        print(format_up_to_date(color))
        return

    print(format_summary(result.summary_count))
    print()
    rows = build_rows(result.dependencies, settings.columns, links, references)
    for line in render_table(column_titles(settings.columns), rows, color):
        print(line)
    print()


def check(settings, cwd=None):
    """Run npm, filter its report and print it. Returns the process exit code."""
    base_dir = Path(cwd) if cwd else Path.cwd()

    records = gather_outdated(global_scope=settings.global_scope, depth=settings.depth, cwd=base_dir)

    options = FilterOptions(
        ignore_pre_releases=settings.ignore_pre_releases,
        ignore_dev_dependencies=settings.ignore_dev_dependencies,
        ignore_rules=settings.ignore_rules,
    )
    result = run_check(records, options)

    references = None if settings.global_scope else ManifestReferences(base_dir / 'package.json')
    print_report(result, settings, LinkResolver(base_dir), references)

    return 1 if result.has_outdated else 0


def main(argv=None):
    argv = sys.argv[1:] if argv is None else list(argv)

    # Decided before parsing so argument errors honor --no-color too
    color = "NO_COLOR" not in os.environ and "--no-color" not in argv
    try:
        args = parse_arguments(argv)
        settings = resolve_settings(args)
        color = settings.color
        return check(settings)
    except (ArgumentsError, ConfigError) as e:
        print(format_error(str(e), color))
        print("Run check-outdated --help to see the available arguments.")
        return 1
    except (SourceInvocationError, UnexpectedResponseShape) as e:
        print(format_source_error(e, color))
        return 1
    except KeyboardInterrupt:
        print(f"\n{format_error('Operation interrupted by user', color)}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
