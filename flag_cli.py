"""
Feature Flag Inspection CLI

Command-line interface for inspecting a flag file.
Resolves a scope chain and shows the visible flags, checks a single flag,
or dumps the resolved view as JSON. Flags are never modified.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from flag_client import FeatureType, FlagClient, ParseError
from flag_client.config import get_settings, split_scopes
from flag_client.flag_value import sorted_features


class FlagInspectorCLI:
    """Command-line interface for flag inspection."""

    def __init__(self, path: Path, scopes: List[str]):
        self.path = path
        self.client = FlagClient(scopes)

    def load(self):
        """Load the flag file into the client."""
        self.client.apply_update(self.path.read_bytes())

    def show_flags(self):
        """Show all flags visible to the scope chain."""
        features = sorted_features(self.client.features)

        print(f"\nFlags for scopes: {', '.join(self.client.scopes) or 'default'}")
        print(f"Version: {self.client.current_sha or 'unversioned'}")

        if not features:
            print("No flags defined.")
            return

        print("-" * 80)
        print(f"{'Name':<30} {'Type':<12} {'Value':<36}")
        print("-" * 80)

        for feature in features:
            print(f"{feature.name:<30} {feature.feature_type.value:<12} {str(feature.value):<36}")

        print("-" * 80)

    def check_flag(self, name: str, identifier: Optional[int] = None) -> bool:
        """Show how a single flag evaluates. Returns False if it does not exist."""
        feature = self.client.feature(name)

        if feature is None:
            print(f"Flag '{name}' not found.")
            return False

        print(f"\nFlag: {name}")
        print("=" * 50)
        print(f"Type: {feature.feature_type.value}")
        print(f"Value: {feature.value}")

        if feature.feature_type is FeatureType.BOOLEAN:
            print(f"Enabled: {'Yes' if self.client.is_enabled(name) else 'No'}")
        elif feature.feature_type is FeatureType.PERCENTILE:
            print(f"Rollout: {int(feature.value * 100)}%")
            if identifier is not None:
                enabled = self.client.is_enabled_for_id(name, identifier)
                print(f"Enabled for id {identifier}: {'Yes' if enabled else 'No'}")
        return True

    def dump(self):
        """Print the resolved view in the flag file format."""
        print(self.client.scoped_json())


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Feature flag inspector")
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    scope_help = 'Scope to resolve, least specific first (repeatable)'

    # Show command
    show_parser = subparsers.add_parser('show', help='Show flags visible to a scope chain')
    show_parser.add_argument('path', nargs='?', help='Flag file')
    show_parser.add_argument('-s', '--scope', action='append', default=None, help=scope_help)

    # Check command
    check_parser = subparsers.add_parser('check', help='Check a single flag')
    check_parser.add_argument('path', help='Flag file')
    check_parser.add_argument('name', help='Flag name')
    check_parser.add_argument('--id', type=int, default=None, help='Entity id for percentile flags')
    check_parser.add_argument('-s', '--scope', action='append', default=None, help=scope_help)

    # Dump command
    dump_parser = subparsers.add_parser('dump', help='Dump the resolved flags as JSON')
    dump_parser.add_argument('path', nargs='?', help='Flag file')
    dump_parser.add_argument('-s', '--scope', action='append', default=None, help=scope_help)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    logging.basicConfig(level=settings.log_level,
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    path = Path(args.path) if args.path else settings.path
    if path is None:
        print("No flag file given and FLAGS_PATH is not set.", file=sys.stderr)
        return 1

    scopes = args.scope if args.scope is not None else split_scopes(settings.scopes)
    cli = FlagInspectorCLI(path, scopes)

    try:
        cli.load()
    except FileNotFoundError:
        print(f"Flag file '{path}' not found.", file=sys.stderr)
        return 1
    except ParseError as e:
        print(f"Could not parse '{path}': {e}", file=sys.stderr)
        return 1

    if args.command == 'show':
        cli.show_flags()
    elif args.command == 'check':
        try:
            found = cli.check_flag(args.name, args.id)
        except ValueError as e:
            print(str(e), file=sys.stderr)
            return 1
        return 0 if found else 1
    elif args.command == 'dump':
        cli.dump()

    return 0


if __name__ == "__main__":
    sys.exit(main())
