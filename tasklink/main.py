#!/usr/bin/env python3
"""
tasklink - keep task-like items in sync between a primary store and other providers.
"""

import argparse
import logging
import sys

from tasklink.core.config import get_default_config_path, load_config
from tasklink.core.models import RunOptions
from tasklink.commands import HistoryCommand, SyncCommand


def _flag(value: bool):
    """Command-line switches only override the config when they are given."""
    return True if value else None


def _split_services(value):
    if not value:
        return None
    return [name.strip() for name in value.split(",") if name.strip()]


def main(argv=None):
    """Main entry point for tasklink."""
    parser = argparse.ArgumentParser(
        description="Sync task-like items between a primary store and other providers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tasklink sync                       # Sync every configured provider
  tasklink sync --pretend             # Show what would change
  tasklink sync --services Github     # Only sync one provider
  tasklink sync --only-to-primary     # Only pull items into the primary store
  tasklink history                    # Show per-provider sync history
        """
    )

    default_config = get_default_config_path()

    parser.add_argument(
        '--config',
        help=f'Path to configuration file (default: {default_config})',
        default=None
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Verbose output'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Sync command
    sync_parser = subparsers.add_parser('sync', help='Sync items')
    sync_parser.add_argument(
        '--pretend',
        action='store_true',
        help="List what would change, don't sync"
    )
    sync_parser.add_argument(
        '--force',
        action='store_true',
        help='Ignore the minimum sync interval'
    )
    direction = sync_parser.add_mutually_exclusive_group()
    direction.add_argument(
        '--only-from-primary',
        action='store_true',
        help='Only sync FROM the primary store'
    )
    direction.add_argument(
        '--only-to-primary',
        action='store_true',
        help='Only sync TO the primary store'
    )
    sync_parser.add_argument(
        '--update-ids-for-existing',
        action='store_true',
        help='Rewrite cross-references for items that are already linked'
    )
    sync_parser.add_argument(
        '--delete',
        action='store_true',
        help='Delete completed items on providers that support it'
    )
    sync_parser.add_argument(
        '--services',
        metavar='A,B',
        help='Comma-separated providers to sync (default: all configured)'
    )
    sync_parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='No output apart from errors'
    )

    # History command
    history_parser = subparsers.add_parser('history', help='Show sync history')
    history_parser.add_argument(
        '--services',
        metavar='A,B',
        help='Comma-separated providers to show (default: all)'
    )

    args = parser.parse_args(argv)

    if getattr(args, 'quiet', False) and args.verbose:
        parser.error("--quiet and --verbose cannot be used together")

    # Configure logging if verbose mode is enabled
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    # Show help if no command specified
    if not args.command:
        parser.print_help()
        return 1

    # Execute command
    try:
        config = load_config(args.config)

        if args.verbose:
            actual_config_path = args.config if args.config else get_default_config_path()
            print(f"Using config: {actual_config_path}")

        if args.command == 'sync':
            options = RunOptions.from_config(
                config,
                pretend=_flag(args.pretend),
                force=_flag(args.force),
                only_from_primary=_flag(args.only_from_primary),
                only_to_primary=_flag(args.only_to_primary),
                update_ids_for_existing=_flag(args.update_ids_for_existing),
                delete=_flag(args.delete),
                quiet=_flag(args.quiet),
                verbose=_flag(args.verbose),
            )
            cmd = SyncCommand(config, options=options, verbose=args.verbose)
            success = cmd.run(services=_split_services(args.services))

        elif args.command == 'history':
            cmd = HistoryCommand(config, verbose=args.verbose)
            success = cmd.run(services=_split_services(args.services))

        else:
            print(f"Unknown command '{args.command}'.")
            return 1

        return 0 if success else 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        return 130
    except Exception as e:
        print(f"Error: {e}")
        if not args.verbose:
            print("Re-run with --verbose for more detail.")
        else:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
