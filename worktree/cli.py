#!/usr/bin/env python3
"""WorkTree CLI entrypoint."""

import sys
import argparse
import logging
from pathlib import Path

from worktree import __version__
from worktree.lib.config import WorkTreeConfig, find_config, load_config
from worktree.lib.errors import ConfigError, LayoutError, ParseError, WorkTreeError
from worktree.commands import audit as cmd_audit_module
from worktree.commands import init as cmd_init_module
from worktree.commands import next as cmd_next_module
from worktree.commands import run as cmd_run_module
from worktree.commands import status as cmd_status_module

logger = logging.getLogger(__name__)


def get_config(args) -> WorkTreeConfig:
    """Load config from --config or the nearest worktree.yaml."""
    if args.config:
        return load_config(Path(args.config))
    start = getattr(args, 'dir', None) or getattr(args, 'root', None) or "."
    return load_config(find_config(Path(start)))


def setup_logging(args, config: WorkTreeConfig) -> None:
    level = logging.DEBUG if args.verbose else getattr(logging, config.log_level)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def cmd_init(args, config):
    return cmd_init_module.cmd_init(args, config)


def cmd_status(args, config):
    return cmd_status_module.cmd_status(args, config)


def cmd_next(args, config):
    return cmd_next_module.cmd_next(args, config)


def cmd_start(args, config):
    return cmd_run_module.cmd_start(args, config)


def cmd_complete(args, config):
    return cmd_run_module.cmd_complete(args, config)


def cmd_audit(args, config):
    return cmd_audit_module.cmd_audit(args, config)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='worktree', description='WorkNode plan/state tracker')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--config', '-c', help='Path to worktree.yaml (default: nearest one found)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # worktree init
    p_init = subparsers.add_parser('init', help='Create a WorkNode')
    p_init.add_argument('dir', help='WorkNode directory (created if missing)')
    p_init.add_argument('--step', '-s', action='append', help="Step to declare, e.g. '0.1: Write docs' (repeatable)")
    p_init.add_argument('--title', '-t', help='PLAN.md title (default: directory name)')
    p_init.set_defaults(func=cmd_init)

    # worktree status
    p_status = subparsers.add_parser('status', help='Show WorkNode progress')
    p_status.add_argument('dir', nargs='?', default='.', help='WorkNode directory (default: current)')
    p_status.set_defaults(func=cmd_status)

    # worktree next
    p_next = subparsers.add_parser('next', help='Show the next actionable step')
    p_next.add_argument('dir', nargs='?', default='.', help='WorkNode directory (default: current)')
    p_next.set_defaults(func=cmd_next)

    # worktree start
    p_start = subparsers.add_parser('start', help='Start the next (or given) step')
    p_start.add_argument('dir', nargs='?', default='.', help='WorkNode directory (default: current)')
    p_start.add_argument('--step', help='Step to start, e.g. 1.2 (default: next actionable)')
    p_start.set_defaults(func=cmd_start)

    # worktree complete
    p_complete = subparsers.add_parser('complete', help='Complete the in-progress (or given) step')
    p_complete.add_argument('dir', nargs='?', default='.', help='WorkNode directory (default: current)')
    p_complete.add_argument('--step', help='Step to complete, e.g. 1.2 (default: the one in progress)')
    p_complete.add_argument('--note', '-n', help='Note to append to the step log')
    p_complete.set_defaults(func=cmd_complete)

    # worktree audit
    p_audit = subparsers.add_parser('audit', help='Check every WorkNode under a directory')
    p_audit.add_argument('root', nargs='?', default='.', help='Directory to search (default: current)')
    p_audit.set_defaults(func=cmd_audit)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = get_config(args)
    except ConfigError as e:
        print(f"ERROR: {e}")
        return 2
    setup_logging(args, config)

    try:
        return args.func(args, config)
    except (LayoutError, ParseError) as e:
        print(f"ERROR: {e}")
        return 2
    except WorkTreeError as e:
        print(f"ERROR: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
