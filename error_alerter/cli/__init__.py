"""
error-alerter - operator CLI

Commands
- config    : Show the configuration read from ERROR_ALERTER_* variables
- send-test : Push one test alert through the full pipeline

Usage
  error-alerter config
  error-alerter send-test --message "hello from staging"
"""

import argparse
import sys
from typing import List, Optional

from error_alerter import __version__
from error_alerter.cli import cmd_config, cmd_send_test
from error_alerter.logging_utils import setup_json_logging

COMMANDS = {
    'config': cmd_config,
    'send-test': cmd_send_test,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='error-alerter',
        description='Inspect and test error_alerter webhook configuration',
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest='command', help='Command')
    for module in COMMANDS.values():
        module.register(subparsers)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_json_logging(service_name='error-alerter-cli', version=__version__, level='WARNING')
    return COMMANDS[args.command].execute(args)


if __name__ == '__main__':
    sys.exit(main())
