"""
zipcat CLI
Usage: zipcat [-v] [-c CONFIG] {list,cat,extract,test} ...
"""
import argparse
import sys

from zipcat.utils.logger import set_verbose
from .commands import cat, extract, listing, verify


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="zipcat", description="Inspect ZIP archives")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
    parser.add_argument("-c", "--config", help="Path to a JSON config file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    commands = [
        ("list", ["ls"], "list entries", listing),
        ("extract", ["x"], "extract entry", extract),
        ("cat", [], "print entry content", cat),
        ("test", ["t"], "test archive integrity", verify),
    ]
    for name, aliases, help_text, module in commands:
        sub = subparsers.add_parser(name, aliases=aliases, help=help_text)
        module.add_arguments(sub)
        sub.set_defaults(func=module.run)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    set_verbose(args.verbose)

    try:
        args.func(args)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
