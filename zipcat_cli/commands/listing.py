"""
zipcat CLI - List Command
Usage: python -m zipcat_cli.commands.listing archive.zip [-l]
"""
import argparse
import sys

from zipcat.errors import ZipError
from zipcat.tools.inspector import Inspector
from zipcat.utils.logger import logger
from .common import open_archive


def add_arguments(parser):
    parser.add_argument("zip_file", help="zip file")
    parser.add_argument("-l", "--long", action="store_true",
                        help="Show sizes, method, CRC and date for each entry")


def run(args):
    try:
        with open_archive(args) as archive:
            if args.long:
                Inspector().inspect(archive)
            else:
                for name in archive.names():
                    print(name)
    except ZipError as e:
        logger.error(str(e))
        sys.exit(1)
    except OSError as e:
        logger.error(f"Cannot read {args.zip_file}: {e}")
        sys.exit(1)


def main(argv=None):
    parser = argparse.ArgumentParser(description="List the entries of a ZIP archive")
    add_arguments(parser)
    run(parser.parse_args(argv))


if __name__ == "__main__":
    main()
