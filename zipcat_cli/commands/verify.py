"""
zipcat CLI - Test Command
Usage: python -m zipcat_cli.commands.verify archive.zip [-p PASSWORD]
"""
import argparse
import sys

from zipcat.errors import ZipError
from zipcat.utils.logger import logger
from .common import open_archive


def add_arguments(parser):
    parser.add_argument("zip_file", help="zip file")
    parser.add_argument("-p", "--password", help="Password for encrypted entries")


def run(args):
    try:
        with open_archive(args, password=args.password) as archive:
            summary = archive.verify()
    except ZipError as e:
        logger.error(str(e))
        sys.exit(1)
    except OSError as e:
        logger.error(f"Cannot read {args.zip_file}: {e}")
        sys.exit(1)

    if summary['failed'] > 0:
        for failure in summary['failures']:
            logger.error(f"   {failure['name']}: {failure['error']}")
        logger.error(f"{summary['failed']} of {summary['checked']} entries failed in {args.zip_file}")
        sys.exit(1)

    print(f"No errors detected in {args.zip_file} ({summary['checked']} entries checked)")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Test the integrity of every entry in a ZIP archive")
    add_arguments(parser)
    run(parser.parse_args(argv))


if __name__ == "__main__":
    main()
