"""
zipcat CLI - Cat Command
Usage: python -m zipcat_cli.commands.cat archive.zip path/in/archive.txt
"""
import argparse
import os
import sys

from zipcat.errors import ZipError
from zipcat.utils.logger import logger
from .common import open_archive


def add_arguments(parser):
    parser.add_argument("zip_file", help="zip file")
    parser.add_argument("entry_name", help="entry name")
    parser.add_argument("-p", "--password", help="Password for encrypted entries")


def run(args):
    try:
        with open_archive(args, password=args.password) as archive:
            sys.stdout.flush()
            archive.copy_entry(args.entry_name, sys.stdout.buffer)
            sys.stdout.buffer.flush()

    except BrokenPipeError:
        # Reader closed the pipe (e.g. `| head`); keep the exit-time flush quiet
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        sys.exit(1)
    except ZipError as e:
        logger.error(str(e))
        sys.exit(1)
    except OSError as e:
        logger.error(f"Cannot read {args.zip_file}: {e}")
        sys.exit(1)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Print the content of a ZIP entry")
    add_arguments(parser)
    run(parser.parse_args(argv))


if __name__ == "__main__":
    main()
