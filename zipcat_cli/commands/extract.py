"""
zipcat CLI - Extract Command
Usage: python -m zipcat_cli.commands.extract archive.zip path/in/archive.txt

Only reports what would be extracted; nothing is written to disk.
"""
import argparse


def add_arguments(parser):
    parser.add_argument("zip_file", help="zip file")
    parser.add_argument("entry_name", help="entry name")


def run(args):
    # TODO: settle output location and permission handling, then call ZipArchive.extract
    print(f"extract: zip={args.zip_file}, entry={args.entry_name}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Extract an entry from a ZIP archive")
    add_arguments(parser)
    run(parser.parse_args(argv))


if __name__ == "__main__":
    main()
