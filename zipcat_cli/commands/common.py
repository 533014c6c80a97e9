"""
Helpers shared by the zipcat commands.
"""
import sys
from pathlib import Path

from zipcat.config import ZipcatConfig, config
from zipcat.extractor.coordinator import ZipArchive
from zipcat.utils.logger import logger


def load_config(args) -> ZipcatConfig:
    config_path = getattr(args, 'config', None)
    if config_path:
        return ZipcatConfig(config_path)
    return config


def open_archive(args, password=None) -> ZipArchive:
    """Open the archive named on the command line or exit with a diagnostic."""
    zip_file = args.zip_file
    if not Path(zip_file).is_file():
        logger.error(f"Archive not found: {zip_file}")
        sys.exit(1)
    return ZipArchive(zip_file, password=password, config=load_config(args))
