"""
zipcat Logger - Centralized Logging Utility
"""
import logging
import sys

def setup_logger():
    # Create a custom logger
    logger = logging.getLogger("zipcat")
    logger.setLevel(logging.DEBUG)

    # stdout carries entry bytes for `cat`, so diagnostics go to stderr
    c_handler = logging.StreamHandler(sys.stderr)
    c_handler.setLevel(logging.INFO)

    c_format = logging.Formatter('%(message)s') # Clean output for CLI
    c_handler.setFormatter(c_format)

    if not logger.handlers:
        logger.addHandler(c_handler)

    return logger


def set_verbose(verbose: bool):
    """Switch the console handler between INFO and DEBUG."""
    level = logging.DEBUG if verbose else logging.INFO
    for handler in logger.handlers:
        handler.setLevel(level)


# Initialize singleton
logger = setup_logger()

__all__ = ["logger", "set_verbose"]
