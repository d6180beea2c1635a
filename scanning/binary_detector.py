"""
Binary file detection.

Heuristic: a NUL byte in the first block of the file marks it as binary.
Binary formats without an early NUL byte are not detected.
"""

from pathlib import Path
from typing import Union
import structlog

from config import settings

logger = structlog.get_logger()


def is_binary(path: Union[str, Path], sample_size: int = settings.BINARY_SAMPLE_SIZE) -> bool:
    """
    Check whether a file looks binary.

    Args:
        path: File to inspect
        sample_size: Number of bytes read from the start of the file

    Returns:
        True if a NUL byte occurs in the sample. False otherwise, including
        when the file cannot be opened or read; the caller's own open
        reports the real error.
    """
    try:
        with open(path, 'rb') as f:
            sample = f.read(sample_size)
    except OSError as e:
        logger.debug("Binary check could not read file", path=str(path), error=str(e))
        return False

    return b'\x00' in sample
