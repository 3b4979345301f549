"""File-based debug logging setup."""

from __future__ import annotations

import logging
import os
from pathlib import Path

LOG_FILENAME = 'segscribe_debug.log'


def setup_file_logging(output_dir: Path, level: str = 'DEBUG') -> Path:
    """Configure file-based debug logging into *output_dir*; returns the log path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    log_path = output_dir / LOG_FILENAME
    root = logging.getLogger('segscribe')
    for existing in root.handlers:
        if isinstance(existing, logging.FileHandler) and existing.baseFilename == os.path.abspath(log_path):
            return log_path
    handler = logging.FileHandler(log_path, encoding='utf-8')
    handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s'))
    root.setLevel(level.upper())
    root.addHandler(handler)
    logging.getLogger('segscribe.app').info('Debug logging started → %s', log_path)
    return log_path
