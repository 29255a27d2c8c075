from __future__ import annotations

import importlib.util
import sys
from pathlib import Path
from typing import Iterable, Tuple

SECTOR_SIZE = 2352


def repo_root_path() -> Path:
    """Return the repository root, where ``cdimage`` and ``cue2ccd.py`` live."""

    return Path(__file__).resolve().parents[1]


def _ensure_repo_on_path() -> None:
    if importlib.util.find_spec("cdimage") is None:
        sys.path.insert(0, str(repo_root_path()))


_ensure_repo_on_path()


def write_bin(path: Path, sectors: int, fill: int = 0) -> Path:
    path.write_bytes(bytes([fill]) * (SECTOR_SIZE * sectors))
    return path


def write_cue(path: Path, text: str) -> Path:
    path.write_text(text.strip() + "\n")
    return path


def make_image(tmp_path: Path, name: str, files: Iterable[Tuple[str, int]], cue_text: str) -> Path:
    """Create the backing .bin files and the cuesheet of a test image."""
    for filename, sectors in files:
        write_bin(tmp_path / filename, sectors)
    return write_cue(tmp_path / f"{name}.cue", cue_text)


SINGLE_TRACK_CUE = """
FILE "game.bin" BINARY
  TRACK 01 MODE2/2352
    INDEX 01 00:00:00
"""

MIXED_MODE_CUE = """
FILE "game (Track 1).bin" BINARY
  TRACK 01 MODE2/2352
    INDEX 01 00:00:00
FILE "game (Track 2).bin" BINARY
  TRACK 02 AUDIO
    INDEX 00 00:00:00
    INDEX 01 00:02:00
"""
