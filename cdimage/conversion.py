import os
import logging
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from typing import BinaryIO, Iterator, List, Optional

from cdimage.CD.disc import Disc, build_disc, file_sector_count, validate_modes
from cdimage.CD.subchannel import Subchannel
from cdimage.cuesheet import CueSheet
from cdimage.errors import CueSheetError, MissingFilesError, OutputError, TrackReadError
from cdimage.subchannel.protection import ProtectionOverlay, ProtectionType
from cdimage.toc import write_ccd

logger = logging.getLogger(__name__)

# Sectors generated between writes to the .sub file
SUB_CHUNK_SECTORS = 4096
# Bytes read from a track file at a time while building the .img
COPY_CHUNK_SIZE = 1024 * 1024


@dataclass
class ConversionOptions:
    output_path: Optional[str] = None
    """Directory for the .ccd/.sub/.img; defaults to the cuesheet's directory"""

    skip_img_copy: bool = False
    protection_type: Optional[ProtectionType] = None
    overwrite_img: bool = False
    """Replace an existing .img instead of leaving it alone"""


@dataclass
class ConversionResult:
    disc: Disc
    ccd_path: str
    sub_path: str
    img_path: Optional[str] = None
    overlay: Optional[ProtectionOverlay] = None


def output_stem(cue_path: str, output_path: Optional[str] = None) -> str:
    """Base path, without extension, shared by every output file."""
    root = os.path.dirname(cue_path)
    directory = output_path if output_path is not None else root
    basename = os.path.splitext(os.path.basename(cue_path))[0]
    if not basename:
        raise CueSheetError(f"Unable to determine the filename portion of {cue_path}!")
    return os.path.join(directory, basename)


@contextmanager
def atomic_output(path: str, mode: str = 'wb') -> Iterator[BinaryIO]:
    """Write to a temporary file next to ``path`` and move it into place on success."""
    directory = os.path.dirname(path) or "."
    try:
        handle, temp_path = tempfile.mkstemp(dir=directory, prefix=".cue2ccd-", suffix=os.path.splitext(path)[1])
    except OSError as e:
        raise OutputError(f"Unable to create {path}: {e.strerror}")

    try:
        if 'b' in mode:
            out_file = os.fdopen(handle, mode)
        else:
            out_file = os.fdopen(handle, mode, encoding='utf-8', newline='\n')
        with out_file:
            yield out_file
        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise


def missing_files(sheet: CueSheet) -> List[str]:
    return [f for f in sheet.files() if not os.path.isfile(os.path.join(sheet.root, f))]


def write_subchannel(disc: Disc, sub_file: BinaryIO, overlay: Optional[ProtectionOverlay] = None) -> int:
    """Write the subchannel block of every sector in order; returns bytes written."""
    written = 0
    for first in range(0, disc.sector_count, SUB_CHUNK_SECTORS):
        last = min(first + SUB_CHUNK_SECTORS, disc.sector_count)
        chunk = b''.join(Subchannel.generate(sector, overlay) for sector in disc.sectors(first, last))
        sub_file.write(chunk)
        written += len(chunk)
        logger.debug(f"Subchannel: {last}/{disc.sector_count} sectors")
    return written


def read_track(filename: str, root: str) -> Iterator[bytes]:
    """Yield a track file in chunks; read failures become TrackReadError."""
    try:
        with open(os.path.join(root, filename), 'rb') as track_file:
            while True:
                chunk = track_file.read(COPY_CHUNK_SIZE)
                if not chunk:
                    return
                yield chunk
    except OSError as e:
        raise TrackReadError(filename, e.strerror or str(e))


def copy_image(files: List[str], root: str, img_file: BinaryIO) -> None:
    """Concatenate the track files into img_file.

    Runs after the .sub and .ccd are in place, which a failure here leaves
    behind.
    """
    for filename in files:
        logger.info(f"Stitching '{filename}'")
        for chunk in read_track(filename, root):
            img_file.write(chunk)


def convert(cue_path: str, options: Optional[ConversionOptions] = None) -> ConversionResult:
    if options is None:
        options = ConversionOptions()

    sheet = CueSheet.from_file(cue_path)
    stem = output_stem(cue_path, options.output_path)
    if not os.path.isdir(os.path.dirname(stem) or "."):
        raise OutputError(f"Output directory {os.path.dirname(stem)} does not exist.")

    # Everything is validated before the first output file is opened
    validate_modes(sheet.tracks)

    missing = missing_files(sheet)
    if missing:
        raise MissingFilesError(missing)

    overlay = ProtectionOverlay.load(cue_path, options.protection_type)

    try:
        disc = build_disc(sheet.tracks, lambda f: file_sector_count(os.path.join(sheet.root, f)))
    except OSError as e:
        raise MissingFilesError([e.filename or str(e)])
    logger.info(f"{len(disc.tracks)} track(s), {disc.sector_count} sectors")

    sub_path = stem + ".sub"
    ccd_path = stem + ".ccd"
    try:
        with atomic_output(sub_path) as sub_file:
            write_subchannel(disc, sub_file, overlay)
    except OSError as e:
        raise OutputError(f"Unable to write {sub_path}: {e}")
    try:
        with atomic_output(ccd_path, 'w') as ccd_file:
            write_ccd(disc, ccd_file)
    except (OSError, OutputError) as e:
        # A .sub without its control file is useless
        os.remove(sub_path)
        if isinstance(e, OutputError):
            raise
        raise OutputError(f"Unable to write {ccd_path}: {e}")

    img_path = None
    if not options.skip_img_copy:
        target = stem + ".img"
        if os.path.exists(target) and not options.overwrite_img:
            logger.warning(f"A .img file at path {target} already exists; skipping copy")
        else:
            try:
                with atomic_output(target) as img_file:
                    copy_image(sheet.files(), sheet.root, img_file)
            except OSError as e:
                raise OutputError(f"Unable to write {target}: {e}")
            img_path = target

    logger.info(f"Conversion complete! Created {ccd_path}")
    return ConversionResult(disc=disc, ccd_path=ccd_path, sub_path=sub_path, img_path=img_path, overlay=overlay)
