import re
import logging
from typing import Iterator, List, Tuple, TextIO, TYPE_CHECKING

from cdimage.CD.cd_types import (
    TocAdr, TocPoint, Track,
    LEAD_IN_SECTORS, SECTORS_PER_MINUTE, SECTORS_PER_SECOND,
)

if TYPE_CHECKING:
    from cdimage.CD.disc import Disc

logger = logging.getLogger(__name__)

CCD_VERSION = 3


def msf_to_sector(minute: int, second: int, frame: int) -> int:
    return (minute * SECTORS_PER_MINUTE) + (second * SECTORS_PER_SECOND) + frame


def sector_to_msf(sector: int) -> Tuple[int, int, int]:
    return (sector // SECTORS_PER_MINUTE, (sector // SECTORS_PER_SECOND) % 60, sector % SECTORS_PER_SECOND)


def cuestamp_to_sector(stamp: str) -> int:
    """Convert a cuesheet ``MM:SS:FF`` timestamp to a sector count."""
    m = re.match(r'^(\d+):(\d+):(\d+)$', stamp.strip())
    if not m:
        raise ValueError(f"Invalid timestamp {stamp!r}")
    minute, second, frame = (int(x) for x in m.groups())
    if second >= 60 or frame >= SECTORS_PER_SECOND:
        raise ValueError(f"Invalid timestamp {stamp!r}")
    return msf_to_sector(minute, second, frame)


def _entry(point: int, control: int, pmsf: Tuple[int, int, int], plba: int) -> List[str]:
    # Absolute fields describe where the TOC entry itself was read in the
    # lead-in, which an image doesn't have.
    return [
        "Session=1",
        f"Point=0x{point:02x}",
        f"ADR=0x{TocAdr.CurrentPosition:02x}",
        f"Control=0x{control:02x}",
        "TrackNo=0",
        "AMin=0",
        "ASec=0",
        "AFrame=0",
        f"ALBA={-LEAD_IN_SECTORS}",
        "Zero=0",
        f"PMin={pmsf[0]}",
        f"PSec={pmsf[1]}",
        f"PFrame={pmsf[2]}",
        f"PLBA={plba}",
    ]


def toc_entries(disc: 'Disc') -> Iterator[List[str]]:
    """Yield the body of every [Entry N] block, in TOC order."""
    first: Track = disc.tracks[0]
    last: Track = disc.tracks[-1]

    # The first/last track pointers carry a track number in PMin rather
    # than a position, so their PLBA is only nominal.
    yield _entry(TocPoint.FirstTrack, first.mode.control, (first.number, 0, 0),
                 first.number * SECTORS_PER_MINUTE - LEAD_IN_SECTORS)
    yield _entry(TocPoint.LastTrack, last.mode.control, (last.number, 0, 0),
                 last.number * SECTORS_PER_MINUTE - LEAD_IN_SECTORS)
    yield _entry(TocPoint.LeadOut, last.mode.control,
                 sector_to_msf(disc.sector_count + LEAD_IN_SECTORS), disc.sector_count)

    for track in disc.tracks:
        yield _entry(track.number, track.mode.control,
                     sector_to_msf(track.start + LEAD_IN_SECTORS), track.start)


def ccd_generator(disc: 'Disc') -> Iterator[List[str]]:
    """Yield the CloneCD control file one block at a time."""
    yield ["[CloneCD]", f"Version={CCD_VERSION}"]

    yield [
        "[Disc]",
        f"TocEntries={len(disc.tracks) + 3}",
        "Sessions=1",
        "DataTracksScrambled=0",
        "CDTextLength=0",
    ]

    yield [
        "[Session 1]",
        f"PreGapMode={disc.tracks[0].mode.ccd_mode}",
        "PreGapSubC=0",
    ]

    for number, entry in enumerate(toc_entries(disc)):
        yield [f"[Entry {number}]"] + entry

    for track in disc.tracks:
        block = [f"[TRACK {track.number}]", f"MODE={track.mode.ccd_mode}"]
        for index in track.indices:
            block.append(f"INDEX {index.number}={index.start}")
        yield block


def ccd_text(disc: 'Disc') -> str:
    return "\n\n".join("\n".join(block) for block in ccd_generator(disc)) + "\n"


def write_ccd(disc: 'Disc', ccd_file: TextIO) -> None:
    logger.debug(f"Writing CCD with {len(disc.tracks) + 3} TOC entries")
    ccd_file.write(ccd_text(disc))
