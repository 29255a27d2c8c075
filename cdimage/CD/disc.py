import os
import logging
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Sequence, Tuple

from cdimage.CD.cd_types import Index, Sector, Track, SECTOR_SIZE, LEAD_IN_SECTORS, MAX_ADDRESSABLE_SECTOR
from cdimage.cuesheet import CueTrack
from cdimage.errors import CueSheetError, DiscSizeError, GeometryCoverageError, UnsupportedTrackError

logger = logging.getLogger(__name__)


def file_sector_count(path: str) -> int:
    size = os.path.getsize(path)
    if size % SECTOR_SIZE:
        logger.warning(f"{os.path.basename(path)} is {size} bytes, not a whole number of "
                       f"{SECTOR_SIZE}-byte sectors; ignoring the last {size % SECTOR_SIZE} bytes")
    return size // SECTOR_SIZE


def validate_modes(tracks: Sequence[CueTrack]) -> None:
    """Reject sources whose sectors aren't raw 2352-byte blocks.

    BIN/CUE can be a variety of formats, including WAVE files and cooked
    tracks without error correction data; only raw tracks can be merged into
    a CloneCD image.
    """
    for track in tracks:
        if track.is_wave:
            raise UnsupportedTrackError("This tool only supports raw disc images",
                                        "cuesheets containing .wav files are not compatible.")
        mode = track.mode
        if mode is None:
            raise UnsupportedTrackError(f"TRACK {track.number:02d} uses unsupported mode {track.mode_token}")
        if not mode.is_raw:
            raise UnsupportedTrackError("This tool only supports raw disc images",
                                        "cuesheets containing ISOs or other non-raw data are not compatible.")


@dataclass(frozen=True)
class Disc:
    tracks: Tuple[Track, ...]
    sector_count: int

    def sector_from_number(self, sector: int) -> Optional[Sector]:
        # Tracks and indices are in ascending order, so the first range
        # holding the sector is its owner.
        for track_position, track in enumerate(self.tracks):
            for index_position, index in enumerate(track.indices):
                if sector in index:
                    return Sector(
                        start=sector,
                        absolute_start=sector + LEAD_IN_SECTORS,
                        # Negative inside the pregap, counting towards index 1
                        relative_position=sector - track.start,
                        disc=self,
                        track_position=track_position,
                        index_position=index_position,
                    )
        return None

    def sectors(self, first: int = 0, last: Optional[int] = None) -> Iterator[Sector]:
        """Yield every sector from ``first`` up to ``last`` (exclusive), in order."""
        if last is None:
            last = self.sector_count
        for number in range(first, last):
            sector = self.sector_from_number(number)
            if sector is None:
                raise GeometryCoverageError(number)
            yield sector

    def check_coverage(self) -> None:
        """Raise GeometryCoverageError unless every sector has exactly one owner."""
        expected = 0
        for track in self.tracks:
            if track.end >= self.sector_count:
                raise GeometryCoverageError(self.sector_count)
            for index in track.indices:
                if index.start != expected:
                    raise GeometryCoverageError(min(expected, index.start))
                if index.end < index.start:
                    raise GeometryCoverageError(index.start)
                expected = index.end + 1
        if expected != self.sector_count:
            raise GeometryCoverageError(min(expected, self.sector_count))


def build_disc(cue_tracks: Sequence[CueTrack], file_sectors: Callable[[str], int]) -> Disc:
    """Lay out every track of a cuesheet in one image address space.

    Each FILE's tracks sit directly after the previous file's, so every cue
    offset is biased by the total sector count of the files before it.
    """
    tracks = []
    prior_sectors = 0
    previous_file: Optional[str] = None
    current_file_sectors = 0

    for cue_track in cue_tracks:
        if previous_file is not None and cue_track.filename != previous_file:
            prior_sectors += current_file_sectors
        if cue_track.filename != previous_file:
            current_file_sectors = file_sectors(cue_track.filename)
            logger.debug(f"{cue_track.filename}: {current_file_sectors} sectors at offset {prior_sectors}")
        previous_file = cue_track.filename

        start = cue_track.start + prior_sectors
        # The cuesheet doesn't record the length of the last track of a file;
        # it runs to the end of that file.
        if cue_track.length is not None:
            length = cue_track.length
        else:
            length = prior_sectors + current_file_sectors - start
        end = start + length - 1

        file_end = prior_sectors + current_file_sectors - 1
        if length <= 0 or end > file_end:
            raise CueSheetError(f"TRACK {cue_track.number:02d} runs past the end of {cue_track.filename}.",
                                f"{cue_track.filename} only holds {current_file_sectors} sectors.")

        numbers = sorted(cue_track.indices)
        indices = []
        for position, number in enumerate(numbers):
            index_start = cue_track.indices[number] + prior_sectors
            if position + 1 < len(numbers):
                index_end = cue_track.indices[numbers[position + 1]] + prior_sectors - 1
            else:
                index_end = end
            indices.append(Index(number=number, start=index_start, end=index_end))

        mode = cue_track.mode
        if mode is None:
            raise UnsupportedTrackError(f"TRACK {cue_track.number:02d} uses unsupported mode {cue_track.mode_token}")

        tracks.append(Track(
            number=cue_track.number,
            start=start,
            length=length,
            mode=mode,
            indices=tuple(indices),
            filename=cue_track.filename,
        ))
        logger.debug(f"Track {cue_track.number:02d}: {mode.name}, start {start}, length {length}, "
                     f"indices {', '.join(f'{i.number}@{i.start}' for i in indices)}")

    sector_count = prior_sectors + current_file_sectors
    # The lead-out has to be addressable too, Q times stop at 99:59:74
    if sector_count + LEAD_IN_SECTORS > MAX_ADDRESSABLE_SECTOR:
        raise DiscSizeError(sector_count)

    disc = Disc(tracks=tuple(tracks), sector_count=sector_count)
    disc.check_coverage()
    return disc
