import os
import re
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from cdimage.CD.cd_types import TrackMode
from cdimage.errors import CueSheetError
from cdimage.toc import cuestamp_to_sector

logger = logging.getLogger(__name__)

# Regular expressions
REGEX_FILE = r'^\s*FILE\s+(?:"(?P<quoted>[^"]+)"|(?P<bare>\S+))\s+(?P<type>\w+)\s*$'
REGEX_TRACK = r'^\s*TRACK\s+(?P<number>\d+)\s+(?P<mode>\S+)\s*$'
REGEX_INDEX = r'^\s*INDEX\s+(?P<number>\d+)\s+(?P<stamp>\d+:\d+:\d+)\s*$'
REGEX_SESSION = r'^\s*REM\s+SESSION\s+(?P<number>\d+)'
REGEX_GAP = r'^\s*(?P<kind>PREGAP|POSTGAP)\s+(?P<stamp>\d+:\d+:\d+)'
REGEX_CDTEXTFILE = r'^\s*CDTEXTFILE\s'
REGEX_FLAGS = r'^\s*FLAGS\s+(?P<flags>.+)$'
# Metadata lines which don't affect the image layout
REGEX_IGNORED = r'^\s*(REM|CATALOG|ISRC|TITLE|PERFORMER|SONGWRITER|COMPOSER|ARRANGER|MESSAGE)\b'


@dataclass
class CueTrack:
    """One TRACK entry of a cuesheet.

    Index offsets are sectors from the start of the track's FILE, exactly as
    written in the cuesheet.
    """
    number: int
    mode_token: str
    filename: str
    file_type: str = "BINARY"
    indices: Dict[int, int] = field(default_factory=dict)
    length: Optional[int] = None
    """Sectors from INDEX 01 to the next track in the same file; None for the last track of a file"""

    @property
    def mode(self) -> Optional[TrackMode]:
        return TrackMode.from_cue(self.mode_token)

    @property
    def start(self) -> int:
        return self.indices[1]

    @property
    def first_offset(self) -> int:
        return min(self.indices.values())

    @property
    def is_wave(self) -> bool:
        return self.file_type.upper() == "WAVE" or self.filename.lower().endswith(".wav")


class CueSheet:
    def __init__(self, tracks: List[CueTrack], path: Optional[str] = None):
        self.tracks = tracks
        self.path = path

    @property
    def root(self) -> str:
        return os.path.dirname(self.path) if self.path else ""

    def files(self) -> List[str]:
        """Backing files in cue order.

        A file shared by consecutive tracks is listed once.
        """
        files: List[str] = []
        for track in self.tracks:
            if files and files[-1] == track.filename:
                continue
            files.append(track.filename)
        return files

    @classmethod
    def from_file(cls, cue_path: str) -> 'CueSheet':
        try:
            with open(cue_path, 'rb') as cue_file:
                raw = cue_file.read()
        except OSError as e:
            raise CueSheetError(f"Unable to read cuesheet {cue_path}: {e.strerror}")

        if raw[:1] == b'\x00':
            raise CueSheetError(f"{cue_path} doesn't seem to be a cue file!")

        try:
            text = raw.decode('utf-8-sig')
        except UnicodeDecodeError:
            logger.debug(f"{cue_path} is not UTF-8, decoding as latin-1")
            text = raw.decode('latin-1')

        sheet = cls.parse(text)
        sheet.path = cue_path
        return sheet

    @classmethod
    def parse(cls, text: str) -> 'CueSheet':
        file_regex = re.compile(REGEX_FILE, re.IGNORECASE)
        track_regex = re.compile(REGEX_TRACK, re.IGNORECASE)
        index_regex = re.compile(REGEX_INDEX, re.IGNORECASE)
        session_regex = re.compile(REGEX_SESSION, re.IGNORECASE)
        gap_regex = re.compile(REGEX_GAP, re.IGNORECASE)
        cdtext_regex = re.compile(REGEX_CDTEXTFILE, re.IGNORECASE)
        flags_regex = re.compile(REGEX_FLAGS, re.IGNORECASE)
        ignored_regex = re.compile(REGEX_IGNORED, re.IGNORECASE)

        tracks: List[CueTrack] = []
        current_file: Optional[str] = None
        current_type = "BINARY"
        current_track: Optional[CueTrack] = None

        for line_number, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue

            session_match = session_regex.match(line)
            if session_match:
                if int(session_match.group('number')) > 1:
                    raise CueSheetError("Multi-session discs are not supported.",
                                        f"Found REM SESSION {session_match.group('number')} at line {line_number}")
                continue

            file_match = file_regex.match(line)
            if file_match:
                current_file = file_match.group('quoted') or file_match.group('bare')
                current_type = file_match.group('type').upper()
                current_track = None
                logger.debug(f"Found FILE {current_file} ({current_type}) at line {line_number}")
                continue

            track_match = track_regex.match(line)
            if track_match:
                if current_file is None:
                    raise CueSheetError(f"TRACK before any FILE at line {line_number}")
                current_track = CueTrack(
                    number=int(track_match.group('number')),
                    mode_token=track_match.group('mode').upper(),
                    filename=current_file,
                    file_type=current_type,
                )
                tracks.append(current_track)
                logger.debug(f"Found TRACK {current_track.number} {current_track.mode_token} at line {line_number}")
                continue

            index_match = index_regex.match(line)
            if index_match:
                if current_track is None:
                    previous = tracks[-1] if tracks else None
                    if previous is not None and 1 not in previous.indices and previous.filename != current_file:
                        raise CueSheetError(f"The pregap of TRACK {previous.number:02d} is split across files, "
                                            f"which is not supported (line {line_number}).",
                                            f"INDEX 01 must be in the same FILE as INDEX 00 ({previous.filename}).")
                    raise CueSheetError(f"INDEX outside of a TRACK at line {line_number}")
                number = int(index_match.group('number'))
                if number > 99:
                    raise CueSheetError(f"Invalid index number {number} at line {line_number}")
                if number in current_track.indices:
                    raise CueSheetError(f"Duplicate INDEX {number:02d} at line {line_number}")
                try:
                    offset = cuestamp_to_sector(index_match.group('stamp'))
                except ValueError as e:
                    raise CueSheetError(f"{e} at line {line_number}")
                current_track.indices[number] = offset
                continue

            gap_match = gap_regex.match(line)
            if gap_match:
                raise CueSheetError(f"{gap_match.group('kind').upper()} at line {line_number} is not supported.",
                                    "Gaps which aren't stored in the track files can't be part of a raw image.")

            if cdtext_regex.match(line):
                raise CueSheetError("CD-TEXT is not supported.", f"Found CDTEXTFILE at line {line_number}")

            flags_match = flags_regex.match(line)
            if flags_match:
                logger.debug(f"Ignoring FLAGS {flags_match.group('flags').strip()} at line {line_number}")
                continue

            if ignored_regex.match(line):
                continue

            raise CueSheetError(f"Unrecognised cuesheet command at line {line_number}: {line.strip()}")

        sheet = cls(tracks)
        sheet._validate()
        sheet._compute_lengths()
        return sheet

    def _validate(self):
        if not self.tracks:
            raise CueSheetError("The cuesheet doesn't contain any tracks.")

        for expected, track in enumerate(self.tracks, start=1):
            if track.number != expected:
                raise CueSheetError(f"Expected TRACK {expected:02d}, found TRACK {track.number:02d}.",
                                    "Track numbers must start at 1 and increase by one.")
            if 1 not in track.indices:
                raise CueSheetError(f"TRACK {track.number:02d} has no INDEX 01.")
            numbers = sorted(track.indices)
            offsets = [track.indices[n] for n in numbers]
            if offsets != sorted(offsets) or len(set(offsets)) != len(offsets):
                raise CueSheetError(f"Indices of TRACK {track.number:02d} are not in ascending order.")

        for previous, track in zip(self.tracks, self.tracks[1:]):
            if previous.filename == track.filename and track.first_offset <= max(previous.indices.values()):
                raise CueSheetError(f"TRACK {track.number:02d} starts before the end of TRACK {previous.number:02d}.")

    def _compute_lengths(self):
        # Only a following track in the same file bounds a track's length;
        # the last track of each file runs to the end of that file.
        for track, following in zip(self.tracks, self.tracks[1:]):
            if track.filename == following.filename:
                track.length = following.first_offset - track.start
