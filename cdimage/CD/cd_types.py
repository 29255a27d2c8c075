from dataclasses import dataclass, field
from typing import Tuple, Optional, TYPE_CHECKING
from enum import Enum, IntEnum

if TYPE_CHECKING:
    from cdimage.CD.disc import Disc

# Raw sector size; every backing file must be made of these
SECTOR_SIZE = 2352
# Size of one CloneCD subchannel block (P-W, deinterleaved)
SUBCHANNEL_SIZE = 96
# Sectors of lead-in omitted from an image (00:02:00)
LEAD_IN_SECTORS = 150
SECTORS_PER_SECOND = 75
SECTORS_PER_MINUTE = 60 * SECTORS_PER_SECOND
# Last sector a Q channel MSF (99:59:74) can address
MAX_ADDRESSABLE_SECTOR = 99 * SECTORS_PER_MINUTE + 59 * SECTORS_PER_SECOND + 74


class TocControl(IntEnum):
    TwoChanNoPreEmph = 0x00
    TwoChanPreEmph = 0x01
    CopyPermissionMask = 0x02
    DataTrack = 0x04
    DataTrackIncremental = 0x05
    FourChanNoPreEmph = 0x08
    FourChanPreEmph = 0x09
    ReservedMask = 0x0C


class TocAdr(IntEnum):
    NoInformation = 0x00
    CurrentPosition = 0x01
    MediaCatalogNumber = 0x02
    ISRC = 0x03


class TocPoint(IntEnum):
    FirstTrack = 0xA0
    LastTrack = 0xA1
    LeadOut = 0xA2


class TrackMode(Enum):
    Audio = "AUDIO"
    # 2048-byte data without ECC
    Mode1 = "MODE1/2048"
    # 2352-byte data with sync, header and ECC
    Mode1Raw = "MODE1/2352"
    # 2336-byte data without ECC
    Mode2 = "MODE2/2336"
    # 2048-byte data (CD-ROM XA)
    Mode2Form1 = "MODE2/2048"
    # 2324-byte data (CD-ROM XA)
    Mode2Form2 = "MODE2/2324"
    # 2332-byte data (CD-ROM XA)
    Mode2FormMix = "MODE2/2332"
    # 2352-byte data with sync, header and ECC
    Mode2Raw = "MODE2/2352"

    @classmethod
    def from_cue(cls, token: str) -> Optional['TrackMode']:
        token = token.upper()
        # CD-i tracks are laid out like CD-ROM XA ones
        aliases = {"CDI/2336": "MODE2/2332", "CDI/2352": "MODE2/2352"}
        token = aliases.get(token, token)
        for mode in cls:
            if mode.value == token:
                return mode
        return None

    @property
    def is_raw(self) -> bool:
        return self in (TrackMode.Audio, TrackMode.Mode1Raw, TrackMode.Mode2Raw)

    @property
    def control(self) -> int:
        """Control nibble for the Q subchannel and the TOC."""
        if self is TrackMode.Audio:
            return int(TocControl.TwoChanNoPreEmph)
        return int(TocControl.DataTrack)

    @property
    def ccd_mode(self) -> int:
        """MODE value of a CloneCD [TRACK] block."""
        if self is TrackMode.Audio:
            return 0
        if self in (TrackMode.Mode1, TrackMode.Mode1Raw):
            return 1
        return 2


class SidecarFormat(Enum):
    SBI = "sbi"
    LSD = "lsd"

    @property
    def q_length(self) -> int:
        """Number of captured Q bytes per record; SBI omits the CRC."""
        return 10 if self is SidecarFormat.SBI else 12


class DiscProtection(Enum):
    DiscGuardScheme1 = "DiscGuard (scheme 1)"
    DiscGuardScheme2 = "DiscGuard (scheme 2)"
    SecuROM = "SecuROM"
    LibCrypt = "LibCrypt"


@dataclass(frozen=True)
class Index:
    number: int
    """0 is the pregap, 1 onward are the track proper"""

    start: int
    """First sector of the index, relative to the start of the image"""

    end: int
    """Last sector of the index, inclusive"""

    @property
    def is_pregap(self) -> bool:
        return self.number == 0

    def __contains__(self, sector: int) -> bool:
        return self.start <= sector <= self.end


@dataclass(frozen=True)
class Track:
    number: int
    start: int
    """Sector of index 1, relative to the start of the image"""

    length: int
    """Sectors from index 1 to the end of the track"""

    mode: TrackMode
    indices: Tuple[Index, ...] = field(default_factory=tuple)
    filename: str = ""

    @property
    def end(self) -> int:
        return self.start + self.length - 1


@dataclass(frozen=True)
class Sector:
    start: int
    """Sector number, relative to the start of the image"""

    absolute_start: int
    """Sector number, relative to the start of the disc (lead-in included)"""

    relative_position: int
    """Offset from index 1 of the owning track; negative inside a pregap"""

    disc: 'Disc' = field(repr=False, compare=False)
    track_position: int = 0
    index_position: int = 0

    @property
    def track(self) -> Track:
        return self.disc.tracks[self.track_position]

    @property
    def index(self) -> Index:
        return self.track.indices[self.index_position]

    @property
    def in_pregap(self) -> bool:
        return self.index.is_pregap
