"""Copy-protection sidecars: known-bad Q subchannel data for specific sectors.

Neither format is referenced from the cuesheet; emulators simply look for a
file with the same basename next to the .cue, and so do we.

SBI: the header ``SBI\\x00`` followed by 14-byte records, each the MSF the Q
block was read from, a dummy byte, and the first 10 bytes of the Q block
(everything but the CRC16).

LSD: 15-byte records, each the MSF followed by all 12 Q bytes, CRC included.
LSD should be preferred where both exist since SBI forces the CRC to be
regenerated, which is wrong for schemes that rely on a bad CRC.
"""
import os
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from cdimage.CD.cd_types import DiscProtection, SidecarFormat
from cdimage.errors import InvalidSidecarError, InvalidProtectionError, ProtectionMismatchError
from cdimage.toc import msf_to_sector

logger = logging.getLogger(__name__)

SBI_MAGIC = b'SBI\x00'
SBI_RECORD_SIZE = 14
LSD_RECORD_SIZE = 15

# Number of sidecar entries each recognised scheme produces
SCHEME_SIGNATURES: Dict[int, DiscProtection] = {
    76: DiscProtection.DiscGuardScheme2,
    600: DiscProtection.DiscGuardScheme1,
}


class ProtectionType(Enum):
    """A protection scheme requested by the user."""
    DiscGuard = "discguard"
    DiscGuard1 = "discguard1"
    DiscGuard2 = "discguard2"
    SecuROM = "securom"
    LibCrypt = "libcrypt"

    @classmethod
    def from_name(cls, name: str) -> 'ProtectionType':
        for protection in cls:
            if protection.value == name.lower():
                return protection
        raise InvalidProtectionError(name, [p.value for p in cls])

    @property
    def schemes(self) -> FrozenSet[DiscProtection]:
        return {
            ProtectionType.DiscGuard: frozenset({DiscProtection.DiscGuardScheme1, DiscProtection.DiscGuardScheme2}),
            ProtectionType.DiscGuard1: frozenset({DiscProtection.DiscGuardScheme1}),
            ProtectionType.DiscGuard2: frozenset({DiscProtection.DiscGuardScheme2}),
            ProtectionType.SecuROM: frozenset({DiscProtection.SecuROM}),
            ProtectionType.LibCrypt: frozenset({DiscProtection.LibCrypt}),
        }[self]

    @property
    def signatures(self) -> FrozenSet[int]:
        """Entry counts which identify this scheme; empty if none is known."""
        return frozenset(count for count, scheme in SCHEME_SIGNATURES.items() if scheme in self.schemes)


def _records(data: bytes, record_size: int, fmt: SidecarFormat) -> Dict[int, bytes]:
    if len(data) % record_size:
        raise InvalidSidecarError(f"Invalid {fmt.name} file!",
                                  f"{len(data)} bytes of records is not a multiple of {record_size}.")

    q_length = fmt.q_length
    entries: Dict[int, bytes] = {}
    for offset in range(0, len(data), record_size):
        record = data[offset:offset + record_size]
        # MSF is the absolute position, lead-in included
        sector = msf_to_sector(record[0], record[1], record[2])
        entries[sector] = bytes(record[record_size - q_length:])
    return entries


def parse_sbi(data: bytes) -> Dict[int, bytes]:
    if data[:4] != SBI_MAGIC:
        raise InvalidSidecarError("Invalid SBI file!", "The file doesn't start with the SBI\\0 header.")
    # Byte 3 of each record is a dummy 0x01 and is skipped by taking the last 10 bytes
    return _records(data[4:], SBI_RECORD_SIZE, SidecarFormat.SBI)


def parse_lsd(data: bytes) -> Dict[int, bytes]:
    return _records(data, LSD_RECORD_SIZE, SidecarFormat.LSD)


def detect_protection(entries: Dict[int, bytes]) -> Optional[DiscProtection]:
    return SCHEME_SIGNATURES.get(len(entries))


def find_sidecar(cue_path: str) -> Optional[Tuple[str, SidecarFormat]]:
    """Return the LSD or SBI file next to a cuesheet, LSD first."""
    directory = os.path.dirname(cue_path) or "."
    stem = os.path.splitext(os.path.basename(cue_path))[0]
    try:
        names = os.listdir(directory)
    except OSError:
        return None

    for fmt in (SidecarFormat.LSD, SidecarFormat.SBI):
        exact = f"{stem}.{fmt.value}"
        if exact in names:
            return os.path.join(directory, exact), fmt
        for name in sorted(names):
            if name.lower() == exact.lower():
                return os.path.join(directory, name), fmt
    return None


@dataclass(frozen=True)
class ProtectionOverlay:
    source: SidecarFormat
    path: str
    entries: Dict[int, bytes] = field(default_factory=dict)
    protection: Optional[DiscProtection] = None

    def get(self, absolute_sector: int) -> Optional[bytes]:
        return self.entries.get(absolute_sector)

    def __len__(self) -> int:
        return len(self.entries)

    @classmethod
    def from_file(cls, path: str, fmt: SidecarFormat,
                  requested: Optional[ProtectionType] = None) -> 'ProtectionOverlay':
        # Sidecars are tiny, read them whole
        try:
            with open(path, 'rb') as sidecar:
                data = sidecar.read()
        except OSError as e:
            raise InvalidSidecarError(f"Unable to read {path}: {e.strerror}")

        entries = parse_lsd(data) if fmt is SidecarFormat.LSD else parse_sbi(data)
        protection = detect_protection(entries)
        logger.info(f"Loaded {len(entries)} {fmt.name} entries from {os.path.basename(path)}")

        if requested is not None:
            signatures = requested.signatures
            if signatures and len(entries) not in signatures:
                raise ProtectionMismatchError(fmt.value, requested.value, len(entries))
            if protection is not None and protection not in requested.schemes:
                logger.warning(f"{fmt.name} layout looks like {protection.value}, not {requested.value}")
            if protection is None and len(requested.schemes) == 1:
                protection = next(iter(requested.schemes))

        if protection is not None:
            logger.info(f"Protection: {protection.value}")
        return cls(source=fmt, path=path, entries=entries, protection=protection)

    @classmethod
    def load(cls, cue_path: str, requested: Optional[ProtectionType] = None) -> Optional['ProtectionOverlay']:
        found = find_sidecar(cue_path)
        if found is None:
            if requested is not None:
                logger.warning(f"{requested.value} protection requested but no .lsd or .sbi file was found")
            return None
        path, fmt = found
        return cls.from_file(path, fmt, requested)
