import logging
from typing import Optional, TYPE_CHECKING

from cdimage.checksums import crc16, CRC16_INITIAL_CRC, CRC16CCITTContext
from cdimage.CD.cd_types import Sector, SUBCHANNEL_SIZE, LEAD_IN_SECTORS, SECTORS_PER_MINUTE, SECTORS_PER_SECOND

if TYPE_CHECKING:
    from cdimage.subchannel.protection import ProtectionOverlay

logger = logging.getLogger(__name__)

# Q channel mode 1: current position
Q_MODE_POSITION = 1


class Subchannel:
    """Builds the 96-byte CloneCD subchannel block for a sector.

    CloneCD stores subchannel data in a sidecar file which is essentially the
    data on the disc with a few exceptions:

    1) The lead-in (the first 150 sectors) is omitted, and so is the table
       of contents stored there.
    2) The two sync words which start each subchannel block are omitted.
    3) The data is unrolled into eight sequential 12-byte channels (P, Q,
       R through W) instead of interleaved bits.

    See ECMA-130 for the layout of the Q channel.
    """

    @staticmethod
    def bcd(dec: int) -> int:
        if not 0 <= dec <= 99:
            raise ValueError(f"{dec} can't be represented as two BCD digits")
        return ((dec // 10) << 4) | (dec % 10)

    @staticmethod
    def decode_bcd(value: int) -> int:
        return (value >> 4) * 10 + (value & 0x0F)

    @staticmethod
    def binary_to_bcd_q(q: bytearray) -> None:
        for i in range(1, 10):
            q[i] = Subchannel.bcd(q[i])

    @staticmethod
    def msf(sector: int):
        return (sector // SECTORS_PER_MINUTE, (sector // SECTORS_PER_SECOND) % 60, sector % SECTORS_PER_SECOND)

    @staticmethod
    def generate_q(absolute_sector: int, relative_sector: int, track: int, index: int, control: int) -> bytes:
        q = bytearray(12)

        # Control field in the high nibble; of its bits only "data track"
        # matters here. Q mode in the low nibble.
        q[0] = ((control & 0x0F) << 4) | Q_MODE_POSITION
        q[1] = track
        q[2] = index

        # Running time within the track. In the pregap it counts down to
        # zero, the sign isn't recorded.
        q[3], q[4], q[5] = Subchannel.msf(abs(relative_sector))
        q[6] = 0
        q[7], q[8], q[9] = Subchannel.msf(absolute_sector)

        Subchannel.binary_to_bcd_q(q)

        crc = crc16(q[:10], CRC16_INITIAL_CRC)
        q[10:12] = crc.to_bytes(2, byteorder='big')

        return bytes(q)

    @staticmethod
    def generate(sector: Sector, overlay: Optional['ProtectionOverlay'] = None) -> bytes:
        sub = bytearray(SUBCHANNEL_SIZE)

        # P: the first sector of the disc and every pregap sector are FFed
        # out, which lets players that ignore Q find track starts.
        if sector.start == 0 or sector.in_pregap:
            sub[:12] = b'\xFF' * 12

        # Q
        q = bytearray(Subchannel.generate_q(
            sector.absolute_start,
            sector.relative_position,
            sector.track.number,
            sector.index.number,
            sector.track.mode.control,
        ))

        if overlay is not None:
            replacement = overlay.get(sector.absolute_start)
            if replacement is not None:
                q[:len(replacement)] = replacement
                if logger.isEnabledFor(logging.DEBUG):
                    logger.debug(f"Sector {sector.start}: replaced Q {Subchannel.prettify_q(q)}")

        sub[12:24] = q

        # R-W stay zeroed
        return bytes(sub)

    @staticmethod
    def prettify_q(q: bytes) -> str:
        control = (q[0] & 0xF0) >> 4
        adr = q[0] & 0x0F
        crc_ok = CRC16CCITTContext.check_q(q)
        kind = "data" if control & 0x04 else "audio"

        if adr != Q_MODE_POSITION:
            return f"Q mode {adr} ({kind}): {bytes(q).hex().upper()} CRC {q[10]:02X}{q[11]:02X} ({'OK' if crc_ok else 'BAD'})"

        absolute = (Subchannel.decode_bcd(q[7]) * SECTORS_PER_MINUTE
                    + Subchannel.decode_bcd(q[8]) * SECTORS_PER_SECOND
                    + Subchannel.decode_bcd(q[9]))
        return (f"Track {q[1]:02X} Index {q[2]:02X} ({kind}) "
                f"relative {q[3]:02X}:{q[4]:02X}:{q[5]:02X} "
                f"absolute {q[7]:02X}:{q[8]:02X}:{q[9]:02X} (LBA: {absolute - LEAD_IN_SECTORS}) "
                f"CRC {q[10]:02X}{q[11]:02X} ({'OK' if crc_ok else 'BAD'})")
