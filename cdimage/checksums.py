import binascii

# Seed used by the Q subchannel CRC (x^16+x^12+x^5+1, not reflected)
CRC16_INITIAL_CRC = 0x0000


def crc16(buffer: bytes, seed: int = CRC16_INITIAL_CRC) -> int:
    """CRC-16 as stored in bytes 10-11 of a Q subchannel block.

    The checksum is the CCITT polynomial with the result inverted, which is
    what ECMA-130 records on disc.
    """
    return ~binascii.crc_hqx(bytes(buffer), seed) & 0xFFFF


class CRC16CCITTContext:
    CRC16_CCITT_SEED = CRC16_INITIAL_CRC

    @staticmethod
    def calculate(buffer: bytes) -> int:
        return crc16(buffer, CRC16CCITTContext.CRC16_CCITT_SEED)

    @staticmethod
    def check_q(q: bytes) -> bool:
        """True if the CRC stored in a 12-byte Q block matches its payload."""
        if len(q) != 12:
            return False
        return CRC16CCITTContext.calculate(q[:10]).to_bytes(2, 'big') == bytes(q[10:12])
