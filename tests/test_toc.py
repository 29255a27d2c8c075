import io

from conftest import MIXED_MODE_CUE, SINGLE_TRACK_CUE
from test_disc import _disc
from cdimage.toc import ccd_text, msf_to_sector, sector_to_msf, write_ccd


def _entry(number: int, point: int, control: int, pmin: int, psec: int, pframe: int, plba: int) -> str:
    return "\n".join([
        f"[Entry {number}]",
        "Session=1",
        f"Point=0x{point:02x}",
        "ADR=0x01",
        f"Control=0x{control:02x}",
        "TrackNo=0",
        "AMin=0",
        "ASec=0",
        "AFrame=0",
        "ALBA=-150",
        "Zero=0",
        f"PMin={pmin}",
        f"PSec={psec}",
        f"PFrame={pframe}",
        f"PLBA={plba}",
    ])


def test_msf_conversions() -> None:
    assert sector_to_msf(0) == (0, 0, 0)
    assert sector_to_msf(150) == (0, 2, 0)
    assert sector_to_msf(4575) == (1, 1, 0)
    assert msf_to_sector(1, 1, 0) == 4575


def test_single_track_ccd() -> None:
    disc = _disc(SINGLE_TRACK_CUE, {"game.bin": 150})

    expected = "\n\n".join([
        "[CloneCD]\nVersion=3",
        "[Disc]\nTocEntries=4\nSessions=1\nDataTracksScrambled=0\nCDTextLength=0",
        "[Session 1]\nPreGapMode=2\nPreGapSubC=0",
        _entry(0, 0xA0, 4, 1, 0, 0, 4350),
        _entry(1, 0xA1, 4, 1, 0, 0, 4350),
        _entry(2, 0xA2, 4, 0, 4, 0, 150),
        _entry(3, 1, 4, 0, 2, 0, 0),
        "[TRACK 1]\nMODE=2\nINDEX 1=0",
    ]) + "\n"

    assert ccd_text(disc) == expected


def test_mixed_mode_ccd() -> None:
    disc = _disc(MIXED_MODE_CUE, {"game (Track 1).bin": 200, "game (Track 2).bin": 300})

    text = ccd_text(disc)

    assert "TocEntries=5" in text
    # Last track pointer and lead-out take the control of the audio track
    assert _entry(1, 0xA1, 0, 2, 0, 0, 8850) in text
    assert _entry(2, 0xA2, 0, 0, 8, 50, 500) in text
    assert _entry(4, 2, 0, 0, 6, 50, 350) in text
    assert text.endswith("[TRACK 2]\nMODE=0\nINDEX 0=200\nINDEX 1=350\n")


def test_write_ccd() -> None:
    disc = _disc(SINGLE_TRACK_CUE, {"game.bin": 150})
    out = io.StringIO()

    write_ccd(disc, out)

    assert out.getvalue() == ccd_text(disc)
