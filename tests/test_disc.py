from typing import Dict

import pytest

from conftest import MIXED_MODE_CUE, SINGLE_TRACK_CUE
from cdimage.CD.cd_types import Index, Track, TrackMode
from cdimage.CD.disc import Disc, build_disc, validate_modes
from cdimage.cuesheet import CueSheet
from cdimage.errors import CueSheetError, DiscSizeError, GeometryCoverageError, UnsupportedTrackError

PREGAP_CUE = """
FILE "disc.bin" BINARY
  TRACK 01 MODE1/2352
    INDEX 01 00:00:00
  TRACK 02 AUDIO
    INDEX 00 00:01:25
    INDEX 01 00:02:00
"""


def _disc(text: str, sizes: Dict[str, int]):
    return build_disc(CueSheet.parse(text).tracks, sizes.__getitem__)


def test_single_track_layout() -> None:
    disc = _disc(SINGLE_TRACK_CUE, {"game.bin": 150})

    assert disc.sector_count == 150
    assert len(disc.tracks) == 1
    track = disc.tracks[0]
    assert (track.start, track.length, track.end) == (0, 150, 149)

    first = disc.sector_from_number(0)
    assert first.absolute_start == 150
    assert first.relative_position == 0
    assert first.track.number == 1
    assert first.index.number == 1
    assert not first.in_pregap

    assert disc.sector_from_number(149).relative_position == 149
    assert disc.sector_from_number(150) is None


def test_pregap_positions_count_up_to_index_one() -> None:
    disc = _disc(PREGAP_CUE, {"disc.bin": 300})

    track = disc.tracks[1]
    assert track.start == 150
    pregap = track.indices[0]
    assert (pregap.number, pregap.start, pregap.end) == (0, 100, 149)

    pregap_start = disc.sector_from_number(100)
    assert pregap_start.in_pregap
    assert pregap_start.track.number == 2
    assert pregap_start.relative_position == -50

    assert disc.sector_from_number(149).relative_position == -1
    assert disc.sector_from_number(150).relative_position == 0
    assert disc.sector_from_number(99).track.number == 1


def test_files_are_laid_out_back_to_back() -> None:
    disc = _disc(MIXED_MODE_CUE, {"game (Track 1).bin": 200, "game (Track 2).bin": 300})

    assert disc.sector_count == 500
    first, second = disc.tracks
    assert (first.start, first.length) == (0, 200)
    assert second.indices[0].start == 200
    assert second.start == 350
    assert second.end == 499

    sector = disc.sector_from_number(210)
    assert sector.track.number == 2
    assert sector.relative_position == -140


def test_every_sector_has_exactly_one_owner() -> None:
    disc = _disc(MIXED_MODE_CUE, {"game (Track 1).bin": 200, "game (Track 2).bin": 300})

    owners = [(s.track.number, s.index.number) for s in disc.sectors()]

    assert len(owners) == disc.sector_count
    assert owners.count((1, 1)) == 200
    assert owners.count((2, 0)) == 150
    assert owners.count((2, 1)) == 150


def test_sectors_range() -> None:
    disc = _disc(SINGLE_TRACK_CUE, {"game.bin": 150})

    numbers = [s.start for s in disc.sectors(10, 20)]

    assert numbers == list(range(10, 20))


def test_gap_before_first_index_is_rejected() -> None:
    text = SINGLE_TRACK_CUE.replace("00:00:00", "00:00:10")

    with pytest.raises(GeometryCoverageError) as excinfo:
        _disc(text, {"game.bin": 150})
    assert excinfo.value.sector == 0



def test_track_past_end_of_file_is_rejected() -> None:
    text = """
FILE "disc.bin" BINARY
  TRACK 01 MODE1/2352
    INDEX 01 00:00:00
  TRACK 02 AUDIO
    INDEX 01 00:10:00
"""

    with pytest.raises(CueSheetError, match="TRACK 01 runs past the end of disc.bin"):
        _disc(text, {"disc.bin": 100})


def test_last_track_starting_after_end_of_file_is_rejected() -> None:
    with pytest.raises(CueSheetError, match="TRACK 02 runs past the end"):
        _disc(MIXED_MODE_CUE, {"game (Track 1).bin": 200, "game (Track 2).bin": 100})


def test_coverage_rejects_inverted_and_overrunning_ranges() -> None:
    inverted = Track(number=1, start=0, length=10, mode=TrackMode.Audio,
                     indices=(Index(number=1, start=0, end=9), Index(number=2, start=10, end=5)))
    with pytest.raises(GeometryCoverageError):
        Disc(tracks=(inverted,), sector_count=10).check_coverage()

    overrun = Track(number=1, start=0, length=20, mode=TrackMode.Audio,
                    indices=(Index(number=1, start=0, end=19),))
    with pytest.raises(GeometryCoverageError) as excinfo:
        Disc(tracks=(overrun,), sector_count=10).check_coverage()
    assert excinfo.value.sector == 10


def test_image_too_long_for_msf_is_rejected() -> None:
    with pytest.raises(DiscSizeError):
        _disc(SINGLE_TRACK_CUE, {"game.bin": 99 * 4500 + 59 * 75 + 75 - 150})

    disc = _disc(SINGLE_TRACK_CUE, {"game.bin": 99 * 4500 + 59 * 75 + 74 - 150})
    assert disc.sector_count == 449849

@pytest.mark.parametrize("mode", ["MODE1/2048", "MODE2/2336", "MODE2/2048", "MODE2/2324", "MODE2/2332"])
def test_cooked_modes_are_rejected(mode: str) -> None:
    sheet = CueSheet.parse(SINGLE_TRACK_CUE.replace("MODE2/2352", mode))

    with pytest.raises(UnsupportedTrackError):
        validate_modes(sheet.tracks)


def test_wave_files_are_rejected() -> None:
    sheet = CueSheet.parse('FILE "song.wav" WAVE\n  TRACK 01 AUDIO\n    INDEX 01 00:00:00')

    with pytest.raises(UnsupportedTrackError):
        validate_modes(sheet.tracks)


def test_unknown_mode_is_rejected() -> None:
    sheet = CueSheet.parse(SINGLE_TRACK_CUE.replace("MODE2/2352", "MODE9/1234"))

    with pytest.raises(UnsupportedTrackError):
        validate_modes(sheet.tracks)
