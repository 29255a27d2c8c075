import subprocess
import sys
from pathlib import Path

from conftest import SINGLE_TRACK_CUE, make_image, repo_root_path

import cue2ccd


def _run(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, str(repo_root_path() / "cue2ccd.py"), *args],
        stdin=subprocess.DEVNULL,
        capture_output=True,
        text=True,
        cwd=str(repo_root_path()),
    )


def test_cli_converts_image(tmp_path: Path) -> None:
    cue = make_image(tmp_path, "game", [("game.bin", 20)], SINGLE_TRACK_CUE)

    result = _run(str(cue), "--skip-img-copy")

    assert result.returncode == 0, result.stderr
    assert (tmp_path / "game.ccd").exists()
    assert (tmp_path / "game.sub").stat().st_size == 96 * 20
    assert not (tmp_path / "game.img").exists()
    assert "Conversion complete!" in result.stderr


def test_cli_rejects_unknown_protection(tmp_path: Path) -> None:
    cue = make_image(tmp_path, "game", [("game.bin", 20)], SINGLE_TRACK_CUE)

    result = _run(str(cue), "--protection-type", "starforce")

    assert result.returncode == 2
    assert not (tmp_path / "game.ccd").exists()


def test_cli_reports_conversion_errors(tmp_path: Path) -> None:
    cue = make_image(tmp_path, "game", [], SINGLE_TRACK_CUE)

    result = _run(str(cue))

    assert result.returncode == 1
    assert "Missing files: game.bin" in result.stderr


def test_main_without_prompt(tmp_path: Path, monkeypatch) -> None:
    cue = make_image(tmp_path, "game", [("game.bin", 5)], SINGLE_TRACK_CUE)
    (tmp_path / "game.img").write_bytes(b"old")
    monkeypatch.setattr(cue2ccd, "confirm_overwrite", lambda path: True)

    assert cue2ccd.main([str(cue)]) == 0
    assert (tmp_path / "game.img").stat().st_size == 2352 * 5


def test_build_arg_parser_defaults() -> None:
    args = cue2ccd.build_arg_parser().parse_args(["game.cue", "--protection-type", "DiscGuard"])

    assert args.filename == "game.cue"
    assert args.protection_type == "discguard"
    assert not args.skip_img_copy
    assert not args.overwrite
    assert args.output_path is None
