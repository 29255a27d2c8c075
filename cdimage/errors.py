"""Exceptions raised while converting a BIN/CUE image to CloneCD."""

from typing import Iterable, Optional


class Cue2CCDError(Exception):
    """Base class for every conversion failure.

    ``help`` carries an optional hint shown below the message.
    """

    def __init__(self, message: str, help: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.help = help

    def __str__(self) -> str:
        if self.help:
            return f"{self.message}\n  help: {self.help}"
        return self.message


class CueSheetError(Cue2CCDError):
    """Raised when a cuesheet cannot be read or describes an unsupported layout."""


class MissingFilesError(Cue2CCDError):
    def __init__(self, missing_files: Iterable[str]):
        self.missing_files = list(missing_files)
        super().__init__("Couldn't find one or more files specified in the cuesheet.",
                         f"Missing files: {', '.join(self.missing_files)}")


class GeometryCoverageError(Cue2CCDError):
    def __init__(self, sector: int):
        self.sector = sector
        super().__init__(f"Sector {sector} does not belong to any track or index.",
                         "The cuesheet's tracks and indices leave a gap in the image.")


class UnsupportedTrackError(Cue2CCDError):
    """Raised for WAVE files and cooked (non-2352) track modes."""


class InvalidSidecarError(Cue2CCDError):
    """Raised when an SBI or LSD file is malformed."""


class ProtectionMismatchError(Cue2CCDError):
    def __init__(self, sidecar: str, protection: str, entries: int):
        self.sidecar = sidecar
        self.protection = protection
        self.entries = entries
        super().__init__(f"{sidecar.upper()} does not match specified protection!",
                         f"{entries} entries found, which is not a known {protection} layout.")


class InvalidProtectionError(Cue2CCDError):
    def __init__(self, name: str, choices: Iterable[str]):
        self.name = name
        super().__init__("Protection flag provided with invalid protection type!",
                         f"'{name}' is not one of: {', '.join(choices)}")


class OutputError(Cue2CCDError):
    """Raised when an output file cannot be written."""


class DiscSizeError(Cue2CCDError):
    def __init__(self, sector_count: int):
        self.sector_count = sector_count
        super().__init__(f"The image is {sector_count} sectors long, too long to address.",
                         "Subchannel times can't go past 99:59:74.")


class TrackReadError(Cue2CCDError):
    """Raised when a track file fails while being merged into the .img."""

    def __init__(self, filename: str, reason: str):
        self.filename = filename
        super().__init__(f"Unable to read {filename}: {reason}",
                         "The .ccd and .sub files were already written; "
                         "rerun with --skip-img-copy to keep them without an image.")
