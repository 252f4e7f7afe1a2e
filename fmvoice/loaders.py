"""Registry of the voice file formats that can be read into or written from a bank."""

from __future__ import annotations

import struct
from collections.abc import Callable
from dataclasses import dataclass

from .bnk_file import load_bnk_into_bank
from .fm_voice_bank import BankPosition, FmVoiceBank
from .op3_file import load_op3_into_bank
from .opm_file import load_opm_into_bank, save_opm_from_bank

LoadFn = Callable[[bytes, FmVoiceBank], object]
SaveFn = Callable[[FmVoiceBank, BankPosition], bytes]

_PARSE_ERRORS = (ValueError, IndexError, struct.error)


class LoaderError(Exception):
    """Raised when a format cannot read or write the requested data."""


@dataclass(frozen=True)
class Loader:
    """One file format: how to read it into a bank and how to write it back."""

    name: str
    description: str
    file_ext: str
    max_opl_voices: int
    max_opm_voices: int
    max_opn_voices: int
    load: LoadFn | None = None
    save: SaveFn | None = None

    @property
    def can_load(self) -> bool:
        return self.load is not None

    @property
    def can_save(self) -> bool:
        return self.save is not None


def _save_opm(bank: FmVoiceBank, pos: BankPosition) -> bytes:
    return save_opm_from_bank(bank, pos).encode("latin-1")


# INS instruments are OPN voices, which the bank does not hold, so that
# format is listed without load or save support.
LOADERS: tuple[Loader, ...] = (
    Loader("BNK", "AdLib Instrument Bank Format", "bnk", 65536, 0, 0, load=load_bnk_into_bank),
    Loader("DMP", "DefleMask Preset Format", "dmp", 1, 0, 0),
    Loader("INS", "AdLib Instrument Format", "ins", 1, 0, 0),
    Loader("OP3", "OP3", "op3", 1, 0, 0, load=load_op3_into_bank),
    Loader(
        "OPM",
        "MiOPMdrv Sound Bank Parameter",
        "opm",
        128,
        0,
        0,
        load=load_opm_into_bank,
        save=_save_opm,
    ),
)


def get_loader_by_name(name: str) -> Loader:
    """Return the loader whose name is ``name``."""
    for loader in LOADERS:
        if loader.name == name:
            return loader
    raise KeyError(f"no loader named {name!r}")


def loader_save(loader: Loader, bank: FmVoiceBank, pos: BankPosition) -> bytes:
    """Write voices from ``bank`` starting at ``pos`` in ``loader``'s format."""
    if loader.save is None:
        raise LoaderError(f"{loader.name} files cannot be written")
    return loader.save(bank, pos)


def load_bank(bank: FmVoiceBank, data: bytes) -> Loader:
    """Add the voices in ``data`` to ``bank`` using the first format that accepts it."""
    data = bytes(data)
    for loader in LOADERS:
        if loader.load is None:
            continue
        opl_count = len(bank.opl_voices)
        opm_count = len(bank.opm_voices)
        try:
            loader.load(data, bank)
        except _PARSE_ERRORS:
            del bank.opl_voices[opl_count:]
            del bank.opm_voices[opm_count:]
            continue
        return loader
    raise LoaderError("data is not in any known voice format")