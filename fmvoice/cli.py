"""Command-line tools that print the contents of FM voice files."""

from __future__ import annotations

import struct
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

from .bnk_file import load_bnk
from .dmp_file import DmpSystem, load_dmp
from .fm_voice_bank import FmVoiceBank
from .ins_file import load_ins
from .loaders import LoaderError, load_bank
from .op3_file import load_op3
from .opm_file import load_opm

_PARSE_ERRORS = (ValueError, IndexError, struct.error)


def _args(argv: Sequence[str] | None) -> list[str]:
    return list(sys.argv[1:] if argv is None else argv)


def _read(path: str) -> bytes | None:
    try:
        return Path(path).read_bytes()
    except OSError:
        print(f"Could not open {path}", file=sys.stderr)
        return None


def _dump_each(
    argv: Sequence[str] | None,
    render: Callable[[bytes], str],
    *,
    show_size: bool = False,
    report_reason: bool = False,
) -> int:
    for path in _args(argv):
        data = _read(path)
        if data is None:
            continue
        try:
            text = render(data)
        except _PARSE_ERRORS as exc:
            if report_reason:
                print(exc, file=sys.stderr)
            print(f"Could not load {path}", file=sys.stderr)
            continue
        print(f"{path} ({len(data)}B)" if show_size else path)
        sys.stdout.write(text)
    return 0


def fmbankdump_main(argv: Sequence[str] | None = None) -> int:
    """Load every file into one bank and print the whole bank."""
    bank = FmVoiceBank()
    for path in _args(argv):
        print(path)
        data = _read(path)
        if data is None:
            continue
        try:
            load_bank(bank, data)
        except LoaderError:
            pass
    sys.stdout.write(bank.dump())
    bank.clear()
    return 0


def bnkdump_main(argv: Sequence[str] | None = None) -> int:
    """Print the contents of AdLib BNK files."""
    return _dump_each(argv, lambda data: load_bnk(data).dump())


def dmpdump_main(argv: Sequence[str] | None = None) -> int:
    """Print the contents of DefleMask Genesis presets."""
    return _dump_each(
        argv, lambda data: load_dmp(data, DmpSystem.GENESIS).dump(), report_reason=True
    )


def insdump_main(argv: Sequence[str] | None = None) -> int:
    """Print the contents of MVSTracker INS instruments."""
    return _dump_each(argv, lambda data: load_ins(data).dump())


def op3dump_main(argv: Sequence[str] | None = None) -> int:
    """Print the contents of Junglevision OP3 patch files."""
    return _dump_each(argv, lambda data: load_op3(data).dump(), show_size=True)


def opmdump_main(argv: Sequence[str] | None = None) -> int:
    """Print the contents of MiOPMdrv OPM sound banks."""
    return _dump_each(argv, lambda data: load_opm(data).dump(), report_reason=True)