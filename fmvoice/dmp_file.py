"""DefleMask preset (.dmp) reader."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

SUPPORTED_VERSION = 9
MIN_SIZE = 51


class DmpSystem(IntEnum):
    GENESIS = 1


class DmpFormatError(ValueError):
    """Raised when data is not a supported DMP file."""


@dataclass
class DmpOperator:
    mult: int = 0
    tl: int = 0
    ar: int = 0
    dr: int = 0
    sl: int = 0
    rr: int = 0
    am: int = 0
    ksr: int = 0
    dt: int = 0
    d2r: int = 0
    ssg: int = 0


@dataclass
class DmpFile:
    version: int = 0
    mode: int = 0
    num_operators: int = 0
    lfo: int = 0
    fb: int = 0
    alg: int = 0
    lfo2: int = 0
    operators: list[DmpOperator] = field(default_factory=lambda: [DmpOperator() for _ in range(4)])

    def dump(self) -> str:
        """Return a human-readable description of the preset."""
        lines = [f"version={self.version} mode={self.mode}\n"]
        if self.mode != 1:
            return "".join(lines)
        lines.append(
            f"num_operators={self.num_operators} lfo+{self.lfo} fb={self.fb} "
            f"alg={self.alg} lfo2={self.lfo2}\n"
        )
        lines.append("OP MUL AR DR SL RR AM KSR DT D2R SSG\n")
        for op in self.operators:
            lines.append(
                f"{op.mult} {op.tl} {op.ar} {op.dr} {op.sl} {op.rr} {op.am} "
                f"{op.ksr} {op.dt} {op.d2r} {op.ssg}\n"
            )
        return "".join(lines)


def load_dmp(data: bytes, system: int) -> DmpFile:
    """Parse a DMP FM preset; ``system`` selects the per-system layout."""
    data = bytes(data)
    if data and data[0] != SUPPORTED_VERSION:
        raise DmpFormatError(f"Unsupported version 0x{data[0]:02x} ({data[0]})")
    if len(data) < MIN_SIZE:
        raise DmpFormatError(f"File too short {len(data)} < {MIN_SIZE}")

    dmp = DmpFile(version=data[0], mode=data[1])
    if dmp.mode != 1:
        raise DmpFormatError(f"Unsupported mode {dmp.mode}")

    genesis = system == DmpSystem.GENESIS
    stream = iter(data[2:])
    dmp.num_operators = 2 if next(stream) == 0 else 4
    dmp.lfo = next(stream)
    dmp.fb = next(stream)
    dmp.alg = next(stream)
    if genesis:
        dmp.lfo2 = next(stream)

    names = ["mult", "tl", "ar", "dr", "sl", "rr", "am"]
    if genesis:
        names += ["ksr", "dt", "d2r", "ssg"]
    for op in dmp.operators[: dmp.num_operators]:
        for name in names:
            setattr(op, name, next(stream))
    return dmp