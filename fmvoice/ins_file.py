"""MVSTracker instrument (.ins) reader and writer.

Layout::

    $00..$03    "MVSI"
    $04         version number
    $05...      instrument name, NUL terminated
    $v00..$v03  (mul & 15) | (dt & 7) << 4          per operator
    $v04..$v07  tl & 127
    $v08..$v0B  (rs & 3) << 6 | (ar & 31)
    $v0C..$v0F  dr & 31
    $v10..$v13  sr & 31
    $v14..$v17  (sl & 15) << 4 | (rr & 15)
    $v18        (feedback & 7) << 3 | (algorithm & 7)
"""

from __future__ import annotations

from dataclasses import dataclass, field

MAGIC = b"MVSI"
SAVE_VERSION = 49
_HEADER_SIZE = 5
_BODY_SIZE = 6 * 4 + 1
_OPERATOR_FIELDS = ("mul_dt", "tl", "rs_ar", "dr", "sr", "sl_rr")


class InsFormatError(ValueError):
    """Raised when data is not a valid INS file."""


@dataclass
class InsOperator:
    mul_dt: int = 0
    tl: int = 0
    rs_ar: int = 0
    dr: int = 0
    sr: int = 0
    sl_rr: int = 0


@dataclass
class InsFile:
    version: int = 0
    name: str = ""
    operators: list[InsOperator] = field(default_factory=lambda: [InsOperator() for _ in range(4)])
    fb_alg: int = 0

    @property
    def name_len(self) -> int:
        return len(self.name.encode("latin-1"))

    @property
    def data_offset(self) -> int:
        return _HEADER_SIZE + self.name_len + 1

    def to_bytes(self) -> bytes:
        """Serialise the instrument; the version byte is always written as 49."""
        out = bytearray(MAGIC)
        out.append(SAVE_VERSION)
        out += self.name.encode("latin-1") + b"\0"
        for attr in _OPERATOR_FIELDS:
            out += bytes(getattr(op, attr) & 0xFF for op in self.operators)
        out.append(self.fb_alg & 0xFF)
        return bytes(out)

    def dump(self) -> str:
        """Return a human-readable description of the instrument."""
        lines = [
            f"{self.name}\n",
            f"name_len={self.name_len} version={self.version} data_offset={self.data_offset}\n",
            f"fb={self.fb_alg >> 3 & 0x07} alg={self.fb_alg & 0x07}\n",
            "OP MUL DT TL RS AR DR SR SL RR\n",
        ]
        for i, op in enumerate(self.operators):
            lines.append(
                f"{i:2d}  {op.mul_dt & 0x0f:2d}  {op.mul_dt >> 4 & 0x07}"
                f" {op.tl & 0x7f:2d} {op.rs_ar >> 6:2d} {op.rs_ar & 0x1f:2d}"
                f" {op.dr:2d} {op.sr:2d} {op.sl_rr >> 4:2d} {op.sl_rr & 0x0f:2d}\n"
            )
        return "".join(lines)


def load_ins(data: bytes) -> InsFile:
    """Parse INS file contents."""
    data = bytes(data)
    if len(data) < 6 or data[:4] != MAGIC:
        raise InsFormatError("missing MVSI signature")
    end = data.find(b"\0", _HEADER_SIZE)
    if end < 0:
        raise InsFormatError("instrument name is not terminated")
    body = data[end + 1 : end + 1 + _BODY_SIZE]
    if len(body) < _BODY_SIZE:
        raise InsFormatError("file too short for operator data")

    operators = [
        InsOperator(**{attr: body[k * 4 + i] for k, attr in enumerate(_OPERATOR_FIELDS)})
        for i in range(4)
    ]
    return InsFile(
        version=data[4],
        name=data[_HEADER_SIZE:end].decode("latin-1"),
        operators=operators,
        fb_alg=body[24],
    )