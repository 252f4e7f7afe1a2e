"""OPM (YM2151) voice representation, normalisation and pitch helpers."""

from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass, field

NAME_MAX = 256

_SLOT_MASKS = (0x08, 0x08, 0x08, 0x08, 0x0C, 0x0E, 0x0E, 0x0F)
_OPM_NOTES = (0, 1, 2, 4, 5, 6, 8, 9, 10, 12, 13, 14)
_KC_NOTES = (0, 1, 2, 2, 3, 4, 5, 5, 6, 7, 8, 8, 9, 10, 11, 11)
_NTSC_CLOCK = 3579545.0


@dataclass
class OpmOperator:
    """One OPM operator, stored as packed register values (plus OPZ wave select)."""

    dt1_mul: int = 0
    tl: int = 0
    ks_ar: int = 0
    ams_d1r: int = 0
    dt2_d2r: int = 0
    d1l_rr: int = 0
    ws: int = 0

    @property
    def dt1(self) -> int:
        return self.dt1_mul >> 4 & 0x07

    @property
    def mul(self) -> int:
        return self.dt1_mul & 0x0F

    @property
    def total_level(self) -> int:
        return self.tl & 0x7F

    @property
    def ks(self) -> int:
        return self.ks_ar >> 6

    @property
    def ar(self) -> int:
        return self.ks_ar & 0x1F

    @property
    def ams(self) -> int:
        return self.ams_d1r >> 7

    @property
    def d1r(self) -> int:
        return self.ams_d1r & 0x1F

    @property
    def dt2(self) -> int:
        return self.dt2_d2r >> 6

    @property
    def d2r(self) -> int:
        return self.dt2_d2r & 0x1F

    @property
    def d1l(self) -> int:
        return self.d1l_rr >> 4

    @property
    def rr(self) -> int:
        return self.d1l_rr & 0x0F

    @property
    def wave_select(self) -> int:
        return self.ws & 0x07

    def is_silent(self) -> bool:
        """Approximate test for an operator that produces no sound."""
        return (self.ks_ar & 0x1F) < 1 or self.tl > 110


def _default_operators() -> list[OpmOperator]:
    return [OpmOperator() for _ in range(4)]


@dataclass
class OpmVoice:
    """A four-operator OPM voice with DX21 pitch EG and FB01 portamento extras."""

    name: str = ""
    lfrq: int = 0
    amd: int = 0
    pmd: int = 0
    w: int = 0
    ne_nfrq: int = 0
    rl_fb_con: int = 0
    pms_ams: int = 0
    slot: int = 0
    operators: list[OpmOperator] = field(default_factory=_default_operators)
    pitch_eg_rate: list[int] = field(default_factory=lambda: [0, 0, 0])
    pitch_eg_level: list[int] = field(default_factory=lambda: [0, 0, 0])
    portamento_speed: int = 0

    @property
    def rl(self) -> int:
        return self.rl_fb_con >> 6

    @property
    def fb(self) -> int:
        return self.rl_fb_con >> 3 & 0x07

    @property
    def con(self) -> int:
        return self.rl_fb_con & 0x07

    @property
    def pms(self) -> int:
        return self.pms_ams >> 4 & 0x07

    @property
    def ams(self) -> int:
        return self.pms_ams & 0x03

    @property
    def slot_mask(self) -> int:
        return self.slot & 0x0F

    def _carriers(self) -> list[OpmOperator]:
        mask = _SLOT_MASKS[self.rl_fb_con & 0x07]
        return [op for i, op in enumerate(self.operators) if mask & (1 << i)]

    def normalize(self) -> None:
        """Bring the loudest carrier to full volume, in place."""
        carriers = self._carriers()
        min_tl = 0x7F
        for op in carriers:
            if (op.ks_ar & 0x1F) < 1 and op.tl > 100:
                op.tl = 127
            min_tl = min(min_tl, op.tl)
        for op in carriers:
            op.tl = (op.tl - min_tl) & 0xFF

    def differs_from(self, other: OpmVoice) -> bool:
        """Whether the sound-relevant registers of two voices differ."""
        if (self.rl_fb_con & 0x3F) != (other.rl_fb_con & 0x3F):
            return True
        masks = (
            ("dt1_mul", 0x7F),
            ("ks_ar", 0xDF),
            ("ams_d1r", 0x9F),
            ("dt2_d2r", 0xDF),
            ("tl", 0x7F),
            ("d1l_rr", 0xFF),
        )
        return any(
            (getattr(o1, attr) & mask) != (getattr(o2, attr) & mask)
            for o1, o2 in zip(self.operators, other.operators)
            for attr, mask in masks
        )

    def is_silent(self) -> bool:
        """Whether the voice is (approximately) inaudible."""
        if self.slot == 0:
            return True
        return all(op.is_silent() for op in self.operators)

    def md5_digest(self) -> bytes:
        """MD5 of the masked register contents; the name is not included."""
        data = bytearray(
            [
                self.lfrq & 0xFF,
                self.amd & 0x7F,
                self.pmd & 0x7F,
                self.w & 0x03,
                self.ne_nfrq & 0x9F,
                self.rl_fb_con & 0xFF,
                self.pms_ams & 0x73,
                self.slot & 0x0F,
            ]
        )
        for op in self.operators:
            data += bytes(
                [
                    op.dt1_mul & 0x7F,
                    op.tl & 0x7F,
                    op.ks_ar & 0xDF,
                    op.ams_d1r & 0x9F,
                    op.dt2_d2r & 0xDF,
                    op.d1l_rr & 0xFF,
                    op.ws & 0x07,
                ]
            )
        return hashlib.md5(bytes(data)).digest()

    def dump(self) -> str:
        """Return a human-readable description of the voice."""
        r = self.rl_fb_con
        lines = [
            f"{self.name[:NAME_MAX]}\n",
            f"lfrq={self.lfrq} amd={self.amd} pmd={self.pmd} w={self.w} "
            f"ne={self.ne_nfrq >> 7} nfrq={self.ne_nfrq & 0x1f}\n",
            f"pan={'R' if r & 0x80 else '-'}{'L' if r & 0x40 else '-'} "
            f"fb={r >> 3 & 0x07} con={r & 0x07} slot=0x{self.slot:02x}\n",
            "OP AR D1R D2R RR D1L TL KS MUL DT1 DT2 AMS WS\n",
        ]
        for i, o in enumerate(self.operators):
            lines.append(
                f"{i:2d} {o.ar:2d} {o.d1r:3d} {o.d2r:3d} {o.rr:2d} {o.d1l:2d} "
                f"{o.total_level:3d} {o.ks:2d} {o.mul:3d} {o.dt1:3d} {o.dt2:3d} "
                f"{o.ams:3d} {o.wave_select:2d}\n"
            )
        return "".join(lines)


def opm_pitch_to_kc_kf(pitch: float, clock: int) -> int:
    """Convert a frequency in Hz to a packed OPM key code / key fraction (KC << 8 | KF)."""
    top = 64 * 8 * 12 - 1
    if pitch <= 0:
        f = 0.0
    else:
        f = 3584 + 64 * 12 * math.log2(pitch * _NTSC_CLOCK / clock / 440.0)
        f = min(max(f, 0.0), float(top))
    whole = int(f)
    octave = whole // 64 // 12
    kc = octave << 4 | _OPM_NOTES[(whole // 64) % 12]
    kf = (whole % 64) << 2
    return kc << 8 | kf


def opm_kc_kf_to_pitch(kc: int, kf: int, clock: int) -> float:
    """Convert OPM key code and key fraction to a frequency in Hz."""
    octave = kc >> 4
    note = _KC_NOTES[kc & 0x0F]
    k = (octave * 12 + note) << 6 | (kf >> 2)
    return 2.0 ** ((k - 3584) / 768.0) * clock * 440.0 / _NTSC_CLOCK