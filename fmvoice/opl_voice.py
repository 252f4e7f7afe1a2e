"""OPL (YM3812 / YMF262) voice representation and pitch helpers."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

NAME_MAX = 256


@dataclass
class OplOperator:
    """One OPL operator, stored as packed register values."""

    am_vib_eg_ksr_mul: int = 0
    ksl_tl: int = 0
    ar_dr: int = 0
    sl_rr: int = 0
    ws: int = 0

    @property
    def am(self) -> int:
        return self.am_vib_eg_ksr_mul >> 7

    @property
    def vib(self) -> int:
        return self.am_vib_eg_ksr_mul >> 6 & 0x01

    @property
    def eg_typ(self) -> int:
        return self.am_vib_eg_ksr_mul >> 5 & 0x01

    @property
    def ksr(self) -> int:
        return self.am_vib_eg_ksr_mul >> 4 & 0x01

    @property
    def mul(self) -> int:
        return self.am_vib_eg_ksr_mul & 0x0F

    @property
    def ksl(self) -> int:
        return self.ksl_tl >> 6

    @property
    def tl(self) -> int:
        return self.ksl_tl & 0x3F

    @property
    def ar(self) -> int:
        return self.ar_dr >> 4

    @property
    def dr(self) -> int:
        return self.ar_dr & 0x0F

    @property
    def sl(self) -> int:
        return self.sl_rr >> 4

    @property
    def rr(self) -> int:
        return self.sl_rr & 0x0F

    @property
    def wave_select(self) -> int:
        return self.ws & 0x07

    def is_silent(self) -> bool:
        """Approximate test for an operator that produces no sound."""
        return (self.ar_dr >> 4) < 1 or self.ksl_tl > 60


def _default_operators() -> list[OplOperator]:
    return [OplOperator() for _ in range(4)]


@dataclass
class OplVoice:
    """A two- or four-operator OPL voice."""

    name: str = ""
    en_4op: int = 0
    perc_inst: int = 0
    ch_fb_cnt: list[int] = field(default_factory=lambda: [0, 0])
    dam_dvb_ryt_bd_sd_tom_tc_hh: int = 0
    operators: list[OplOperator] = field(default_factory=_default_operators)

    @property
    def ch(self) -> int:
        return self.ch_fb_cnt[0] >> 4

    @property
    def fb(self) -> int:
        return self.ch_fb_cnt[0] >> 1 & 0x07

    @property
    def cnt(self) -> int:
        return self.ch_fb_cnt[0] & 0x01

    @property
    def ch1(self) -> int:
        return self.ch_fb_cnt[1] >> 4

    @property
    def fb1(self) -> int:
        return self.ch_fb_cnt[1] >> 1 & 0x07

    @property
    def cnt1(self) -> int:
        return self.ch_fb_cnt[1] & 0x01

    @property
    def am_depth(self) -> int:
        return self.dam_dvb_ryt_bd_sd_tom_tc_hh >> 7

    @property
    def vib_depth(self) -> int:
        return self.dam_dvb_ryt_bd_sd_tom_tc_hh >> 6 & 0x01

    @property
    def ryt(self) -> int:
        return self.dam_dvb_ryt_bd_sd_tom_tc_hh >> 5 & 0x01

    @property
    def perc(self) -> int:
        return self.dam_dvb_ryt_bd_sd_tom_tc_hh >> 4 & 0x1F

    def is_silent(self) -> bool:
        """OPL voices are never considered silent."""
        return False

    def dump(self) -> str:
        """Return a human-readable description of the voice."""
        lines = [
            f"name={self.name[:NAME_MAX]}\n",
            f"4OP={self.en_4op} percussion={self.perc_inst}\n",
        ]
        channels = []
        for i, value in enumerate(self.ch_fb_cnt[:2]):
            flags = "".join(
                letter if value & bit else "-"
                for letter, bit in (("D", 0x80), ("C", 0x40), ("B", 0x20), ("A", 0x10))
            )
            channels.append(f"{i}: ch={flags} fb={value >> 1 & 0x07} c={value & 0x01}  ")
        lines.append("".join(channels) + "\n")
        d = self.dam_dvb_ryt_bd_sd_tom_tc_hh
        lines.append(
            f"DAM={d >> 7} DVB={d >> 6 & 1} RYT={d >> 5 & 1} BD={d >> 4 & 1} "
            f"SD={d >> 3 & 1} TOM={d >> 2 & 1} TC={d >> 1 & 1} HH={d & 1}\n"
        )
        lines.append("OP: AR DR SL RR TL MUL EG AM VIB KSR KSL WS\n")
        count = 4 if self.en_4op else 2
        for i, op in enumerate(self.operators[:count]):
            lines.append(
                f"{i:2d}: {op.ar:2d} {op.dr:2d} {op.sl:2d} {op.rr:2d} {op.tl:2d} "
                f"{op.mul:3d} {op.eg_typ:2d} {op.am:2d} {op.vib:3d} {op.ksr:3d} "
                f"{op.ksl:3d} {op.wave_select:2d}\n"
            )
        return "".join(lines)


def opl_pitch_to_block_fnum(pitch: float, clock: int) -> int:
    """Convert a frequency in Hz to a packed OPL block/F-number value."""
    octave = int((69 + 12 * math.log2(pitch / 440.0)) / 12 - 1) & 0xFF
    fnum = int((144 * pitch * (1 << 18) / clock) / 2.0 ** (octave - 1)) & 0xFFFF
    return octave << 11 | (fnum & 0x7FF)


def opl_block_fnum_to_pitch(block_fnum2: int, fnum1: int, clock: int) -> float:
    """Convert OPL block/F-number register bytes back to a frequency in Hz."""
    block = block_fnum2 >> 3
    fnum = (block_fnum2 & 0x07) << 8 | fnum1
    return fnum * clock * 2.0 ** (block - 19.0) / 144.0