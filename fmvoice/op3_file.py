"""Junglevision patch (.op3) reader."""

from __future__ import annotations

import struct
from collections.abc import Iterator
from dataclasses import dataclass, field

from .fm_voice_bank import FmVoiceBank
from .opl_voice import OplVoice

SIGNATURE = b"Junglevision Patch File\x1a"
HEADER_SIZE = 40
INSTRUMENT_SIZE = 24
MAX_INSTRUMENTS = 128


class Op3FormatError(ValueError):
    """Raised when data is not a valid OP3 file."""


@dataclass
class Op3Operator:
    ave_kvm: int = 0
    ksl_tl: int = 0
    ar_dr: int = 0
    sl_rr: int = 0
    ws: int = 0


@dataclass
class Op3Instrument:
    en_4op: int = 0
    percnotenum: int = 0
    operators: list[Op3Operator] = field(default_factory=lambda: [Op3Operator() for _ in range(4)])
    fb_con12: int = 0
    fb_con34: int = 0


@dataclass
class Op3File:
    start_melodic: int = 0
    start_percussive: int = 0
    melodic: list[Op3Instrument] = field(default_factory=list)
    percussive: list[Op3Instrument] = field(default_factory=list)

    @property
    def count_melodic(self) -> int:
        return len(self.melodic)

    @property
    def count_percussive(self) -> int:
        return len(self.percussive)

    def dump(self) -> str:
        """Return a human-readable description of the patch set."""
        parts = [
            f"count_melodic={self.count_melodic} count_percussive={self.count_percussive} "
            f"start_melodic={self.start_melodic} start_percussive={self.start_percussive}\n"
        ]
        parts += [f"melodic {i}: {_dump_instrument(inst)}" for i, inst in enumerate(self.melodic)]
        parts += [f"percussive {i}: {_dump_instrument(inst)}" for i, inst in enumerate(self.percussive)]
        return "".join(parts)


def _dump_instrument(inst: Op3Instrument) -> str:
    lines = [
        f"en_4op={inst.en_4op} percnotenum={inst.percnotenum}\n",
        "OP AM VIB EG KSR MUL KSL TL AR DR SL RR WS\n",
    ]
    count = 4 if inst.en_4op else 2
    for j, op in enumerate(inst.operators[:count]):
        a = op.ave_kvm
        lines.append(
            f"{j:2d}  {a >> 7}   {a >> 6 & 1}   {a >> 5 & 1}  {a >> 4 & 1}  {a & 0x0f:2d}"
            f"  {op.ksl_tl >> 6:2d} {op.ksl_tl & 0x3f:2d} {op.ar_dr >> 4:2d} {op.ar_dr & 0x0f:2d}"
            f" {op.sl_rr >> 4:2d} {op.sl_rr & 0x0f:2d}  {op.ws & 0x07}\n"
        )
    fb12 = f"fb12={inst.fb_con12 >> 1 & 0x07} con12={inst.fb_con12 & 0x01}"
    if inst.en_4op:
        lines.append(f"{fb12} fb34={inst.fb_con34 >> 1 & 0x07} con34={inst.fb_con34 & 0x01}\n")
    else:
        lines.append(f"{fb12}\n")
    return "".join(lines)


def _parse_instrument(record: bytes) -> Op3Instrument:
    stream: Iterator[int] = iter(record)

    def operator() -> Op3Operator:
        return Op3Operator(*(next(stream) for _ in range(5)))

    en_4op = next(stream)
    percnotenum = next(stream)
    op0 = operator()
    fb_con12 = next(stream)
    op1 = operator()
    op2 = operator()
    fb_con34 = next(stream)
    op3 = operator()
    return Op3Instrument(
        en_4op=en_4op,
        percnotenum=percnotenum,
        operators=[op0, op1, op2, op3],
        fb_con12=fb_con12,
        fb_con34=fb_con34,
    )


def load_op3(data: bytes) -> Op3File:
    """Parse OP3 file contents."""
    data = bytes(data)
    if len(data) < 32:
        raise Op3FormatError("file too short for an OP3 signature")
    if data[: len(SIGNATURE)] != SIGNATURE or data[len(SIGNATURE)] != 0:
        raise Op3FormatError("missing Junglevision signature")
    if len(data) < HEADER_SIZE:
        raise Op3FormatError("file too short for an OP3 header")
    count_melodic, count_percussive, start_melodic, start_percussive = struct.unpack_from("<4H", data, 32)
    for kind, count in (("melodic", count_melodic), ("percussive", count_percussive)):
        if count > MAX_INSTRUMENTS:
            raise Op3FormatError(f"too many {kind} instruments: {count} > {MAX_INSTRUMENTS}")
    total = count_melodic + count_percussive
    if HEADER_SIZE + total * INSTRUMENT_SIZE > len(data):
        raise Op3FormatError("file too short for the declared number of instruments")

    instruments = [
        _parse_instrument(data[off : off + INSTRUMENT_SIZE])
        for off in range(HEADER_SIZE, HEADER_SIZE + total * INSTRUMENT_SIZE, INSTRUMENT_SIZE)
    ]
    return Op3File(
        start_melodic=start_melodic,
        start_percussive=start_percussive,
        melodic=instruments[:count_melodic],
        percussive=instruments[count_melodic:],
    )


def _fill_voice(voice: OplVoice, inst: Op3Instrument) -> None:
    voice.en_4op = inst.en_4op
    voice.perc_inst = inst.percnotenum
    voice.ch_fb_cnt = [0xF0 | inst.fb_con12, 0xF0 | inst.fb_con34]
    voice.dam_dvb_ryt_bd_sd_tom_tc_hh = 0
    for op, src in zip(voice.operators, inst.operators):
        op.am_vib_eg_ksr_mul = src.ave_kvm
        op.ksl_tl = src.ksl_tl
        op.ar_dr = src.ar_dr
        op.sl_rr = src.sl_rr
        op.ws = src.ws


def load_op3_into_bank(data: bytes, bank: FmVoiceBank) -> list[OplVoice]:
    """Parse an OP3 file and add melodic then percussive instruments to ``bank``."""
    op3 = load_op3(data)
    voices = bank.reserve_opl_voices(op3.count_melodic + op3.count_percussive)
    for voice, inst in zip(voices, op3.melodic + op3.percussive):
        _fill_voice(voice, inst)
    return voices