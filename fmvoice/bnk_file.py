"""AdLib instrument bank (.bnk) reader."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from .fm_voice_bank import FmVoiceBank
from .opl_voice import OplVoice

_MAGIC = b"ADLIB-"
_HEADER_SIZE = 28
_NAME_RECORD = struct.Struct("<HB9s")
_OPERATOR_FIELDS = (
    "ksl", "mul", "fb", "ar", "sl", "eg", "dr", "rr", "tl", "am", "vib", "ksr", "con",
)
_INSTRUMENT_SIZE = 2 + 2 * len(_OPERATOR_FIELDS) + 2


class BnkFormatError(ValueError):
    """Raised when data is not a valid BNK file."""


@dataclass
class BnkOperator:
    ksl: int = 0
    mul: int = 0
    fb: int = 0
    ar: int = 0
    sl: int = 0
    eg: int = 0
    dr: int = 0
    rr: int = 0
    tl: int = 0
    am: int = 0
    vib: int = 0
    ksr: int = 0
    con: int = 0
    wave_sel: int = 0


@dataclass
class BnkInstrument:
    percussive: int = 0
    voice_num: int = 0
    operators: list[BnkOperator] = field(default_factory=lambda: [BnkOperator(), BnkOperator()])


@dataclass
class BnkName:
    index: int = 0
    flags: int = 0
    name: str = ""

    @property
    def used(self) -> bool:
        return bool(self.flags & 1)


@dataclass
class BnkFile:
    ver_major: int = 0
    ver_minor: int = 0
    num_used: int = 0
    names: list[BnkName] = field(default_factory=list)
    instruments: list[BnkInstrument] = field(default_factory=list)

    @property
    def num_instruments(self) -> int:
        return len(self.instruments)

    def dump(self) -> str:
        """Return a human-readable description of the bank."""
        lines = [
            f"version={self.ver_major}.{self.ver_minor} num_used={self.num_used} "
            f"num_instruments={self.num_instruments}\n"
        ]
        for i, n in enumerate(self.names):
            lines.append(f'Name {i}: index={n.index} flags=0x{n.flags:02x} name="{n.name[:8]}"\n')
            if not n.used or n.index >= self.num_instruments:
                continue
            inst = self.instruments[n.index]
            op0 = inst.operators[0]
            lines.append(
                f"Inst. {i}: percussive={inst.percussive} voice_num={inst.voice_num} "
                f"con={op0.con} fb={op0.fb}\n"
            )
            lines.append("OP KSL MUL AR SL EG DR RR TL AM VIB KSR WAVE\n")
            for j, op in enumerate(inst.operators):
                lines.append(
                    f"{j:2d}  {op.ksl:2d}  {op.mul:2d} {op.ar:2d} {op.sl:2d} {op.eg:2d} "
                    f"{op.dr:2d} {op.rr:2d} {op.tl:2d} {op.am:2d}  {op.vib:2d}  {op.ksr:2d}"
                    f"    {op.wave_sel}\n"
                )
                if inst.percussive and inst.voice_num != 6:
                    break
        return "".join(lines)


def _parse_instrument(record: bytes) -> BnkInstrument:
    count = len(_OPERATOR_FIELDS)
    operators = []
    for j in range(2):
        values = record[2 + j * count : 2 + (j + 1) * count]
        operators.append(BnkOperator(**dict(zip(_OPERATOR_FIELDS, values))))
    operators[0].wave_sel = record[2 + 2 * count]
    operators[1].wave_sel = record[3 + 2 * count]
    return BnkInstrument(percussive=record[0], voice_num=record[1], operators=operators)


def load_bnk(data: bytes) -> BnkFile:
    """Parse BNK file contents."""
    data = bytes(data)
    if len(data) < 20:
        raise BnkFormatError("file too short for a BNK header")
    if data[2:8] != _MAGIC:
        raise BnkFormatError("missing ADLIB- signature")
    num_used, num_instruments, name_offset, data_offset = struct.unpack_from("<HHII", data, 8)
    if name_offset >= len(data):
        raise BnkFormatError(f"name offset {name_offset} beyond end of file")
    if data_offset >= len(data):
        raise BnkFormatError(f"data offset {data_offset} beyond end of file")
    if _HEADER_SIZE + num_instruments * (_NAME_RECORD.size + _INSTRUMENT_SIZE) > len(data):
        raise BnkFormatError("file too short for the declared number of instruments")
    if name_offset + num_instruments * _NAME_RECORD.size > len(data):
        raise BnkFormatError("name records run past end of file")
    if data_offset + num_instruments * _INSTRUMENT_SIZE > len(data):
        raise BnkFormatError("instrument records run past end of file")

    names = []
    for index, flags, raw in _NAME_RECORD.iter_unpack(
        data[name_offset : name_offset + num_instruments * _NAME_RECORD.size]
    ):
        names.append(BnkName(index=index, flags=flags, name=raw.split(b"\0", 1)[0].decode("latin-1")))

    instruments = [
        _parse_instrument(data[off : off + _INSTRUMENT_SIZE])
        for off in range(data_offset, data_offset + num_instruments * _INSTRUMENT_SIZE, _INSTRUMENT_SIZE)
    ]
    return BnkFile(
        ver_major=data[0],
        ver_minor=data[1],
        num_used=num_used,
        names=names,
        instruments=instruments,
    )


def _fill_voice(voice: OplVoice, name: BnkName, inst: BnkInstrument) -> None:
    voice.name = name.name[:8]
    voice.en_4op = 0
    voice.perc_inst = inst.percussive
    op0 = inst.operators[0]
    voice.ch_fb_cnt = [(op0.fb & 0x07) << 1 | (op0.con & 1), 0]
    voice.dam_dvb_ryt_bd_sd_tom_tc_hh = 0
    for op, fop in zip(voice.operators, inst.operators):
        op.am_vib_eg_ksr_mul = (
            (fop.am & 1) << 7 | (fop.vib & 1) << 6 | (fop.eg & 1) << 5 | (fop.ksr & 1) << 4 | (fop.mul & 0x0F)
        )
        op.ksl_tl = (fop.ksl & 0x03) << 6 | (fop.tl & 0x3F)
        op.ar_dr = (fop.ar & 0x0F) << 4 | (fop.dr & 0x0F)
        op.sl_rr = (fop.sl & 0x0F) << 4 | (fop.rr & 0x0F)
        op.ws = fop.wave_sel & 0x03


def load_bnk_into_bank(data: bytes, bank: FmVoiceBank) -> list[OplVoice]:
    """Parse a BNK file and add its used instruments to ``bank`` as OPL voices."""
    bnk = load_bnk(data)
    voices = bank.reserve_opl_voices(bnk.num_used)
    used = (n for n in bnk.names if n.used)
    for voice, name in zip(voices, used):
        if name.index >= bnk.num_instruments:
            raise BnkFormatError(f"name refers to missing instrument {name.index}")
        _fill_voice(voice, name, bnk.instruments[name.index])
    return voices