"""MiOPMdrv sound bank parameter (.opm) text reader and writer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto

from .fm_voice_bank import BankPosition, FmVoiceBank
from .opm_voice import OpmVoice

MAX_NAME = 256
MIN_SIZE = 30
DEFAULT_PAD = 128

_MAX_PARAM_NAME = 4
_MAX_DIGITS = 4
_MAX_PARAMS = 11
_WHITESPACE = frozenset(b" \t\n\v\f\r")
_OPERATOR_NAMES = ("M1", "C1", "M2", "C2")
# Order in which operators are written: M1, C1, M2, C2.
_WRITE_ORDER = (0, 2, 1, 3)
_DT1_MAP = (3, 4, 5, 6, 3, 2, 1, 0)
_OPERATOR_PARAMS = ("ar", "d1r", "d2r", "rr", "d1l", "tl", "ks", "mul", "dt1", "dt2", "ame")
_LFO_PARAMS = ("lfo_lfrq", "lfo_amd", "lfo_pmd", "lfo_wf", "nfrq")
_CH_PARAMS = ("ch_pan", "ch_fl", "ch_con", "ch_ams", "ch_pms", "ch_slot", "ch_ne")

_HEADER = (
    "//MiOPMdrv sound bank Paramer Ver2002.04.22\n"
    "//@:[Num] [Name]\n"
    "//LFO: LFRQ AMD PMD WF NFRQ\n"
    "//CH: PAN FL CON AMS PMS SLOT NE\n"
    "//[OPname]: AR D1R D2R RR D1L  TL KS MUL DT1 DT2 AMS-EN\n"
)


class OpmFormatError(ValueError):
    """Raised when text is not a valid OPM sound bank."""


@dataclass
class OpmFileOperator:
    ar: int = 0
    d1r: int = 0
    d2r: int = 0
    rr: int = 0
    d1l: int = 0
    tl: int = 127
    ks: int = 0
    mul: int = 1
    dt1: int = 0
    dt2: int = 0
    ame: int = 0


@dataclass
class OpmFileVoice:
    number: int = 0
    name: str = ""
    lfo_lfrq: int = 0
    lfo_amd: int = 0
    lfo_pmd: int = 0
    lfo_wf: int = 0
    nfrq: int = 0
    ch_pan: int = 64
    ch_fl: int = 7
    ch_con: int = 4
    ch_ams: int = 0
    ch_pms: int = 0
    ch_slot: int = 0x78
    ch_ne: int = 0
    operators: list[OpmFileOperator] = field(
        default_factory=lambda: [OpmFileOperator() for _ in range(4)]
    )


def _operator_name(i: int) -> str:
    return _OPERATOR_NAMES[i] if 0 <= i < 4 else "??"


@dataclass
class OpmFile:
    voices: list[OpmFileVoice] = field(default_factory=list)

    @property
    def num_voices(self) -> int:
        return len(self.voices)

    def to_text(self, pad_to: int) -> str:
        """Serialise the bank, adding blank voices until there are ``pad_to``."""
        out = [_HEADER]
        for i, v in enumerate(self.voices):
            out.append("\n")
            out.append(f"@:{i} {v.name}\n")
            out.append(f"LFO: {v.lfo_lfrq} {v.lfo_amd} {v.lfo_pmd} {v.lfo_wf} {v.nfrq}\n")
            out.append(
                f"CH: {v.ch_pan} {v.ch_fl} {v.ch_con} {v.ch_ams} {v.ch_pms} "
                f"{v.ch_slot} {v.ch_ne}\n"
            )
            for j, index in enumerate(_WRITE_ORDER):
                o = v.operators[index]
                out.append(
                    f"{_operator_name(j)}: {o.ar:2d}  {o.d1r:2d}  {o.d2r:2d} {o.rr:2d}  "
                    f"{o.d1l:2d} {o.tl:3d} {o.ks}  {o.mul:2d} {o.dt1} {o.dt2} {o.ame}\n"
                )
        for i in range(self.num_voices, pad_to):
            out.append("\n")
            out.append(f"@:{i} no Name\n")
            out.append("LFO: 0 0 0 0 0\n")
            out.append("CH: 64 0 0 0 0 64 0\n")
            for name in _OPERATOR_NAMES:
                out.append(f"{name}: 31 0 0 4 0 0 0 1 0 0 0\n")
        return "".join(out)

    def dump(self) -> str:
        """Return a human-readable description of the bank."""
        lines = []
        for i, v in enumerate(self.voices):
            lines.append(f"{i} number={v.number} name={v.name[:MAX_NAME]}\n")
            lines.append(
                f"LFO: lfrq={v.lfo_lfrq} amd={v.lfo_amd} pmd={v.lfo_pmd} "
                f"wf={v.lfo_wf} nfrq={v.nfrq}\n"
            )
            lines.append(
                f"CH: pan={v.ch_pan} fl={v.ch_fl} con={v.ch_con} ams={v.ch_ams} "
                f"pms={v.ch_pms} slot={v.ch_slot} ne={v.ch_ne}\n"
            )
            lines.append("OP: AR D1R D2R RR D1L TL KS MUL DT1 DT2 AME\n")
            for j, o in enumerate(v.operators):
                lines.append(
                    f"{_operator_name(j)}: {o.ar:2d}  {o.d1r:2d}  {o.d2r:2d} {o.rr:2d}  "
                    f"{o.d1l:2d} {o.tl:2d} {o.ks:2d}  {o.mul:2d}  {o.dt1:2d}  {o.dt2:2d}   "
                    f"{o.ame}\n"
                )
        return "".join(lines)


class _State(Enum):
    NONE = auto()
    SLASH = auto()
    COMMENT = auto()
    IN_AT = auto()
    AFTER_AT = auto()
    IN_VOICE_NUM = auto()
    AFTER_VOICE_NUM = auto()
    IN_VOICE_NAME = auto()
    IN_PARAM_NAME = auto()
    AFTER_PARAM_NAME = auto()
    IN_PARAM_VAL = auto()
    AFTER_PARAM_VAL = auto()


def _char_dot(c: int) -> str:
    return "." if c < 0x20 or c >= 0x7F else chr(c)


def _isdigit(c: int) -> bool:
    return 0x30 <= c <= 0x39


class _Parser:
    def __init__(self) -> None:
        self.voices: list[OpmFileVoice] = []
        self.state = _State.NONE
        self.line = 1
        self.param_name = ""
        self.voice_name = bytearray()
        self.digits = bytearray()
        self.params: list[int] = []

    def _error(self, message: str) -> OpmFormatError:
        return OpmFormatError(message)

    def _append_digit(self, c: int) -> None:
        if len(self.digits) >= _MAX_DIGITS:
            raise self._error(
                f"Too many digits {len(self.digits)} '{_char_dot(c)}' ({c}) at line {self.line}"
            )
        self.digits.append(c)

    def _append_param(self) -> None:
        if len(self.params) >= _MAX_PARAMS:
            raise self._error(f"Too many parameters at line {self.line}")
        self.params.append(int(self.digits))
        self.digits.clear()

    def _append_name_char(self, c: int) -> None:
        if len(self.voice_name) >= MAX_NAME:
            raise self._error(f"Too many voice chars '{_char_dot(c)}' ({c}) at line {self.line}")
        self.voice_name.append(c)

    def _current_voice(self) -> OpmFileVoice:
        if not self.voices:
            raise self._error(f"Parameters before any voice at line {self.line}")
        return self.voices[-1]

    def _assign(self, target: object, names: tuple[str, ...]) -> None:
        for name, value in zip(names, self.params):
            setattr(target, name, value & 0xFF)

    def _parse_param(self) -> None:
        name = self.param_name
        count = len(self.params)
        if name == "LFO":
            if count != 5:
                raise self._error(f"LFO parameters {count} != 5")
            self._assign(self._current_voice(), _LFO_PARAMS)
        elif name == "CH":
            if count != 7:
                raise self._error(f"CH parameters {count} != 7")
            self._assign(self._current_voice(), _CH_PARAMS)
        elif len(name) >= 2 and name[0] in "MC" and name[1] in "12":
            if count != 11:
                raise self._error(f"Operator {name[:2]} parameters {count} != 11")
            if name[0] == "M":
                op_num = 0 if name[1] == "1" else 1
            else:
                op_num = 2 if name[1] == "1" else 3
            self._assign(self._current_voice().operators[op_num], _OPERATOR_PARAMS)
        self.params = []

    def _start_voice(self) -> None:
        self.voices.append(OpmFileVoice(number=int(self.digits)))

    def feed(self, c: int) -> None:
        if c == 0x0D:
            return
        if c == 0x0A:
            self.line += 1
        elif c == 0x2F and self.state != _State.COMMENT:
            self.state = _State.SLASH

        state = self.state
        space = c in _WHITESPACE
        if state == _State.NONE:
            if space:
                return
            if c == ord("@"):
                self.state = _State.IN_AT
            elif c in b"LCM":
                self.param_name = chr(c)
                self.state = _State.IN_PARAM_NAME
            else:
                raise self._error(
                    f"Unexpected '{_char_dot(c)}' ({c}) at start of line {self.line}"
                )
        elif state == _State.SLASH:
            if c == 0x2F:
                self.state = _State.COMMENT
            else:
                raise self._error(f"Unexpected '{_char_dot(c)}' ({c}) after '/' at line {self.line}")
        elif state == _State.COMMENT:
            if c == 0x0A:
                self.state = _State.NONE
        elif state == _State.IN_PARAM_NAME:
            if c == 0x0A:
                raise self._error(f"Unexpected newline in parameter name at line {self.line - 1}")
            if c == ord(":"):
                self.state = _State.AFTER_PARAM_NAME
            elif len(self.param_name) >= _MAX_PARAM_NAME:
                raise self._error(
                    f"Unexpected '{_char_dot(c)}' ({c}) in parameter name at line {self.line}"
                )
            else:
                self.param_name += chr(c)
        elif state == _State.AFTER_PARAM_NAME:
            if space:
                return
            if _isdigit(c):
                self.params = []
                self.digits.clear()
                self._append_digit(c)
                self.state = _State.IN_PARAM_VAL
            else:
                raise self._error(
                    f"Unexpected '{_char_dot(c)}' ({c}) after parameter name at line {self.line}"
                )
        elif state == _State.IN_PARAM_VAL:
            if c == 0x0A:
                self._append_param()
                self._parse_param()
                self.state = _State.NONE
            elif space:
                self._append_param()
                self.state = _State.AFTER_PARAM_VAL
            elif _isdigit(c):
                self._append_digit(c)
            else:
                raise self._error(
                    f"Unexpected '{_char_dot(c)}' ({c}) in parameter value at line {self.line}"
                )
        elif state == _State.AFTER_PARAM_VAL:
            if c == 0x0A:
                self._parse_param()
                self.state = _State.NONE
            elif _isdigit(c):
                self._append_digit(c)
                self.state = _State.IN_PARAM_VAL
        elif state == _State.IN_AT:
            if not space and c == ord(":"):
                self.state = _State.AFTER_AT
        elif state == _State.AFTER_AT:
            if space:
                return
            if _isdigit(c):
                self.digits.clear()
                self._append_digit(c)
                self.state = _State.IN_VOICE_NUM
            else:
                raise self._error(f"Unexpected '{_char_dot(c)}' ({c}) after '@' at line {self.line}")
        elif state == _State.IN_VOICE_NUM:
            if _isdigit(c):
                self._append_digit(c)
                return
            self._start_voice()
            if space:
                self.state = _State.AFTER_VOICE_NUM
            else:
                self._append_name_char(c)
                self.state = _State.IN_VOICE_NAME
        elif state == _State.AFTER_VOICE_NUM:
            if not space:
                self._append_name_char(c)
                self.state = _State.IN_VOICE_NAME
        elif state == _State.IN_VOICE_NAME:
            if c == 0x0A:
                self.voices[-1].name = bytes(self.voice_name).decode("latin-1")
                self.voice_name.clear()
                self.state = _State.NONE
            else:
                self._append_name_char(c)


def load_opm(data: bytes) -> OpmFile:
    """Parse OPM sound bank text."""
    data = bytes(data)
    if len(data) < MIN_SIZE:
        raise OpmFormatError(f"File too short {len(data)} < {MIN_SIZE}")
    parser = _Parser()
    for c in data:
        parser.feed(c)
    return OpmFile(voices=parser.voices)


def _voice_from_file(v: OpmFileVoice) -> OpmVoice:
    voice = OpmVoice(
        name=v.name,
        lfrq=v.lfo_lfrq,
        amd=v.lfo_amd & 0x7F,
        pmd=v.lfo_pmd & 0x7F,
        w=v.lfo_wf & 0x03,
        ne_nfrq=(v.ch_ne << 7 | (v.nfrq & 0x1F)) & 0xFF,
        rl_fb_con=(v.ch_pan & 0xC0) | (v.ch_fl & 0x07) << 3 | (v.ch_con & 0x07),
        pms_ams=(v.ch_ams & 0x07) << 4 | (v.ch_pms & 0x03),
        slot=v.ch_slot >> 3,
    )
    for op, fop in zip(voice.operators, v.operators):
        op.dt1_mul = (fop.dt1 << 4 | fop.mul) & 0xFF
        op.tl = fop.tl
        op.ks_ar = (fop.ks << 6 | fop.ar) & 0xFF
        op.ams_d1r = (fop.ame << 7 | fop.d1r) & 0xFF
        op.dt2_d2r = (fop.dt2 << 6 | fop.d2r) & 0xFF
        op.d1l_rr = (fop.d1l << 4 | fop.rr) & 0xFF
    return voice


def load_opm_into_bank(data: bytes, bank: FmVoiceBank) -> list[OpmVoice]:
    """Parse an OPM file and add its voices to ``bank``."""
    opm = load_opm(data)
    voices = [_voice_from_file(v) for v in opm.voices]
    bank.opm_voices.extend(voices)
    return voices


def _file_voice_from_bank(index: int, v: OpmVoice) -> OpmFileVoice:
    fv = OpmFileVoice(
        number=index,
        name=f"Instrument {index}",
        lfo_lfrq=0,
        lfo_amd=0,
        lfo_pmd=0,
        lfo_wf=0,
        nfrq=0,
        ch_pan=64,
        ch_fl=v.rl_fb_con >> 3 & 0x07,
        ch_con=v.rl_fb_con & 0x07,
        ch_pms=v.pms_ams >> 4 & 0x07,
        ch_ams=v.pms_ams & 0x03,
        ch_slot=(v.slot << 3) & 0xFF,
        ch_ne=0,
    )
    for fop, op in zip(fv.operators, v.operators):
        fop.ar = op.ks_ar & 0x1F
        fop.d1r = op.ams_d1r & 0x1F
        fop.d2r = op.dt2_d2r & 0x1F
        fop.rr = op.d1l_rr & 0x0F
        fop.d1l = op.d1l_rr >> 4
        fop.tl = op.tl & 0x7F
        fop.ks = op.ks_ar >> 6
        fop.mul = op.dt1_mul & 0x0F
        fop.dt1 = _DT1_MAP[op.dt1_mul >> 4 & 0x07]
        fop.dt2 = op.dt2_d2r >> 6
        fop.ame = op.ams_d1r >> 7
    return fv


def save_opm_from_bank(bank: FmVoiceBank, pos: BankPosition) -> str:
    """Write the bank's OPM voices from ``pos.opm`` onwards as OPM text, padded to 128."""
    opm = OpmFile()
    for index in range(pos.opm, len(bank.opm_voices)):
        opm.voices.append(_file_voice_from_bank(index, bank.opm_voices[index]))
        pos.opm += 1
    return opm.to_text(DEFAULT_PAD)