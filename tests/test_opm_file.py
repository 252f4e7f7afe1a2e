import pytest

from fmvoice.fm_voice_bank import BankPosition, FmVoiceBank
from fmvoice.opm_file import (
    OpmFile,
    OpmFileOperator,
    OpmFileVoice,
    OpmFormatError,
    load_opm,
    load_opm_into_bank,
    save_opm_from_bank,
)
from fmvoice.opm_voice import OpmOperator, OpmVoice

SAMPLE = (
    "//MiOPMdrv sound bank Paramer Ver2002.04.22\n"
    "\n"
    "@:5 Bright Piano\n"
    "LFO: 1 2 3 0 4\n"
    "CH: 192 6 5 1 2 120 0\n"
    "M1: 31 10 5 7 3 20 1 2 3 0 1\n"
    "C1: 30 9 4 6 2 0 0 1 0 1 0\n"
    "M2: 29 8 3 5 1 40 2 3 1 2 0\n"
    "C2: 28 7 2 4 0 10 3 4 2 3 1\n"
).encode()


def test_parses_header_fields():
    opm = load_opm(SAMPLE)
    assert opm.num_voices == 1
    v = opm.voices[0]
    assert v.number == 5
    assert v.name == "Bright Piano"
    assert (v.lfo_lfrq, v.lfo_amd, v.lfo_pmd, v.lfo_wf, v.nfrq) == (1, 2, 3, 0, 4)
    assert (v.ch_pan, v.ch_fl, v.ch_con, v.ch_ams, v.ch_pms, v.ch_slot, v.ch_ne) == (
        192, 6, 5, 1, 2, 120, 0,
    )


def test_operator_name_mapping():
    v = load_opm(SAMPLE).voices[0]
    # M1 -> 0, M2 -> 1, C1 -> 2, C2 -> 3
    assert v.operators[0].ar == 31
    assert v.operators[1].ar == 29
    assert v.operators[2].ar == 30
    assert v.operators[3].ar == 28
    assert v.operators[3].ame == 1
    assert v.operators[1].tl == 40


def test_voice_defaults_without_parameters():
    opm = load_opm(b"// a comment line that is long\n@:0 Empty\n")
    v = opm.voices[0]
    assert v.name == "Empty"
    assert v.ch_pan == 64
    assert v.ch_slot == 0x78
    assert all(op.tl == 127 and op.mul == 1 for op in v.operators)


def test_round_trip_through_text():
    original = load_opm(SAMPLE)
    text = original.to_text(0)
    again = load_opm(text.encode())
    assert again.num_voices == 1
    a, b = original.voices[0], again.voices[0]
    assert b.name == a.name
    assert b.operators == a.operators
    assert b.ch_fl == a.ch_fl and b.lfo_amd == a.lfo_amd


def test_padding_adds_blank_voices():
    opm = OpmFile(voices=[OpmFileVoice(name="One")])
    text = opm.to_text(4)
    assert text.count("@:") == 4 + 1  # header comment also mentions "@:"
    parsed = load_opm(text.encode())
    assert [v.name for v in parsed.voices] == ["One", "no Name", "no Name", "no Name"]
    assert parsed.voices[1].ch_slot == 64


def test_to_text_starts_with_header():
    text = OpmFile().to_text(0)
    assert text.startswith("//MiOPMdrv sound bank Paramer Ver2002.04.22\n")


def test_last_line_without_newline_is_ignored():
    data = b"//comment comment comment\n@:0 Name\nLFO: 9 9 9 9 9"
    v = load_opm(data).voices[0]
    assert v.lfo_lfrq == 0


def test_too_short():
    with pytest.raises(OpmFormatError):
        load_opm(b"@:0 x\n")


def test_unexpected_start_character():
    with pytest.raises(OpmFormatError):
        load_opm(b"X this line is not valid in any way\n")


def test_too_many_digits():
    with pytest.raises(OpmFormatError):
        load_opm(b"@:0 Name\nLFO: 12345 0 0 0 0\n//padding\n")


def test_wrong_parameter_count():
    with pytest.raises(OpmFormatError):
        load_opm(b"@:0 Name\nLFO: 1 2 3\n// padding here\n")


def test_newline_in_parameter_name():
    with pytest.raises(OpmFormatError):
        load_opm(b"@:0 Name\nLF\n// padding padding padding\n")


def test_parameters_before_voice():
    with pytest.raises(OpmFormatError):
        load_opm(b"LFO: 1 2 3 4 5\n// padding padding\n")


def test_dump_lists_values():
    out = load_opm(SAMPLE).dump()
    assert "0 number=5 name=Bright Piano\n" in out
    assert "LFO: lfrq=1 amd=2 pmd=3 wf=0 nfrq=4\n" in out
    assert out.count("OP: AR D1R D2R RR D1L TL KS MUL DT1 DT2 AME\n") == 1


def test_load_into_bank_packs_registers():
    bank = FmVoiceBank()
    voices = load_opm_into_bank(SAMPLE, bank)
    assert bank.opm_voices == voices
    v = voices[0]
    assert v.name == "Bright Piano"
    assert v.fb == 6
    assert v.con == 5
    assert v.rl == 3
    assert v.slot == 120 >> 3
    op = v.operators[0]
    assert (op.ar, op.d1r, op.d2r, op.rr, op.d1l) == (31, 10, 5, 7, 3)
    assert (op.ks, op.mul, op.dt1, op.dt2, op.ams) == (1, 2, 3, 0, 1)


def test_save_from_bank_round_trip():
    voice = OpmVoice(
        rl_fb_con=0xC0 | 5 << 3 | 3,
        slot=0x0F,
        operators=[
            OpmOperator(dt1_mul=0 << 4 | 7, tl=33, ks_ar=2 << 6 | 25, ams_d1r=0x80 | 12,
                        dt2_d2r=1 << 6 | 9, d1l_rr=4 << 4 | 6)
            for _ in range(4)
        ],
    )
    bank = FmVoiceBank(opm_voices=[voice])
    pos = BankPosition()
    text = save_opm_from_bank(bank, pos)
    assert pos.opm == 1
    parsed = load_opm(text.encode())
    assert parsed.num_voices == 128
    fv = parsed.voices[0]
    assert fv.name == "Instrument 0"
    assert fv.ch_fl == 5 and fv.ch_con == 3
    assert fv.ch_slot == 0x0F << 3
    fop = fv.operators[2]
    assert (fop.ar, fop.d1r, fop.d2r, fop.rr, fop.d1l) == (25, 12, 9, 6, 4)
    assert (fop.tl, fop.ks, fop.mul, fop.dt2, fop.ame) == (33, 2, 7, 1, 1)
    assert fop.dt1 == 3  # detune 0 maps to the centre value


def test_save_from_bank_respects_position():
    bank = FmVoiceBank(opm_voices=[OpmVoice(), OpmVoice(), OpmVoice()])
    pos = BankPosition(opm=2)
    parsed = load_opm(save_opm_from_bank(bank, pos).encode())
    assert pos.opm == 3
    assert parsed.voices[0].name == "Instrument 2"
    assert parsed.voices[1].name == "no Name"


def test_operator_defaults_match_parser():
    op = OpmFileOperator()
    assert (op.tl, op.mul, op.ar) == (127, 1, 0)