import pytest

from fmvoice.opl_voice import (
    OplOperator,
    OplVoice,
    opl_block_fnum_to_pitch,
    opl_pitch_to_block_fnum,
)

OPL_CLOCK = 3579545


@pytest.mark.parametrize(
    "am, vib, eg, ksr, mul",
    [(1, 0, 1, 0, 7), (0, 1, 0, 1, 15), (1, 1, 1, 1, 0)],
)
def test_operator_fields_unpack(am, vib, eg, ksr, mul):
    op = OplOperator(am_vib_eg_ksr_mul=am << 7 | vib << 6 | eg << 5 | ksr << 4 | mul)
    assert (op.am, op.vib, op.eg_typ, op.ksr, op.mul) == (am, vib, eg, ksr, mul)


def test_operator_envelope_fields():
    op = OplOperator(ksl_tl=2 << 6 | 33, ar_dr=12 << 4 | 5, sl_rr=9 << 4 | 3, ws=0x0B)
    assert (op.ksl, op.tl) == (2, 33)
    assert (op.ar, op.dr) == (12, 5)
    assert (op.sl, op.rr) == (9, 3)
    assert op.wave_select == 0x0B & 0x07


def test_operator_silent_when_attack_zero():
    assert OplOperator(ar_dr=0x0F, ksl_tl=0).is_silent()


def test_operator_silent_when_level_high():
    assert OplOperator(ar_dr=0xF0, ksl_tl=61).is_silent()


def test_operator_not_silent():
    assert not OplOperator(ar_dr=0xF0, ksl_tl=60).is_silent()


def test_voice_never_silent():
    assert OplVoice().is_silent() is False


def test_voice_channel_fields():
    v = OplVoice(ch_fb_cnt=[0xF0 | 5 << 1 | 1, 0x30 | 2 << 1])
    assert (v.ch, v.fb, v.cnt) == (0x0F, 5, 1)
    assert (v.ch1, v.fb1, v.cnt1) == (0x03, 2, 0)


def test_voice_rhythm_fields():
    v = OplVoice(dam_dvb_ryt_bd_sd_tom_tc_hh=0b1110_0000)
    assert (v.am_depth, v.vib_depth, v.ryt) == (1, 1, 1)


def test_voice_default_operators_are_independent():
    v = OplVoice()
    v.operators[0].ws = 3
    assert v.operators[1].ws == 0
    assert len(v.operators) == 4


def _operator_lines(text):
    header = "OP: AR DR SL RR TL MUL EG AM VIB KSR KSL WS\n"
    return text.split(header, 1)[1].splitlines()


def test_dump_two_operator_voice():
    text = OplVoice(name="Piano", en_4op=0).dump()
    assert text.startswith("name=Piano\n")
    assert len(_operator_lines(text)) == 2


def test_dump_four_operator_voice():
    text = OplVoice(en_4op=1).dump()
    assert len(_operator_lines(text)) == 4


def test_dump_channel_flags():
    text = OplVoice(ch_fb_cnt=[0xF0, 0x00]).dump()
    assert "0: ch=DCBA" in text
    assert "1: ch=----" in text


@pytest.mark.parametrize("pitch", [110.0, 261.63, 440.0, 880.0, 1760.0])
def test_pitch_round_trip(pitch):
    value = opl_pitch_to_block_fnum(pitch, OPL_CLOCK)
    back = opl_block_fnum_to_pitch(value >> 8, value & 0xFF, OPL_CLOCK)
    assert back == pytest.approx(pitch, rel=0.01)


def test_pitch_fnum_fits_register():
    value = opl_pitch_to_block_fnum(440.0, OPL_CLOCK)
    assert value >> 14 == 0


def test_block_fnum_zero_is_zero_pitch():
    assert opl_block_fnum_to_pitch(0, 0, OPL_CLOCK) == 0.0


def test_higher_block_doubles_pitch():
    low = opl_block_fnum_to_pitch(3 << 3 | 1, 0x20, OPL_CLOCK)
    high = opl_block_fnum_to_pitch(4 << 3 | 1, 0x20, OPL_CLOCK)
    assert high == pytest.approx(2 * low)