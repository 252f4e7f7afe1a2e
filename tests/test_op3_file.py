import struct

import pytest

from fmvoice.fm_voice_bank import FmVoiceBank
from fmvoice.op3_file import Op3FormatError, load_op3, load_op3_into_bank

SIG = b"Junglevision Patch File\x1a" + b"\0" * 8


def instrument_bytes(seed, en_4op=1, perc=0):
    # en_4op, percnotenum, op0(5), fb_con12, op1(5), op2(5), fb_con34, op3(5)
    ops = [bytes(seed + 5 * k + f for f in range(5)) for k in range(4)]
    return (
        bytes([en_4op, perc])
        + ops[0]
        + bytes([(seed + 1) & 0x0F])
        + ops[1]
        + ops[2]
        + bytes([(seed + 2) & 0x0F])
        + ops[3]
    )


def build_op3(melodic, percussive, start_melodic=0, start_percussive=0):
    header = SIG + struct.pack("<4H", len(melodic), len(percussive), start_melodic, start_percussive)
    return header + b"".join(melodic) + b"".join(percussive)


def test_header_fields():
    data = build_op3([instrument_bytes(1)], [instrument_bytes(2), instrument_bytes(3)], 5, 35)
    f = load_op3(data)
    assert f.count_melodic == 1
    assert f.count_percussive == 2
    assert f.start_melodic == 5
    assert f.start_percussive == 35


def test_instrument_fields():
    f = load_op3(build_op3([instrument_bytes(10, en_4op=1, perc=42)], []))
    inst = f.melodic[0]
    assert inst.en_4op == 1
    assert inst.percnotenum == 42
    assert inst.fb_con12 == (10 + 1) & 0x0F
    assert inst.fb_con34 == (10 + 2) & 0x0F
    for k, op in enumerate(inst.operators):
        base = 10 + 5 * k
        assert (op.ave_kvm, op.ksl_tl, op.ar_dr, op.sl_rr, op.ws) == tuple(base + f for f in range(5))


def test_short_file_rejected():
    with pytest.raises(Op3FormatError):
        load_op3(SIG[:31])


def test_bad_signature_rejected():
    data = bytearray(build_op3([], []))
    data[0] = ord("X")
    with pytest.raises(Op3FormatError):
        load_op3(bytes(data))


def test_signature_terminator_must_be_nul():
    data = bytearray(build_op3([], []))
    data[24] = 1
    with pytest.raises(Op3FormatError):
        load_op3(bytes(data))


def test_truncated_instruments_rejected():
    data = build_op3([instrument_bytes(1)], [])
    with pytest.raises(Op3FormatError):
        load_op3(data[:-1])


def test_too_many_instruments_rejected():
    data = SIG + struct.pack("<4H", 129, 0, 0, 0) + instrument_bytes(0) * 129
    with pytest.raises(Op3FormatError):
        load_op3(data)


def test_load_into_bank_orders_melodic_then_percussive():
    bank = FmVoiceBank()
    data = build_op3([instrument_bytes(1, perc=0)], [instrument_bytes(3, en_4op=0, perc=36)])
    voices = load_op3_into_bank(data, bank)
    assert len(bank.opl_voices) == 2
    assert voices == bank.opl_voices
    assert voices[0].perc_inst == 0
    assert voices[1].perc_inst == 36
    assert voices[1].en_4op == 0


def test_load_into_bank_copies_registers():
    bank = FmVoiceBank()
    inst = load_op3(build_op3([instrument_bytes(7)], [])).melodic[0]
    voice = load_op3_into_bank(build_op3([instrument_bytes(7)], []), bank)[0]
    assert voice.ch_fb_cnt == [0xF0 | inst.fb_con12, 0xF0 | inst.fb_con34]
    assert voice.dam_dvb_ryt_bd_sd_tom_tc_hh == 0
    for op, src in zip(voice.operators, inst.operators):
        assert op.am_vib_eg_ksr_mul == src.ave_kvm
        assert op.ksl_tl == src.ksl_tl
        assert op.ar_dr == src.ar_dr
        assert op.sl_rr == src.sl_rr
        assert op.ws == src.ws


def test_load_into_bank_appends_to_existing():
    bank = FmVoiceBank()
    bank.reserve_opl_voices(3)
    load_op3_into_bank(build_op3([instrument_bytes(1)], []), bank)
    assert len(bank.opl_voices) == 4


def test_dump_two_and_four_operator_instruments():
    f = load_op3(build_op3([instrument_bytes(1, en_4op=1)], [instrument_bytes(2, en_4op=0)]))
    text = f.dump()
    assert text.startswith("count_melodic=1 count_percussive=1 start_melodic=0 start_percussive=0\n")
    melodic, percussive = text.split("percussive 0: ")
    assert "fb34=" in melodic
    assert "fb34=" not in percussive
    assert melodic.count("\n 3  ") == 1
    assert percussive.count("\n 2  ") == 0