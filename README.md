# fmvoice

A small library and a set of command-line tools for reading FM synthesis
instrument files, printing what is in them, and gathering voices into one
bank that holds two chip families:

* **OPL** voices (YM3812 / YMF262, as on AdLib and Sound Blaster cards)
* **OPM** voices (YM2151)

The package has no dependencies outside the standard library.

## Supported file formats

| Name | Extension | Read              | Into a bank | Write                  |
|------|-----------|-------------------|-------------|------------------------|
| BNK  | `.bnk`    | `load_bnk`        | yes (OPL)   | no                     |
| DMP  | `.dmp`    | `load_dmp`        | no          | no                     |
| INS  | `.ins`    | `load_ins`        | no          | `InsFile.to_bytes`     |
| OP3  | `.op3`    | `load_op3`        | yes (OPL)   | no                     |
| OPM  | `.opm`    | `load_opm`        | yes (OPM)   | `OpmFile.to_text`, `save_opm_from_bank` |

* **BNK** – AdLib instrument bank (`fmvoice.bnk_file`).
* **DMP** – DefleMask FM preset, version 9, FM mode (`fmvoice.dmp_file`);
  `load_dmp(data, system)` reads the extra Genesis fields when `system` is
  `DmpSystem.GENESIS`.
* **INS** – MVSTracker instrument (`fmvoice.ins_file`); `to_bytes` always
  writes version byte 49.
* **OP3** – Junglevision patch file (`fmvoice.op3_file`).
* **OPM** – MiOPMdrv sound bank parameter text (`fmvoice.opm_file`).

Malformed input raises a `ValueError` subclass named after the format
(`BnkFormatError`, `DmpFormatError`, `InsFormatError`, `Op3FormatError`,
`OpmFormatError`).

## Installation

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Command-line tools

Each tool takes one or more file names and prints a readable dump of each
file. Files that cannot be opened or parsed are reported on standard error
and skipped; the tools always exit with status 0.

```
bnkdump  instruments.bnk
dmpdump  patch.dmp
insdump  lead.ins
op3dump  drums.op3
opmdump  voices.opm
```

`dmpdump` reads presets with the Genesis layout. `op3dump` prints each file
name followed by its size in bytes. `dmpdump` and `opmdump` also print the
reason a file was rejected.

`fmbankdump` prints each file name as it goes, tries the bank-capable formats
(BNK, OP3, OPM, in that order) on every file, quietly skips files none of
them accept, gathers the voices it loaded into a single bank and prints the
whole bank at the end:

```
fmbankdump instruments.bnk drums.op3 voices.opm
```

## Library use

Parse a single file into its own structure; `dump()` returns the text that
the matching command prints:

```python
from fmvoice.bnk_file import load_bnk

with open("instruments.bnk", "rb") as fh:
    bnk = load_bnk(fh.read())
print(bnk.dump())
```

Gather voices from several files into one bank, letting the loaders work out
the format. `load_bank` returns the `Loader` that accepted the data and
raises `LoaderError` if none did:

```python
from fmvoice.fm_voice_bank import FmVoiceBank
from fmvoice.loaders import load_bank

bank = FmVoiceBank()
for path in ("instruments.bnk", "voices.opm"):
    with open(path, "rb") as fh:
        load_bank(bank, fh.read())
print(bank.dump())
```

The registry of formats is `fmvoice.loaders.LOADERS`;
`get_loader_by_name("OPM")` looks one up (raising `KeyError` for an unknown
name) and `loader_save(loader, bank, pos)` writes with it, raising
`LoaderError` for a format that cannot be written.

Write the OPM voices of a bank, from `pos.opm` onwards, as MiOPMdrv text.
Voices are named `Instrument N`, the bank is padded with blank voices up to
128, and `pos.opm` is advanced past the voices written:

```python
from fmvoice.fm_voice_bank import BankPosition
from fmvoice.opm_file import save_opm_from_bank

text = save_opm_from_bank(bank, BankPosition())
```

Pitch helpers convert between frequencies and chip register values:

```python
from fmvoice.opl_voice import opl_pitch_to_block_fnum, opl_block_fnum_to_pitch
from fmvoice.opm_voice import opm_pitch_to_kc_kf, opm_kc_kf_to_pitch
```

`OplVoice` and `OpmVoice` expose the packed register bytes as fields and the
individual parameters as read-only properties. OPM voices can be normalised
(`OpmVoice.normalize`, which brings the loudest carrier to full volume),
compared (`OpmVoice.differs_from`), tested for silence
(`OpmVoice.is_silent`) and fingerprinted (`OpmVoice.md5_digest`, which
ignores the name) — handy for removing duplicate instruments from large
collections.

## What this package does not do

* The bank holds only OPL and OPM voices. INS instruments and DMP presets
  can be read and printed, but not added to a bank.
* Voices are not converted between chip families: OPL voices stay OPL and
  OPM voices stay OPM.
* Of the bank formats, only OPM can be written back out; BNK and OP3 are
  read-only.
* No formats other than the five listed above are recognised.