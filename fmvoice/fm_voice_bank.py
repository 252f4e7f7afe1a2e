"""A bank of FM voices, grouped by the chip family they were written for."""

from __future__ import annotations

import copy
from collections.abc import Iterable
from dataclasses import dataclass, field

from .opl_voice import OplVoice
from .opm_voice import OpmVoice


@dataclass
class BankPosition:
    """Read/write cursor into a bank, one index per chip family."""

    opl: int = 0
    opm: int = 0
    opn: int = 0


@dataclass
class FmVoiceBank:
    """Collection of OPL and OPM voices gathered from one or more files."""

    opl_voices: list[OplVoice] = field(default_factory=list)
    opm_voices: list[OpmVoice] = field(default_factory=list)

    def reserve_opl_voices(self, count: int) -> list[OplVoice]:
        """Append ``count`` blank OPL voices and return them for filling in."""
        if count < 0:
            raise ValueError(f"cannot reserve a negative number of voices: {count}")
        new_voices = [OplVoice() for _ in range(count)]
        self.opl_voices.extend(new_voices)
        return new_voices

    def reserve_opm_voices(self, count: int) -> list[OpmVoice]:
        """Append ``count`` blank OPM voices and return them for filling in."""
        if count < 0:
            raise ValueError(f"cannot reserve a negative number of voices: {count}")
        new_voices = [OpmVoice() for _ in range(count)]
        self.opm_voices.extend(new_voices)
        return new_voices

    def append_opl_voices(self, voices: Iterable[OplVoice]) -> None:
        """Append copies of the given OPL voices."""
        self.opl_voices.extend(copy.deepcopy(v) for v in voices)

    def append_opm_voices(self, voices: Iterable[OpmVoice]) -> None:
        """Append copies of the given OPM voices."""
        self.opm_voices.extend(copy.deepcopy(v) for v in voices)

    def clear(self) -> None:
        """Remove every voice from the bank."""
        self.opl_voices.clear()
        self.opm_voices.clear()

    def dump(self) -> str:
        """Return a human-readable listing of every voice in the bank."""
        parts = [f"Voice {i} (OPL): {v.dump()}" for i, v in enumerate(self.opl_voices)]
        parts += [f"Voice {i} (OPM): {v.dump()}" for i, v in enumerate(self.opm_voices)]
        return "".join(parts)