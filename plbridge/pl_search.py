from __future__ import annotations
from typing import Sequence

from plbridge.pl_context import EvaluationContext

DEFAULT_CHUNK_SIZE = 0x10000


def find_sequence_in_range(ctx: EvaluationContext, occurrence_index: int, offset_from: int, offset_to: int,
                           sequence: Sequence[int], chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """
    Returns the start offset of the `occurrence_index`-th (0-based) match of
    `sequence` in the data, or -1.

    Candidate starts run from `offset_from` up to, but excluding,
    `end - len(sequence)`, where end is the data size when `offset_to` is not
    past `offset_from` and min(data size, offset_to) otherwise. Matches may
    overlap; they are counted left to right.
    """
    needle = bytes(sequence)
    data_size = ctx.get_data_size()
    end_offset = data_size if offset_to <= offset_from else min(data_size, offset_to)
    last_start = end_offset - len(needle)  # exclusive

    if not needle or offset_from >= last_start:
        return -1

    chunk_size = max(1, int(chunk_size))
    found = 0
    pos = offset_from
    while pos < last_start:
        span = min(chunk_size, last_start - pos)
        # Window holds exactly the bytes of candidates pos .. pos + span - 1
        window = ctx.read_data(pos, span + len(needle) - 1)
        idx = window.find(needle)
        while idx != -1:
            if found == occurrence_index:
                return pos + idx
            found += 1
            idx = window.find(needle, idx + 1)
        ctx._dbg("SEARCH", "chunk", hex(pos), "span", span, "matches", found)
        pos += span

    return -1
