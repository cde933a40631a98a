"""Field boundary resolution.

A field's value runs from the current offset to the first boundary found by
these rules, checked in order:

0. fixed-width kinds and fixed-length bytes end ``width`` bytes later
1. the next state's literal
2. the next state's delimiter
3. the next optional section's marker, unless the boundary that follows the
   section comes first; a missing section is looked through
4. the earliest fallback terminator
5. the end of the buffer
"""

from collections.abc import Sequence

from ..compiler.automaton import Automaton, State, StateKind


def _fallback(data: bytes, offset: int, terminators: Sequence[str]) -> int:
    ends = [data.find(t.encode("utf-8"), offset) for t in terminators if t]
    ends = [e for e in ends if e != -1]
    if ends:
        return min(ends)
    return len(data)


def find_field_end(
    automaton: Automaton,
    state: State,
    data: bytes,
    offset: int,
    terminators: Sequence[str] = ("\t", "\r\n"),
) -> int | None:
    """Find the absolute offset where the field extracted by ``state`` ends.

    Returns None when no boundary exists: a fixed-width field runs past the
    end of the buffer, or the following literal or delimiter never occurs.
    """
    width = state.metadata.width if state.metadata else None
    if width is not None:
        end = offset + width
        return end if end <= len(data) else None

    return _resolve(automaton, automaton.next_state(state), data, offset, terminators)


def _resolve(
    automaton: Automaton,
    following: State | None,
    data: bytes,
    offset: int,
    terminators: Sequence[str],
) -> int | None:
    if following is None:
        return _fallback(data, offset, terminators)

    if following.kind in (StateKind.MATCH_LITERAL, StateKind.MATCH_DELIMITER):
        end = data.find((following.expected or "").encode("utf-8"), offset)
        return end if end != -1 else None

    if following.kind == StateKind.OPTIONAL_FIELD:
        after = _resolve(automaton, automaton.next_state(following), data, offset, terminators)
        marker = following.metadata.marker if following.metadata else None
        if marker:
            end = data.find(marker.encode("utf-8"), offset)
            if end != -1 and (after is None or end <= after):
                return end
        return after

    return _fallback(data, offset, terminators)
