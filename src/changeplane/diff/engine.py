"""Line diff engine with contextual windowing.

Pure function of two whole-file texts. Lines are aligned patience-style:
the common head and tail are peeled off, lines that occur exactly once on
both sides anchor the rest, and the regions between anchors are aligned
with difflib.SequenceMatcher when small or a bounded Myers pass when
large. Alignment stays close to linear on big files full of repeated lines.

Every line of the merged sequence is classified as unchanged, inserted or
deleted (a changed line becomes a deleted line followed by an inserted
line, no intra-line highlighting).

Only changed lines and `context_lines` neighbours on each side are
emitted. Overlapping windows merge into one block, and every gap between
two blocks is replaced by one GAP_MARKER line. Line numbers and the
added/removed totals always describe the whole file, not the window.
"""

from __future__ import annotations

import bisect
import difflib
from collections import Counter
from enum import Enum

import structlog

from changeplane.config.models import DEFAULT_CONTEXT_LINES
from changeplane.diff.models import DiffLine, DiffLineKind, DiffResult

log = structlog.get_logger(__name__)

GAP_MARKER = "…"

# Regions up to this many line pairs go through SequenceMatcher
_MATCHER_MAX_CELLS = 40_000
# Larger regions needing more edits than this are shown as a plain replace
_MAX_EDIT_DISTANCE = 1000
_MAX_ANCHOR_DEPTH = 32


class _Op(Enum):
    UNCHANGED = 0
    INSERTED = 1
    DELETED = 2


_Merged = list[tuple[_Op, str]]


def _split_lines(text: str | None) -> list[str]:
    return text.splitlines() if text else []


def _longest_chain(pairs: list[tuple[int, int]]) -> list[tuple[int, int]]:
    """Longest run of (i, j) pairs increasing in both i and j.

    `pairs` is sorted by i and every j is distinct.
    """
    tails: list[int] = []
    tail_js: list[int] = []
    previous = [-1] * len(pairs)
    for idx, (_i, j) in enumerate(pairs):
        pos = bisect.bisect_left(tail_js, j)
        if pos > 0:
            previous[idx] = tails[pos - 1]
        if pos == len(tails):
            tails.append(idx)
            tail_js.append(j)
        else:
            tails[pos] = idx
            tail_js[pos] = j

    chain: list[tuple[int, int]] = []
    idx = tails[-1] if tails else -1
    while idx >= 0:
        chain.append(pairs[idx])
        idx = previous[idx]
    chain.reverse()
    return chain


def _unique_anchors(
    a: list[str], b: list[str], alo: int, ahi: int, blo: int, bhi: int
) -> list[tuple[int, int]]:
    """Lines occurring exactly once on both sides, in an order both sides agree on."""
    count_a = Counter(a[alo:ahi])
    count_b = Counter(b[blo:bhi])
    where_b = {b[j]: j for j in range(blo, bhi) if count_b[b[j]] == 1}
    pairs = [
        (i, where_b[a[i]]) for i in range(alo, ahi) if count_a[a[i]] == 1 and a[i] in where_b
    ]
    return _longest_chain(pairs)


def _matcher_ops(a: list[str], b: list[str]) -> list[_Op]:
    ops: list[_Op] = []
    for tag, i1, i2, j1, j2 in difflib.SequenceMatcher(None, a, b).get_opcodes():
        if tag == "equal":
            ops.extend([_Op.UNCHANGED] * (i2 - i1))
            continue
        if tag in ("delete", "replace"):
            ops.extend([_Op.DELETED] * (i2 - i1))
        if tag in ("insert", "replace"):
            ops.extend([_Op.INSERTED] * (j2 - j1))
    return ops


def _myers_ops(a: list[str], b: list[str], max_edits: int) -> list[_Op] | None:
    """Shortest edit script (Myers O(ND)), or None past `max_edits` edits."""
    n, m = len(a), len(b)
    limit = min(max_edits, n + m)
    offset = limit + 1
    v = [0] * (2 * offset + 1)
    # trace[d] holds v for diagonals -d..d before step d
    trace: list[list[int]] = []

    for d in range(limit + 1):
        trace.append(v[offset - d : offset + d + 1])
        for k in range(-d, d + 1, 2):
            if k == -d or (k != d and v[offset + k - 1] < v[offset + k + 1]):
                x = v[offset + k + 1]
            else:
                x = v[offset + k - 1] + 1
            y = x - k
            while x < n and y < m and a[x] == b[y]:
                x += 1
                y += 1
            v[offset + k] = x
            if x >= n and y >= m:
                return _backtrack(trace, n, m)
    return None


def _backtrack(trace: list[list[int]], n: int, m: int) -> list[_Op]:
    ops: list[_Op] = []
    x, y = n, m
    for d in range(len(trace) - 1, 0, -1):
        v = trace[d]
        k = x - y
        if k == -d or (k != d and v[k - 1 + d] < v[k + 1 + d]):
            prev_k = k + 1
        else:
            prev_k = k - 1
        prev_x = v[prev_k + d]
        prev_y = prev_x - prev_k
        while x > prev_x and y > prev_y:
            ops.append(_Op.UNCHANGED)
            x -= 1
            y -= 1
        ops.append(_Op.INSERTED if x == prev_x else _Op.DELETED)
        x, y = prev_x, prev_y
    # d == 0 is the leading diagonal run from (0, 0)
    ops.extend([_Op.UNCHANGED] * x)
    ops.reverse()
    return ops


def _emit(a: list[str], b: list[str], ops: list[_Op], out: _Merged) -> None:
    """Append `ops` applied to a/b, every edit run as deletions then insertions."""
    deleted: list[str] = []
    inserted: list[str] = []

    def flush() -> None:
        out.extend((_Op.DELETED, line) for line in deleted)
        out.extend((_Op.INSERTED, line) for line in inserted)
        deleted.clear()
        inserted.clear()

    i = j = 0
    for op in ops:
        if op is _Op.UNCHANGED:
            flush()
            out.append((_Op.UNCHANGED, a[i]))
            i += 1
            j += 1
        elif op is _Op.DELETED:
            deleted.append(a[i])
            i += 1
        else:
            inserted.append(b[j])
            j += 1
    flush()


def _merge_gap(a: list[str], b: list[str], out: _Merged) -> None:
    ops: list[_Op] | None
    if not a or not b:
        ops = [_Op.DELETED] * len(a) + [_Op.INSERTED] * len(b)
    elif len(a) * len(b) <= _MATCHER_MAX_CELLS:
        ops = _matcher_ops(a, b)
    else:
        ops = _myers_ops(a, b, _MAX_EDIT_DISTANCE)
        if ops is None:
            log.debug("diff_region_replaced", old_lines=len(a), new_lines=len(b))
            ops = [_Op.DELETED] * len(a) + [_Op.INSERTED] * len(b)
    _emit(a, b, ops, out)


def _merge_range(
    a: list[str],
    b: list[str],
    alo: int,
    ahi: int,
    blo: int,
    bhi: int,
    out: _Merged,
    depth: int = 0,
) -> None:
    while alo < ahi and blo < bhi and a[alo] == b[blo]:
        out.append((_Op.UNCHANGED, a[alo]))
        alo += 1
        blo += 1
    suffix_end = ahi
    while alo < ahi and blo < bhi and a[ahi - 1] == b[bhi - 1]:
        ahi -= 1
        bhi -= 1

    anchors: list[tuple[int, int]] = []
    if depth < _MAX_ANCHOR_DEPTH and alo < ahi and blo < bhi:
        anchors = _unique_anchors(a, b, alo, ahi, blo, bhi)

    if anchors:
        for i, j in anchors:
            _merge_range(a, b, alo, i, blo, j, out, depth + 1)
            out.append((_Op.UNCHANGED, a[i]))
            alo, blo = i + 1, j + 1
        _merge_range(a, b, alo, ahi, blo, bhi, out, depth + 1)
    else:
        _merge_gap(a[alo:ahi], b[blo:bhi], out)

    out.extend((_Op.UNCHANGED, line) for line in a[ahi:suffix_end])


def _merge(old_lines: list[str], new_lines: list[str]) -> _Merged:
    """Build the merged, classified line sequence."""
    merged: _Merged = []
    _merge_range(old_lines, new_lines, 0, len(old_lines), 0, len(new_lines), merged)
    return merged


def _included_indices(merged: _Merged, context_lines: int) -> set[int]:
    included: set[int] = set()
    last = len(merged) - 1
    for i, (op, _text) in enumerate(merged):
        if op is _Op.UNCHANGED:
            continue
        included.update(range(max(0, i - context_lines), min(last, i + context_lines) + 1))
    return included


def _render(merged: _Merged, included: set[int]) -> tuple[list[DiffLine], int, int]:
    lines: list[DiffLine] = []
    old_num = 0
    new_num = 0
    added = 0
    removed = 0
    last_included: int | None = None

    for i, (op, text) in enumerate(merged):
        # Counters advance for every line, included or not
        if op is _Op.UNCHANGED:
            old_num += 1
            new_num += 1
        elif op is _Op.DELETED:
            old_num += 1
            removed += 1
        else:
            new_num += 1
            added += 1

        if i not in included:
            continue

        if last_included is not None and i - last_included > 1:
            lines.append(DiffLine(text=GAP_MARKER, kind=DiffLineKind.CONTEXT))
        last_included = i

        if op is _Op.UNCHANGED:
            lines.append(DiffLine(text, DiffLineKind.CONTEXT, old_num, new_num))
        elif op is _Op.DELETED:
            lines.append(DiffLine(text, DiffLineKind.REMOVED, old_line_number=old_num))
        else:
            lines.append(DiffLine(text, DiffLineKind.ADDED, new_line_number=new_num))

    return lines, added, removed


def compute_diff(
    old_text: str | None,
    new_text: str | None,
    context_lines: int = DEFAULT_CONTEXT_LINES,
) -> DiffResult:
    """Diff two whole-file texts.

    Args:
        old_text: Baseline content. None or "" for a file that did not exist.
        new_text: Current content. None or "" for a file that no longer exists.
        context_lines: Unchanged lines kept on each side of every change.

    Returns:
        DiffResult with the windowed lines and whole-file added/removed totals.
        Any failure degrades to an empty result rather than raising.
    """
    try:
        merged = _merge(_split_lines(old_text), _split_lines(new_text))
        included = _included_indices(merged, context_lines)
        lines, added, removed = _render(merged, included)
    except Exception as e:
        log.warning("diff_failed", error=str(e))
        return DiffResult.empty()
    return DiffResult(lines=tuple(lines), lines_added=added, lines_removed=removed)
