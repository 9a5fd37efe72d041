"""
Letter-level comparison of a learner's spelling against the target word.

The analyzer produces an edit script that turns the submission into the
target, plus a summary derived only from that script. An adjacent swap is
recognised before falling back to a minimum-edit-distance script.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

OP_KEEP = "keep"
OP_SUBSTITUTE = "substitute"
OP_INSERT = "insert"
OP_DELETE = "delete"
OP_TRANSPOSE = "transpose"

ERROR_NONE = "correct"
ERROR_SUBSTITUTION = "substitution"
ERROR_OMISSION = "omission"        # learner left a letter out; script inserts it
ERROR_INSERTION = "insertion"      # learner added a letter; script deletes it
ERROR_TRANSPOSITION = "transposition"
ERROR_MULTIPLE = "multiple"

_OP_TO_ERROR = {
    OP_SUBSTITUTE: ERROR_SUBSTITUTION,
    OP_INSERT: ERROR_OMISSION,
    OP_DELETE: ERROR_INSERTION,
    OP_TRANSPOSE: ERROR_TRANSPOSITION,
}


@dataclass(frozen=True)
class EditOp:
    """One step of an edit script.

    ``source`` is what the step consumes from the submission and ``target``
    what it emits; ``source_index`` / ``target_index`` are the positions in
    each string where the step applies.
    """
    op: str
    source_index: int
    target_index: int
    source: str = ""
    target: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "op": self.op,
            "sourceIndex": self.source_index,
            "targetIndex": self.target_index,
            "source": self.source,
            "target": self.target,
        }


@dataclass
class DiffSummary:
    substitutions: int = 0
    omissions: int = 0
    insertions: int = 0
    transpositions: int = 0
    error_type: str = ERROR_NONE

    @property
    def edit_count(self) -> int:
        return self.substitutions + self.omissions + self.insertions + self.transpositions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "substitutions": self.substitutions,
            "omissions": self.omissions,
            "insertions": self.insertions,
            "transpositions": self.transpositions,
            "errorType": self.error_type,
            "description": describe_errors(self),
        }


@dataclass
class SpellingAnalysis:
    target: str
    submission: str
    correct: bool
    ops: List[EditOp] = field(default_factory=list)
    summary: DiffSummary = field(default_factory=DiffSummary)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ops": [op.to_dict() for op in self.ops],
            "summary": self.summary.to_dict(),
        }


def normalize_spelling(text: str) -> str:
    return text.strip().lower()


def analyze_spelling(target: str, submission: str) -> SpellingAnalysis:
    """Compare ``submission`` against ``target`` after trimming and lowercasing both."""
    canonical = normalize_spelling(target)
    attempt = normalize_spelling(submission)

    if attempt == canonical:
        ops: List[EditOp] = []
    else:
        swap_at = _find_adjacent_swap(attempt, canonical)
        if swap_at is not None:
            ops = _transposition_script(attempt, canonical, swap_at)
        else:
            ops = _minimum_edit_script(attempt, canonical)

    return SpellingAnalysis(
        target=canonical,
        submission=attempt,
        correct=attempt == canonical,
        ops=ops,
        summary=summarize(ops),
    )


def summarize(ops: List[EditOp]) -> DiffSummary:
    """Count edits by kind and classify the dominant error from the script alone."""
    summary = DiffSummary()
    edits = [op for op in ops if op.op != OP_KEEP]
    for op in edits:
        if op.op == OP_SUBSTITUTE:
            summary.substitutions += 1
        elif op.op == OP_INSERT:
            summary.omissions += 1
        elif op.op == OP_DELETE:
            summary.insertions += 1
        elif op.op == OP_TRANSPOSE:
            summary.transpositions += 1

    if not edits:
        summary.error_type = ERROR_NONE
    elif len(edits) == 1:
        summary.error_type = _OP_TO_ERROR[edits[0].op]
    else:
        summary.error_type = ERROR_MULTIPLE
    return summary


def apply_edit_script(submission: str, ops: List[EditOp]) -> str:
    """Replay ``ops`` over ``submission``; characters after the last step are kept as-is."""
    out: List[str] = []
    cursor = 0
    for op in ops:
        consumed = len(op.source)
        if submission[cursor:cursor + consumed] != op.source:
            raise ValueError(
                f"edit script does not match submission at {cursor}: "
                f"expected {op.source!r}, found {submission[cursor:cursor + consumed]!r}"
            )
        if op.op == OP_KEEP:
            out.append(op.source)
        elif op.op in (OP_SUBSTITUTE, OP_INSERT, OP_TRANSPOSE):
            out.append(op.target)
        elif op.op != OP_DELETE:
            raise ValueError(f"unknown edit operation: {op.op}")
        cursor += consumed
    out.append(submission[cursor:])
    return "".join(out)


def describe_errors(summary: DiffSummary) -> str:
    """Short learner-facing phrase such as "swapped letters" or "wrong letter and extra letter"."""
    parts: List[str] = []
    if summary.transpositions:
        parts.append("swapped letters" if summary.transpositions == 1
                     else f"{summary.transpositions} letter swaps")
    if summary.substitutions:
        parts.append("wrong letter" if summary.substitutions == 1
                     else f"{summary.substitutions} wrong letters")
    if summary.omissions:
        parts.append("missing letter" if summary.omissions == 1
                     else f"{summary.omissions} missing letters")
    if summary.insertions:
        parts.append("extra letter" if summary.insertions == 1
                     else f"{summary.insertions} extra letters")

    if not parts:
        return ""
    if len(parts) == 1:
        return parts[0]
    return ", ".join(parts[:-1]) + " and " + parts[-1]


def _find_adjacent_swap(source: str, target: str) -> Optional[int]:
    if len(source) != len(target):
        return None
    mismatches = [i for i, (a, b) in enumerate(zip(source, target)) if a != b]
    if len(mismatches) != 2:
        return None
    first, second = mismatches
    if second != first + 1:
        return None
    if source[first] == target[second] and source[second] == target[first]:
        return first
    return None


def _transposition_script(source: str, target: str, at: int) -> List[EditOp]:
    ops = [EditOp(OP_KEEP, i, i, source[i], source[i]) for i in range(at)]
    ops.append(EditOp(OP_TRANSPOSE, at, at, source[at:at + 2], target[at:at + 2]))
    ops.extend(EditOp(OP_KEEP, i, i, source[i], source[i]) for i in range(at + 2, len(source)))
    return ops


def _minimum_edit_script(source: str, target: str) -> List[EditOp]:
    """
    Levenshtein script from ``source`` to ``target``.

    ``remaining[i][j]`` is the edit distance between ``source[i:]`` and
    ``target[j:]``, so a forward walk from (0, 0) can pick, at every step, the
    first optimal move in the order substitute, delete, insert, keep. That
    keeps the script minimal, prefers one substitution to a delete/insert
    pair, and places each edit as early as possible.
    """
    m, n = len(source), len(target)
    remaining = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(m, -1, -1):
        for j in range(n, -1, -1):
            if i == m:
                remaining[i][j] = n - j
            elif j == n:
                remaining[i][j] = m - i
            else:
                mismatch = 1 if source[i] != target[j] else 0
                remaining[i][j] = min(
                    remaining[i + 1][j + 1] + mismatch,
                    remaining[i + 1][j] + 1,
                    remaining[i][j + 1] + 1,
                )

    ops: List[EditOp] = []
    i = j = 0
    while i < m or j < n:
        here = remaining[i][j]
        if i < m and j < n and source[i] != target[j] and remaining[i + 1][j + 1] + 1 == here:
            ops.append(EditOp(OP_SUBSTITUTE, i, j, source[i], target[j]))
            i += 1
            j += 1
        elif i < m and remaining[i + 1][j] + 1 == here:
            ops.append(EditOp(OP_DELETE, i, j, source[i], ""))
            i += 1
        elif j < n and remaining[i][j + 1] + 1 == here:
            ops.append(EditOp(OP_INSERT, i, j, "", target[j]))
            j += 1
        else:
            ops.append(EditOp(OP_KEEP, i, j, source[i], target[j]))
            i += 1
            j += 1
    return ops
