#!/usr/bin/env python3
"""ReviewFix — Apply model-proposed review fixes to drifting source files.

A fix carries a declared line range and, usually, the original snippet it
expects to replace. Both may be stale by the time the fix is applied (an
earlier fix in the same file shifts every later line). The engine locates
the real region to replace, detects fixes that are already applied, or
fails without touching the file.

Strategy ladder (first hit wins):
  1. Windowed match: normalized comparison within 100 lines of the hint
  2. Global exact match, kept only within 50 lines of the hint
  3. Normalized match (trailing whitespace / line endings), same tolerance
  4. Fuzzy line match within 200 lines of the hint
  5. Already-applied check (no edit, reported as success)

Fixes without a snippet fall back to replacing the declared line range.

Exit codes: 0=applied (or viable), 1=failed or invalid input
"""

import argparse
import json
import logging
import os
import re
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from pydantic import ValidationError

from rf_schema import Fix, dump_json_schema, load_review, parse_fix, parse_review

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r'\r?\n')

# (max snippet lines, minimum fuzzy score); longer snippets use the default.
FUZZY_MIN_SCORES = ((2, 0.95), (6, 0.80), (25, 0.70))
FUZZY_DEFAULT_MIN_SCORE = 0.65
FUZZY_EDGE_BONUS = 0.15

ALREADY_APPLIED_REASON = "Fix appears to already be applied."
SNIPPET_NOT_FOUND_REASON = (
    "Could not find the original code snippet in the file. The file may have "
    "been modified or this fix was already applied. Please re-run the review."
)
EDIT_REJECTED_REASON = "The document store rejected the edit."


class ErrorKind(str, Enum):
    FILE_UNAVAILABLE = "file_unavailable"
    RANGE_OUT_OF_BOUNDS = "range_out_of_bounds"
    SNIPPET_NOT_FOUND = "snippet_not_found"
    EDIT_REJECTED = "edit_rejected"


@dataclass(frozen=True)
class LineHint:
    start_line: int  # 1-based, as declared by the fix
    end_line: int

    @property
    def midpoint(self) -> float:
        return (self.start_line - 1 + self.end_line - 1) / 2


@dataclass(frozen=True)
class LineRange:
    start_line: int  # 0-based
    start_col: int
    end_line: int
    end_col: int

    @property
    def midpoint(self) -> float:
        return (self.start_line + self.end_line) / 2


@dataclass
class MatchCandidate:
    range: LineRange
    matched_text: str
    score: Optional[float] = None


@dataclass
class ApplyResult:
    applied: bool
    reason: Optional[str] = None
    kind: Optional[ErrorKind] = None
    strategy: Optional[str] = None
    range: Optional[LineRange] = None
    already_applied: bool = False


@dataclass
class MatchSettings:
    window_radius: int = 100
    tolerance_lines: int = 50
    fuzzy_radius: int = 200
    applied_radius: int = 200


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class DocumentError(Exception):
    """Raised when a document cannot be opened or read."""


class DocumentNotFoundError(DocumentError):
    pass


class TextDocument:
    """Mutable in-memory text buffer addressed by 0-based line/column.

    Lines split on '\\n' or '\\r\\n' and never include the line break; a
    trailing newline yields a final empty line, so "a\\nb\\n" has three lines.
    """

    def __init__(self, text: str, path: Optional[str] = None):
        self.path = path
        self._set_text(text)

    def _set_text(self, text: str) -> None:
        self._text = text
        self._lines = []
        self._starts = []
        pos = 0
        for m in _LINE_BREAK.finditer(text):
            self._starts.append(pos)
            self._lines.append(text[pos:m.start()])
            pos = m.end()
        self._starts.append(pos)
        self._lines.append(text[pos:])

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def line_at(self, index: int) -> str:
        return self._lines[index]

    def offset_at(self, line: int, col: int) -> int:
        return self._starts[line] + col

    def get_text(self, rng: Optional[LineRange] = None) -> str:
        if rng is None:
            return self._text
        start = self.offset_at(rng.start_line, rng.start_col)
        end = self.offset_at(rng.end_line, rng.end_col)
        return self._text[start:end]

    def replace(self, rng: LineRange, text: str) -> bool:
        """Replace a range with text. Returns False if the write is rejected."""
        start = self.offset_at(rng.start_line, rng.start_col)
        end = self.offset_at(rng.end_line, rng.end_col)
        new_text = self._text[:start] + text + self._text[end:]
        if not self._commit(new_text):
            return False
        self._set_text(new_text)
        return True

    def _commit(self, new_text: str) -> bool:
        return True


class FileDocument(TextDocument):
    """A document backed by a file on disk.

    Content is matched with '\\n' line endings; CRLF files are written back
    with CRLF.
    """

    def __init__(self, text: str, path: str, use_crlf: bool = False, dry_run: bool = False):
        super().__init__(text, path)
        self.use_crlf = use_crlf
        self.dry_run = dry_run

    @classmethod
    def open(cls, path: str, dry_run: bool = False) -> "FileDocument":
        try:
            with open(path, 'rb') as f:
                raw_bytes = f.read()
        except FileNotFoundError:
            raise DocumentNotFoundError(f"File not found: {path}")
        except OSError as e:
            raise DocumentError(str(e))

        content = raw_bytes.decode('utf-8', errors='replace')
        use_crlf = b'\r\n' in raw_bytes
        return cls(content.replace('\r\n', '\n'), path, use_crlf=use_crlf, dry_run=dry_run)

    def replace(self, rng: LineRange, text: str) -> bool:
        return super().replace(rng, text.replace('\r\n', '\n'))

    def _commit(self, new_text: str) -> bool:
        if self.dry_run:
            return True
        data = new_text.replace('\n', '\r\n') if self.use_crlf else new_text
        try:
            with open(self.path, 'wb') as f:
                f.write(data.encode('utf-8'))
        except OSError as e:
            logger.warning("Write to %s failed: %s", self.path, e)
            return False
        return True


class FileWorkspace:
    """Opens documents relative to a workspace root."""

    def __init__(self, root: str = ".", dry_run: bool = False):
        self.root = root
        self.dry_run = dry_run

    def resolve(self, file_path: str) -> str:
        return os.path.join(self.root, file_path)

    def open(self, file_path: str) -> FileDocument:
        return FileDocument.open(self.resolve(file_path), dry_run=self.dry_run)


class MemoryDocument(TextDocument):
    """A document whose edits are written back into a MemoryWorkspace."""

    def __init__(self, text: str, path: str, workspace: "MemoryWorkspace"):
        super().__init__(text, path)
        self.workspace = workspace

    def _commit(self, new_text: str) -> bool:
        if self.path in self.workspace.read_only:
            return False
        self.workspace.files[self.path] = new_text
        return True


class MemoryWorkspace:
    """Serves in-memory documents keyed by path.

    Paths listed in read_only open normally but reject every edit.
    """

    def __init__(self, files: Optional[Dict[str, str]] = None, read_only=()):
        self.files = dict(files or {})
        self.read_only = set(read_only)

    def open(self, file_path: str) -> MemoryDocument:
        if file_path not in self.files:
            raise DocumentNotFoundError(f"File not found: {file_path}")
        return MemoryDocument(self.files[file_path], file_path, self)


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


def normalize_text(text: str) -> str:
    """Turn '\\r\\n' into '\\n' and strip trailing whitespace per line."""
    text = text.replace('\r\n', '\n')
    return '\n'.join(line.rstrip() for line in text.split('\n'))


def build_range(document_text: str, offset: int, matched_text: str) -> LineRange:
    """Convert a character offset plus the matched text into a LineRange."""
    before = _LINE_BREAK.split(document_text[:offset])
    start_line = len(before) - 1
    start_col = len(before[-1])

    match_lines = _LINE_BREAK.split(matched_text)
    end_line = start_line + len(match_lines) - 1
    if len(match_lines) == 1:
        end_col = start_col + len(match_lines[0])
    else:
        end_col = len(match_lines[-1])
    return LineRange(start_line, start_col, end_line, end_col)


def _clamped_window(document: TextDocument, hint: LineHint, radius: int) -> Tuple[int, int]:
    min_line = max(0, hint.start_line - 1 - radius)
    max_line = min(document.line_count - 1, hint.end_line - 1 + radius)
    return min_line, max_line


def _full_line_range(document: TextDocument, start_line: int, end_line: int) -> LineRange:
    return LineRange(start_line, 0, end_line, len(document.line_at(end_line)))


def find_all_exact(document_text: str, snippet: str) -> List[MatchCandidate]:
    """Find every literal occurrence of snippet, overlapping ones included."""
    if not snippet:
        return []
    matches = []
    idx = document_text.find(snippet)
    while idx != -1:
        matches.append(MatchCandidate(
            range=build_range(document_text, idx, snippet),
            matched_text=snippet,
        ))
        idx = document_text.find(snippet, idx + 1)
    return matches


def find_windowed_exact(
    document: TextDocument, snippet: str, hint: LineHint, radius: int = 100
) -> Optional[MatchCandidate]:
    """Slide a snippet-sized window over the lines around the hint.

    Returns the first window whose normalized text equals the normalized
    snippet.
    """
    normalized_snippet = normalize_text(snippet)
    line_count = normalized_snippet.count('\n') + 1
    min_line, max_line = _clamped_window(document, hint, radius)

    for line in range(min_line, max_line - line_count + 2):
        rng = _full_line_range(document, line, line + line_count - 1)
        text = document.get_text(rng)
        if normalize_text(text) == normalized_snippet:
            return MatchCandidate(range=rng, matched_text=text)
    return None


def _within_tolerance(rng: LineRange, hint: LineHint, tolerance: int) -> bool:
    min_expected = max(0, hint.start_line - 1 - tolerance)
    max_expected = hint.end_line - 1 + tolerance
    return rng.start_line <= max_expected and rng.end_line >= min_expected


def select_candidate(
    candidates: List[MatchCandidate], hint: Optional[LineHint], tolerance: int = 50
) -> Optional[MatchCandidate]:
    """Pick the candidate closest to the hint among those inside the tolerance band.

    Without a hint the first candidate wins. With a hint, candidates outside
    the band are never chosen, even if nothing else survives.
    """
    if not candidates:
        return None
    if hint is None:
        return candidates[0]
    valid = [c for c in candidates if _within_tolerance(c.range, hint, tolerance)]
    if not valid:
        logger.debug(
            "%d candidate(s) found, none within %d lines of %d-%d",
            len(candidates), tolerance, hint.start_line, hint.end_line,
        )
        return None
    # min() keeps the first of equally distant candidates
    return min(valid, key=lambda c: abs(c.range.midpoint - hint.midpoint))


def find_normalized(
    document: TextDocument, snippet: str, hint: Optional[LineHint] = None, tolerance: int = 50
) -> Optional[MatchCandidate]:
    """Match ignoring trailing whitespace and line-ending style.

    Only applies when the snippet has no literal occurrence; literal hits are
    the exact matcher's to accept or reject.
    """
    document_text = document.get_text()
    if not snippet or snippet in document_text:
        return None

    normalized_snippet = normalize_text(snippet)
    if normalized_snippet not in normalize_text(document_text):
        return None

    line_count = normalized_snippet.count('\n') + 1
    matches = []
    for line in range(0, document.line_count - line_count + 1):
        window = [document.line_at(line + i).rstrip() for i in range(line_count)]
        if '\n'.join(window) == normalized_snippet:
            rng = _full_line_range(document, line, line + line_count - 1)
            matches.append(MatchCandidate(range=rng, matched_text=document.get_text(rng)))

    return select_candidate(matches, hint, tolerance)


def fuzzy_min_score(line_count: int) -> float:
    """Minimum acceptable fuzzy score; short snippets collide more easily."""
    for max_lines, min_score in FUZZY_MIN_SCORES:
        if line_count <= max_lines:
            return min_score
    return FUZZY_DEFAULT_MIN_SCORE


def line_similarity(expected_lines: List[str], candidate_lines: List[str]) -> float:
    if not expected_lines or len(expected_lines) != len(candidate_lines):
        return 0.0

    exact = sum(1 for e, c in zip(expected_lines, candidate_lines) if e == c)
    score = exact / len(expected_lines)
    if expected_lines[0] == candidate_lines[0]:
        score += FUZZY_EDGE_BONUS
    if expected_lines[-1] == candidate_lines[-1]:
        score += FUZZY_EDGE_BONUS
    return max(0.0, min(1.0, score))


def find_fuzzy_near_hint(
    document: TextDocument, snippet: str, hint: LineHint, radius: int = 200
) -> Optional[MatchCandidate]:
    """Find the best-scoring window of the snippet's line count near the hint.

    Windows always have exactly the snippet's line count, so a line inserted
    or deleted inside the region never matches.
    """
    expected_lines = normalize_text(snippet).split('\n')
    line_count = len(expected_lines)
    min_score = fuzzy_min_score(line_count)
    min_line, max_line = _clamped_window(document, hint, radius)

    best = None  # (score, distance, start_line)
    for line in range(min_line, max_line - line_count + 2):
        candidate_lines = [document.line_at(line + i).rstrip() for i in range(line_count)]
        score = line_similarity(expected_lines, candidate_lines)
        if score < min_score:
            continue
        distance = abs((line + line + line_count - 1) / 2 - hint.midpoint)
        if best is None or score > best[0] or (score == best[0] and distance < best[1]):
            best = (score, distance, line)

    if best is None:
        return None

    score, _, start_line = best
    rng = _full_line_range(document, start_line, start_line + line_count - 1)
    logger.debug("Fuzzy match at line %d (score %.3f, min %.2f)", start_line + 1, score, min_score)
    return MatchCandidate(range=rng, matched_text=document.get_text(rng), score=score)


def is_already_applied(
    document: TextDocument, replacement: str, hint: Optional[LineHint] = None, radius: int = 200
) -> bool:
    """Check whether the replacement text is already present near the hint."""
    if not replacement:
        return False

    document_text = document.get_text()
    if replacement in document_text:
        return True

    normalized_replacement = normalize_text(replacement)
    if not normalized_replacement:
        return False

    if hint is None:
        return normalized_replacement in normalize_text(document_text)

    min_line, max_line = _clamped_window(document, hint, radius)
    if min_line > max_line:
        return False
    window_text = document.get_text(_full_line_range(document, min_line, max_line))
    return normalized_replacement in normalize_text(window_text)


# ---------------------------------------------------------------------------
# Strategy ladder
# ---------------------------------------------------------------------------

StrategyFn = Callable[[TextDocument, str, LineHint], Optional[MatchCandidate]]


class Strategy(NamedTuple):
    name: str
    find: StrategyFn


def build_strategies(settings: Optional[MatchSettings] = None, fuzzy: bool = True) -> List[Strategy]:
    """Ordered matcher strategies, most confident first."""
    s = settings or MatchSettings()

    def global_exact(document, snippet, hint):
        candidates = find_all_exact(document.get_text(), snippet)
        return select_candidate(candidates, hint, s.tolerance_lines)

    strategies = [
        Strategy("windowed", lambda d, sn, h: find_windowed_exact(d, sn, h, s.window_radius)),
        Strategy("exact", global_exact),
        Strategy("normalized", lambda d, sn, h: find_normalized(d, sn, h, s.tolerance_lines)),
    ]
    if fuzzy:
        strategies.append(
            Strategy("fuzzy", lambda d, sn, h: find_fuzzy_near_hint(d, sn, h, s.fuzzy_radius))
        )
    return strategies


def run_strategies(
    strategies: List[Strategy], document: TextDocument, snippet: str, hint: LineHint
) -> Optional[Tuple[str, MatchCandidate]]:
    for strategy in strategies:
        candidate = strategy.find(document, snippet, hint)
        if candidate is not None:
            logger.debug(
                "Strategy %s matched lines %d-%d",
                strategy.name, candidate.range.start_line + 1, candidate.range.end_line + 1,
            )
            return strategy.name, candidate
        logger.debug("Strategy %s found nothing", strategy.name)
    return None


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


def _hint_for(fix: Fix) -> LineHint:
    return LineHint(fix.start_line, fix.end_line)


def _line_range_for(fix: Fix, document: TextDocument) -> Tuple[Optional[LineRange], Optional[str]]:
    start = max(1, fix.start_line)
    end = max(start, fix.end_line)
    if end > document.line_count:
        return None, (
            f"Line range {start}-{end} exceeds file length ({document.line_count} lines)."
        )
    return _full_line_range(document, start - 1, end - 1), None


def _open(fix: Fix, workspace) -> Tuple[Optional[TextDocument], Optional[ApplyResult]]:
    try:
        return workspace.open(fix.file_path), None
    except DocumentError as e:
        logger.warning("Unable to open %s: %s", fix.file_path, e)
        return None, ApplyResult(
            applied=False,
            reason=f"Unable to open file: {fix.file_path}",
            kind=ErrorKind.FILE_UNAVAILABLE,
        )


def _replace(document: TextDocument, fix: Fix, rng: LineRange, strategy: str) -> ApplyResult:
    if not document.replace(rng, fix.replacement):
        logger.warning("Edit for fix %s rejected", fix.id)
        return ApplyResult(
            applied=False,
            reason=EDIT_REJECTED_REASON,
            kind=ErrorKind.EDIT_REJECTED,
            strategy=strategy,
            range=rng,
        )
    logger.info(
        "Applied fix %s to %s lines %d-%d via %s",
        fix.id, fix.file_path, rng.start_line + 1, rng.end_line + 1, strategy,
    )
    return ApplyResult(applied=True, strategy=strategy, range=rng)


def apply_fix(fix: Fix, workspace, settings: Optional[MatchSettings] = None) -> ApplyResult:
    """Locate the fix's target region and replace it.

    Never raises for document problems: every failure comes back as
    ApplyResult(applied=False) with a reason and ErrorKind. At most one
    range is replaced.
    """
    settings = settings or MatchSettings()
    document, failure = _open(fix, workspace)
    if failure is not None:
        return failure

    snippet = fix.expected_original_snippet
    if not snippet:
        rng, error = _line_range_for(fix, document)
        if rng is None:
            logger.warning("Fix %s: %s", fix.id, error)
            return ApplyResult(applied=False, reason=error, kind=ErrorKind.RANGE_OUT_OF_BOUNDS)
        return _replace(document, fix, rng, "line_range")

    hint = _hint_for(fix)
    hit = run_strategies(build_strategies(settings), document, snippet, hint)
    if hit is not None:
        strategy, candidate = hit
        return _replace(document, fix, candidate.range, strategy)

    if is_already_applied(document, fix.replacement, hint, settings.applied_radius):
        logger.info("Fix %s already applied to %s", fix.id, fix.file_path)
        return ApplyResult(applied=True, reason=ALREADY_APPLIED_REASON, already_applied=True)

    logger.warning("Fix %s: original snippet not found in %s", fix.id, fix.file_path)
    return ApplyResult(
        applied=False, reason=SNIPPET_NOT_FOUND_REASON, kind=ErrorKind.SNIPPET_NOT_FOUND
    )


def can_apply_fix(fix: Fix, workspace, settings: Optional[MatchSettings] = None) -> bool:
    """Read-only preflight: is the original snippet still findable without fuzzing?"""
    if not fix.expected_original_snippet:
        return True
    try:
        document = workspace.open(fix.file_path)
    except DocumentError:
        return False
    strategies = build_strategies(settings, fuzzy=False)
    return run_strategies(strategies, document, fix.expected_original_snippet, _hint_for(fix)) is not None


def locate_fix(fix: Fix, workspace, settings: Optional[MatchSettings] = None) -> dict:
    """Dry run of apply_fix: report where the fix would land, without editing."""
    settings = settings or MatchSettings()
    document, failure = _open(fix, workspace)
    if failure is not None:
        return {"status": "error", "error": failure.reason, "kind": failure.kind.value}

    snippet = fix.expected_original_snippet
    if not snippet:
        rng, error = _line_range_for(fix, document)
        if rng is None:
            return {"status": "error", "error": error, "kind": ErrorKind.RANGE_OUT_OF_BOUNDS.value}
        candidate = MatchCandidate(range=rng, matched_text=document.get_text(rng))
        return _located("line_range", candidate)

    hint = _hint_for(fix)
    hit = run_strategies(build_strategies(settings), document, snippet, hint)
    if hit is not None:
        return _located(*hit)
    if is_already_applied(document, fix.replacement, hint, settings.applied_radius):
        return {"status": "already_applied"}
    return {"status": "not_found", "kind": ErrorKind.SNIPPET_NOT_FOUND.value}


def _located(strategy: str, candidate: MatchCandidate) -> dict:
    d = {
        "status": "found",
        "strategy": strategy,
        "start_line": candidate.range.start_line + 1,
        "end_line": candidate.range.end_line + 1,
        "matched_text": candidate.matched_text,
    }
    if candidate.score is not None:
        d["score"] = round(candidate.score, 4)
    return d


def result_to_dict(result: ApplyResult, fix: Optional[Fix] = None) -> dict:
    """Convert ApplyResult to a JSON-serializable dict."""
    d = {"applied": result.applied}
    if fix is not None:
        d["id"] = fix.id
        d["file"] = fix.file_path
    if result.reason is not None:
        d["reason"] = result.reason
    if result.kind is not None:
        d["kind"] = result.kind.value
    if result.strategy is not None:
        d["strategy"] = result.strategy
    if result.range is not None:
        d["start_line"] = result.range.start_line + 1
        d["end_line"] = result.range.end_line + 1
    if result.already_applied:
        d["already_applied"] = True
    return d


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def parse_fix_input(args) -> List[Fix]:
    """Read fixes from --fix, --review (optionally filtered by --id) or stdin."""
    if args.stdin:
        data = json.load(sys.stdin)
    elif args.review:
        review = load_review(args.review)
        return _select_fixes(review.fixes, args.id)
    elif args.fix:
        with open(args.fix, 'r', encoding='utf-8') as f:
            data = json.load(f)
    else:
        raise ValueError("Must provide --fix <file>, --review <file>, or --stdin")

    if isinstance(data, dict) and "fixes" in data:
        return _select_fixes(parse_review(data).fixes, args.id)
    if isinstance(data, list):
        return [parse_fix(item) for item in data]
    return [parse_fix(data)]


def _select_fixes(fixes: List[Fix], ids: Optional[List[str]]) -> List[Fix]:
    if not ids:
        return list(fixes)
    by_id = {fix.id: fix for fix in fixes}
    missing = [i for i in ids if i not in by_id]
    if missing:
        raise ValueError(f"Fix not found: {', '.join(missing)}")
    return [by_id[i] for i in ids]


def _add_input_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--fix", help="JSON file with a fix object (or list of fixes)")
    p.add_argument("--review", help="JSON file with a full review output")
    p.add_argument("--id", action="append", help="Only use the fix with this id (repeatable)")
    p.add_argument("--stdin", action="store_true", help="Read JSON from stdin")
    p.add_argument("--root", default=".", help="Workspace root for fix paths (default: .)")
    p.add_argument("--window-radius", type=int, default=100,
                   help="Lines searched around the hint first (default: 100)")
    p.add_argument("--tolerance", type=int, default=50,
                   help="Max distance in lines for global matches (default: 50)")
    p.add_argument("--fuzzy-radius", type=int, default=200,
                   help="Lines searched around the hint for fuzzy matches (default: 200)")
    p.add_argument("-v", "--verbose", action="store_true", help="Log matching details to stderr")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="rf",
        description="ReviewFix — apply model-proposed review fixes to drifting files",
    )
    sub = parser.add_subparsers(dest="command")

    apply_parser = sub.add_parser("apply", help="Apply fix(es)")
    _add_input_args(apply_parser)
    apply_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Locate and report without writing files",
    )

    check_parser = sub.add_parser("check", help="Check whether fix(es) can still be applied")
    _add_input_args(check_parser)

    locate_parser = sub.add_parser("locate", help="Show where fix(es) would be applied")
    _add_input_args(locate_parser)

    sub.add_parser("schema", help="Print the review output JSON schema")

    args = parser.parse_args(argv)

    if args.command == "schema":
        print(dump_json_schema())
        return 0

    if args.command not in ("apply", "check", "locate"):
        parser.print_help()
        return 1

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(levelname)s %(name)s: %(message)s",
        )

    try:
        fixes = parse_fix_input(args)
    except (ValueError, OSError, ValidationError) as e:
        print(json.dumps({"status": "error", "error": str(e)}))
        return 1

    settings = MatchSettings(
        window_radius=args.window_radius,
        tolerance_lines=args.tolerance,
        fuzzy_radius=args.fuzzy_radius,
    )
    workspace = FileWorkspace(args.root, dry_run=getattr(args, "dry_run", False))

    results = []
    exit_code = 0

    # Fixes in the same file depend on each other's edits: strictly sequential.
    for fix in fixes:
        if args.command == "check":
            ok = can_apply_fix(fix, workspace, settings)
            results.append({"id": fix.id, "file": fix.file_path, "can_apply": ok})
        elif args.command == "locate":
            located = locate_fix(fix, workspace, settings)
            ok = located["status"] in ("found", "already_applied")
            results.append(dict(id=fix.id, file=fix.file_path, **located))
        else:
            result = apply_fix(fix, workspace, settings)
            ok = result.applied
            results.append(result_to_dict(result, fix))
        if not ok:
            exit_code = 1

    if len(results) == 1:
        print(json.dumps(results[0], indent=2))
    else:
        print(json.dumps(results, indent=2))

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
