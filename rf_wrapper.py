"""
ReviewFix Python Wrapper — importable API for applying review fixes.

    from rf_wrapper import ReviewFixer

    fixer = ReviewFixer(root="path/to/workspace")
    review = fixer.load("review.json")
    for response in fixer.apply_review(review):
        print(response.fix_id, response.success, response.strategy)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from rf import (
    ApplyResult,
    FileWorkspace,
    MatchSettings,
    apply_fix,
    can_apply_fix,
    locate_fix,
)
from rf_schema import Fix, ReviewOutput, load_review, parse_fix, parse_review, review_output_json_schema

logger = logging.getLogger(__name__)


@dataclass
class FixResponse:
    """Result of applying one fix."""
    success: bool
    fix_id: str
    file: Optional[str] = None
    strategy: Optional[str] = None  # windowed, exact, normalized, fuzzy, line_range
    already_applied: bool = False
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @classmethod
    def from_result(cls, fix: Fix, result: ApplyResult) -> "FixResponse":
        return cls(
            success=result.applied,
            fix_id=fix.id,
            file=fix.file_path,
            strategy=result.strategy,
            already_applied=result.already_applied,
            error=None if result.applied else result.reason,
            error_kind=result.kind.value if result.kind else None,
        )

    def to_dict(self) -> dict:
        d = {"success": self.success, "fix_id": self.fix_id}
        if self.file:
            d["file"] = self.file
        if self.strategy:
            d["strategy"] = self.strategy
        if self.already_applied:
            d["already_applied"] = True
        if self.error:
            d["error"] = self.error
        if self.error_kind:
            d["error_kind"] = self.error_kind
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


FixInput = Union[Fix, dict]
ReviewInput = Union[ReviewOutput, dict, str]


class ReviewFixer:
    """
    Applies review fixes to files under a workspace root.

    Usage:
        fixer = ReviewFixer(root=".", tolerance_lines=50)
        response = fixer.apply(fix)
        ok = fixer.can_apply(fix)
        where = fixer.locate(fix)
        responses = fixer.apply_review(review, fix_ids=["fix-1", "fix-3"])
    """

    def __init__(
        self,
        root: str = ".",
        dry_run: bool = False,
        window_radius: int = 100,
        tolerance_lines: int = 50,
        fuzzy_radius: int = 200,
        applied_radius: int = 200,
        workspace=None,
    ):
        self.settings = MatchSettings(
            window_radius=window_radius,
            tolerance_lines=tolerance_lines,
            fuzzy_radius=fuzzy_radius,
            applied_radius=applied_radius,
        )
        self.workspace = workspace if workspace is not None else FileWorkspace(root, dry_run=dry_run)

    @staticmethod
    def load(path: str) -> ReviewOutput:
        return load_review(path)

    def apply(self, fix: FixInput) -> FixResponse:
        """
        Apply one fix.

        Args:
            fix: A Fix or a camelCase fix dict as produced by the model.

        Returns:
            FixResponse; invalid fix dicts come back as success=False.
        """
        try:
            fix = parse_fix(fix)
        except ValidationError as e:
            logger.warning("Rejected invalid fix %r: %d validation error(s)", _raw_id(fix), e.error_count())
            return FixResponse(success=False, fix_id=_raw_id(fix), error=str(e), error_kind="invalid_fix")
        return FixResponse.from_result(fix, apply_fix(fix, self.workspace, self.settings))

    def can_apply(self, fix: FixInput) -> bool:
        """Preflight: True if the fix's original snippet can still be located."""
        try:
            fix = parse_fix(fix)
        except ValidationError:
            return False
        return can_apply_fix(fix, self.workspace, self.settings)

    def locate(self, fix: FixInput) -> dict:
        """Report where a fix would land without modifying anything."""
        try:
            fix = parse_fix(fix)
        except ValidationError as e:
            return {"status": "error", "error": str(e), "kind": "invalid_fix"}
        return locate_fix(fix, self.workspace, self.settings)

    def apply_by_id(self, review: ReviewInput, fix_id: str) -> FixResponse:
        review = parse_review(review)
        fix = review.fix_by_id(fix_id)
        if fix is None:
            return FixResponse(success=False, fix_id=fix_id, error=f"Fix not found: {fix_id}",
                               error_kind="unknown_fix")
        return self.apply(fix)

    def apply_review(
        self, review: ReviewInput, fix_ids: Optional[Iterable[str]] = None
    ) -> List[FixResponse]:
        """
        Apply fixes from a review one after another.

        Each fix is independent: a failure does not stop the remaining fixes.
        Fixes run in declaration order (or in fix_ids order), never
        concurrently, since later fixes in a file must see earlier edits.
        """
        review = parse_review(review)
        if fix_ids is None:
            return [self.apply(fix) for fix in review.fixes]
        return [self.apply_by_id(review, fix_id) for fix_id in fix_ids]

    def preflight(self, review: ReviewInput) -> Dict[str, bool]:
        """Map each fix id to whether it can still be applied."""
        review = parse_review(review)
        return {fix.id: self.can_apply(fix) for fix in review.fixes}

    @staticmethod
    def review_output_schema() -> dict:
        """JSON schema to request structured review output from a model."""
        return review_output_json_schema()


def _raw_id(fix: FixInput) -> str:
    if isinstance(fix, dict):
        return str(fix.get("id") or "")
    return ""
