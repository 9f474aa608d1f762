"""ReviewFix schema — validated models for model-produced review output.

A review is a JSON object with narrative markdown, a list of findings, and a
list of fixes. Keys are camelCase on the wire; nullable keys must be present
and explicitly null, never omitted.
"""

from __future__ import annotations

import json
import os
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Fix(BaseModel):
    """A proposed, file-scoped text replacement."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    file_path: str = Field(
        alias="filePath", min_length=1, description="Workspace-relative file path."
    )
    start_line: int = Field(alias="startLine", gt=0)
    end_line: int = Field(alias="endLine", gt=0)
    replacement: str
    # Required but nullable: the model must send null when it has no snippet.
    expected_original_snippet: Optional[str] = Field(alias="expectedOriginalSnippet")


class Finding(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    severity: Literal["critical", "high", "medium", "low"]
    title: str = Field(min_length=1)
    file_path: Optional[str] = Field(alias="filePath")
    start_line: Optional[int] = Field(alias="startLine", gt=0)
    end_line: Optional[int] = Field(alias="endLine", gt=0)
    rationale: Optional[str]


class ReviewOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    review_markdown: str = Field(alias="reviewMarkdown")
    findings: List[Finding]
    fixes: List[Fix]

    def fix_by_id(self, fix_id: str) -> Optional[Fix]:
        for fix in self.fixes:
            if fix.id == fix_id:
                return fix
        return None


def parse_fix(data: Union[dict, Fix]) -> Fix:
    """Validate a single fix object. Raises pydantic.ValidationError."""
    if isinstance(data, Fix):
        return data
    return Fix.model_validate(data)


def parse_review(data: Union[dict, str, ReviewOutput]) -> ReviewOutput:
    """Validate a review from a dict or a JSON string."""
    if isinstance(data, ReviewOutput):
        return data
    if isinstance(data, str):
        return ReviewOutput.model_validate_json(data)
    return ReviewOutput.model_validate(data)


def load_review(path: Union[str, os.PathLike]) -> ReviewOutput:
    with open(path, 'r', encoding='utf-8') as f:
        return parse_review(f.read())


def fix_to_dict(fix: Fix) -> dict:
    return fix.model_dump(by_alias=True)


def review_output_json_schema() -> dict:
    """JSON schema for structured model output, using the wire aliases."""
    return ReviewOutput.model_json_schema(by_alias=True)


def dump_json_schema() -> str:
    return json.dumps(review_output_json_schema(), indent=2)
