"""Tests for rf_schema.py — review output validation."""

import json

import pytest
from pydantic import ValidationError

from rf_schema import Fix, ReviewOutput, fix_to_dict, load_review, parse_fix, parse_review


def fix_data(**overrides):
    data = {
        "id": "fix-1",
        "title": "Use json instead of eval",
        "filePath": "src/app.py",
        "startLine": 3,
        "endLine": 4,
        "replacement": "return json.loads(x)",
        "expectedOriginalSnippet": "return eval(x)",
    }
    data.update(overrides)
    return data


class TestFix:
    def test_camel_case_wire_format(self):
        fix = parse_fix(fix_data())
        assert fix.file_path == "src/app.py"
        assert fix.start_line == 3
        assert fix.end_line == 4
        assert fix.expected_original_snippet == "return eval(x)"

    def test_snake_case_names_accepted(self):
        fix = Fix(
            id="a", title="t", file_path="x.py", start_line=1, end_line=1,
            replacement="", expected_original_snippet=None,
        )
        assert fix.expected_original_snippet is None

    def test_null_snippet(self):
        assert parse_fix(fix_data(expectedOriginalSnippet=None)).expected_original_snippet is None

    def test_snippet_must_not_be_omitted(self):
        data = fix_data()
        del data["expectedOriginalSnippet"]
        with pytest.raises(ValidationError):
            parse_fix(data)

    @pytest.mark.parametrize("field,value", [
        ("id", ""),
        ("title", ""),
        ("filePath", ""),
        ("startLine", 0),
        ("endLine", -1),
        ("startLine", "three"),
    ])
    def test_invalid_fields(self, field, value):
        with pytest.raises(ValidationError):
            parse_fix(fix_data(**{field: value}))

    def test_empty_replacement_allowed(self):
        assert parse_fix(fix_data(replacement="")).replacement == ""

    def test_frozen(self):
        fix = parse_fix(fix_data())
        with pytest.raises(ValidationError):
            fix.replacement = "changed"

    def test_parse_passes_through_models(self):
        fix = parse_fix(fix_data())
        assert parse_fix(fix) is fix

    def test_to_dict_uses_aliases(self):
        assert fix_to_dict(parse_fix(fix_data())) == fix_data()


class TestReviewOutput:
    def review_data(self):
        return {
            "reviewMarkdown": "# Review",
            "findings": [{
                "severity": "high",
                "title": "Unsafe eval",
                "filePath": None,
                "startLine": None,
                "endLine": None,
                "rationale": None,
            }],
            "fixes": [fix_data(), fix_data(id="fix-2")],
        }

    def test_parse_dict(self):
        review = parse_review(self.review_data())
        assert review.review_markdown == "# Review"
        assert review.findings[0].severity == "high"
        assert [f.id for f in review.fixes] == ["fix-1", "fix-2"]

    def test_parse_json_string(self):
        review = parse_review(json.dumps(self.review_data()))
        assert isinstance(review, ReviewOutput)

    def test_fix_by_id(self):
        review = parse_review(self.review_data())
        assert review.fix_by_id("fix-2").id == "fix-2"
        assert review.fix_by_id("missing") is None

    def test_unknown_severity(self):
        data = self.review_data()
        data["findings"][0]["severity"] = "blocker"
        with pytest.raises(ValidationError):
            parse_review(data)

    def test_finding_nullable_keys_required(self):
        data = self.review_data()
        del data["findings"][0]["rationale"]
        with pytest.raises(ValidationError):
            parse_review(data)

    def test_load_review(self, tmp_path):
        path = tmp_path / "review.json"
        path.write_text(json.dumps(self.review_data()))
        assert len(load_review(str(path)).fixes) == 2

    def test_invalid_json(self):
        with pytest.raises(ValidationError):
            parse_review("{not json")
