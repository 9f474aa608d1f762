"""Tests for rf_mcp.py — MCP server for ReviewFix."""

import json
import os
import subprocess
import sys

import pytest


def mcp_call(*messages):
    """Send JSON-RPC messages to MCP server, return parsed responses."""
    input_str = "\n".join(json.dumps(m) for m in messages) + "\n"
    proc = subprocess.run(
        [sys.executable, "rf_mcp.py"],
        input=input_str, capture_output=True, text=True,
        cwd=os.path.dirname(os.path.abspath(__file__)),
    )
    lines = [l for l in proc.stdout.strip().split("\n") if l.strip()]
    return [json.loads(l) for l in lines]


def init_msg(id=1):
    return {"jsonrpc": "2.0", "id": id, "method": "initialize", "params": {}}


def tool_call(id, name, arguments):
    return {"jsonrpc": "2.0", "id": id, "method": "tools/call",
            "params": {"name": name, "arguments": arguments}}


def tool_payload(resp):
    return json.loads(resp["result"]["content"][0]["text"])


def make_fix(fix_id, snippet, replacement, start, file_path="test.py"):
    return {
        "id": fix_id,
        "title": f"Fix {fix_id}",
        "filePath": file_path,
        "startLine": start,
        "endLine": start,
        "replacement": replacement,
        "expectedOriginalSnippet": snippet,
    }


@pytest.fixture
def target(tmp_path):
    f = tmp_path / "test.py"
    f.write_text("def greet():\n    print('hello')\n")
    return f


class TestInitialize:
    def test_returns_server_info(self):
        [resp] = mcp_call(init_msg())
        assert resp["result"]["serverInfo"]["name"] == "reviewfix"
        assert resp["result"]["protocolVersion"] == "2024-11-05"

    def test_has_tools_capability(self):
        [resp] = mcp_call(init_msg())
        assert "tools" in resp["result"]["capabilities"]

    def test_initialized_notification_has_no_response(self):
        resps = mcp_call(init_msg(), {"jsonrpc": "2.0", "method": "notifications/initialized"})
        assert len(resps) == 1


class TestToolsList:
    def test_lists_tools(self):
        resps = mcp_call(init_msg(), {"jsonrpc": "2.0", "id": 2, "method": "tools/list", "params": {}})
        tools = resps[1]["result"]["tools"]
        names = {t["name"] for t in tools}
        assert names == {"reviewfix_apply", "reviewfix_apply_review", "reviewfix_can_apply", "reviewfix_locate"}

    def test_fix_schema_uses_wire_names(self):
        resps = mcp_call(init_msg(), {"jsonrpc": "2.0", "id": 2, "method": "tools/list", "params": {}})
        apply_tool = next(t for t in resps[1]["result"]["tools"] if t["name"] == "reviewfix_apply")
        fix_props = apply_tool["inputSchema"]["properties"]["fix"]["properties"]
        assert "expectedOriginalSnippet" in fix_props


class TestApply:
    def test_applies_fix(self, target):
        resps = mcp_call(init_msg(), tool_call(2, "reviewfix_apply", {
            "fix": make_fix("f1", "    print('hello')", "    print('hello world')", 2),
            "root": str(target.parent),
        }))
        result = tool_payload(resps[1])
        assert result["success"] is True
        assert result["strategy"] == "windowed"
        assert resps[1]["result"]["isError"] is False
        assert target.read_text() == "def greet():\n    print('hello world')\n"

    def test_dry_run(self, target):
        before = target.read_text()
        resps = mcp_call(init_msg(), tool_call(2, "reviewfix_apply", {
            "fix": make_fix("f1", "    print('hello')", "    pass", 2),
            "root": str(target.parent),
            "dry_run": True,
        }))
        assert tool_payload(resps[1])["success"] is True
        assert target.read_text() == before

    def test_already_applied(self, target):
        resps = mcp_call(init_msg(), tool_call(2, "reviewfix_apply", {
            "fix": make_fix("f1", "    print('hi')", "    print('hello')", 2),
            "root": str(target.parent),
        }))
        result = tool_payload(resps[1])
        assert result["success"] is True
        assert result["already_applied"] is True

    def test_file_not_found(self, tmp_path):
        resps = mcp_call(init_msg(), tool_call(2, "reviewfix_apply", {
            "fix": make_fix("f1", "x", "y", 1, file_path="missing.py"),
            "root": str(tmp_path),
        }))
        result = tool_payload(resps[1])
        assert result["error_kind"] == "file_unavailable"
        assert resps[1]["result"]["isError"] is True

    def test_snippet_not_found(self, target):
        resps = mcp_call(init_msg(), tool_call(2, "reviewfix_apply", {
            "fix": make_fix("f1", "    return 42", "    return 43", 2),
            "root": str(target.parent),
        }))
        result = tool_payload(resps[1])
        assert result["error_kind"] == "snippet_not_found"
        assert resps[1]["result"]["isError"] is True

    def test_stale_lines_keep_server_alive(self, target):
        resps = mcp_call(
            init_msg(),
            tool_call(2, "reviewfix_apply", {
                "fix": make_fix("f1", "    return 42", "    return 43", 300),
                "root": str(target.parent),
            }),
            {"jsonrpc": "2.0", "id": 3, "method": "tools/list", "params": {}},
        )
        assert len(resps) == 3
        assert tool_payload(resps[1])["error_kind"] == "snippet_not_found"
        assert "tools" in resps[2]["result"]

    def test_invalid_fix(self, target):
        resps = mcp_call(init_msg(), tool_call(2, "reviewfix_apply", {
            "fix": {"id": "f1"},
            "root": str(target.parent),
        }))
        result = tool_payload(resps[1])
        assert result["error_kind"] == "invalid_fix"
        assert resps[1]["result"]["isError"] is True


class TestApplyReview:
    def review(self, *fixes):
        return {"reviewMarkdown": "", "findings": [], "fixes": list(fixes)}

    def test_applies_in_order(self, target):
        resps = mcp_call(init_msg(), tool_call(2, "reviewfix_apply_review", {
            "review": self.review(
                make_fix("f1", "def greet():", "def greet(name):", 1),
                make_fix("f2", "    print('hello')", "    print('hello', name)", 2),
            ),
            "root": str(target.parent),
        }))
        results = tool_payload(resps[1])
        assert [r["success"] for r in results] == [True, True]
        assert target.read_text() == "def greet(name):\n    print('hello', name)\n"

    def test_selected_ids(self, target):
        resps = mcp_call(init_msg(), tool_call(2, "reviewfix_apply_review", {
            "review": self.review(
                make_fix("f1", "def greet():", "def greet(name):", 1),
                make_fix("f2", "    print('hello')", "    print('hello', name)", 2),
            ),
            "fix_ids": ["f2"],
            "root": str(target.parent),
        }))
        results = tool_payload(resps[1])
        assert [r["fix_id"] for r in results] == ["f2"]
        assert target.read_text().startswith("def greet():\n")

    def test_partial_failure_flags_error(self, target):
        resps = mcp_call(init_msg(), tool_call(2, "reviewfix_apply_review", {
            "review": self.review(
                make_fix("f1", "    return 42", "    return 43", 2),
                make_fix("f2", "def greet():", "def greet(name):", 1),
            ),
            "root": str(target.parent),
        }))
        results = tool_payload(resps[1])
        assert [r["success"] for r in results] == [False, True]
        assert resps[1]["result"]["isError"] is True

    def test_invalid_review(self, target):
        resps = mcp_call(init_msg(), tool_call(2, "reviewfix_apply_review", {
            "review": {"fixes": []},
            "root": str(target.parent),
        }))
        assert tool_payload(resps[1])["status"] == "error"
        assert resps[1]["result"]["isError"] is True


class TestCanApplyAndLocate:
    def test_can_apply(self, target):
        resps = mcp_call(init_msg(), tool_call(2, "reviewfix_can_apply", {
            "fix": make_fix("f1", "def greet():", "def greet(name):", 1),
            "root": str(target.parent),
        }))
        assert tool_payload(resps[1]) == {"can_apply": True}

    def test_cannot_apply(self, target):
        resps = mcp_call(init_msg(), tool_call(2, "reviewfix_can_apply", {
            "fix": make_fix("f1", "def wave():", "def wave(name):", 1),
            "root": str(target.parent),
        }))
        assert tool_payload(resps[1]) == {"can_apply": False}

    def test_locate(self, target):
        before = target.read_text()
        resps = mcp_call(init_msg(), tool_call(2, "reviewfix_locate", {
            "fix": make_fix("f1", "    print('hello')", "    pass", 40),
            "root": str(target.parent),
        }))
        result = tool_payload(resps[1])
        assert result["status"] == "found"
        assert result["start_line"] == 2
        assert target.read_text() == before

    def test_locate_not_found(self, target):
        resps = mcp_call(init_msg(), tool_call(2, "reviewfix_locate", {
            "fix": make_fix("f1", "    return 42", "    return 43", 2),
            "root": str(target.parent),
        }))
        assert tool_payload(resps[1])["status"] == "not_found"
        assert resps[1]["result"]["isError"] is True


class TestErrors:
    def test_unknown_tool(self):
        resps = mcp_call(init_msg(), tool_call(2, "nonexistent_tool", {}))
        assert "error" in resps[1]
        assert resps[1]["error"]["code"] == -32601

    def test_unknown_method(self):
        resps = mcp_call(init_msg(), {"jsonrpc": "2.0", "id": 2, "method": "fake/method", "params": {}})
        assert "error" in resps[1]

    def test_parse_error(self):
        proc = subprocess.run(
            [sys.executable, "rf_mcp.py"],
            input="not json\n", capture_output=True, text=True,
            cwd=os.path.dirname(os.path.abspath(__file__)),
        )
        resp = json.loads(proc.stdout.strip())
        assert resp["error"]["code"] == -32700
