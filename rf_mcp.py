#!/usr/bin/env python3
"""ReviewFix MCP Server — Model Context Protocol server for applying review fixes.

Exposes ReviewFix as MCP tools over stdio using JSON-RPC 2.0. Fix and
review arguments use the same camelCase JSON the review model produces.

Tools provided:
  - reviewfix_apply: Apply a single fix
  - reviewfix_apply_review: Apply all (or selected) fixes of a review, in order
  - reviewfix_can_apply: Check whether a fix's original snippet is still findable
  - reviewfix_locate: Show where a fix would land without modifying the file

Usage:
  python rf_mcp.py          # stdio mode
"""

import json
import logging
import sys
from typing import Any

from pydantic import ValidationError

from rf_schema import review_output_json_schema
from rf_wrapper import ReviewFixer

logger = logging.getLogger(__name__)

# MCP Protocol version
PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "reviewfix"
SERVER_VERSION = "0.1.0"

_FIX_SCHEMA = review_output_json_schema()["$defs"]["Fix"]

_ROOT_PROPERTY = {
    "type": "string",
    "description": "Workspace root that fix file paths are relative to (default: server cwd)",
    "default": ".",
}

TOOLS = [
    {
        "name": "reviewfix_apply",
        "description": (
            "Apply one review fix. Locates the original snippet near the "
            "declared lines (windowed → exact → normalized → fuzzy), detects "
            "fixes that were already applied, and replaces exactly one region."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "fix": _FIX_SCHEMA,
                "root": _ROOT_PROPERTY,
                "dry_run": {
                    "type": "boolean",
                    "description": "If true, locate the fix without writing the file",
                    "default": False,
                },
            },
            "required": ["fix"],
        },
    },
    {
        "name": "reviewfix_apply_review",
        "description": (
            "Apply the fixes of a review output one after another. Each fix "
            "is independent; failures are reported per fix."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "review": {
                    "type": "object",
                    "description": "Review output with reviewMarkdown, findings and fixes",
                },
                "fix_ids": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Only apply these fixes, in this order",
                },
                "root": _ROOT_PROPERTY,
                "dry_run": {
                    "type": "boolean",
                    "default": False,
                },
            },
            "required": ["review"],
        },
    },
    {
        "name": "reviewfix_can_apply",
        "description": (
            "Check whether a fix can still be applied: its original snippet "
            "is still present near the declared lines. Never modifies files."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "fix": _FIX_SCHEMA,
                "root": _ROOT_PROPERTY,
            },
            "required": ["fix"],
        },
    },
    {
        "name": "reviewfix_locate",
        "description": (
            "Find where a fix would be applied without modifying the file. "
            "Returns the strategy, line range, matched text and fuzzy score."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "fix": _FIX_SCHEMA,
                "root": _ROOT_PROPERTY,
            },
            "required": ["fix"],
        },
    },
]


def make_response(id: Any, result: Any) -> dict:
    return {"jsonrpc": "2.0", "id": id, "result": result}


def make_error(id: Any, code: int, message: str, data: Any = None) -> dict:
    err = {"code": code, "message": message}
    if data is not None:
        err["data"] = data
    return {"jsonrpc": "2.0", "id": id, "error": err}


def tool_result(id: Any, payload: Any, is_error: bool = False) -> dict:
    return make_response(id, {
        "content": [{"type": "text", "text": json.dumps(payload, indent=2)}],
        "isError": is_error,
    })


def handle_initialize(id: Any, params: dict) -> dict:
    return make_response(id, {
        "protocolVersion": PROTOCOL_VERSION,
        "capabilities": {
            "tools": {},
        },
        "serverInfo": {
            "name": SERVER_NAME,
            "version": SERVER_VERSION,
        },
    })


def handle_tools_list(id: Any, params: dict) -> dict:
    return make_response(id, {"tools": TOOLS})


def handle_tool_call(id: Any, params: dict) -> dict:
    name = params.get("name", "")
    args = params.get("arguments", {})
    fixer = ReviewFixer(root=args.get("root", "."), dry_run=args.get("dry_run", False))

    if name == "reviewfix_apply":
        response = fixer.apply(args.get("fix", {}))
        return tool_result(id, response.to_dict(), is_error=not response.success)

    elif name == "reviewfix_apply_review":
        try:
            responses = fixer.apply_review(args.get("review", {}), args.get("fix_ids"))
        except ValidationError as e:
            return tool_result(id, {"status": "error", "error": str(e)}, is_error=True)
        return tool_result(
            id,
            [r.to_dict() for r in responses],
            is_error=any(not r.success for r in responses),
        )

    elif name == "reviewfix_can_apply":
        ok = fixer.can_apply(args.get("fix", {}))
        return tool_result(id, {"can_apply": ok}, is_error=False)

    elif name == "reviewfix_locate":
        located = fixer.locate(args.get("fix", {}))
        return tool_result(
            id, located, is_error=located["status"] not in ("found", "already_applied")
        )

    else:
        return make_error(id, -32601, f"Unknown tool: {name}")


HANDLERS = {
    "initialize": handle_initialize,
    "notifications/initialized": None,  # notification, no response
    "tools/list": handle_tools_list,
    "tools/call": handle_tool_call,
}


def run_stdio():
    """Main stdio loop — read JSON-RPC messages, dispatch, respond."""
    for line in sys.stdin:
        line = line.strip()
        if not line:
            continue
        try:
            msg = json.loads(line)
        except json.JSONDecodeError:
            resp = make_error(None, -32700, "Parse error")
            sys.stdout.write(json.dumps(resp) + "\n")
            sys.stdout.flush()
            continue

        method = msg.get("method", "")
        id = msg.get("id")
        params = msg.get("params", {})

        handler = HANDLERS.get(method)
        if handler is None:
            if id is not None and method not in HANDLERS:
                resp = make_error(id, -32601, f"Method not found: {method}")
                sys.stdout.write(json.dumps(resp) + "\n")
                sys.stdout.flush()
            # notifications (no id) or known notification methods → no response
            continue

        logger.debug("Handling %s (id=%s)", method, id)
        resp = handler(id, params)
        sys.stdout.write(json.dumps(resp) + "\n")
        sys.stdout.flush()


def main():
    # stdout carries the protocol; logs go to stderr
    logging.basicConfig(
        level=logging.INFO,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )
    run_stdio()


if __name__ == "__main__":
    main()
