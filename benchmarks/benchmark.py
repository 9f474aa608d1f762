#!/usr/bin/env python3
"""ReviewFix Benchmark Suite — Measuring fix placement under drift.

Simulates files that changed between review and apply (earlier fixes,
formatters, duplicated code) and compares trusting the declared line range
(baseline) against ReviewFix's strategy ladder. A case passes only if the
resulting file is exactly the expected one; refusing a stale fix counts as
a pass when the expected outcome is "unchanged".

Usage:
    python3 benchmarks/benchmark.py
"""

import sys
import os

# Add parent dir so we can import rf
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rf import MemoryWorkspace, apply_fix
from rf_schema import Fix


# ---------------------------------------------------------------------------
# Benchmark cases: (name, category, content, fix, expected_content)
#
# Each fix declares the line range the reviewer saw; content is the file as
# it looks now.
# ---------------------------------------------------------------------------

BENCHMARKS = []

FILLER = [f"value_{i} = compute({i})" for i in range(60)]


def bench(name, category, content, start, end, snippet, replacement, expected):
    """Register a benchmark case."""
    fix = Fix(
        id=f"bench-{len(BENCHMARKS) + 1}",
        title=name,
        file_path="target.py",
        start_line=start,
        end_line=end,
        replacement=replacement,
        expected_original_snippet=snippet,
    )
    BENCHMARKS.append((name, category, content, fix, expected))


def lines(*parts):
    return "\n".join(parts) + "\n"


# ===================== NO DRIFT =====================

bench(
    "Anchors still accurate",
    "no_drift",
    lines("import os", "def load(path):", "    return open(path).read()"),
    3, 3,
    "    return open(path).read()",
    "    with open(path) as f:\n        return f.read()",
    lines("import os", "def load(path):", "    with open(path) as f:", "        return f.read()"),
)

# ===================== LINE NUMBER DRIFT =====================

bench(
    "Earlier fix inserted 3 lines",
    "line_drift",
    lines("import os", "import sys", "import json", "import re", "def run():", "    x = eval(data)"),
    3, 3,
    "    x = eval(data)",
    "    x = json.loads(data)",
    lines("import os", "import sys", "import json", "import re", "def run():", "    x = json.loads(data)"),
)

bench(
    "Earlier fix removed a block",
    "line_drift",
    lines("def run():", "    x = eval(data)", *FILLER[:5]),
    40, 40,
    "    x = eval(data)",
    "    x = json.loads(data)",
    lines("def run():", "    x = json.loads(data)", *FILLER[:5]),
)

bench(
    "Drift beyond the first window",
    "line_drift",
    lines(*FILLER, *FILLER, "def run():", "    x = eval(data)"),
    10, 10,
    "    x = eval(data)",
    "    x = json.loads(data)",
    lines(*FILLER, *FILLER, "def run():", "    x = json.loads(data)"),
)

# ===================== WHITESPACE DRIFT =====================

bench(
    "Formatter stripped trailing whitespace",
    "whitespace",
    lines("def area(r):", "    pi = 3.14", "    return pi * r * r"),
    2, 3,
    "    pi = 3.14   \n    return pi * r * r  ",
    "    return math.pi * r * r",
    lines("def area(r):", "    return math.pi * r * r"),
)

bench(
    "Snippet has CRLF line endings",
    "whitespace",
    lines("def area(r):", "    pi = 3.14", "    return pi * r * r"),
    2, 3,
    "    pi = 3.14\r\n    return pi * r * r",
    "    return math.pi * r * r",
    lines("def area(r):", "    return math.pi * r * r"),
)

# ===================== SNIPPET DRIFT =====================

bench(
    "Earlier fix edited one line of the snippet",
    "snippet_drift",
    lines("def handler(req):", "    user = get_user(req)", "    log.info('user %s', user.id)",
          "    data = req.json()", "    return process(data)"),
    2, 5,
    "    user = get_user(req)\n    log.info('user %s', user)\n    data = req.json()\n    return process(data)",
    "    user = get_user(req)\n    data = validate(req.json())\n    return process(data)",
    lines("def handler(req):", "    user = get_user(req)", "    data = validate(req.json())",
          "    return process(data)"),
)

bench(
    "Earlier fix edited a line and shifted the block",
    "snippet_drift",
    lines("# header", "# header", "def handler(req):", "    user = get_user(req)",
          "    log.info('user %s', user.id)", "    data = req.json()", "    return process(data)"),
    2, 5,
    "    user = get_user(req)\n    log.info('user %s', user)\n    data = req.json()\n    return process(data)",
    "    user = get_user(req)\n    data = validate(req.json())\n    return process(data)",
    lines("# header", "# header", "def handler(req):", "    user = get_user(req)",
          "    data = validate(req.json())", "    return process(data)"),
)

# ===================== DUPLICATED CODE =====================

bench(
    "Same snippet near the hint and far away",
    "duplicates",
    lines("if retries > 3:", "    raise Timeout()", *FILLER, *FILLER, "if retries > 3:", "    raise Timeout()"),
    1, 2,
    "if retries > 3:\n    raise Timeout()",
    "if retries > MAX_RETRIES:\n    raise Timeout()",
    lines("if retries > MAX_RETRIES:", "    raise Timeout()", *FILLER, *FILLER, "if retries > 3:", "    raise Timeout()"),
)

bench(
    "Hint points at the second copy",
    "duplicates",
    lines("if retries > 3:", "    raise Timeout()", *FILLER, *FILLER, "if retries > 3:", "    raise Timeout()"),
    123, 124,
    "if retries > 3:\n    raise Timeout()",
    "if retries > MAX_RETRIES:\n    raise Timeout()",
    lines("if retries > 3:", "    raise Timeout()", *FILLER, *FILLER, "if retries > MAX_RETRIES:", "    raise Timeout()"),
)

# ===================== IDEMPOTENCE =====================

bench(
    "Fix already applied",
    "idempotence",
    lines("def run():", "    x = json.loads(data)"),
    2, 2,
    "    x = eval(data)",
    "    x = json.loads(data)",
    lines("def run():", "    x = json.loads(data)"),
)

# ===================== STALE FIXES (must refuse) =====================

bench(
    "Code was rewritten",
    "stale",
    lines("def run():", "    result = parse(payload)", "    return result"),
    2, 2,
    "    x = eval(data)",
    "    x = json.loads(data)",
    lines("def run():", "    result = parse(payload)", "    return result"),
)

bench(
    "Short snippet with one changed line",
    "stale",
    lines("def run():", "    x = eval(payload)", "    return x"),
    2, 2,
    "    x = eval(data)",
    "    x = json.loads(data)",
    lines("def run():", "    x = eval(payload)", "    return x"),
)


def baseline_apply(content, fix):
    """Replace the declared line range, trusting line numbers completely."""
    file_lines = content.split("\n")
    if fix.end_line > len(file_lines):
        return content
    replaced = file_lines[:fix.start_line - 1] + [fix.replacement] + file_lines[fix.end_line:]
    return "\n".join(replaced)


def run_benchmarks():
    baseline_pass = 0
    rf_pass = 0
    total = len(BENCHMARKS)

    results_by_category = {}

    print("=" * 78)
    print("  ReviewFix Benchmark Suite — Fix Placement Under Drift")
    print("=" * 78)
    print()

    for name, category, content, fix, expected in BENCHMARKS:
        baseline_ok = baseline_apply(content, fix) == expected

        workspace = MemoryWorkspace({"target.py": content})
        result = apply_fix(fix, workspace)
        rf_ok = workspace.files["target.py"] == expected
        if result.already_applied:
            outcome = "already"
        elif result.applied:
            outcome = result.strategy
        else:
            outcome = "refused"

        if baseline_ok:
            baseline_pass += 1
        if rf_ok:
            rf_pass += 1

        data = results_by_category.setdefault(category, {"baseline": 0, "rf": 0, "total": 0})
        data["total"] += 1
        if baseline_ok:
            data["baseline"] += 1
        if rf_ok:
            data["rf"] += 1

        baseline_sym = "✅" if baseline_ok else "❌"
        rf_sym = "✅" if rf_ok else "❌"

        print(f"  {baseline_sym} → {rf_sym}  [{outcome:>10s}]  {name}")

    print()
    print("=" * 78)
    print("  Results by Category")
    print("=" * 78)
    print()
    print(f"  {'Category':<25s} {'Line range':>12s} {'ReviewFix':>12s}")
    print(f"  {'─' * 25} {'─' * 12} {'─' * 12}")

    for cat, data in results_by_category.items():
        cat_label = cat.replace("_", " ").title()
        baseline_rate = f"{data['baseline']}/{data['total']}"
        rf_rate = f"{data['rf']}/{data['total']}"
        print(f"  {cat_label:<25s} {baseline_rate:>12s} {rf_rate:>12s}")

    print(f"  {'─' * 25} {'─' * 12} {'─' * 12}")
    baseline_rate_total = f"{baseline_pass}/{total}"
    rf_rate_total = f"{rf_pass}/{total}"
    print(f"  {'TOTAL':<25s} {baseline_rate_total:>12s} {rf_rate_total:>12s}")
    print()
    print(f"  Line-range baseline:  {baseline_pass}/{total} ({baseline_pass/total:.0%})")
    print(f"  ReviewFix ladder:     {rf_pass}/{total} ({rf_pass/total:.0%})")
    print()

    return baseline_pass, rf_pass, total


if __name__ == "__main__":
    baseline, rf, total = run_benchmarks()
    sys.exit(0 if rf >= baseline else 1)
