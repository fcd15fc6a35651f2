#!/usr/bin/env python
"""Run formatting, lint, type and test checks for the karel packages.

Usage:
    python run_quality_checks.py                  # check only
    python run_quality_checks.py --fix            # let black/isort rewrite files
    python run_quality_checks.py --skip lint type # skip named checks
"""

from __future__ import annotations

import argparse
import subprocess
import sys
from dataclasses import dataclass

PACKAGES = ["karel", "karel_gui"]
TESTS_DIR = "tests"
SOURCES = [*PACKAGES, TESTS_DIR]


@dataclass(frozen=True)
class Check:
    key: str
    name: str
    cmd: list[str]
    fix_cmd: list[str] | None = None


CHECKS = [
    Check("formatting", "Black", ["black", "--check", *SOURCES], ["black", *SOURCES]),
    Check("imports", "isort", ["isort", "--check-only", *SOURCES], ["isort", *SOURCES]),
    Check("lint", "Pylint", ["pylint", *PACKAGES]),
    Check("type", "Mypy", ["mypy", "karel"]),
    Check("deadcode", "Vulture", ["vulture", *PACKAGES]),
    Check("complexity", "Radon", ["radon", "cc", "karel", "-a"]),
    Check(
        "tests",
        "Pytest + Coverage",
        ["pytest", "--cov=karel", "--cov-report=term-missing", TESTS_DIR],
    ),
]


def run_check(check: Check, fix: bool, quiet: bool) -> bool:
    cmd = check.fix_cmd if fix and check.fix_cmd else check.cmd
    print(f"\n{'=' * 70}\n> {check.name}: {' '.join(cmd)}\n{'=' * 70}")
    try:
        result = subprocess.run(cmd, check=False, capture_output=quiet, text=True)
    except FileNotFoundError as exc:
        print(f"FAILED {check.name}: {exc}")
        print("   Install the tools with: pip install -e .[dev,test]")
        return False

    if result.returncode != 0:
        if quiet:
            print(result.stdout)
            print(result.stderr)
        print(f"FAILED {check.name}")
        return False
    print(f"ok {check.name}")
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description="Run local quality checks and tests")
    parser.add_argument("--fix", action="store_true", help="Apply black/isort fixes")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only show output of failing checks")
    parser.add_argument(
        "--skip",
        nargs="+",
        default=[],
        choices=[c.key for c in CHECKS],
        help="Checks to skip",
    )
    args = parser.parse_args()

    failed = [
        check.name
        for check in CHECKS
        if check.key not in args.skip and not run_check(check, args.fix, args.quiet)
    ]

    print(f"\n{'=' * 70}")
    if failed:
        print("Failed: " + ", ".join(failed))
        return 1
    print("All checks passed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
