#!/usr/bin/env python3
"""
Run the llm-bridge test suite with ``python -m tests``.

Arguments are passed straight to pytest; with none, the whole suite runs
verbosely with short tracebacks.
"""

import sys
from pathlib import Path

import pytest


def main():
    """Run the test suite using pytest."""
    args = sys.argv[1:] or [str(Path(__file__).parent), "-v", "--tb=short"]
    exit_code = pytest.main(args)

    if exit_code == 0:
        print("\nAll tests passed")
    else:
        print(f"\nTests failed with exit code: {exit_code}")

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
