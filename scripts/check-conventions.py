#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""Check project conventions: SPDX headers and centralized logging.

Every Python file must carry ``# SPDX-License-Identifier: MIT`` in its
first lines. Package modules must log through ``get_detail_logger()`` /
``get_status_logger()`` rather than ``logging.getLogger(__name__)``.

Usage:
    python scripts/check-conventions.py

Exit code:
    0: All checks pass
    1: Violations found
"""

import re
import sys
from pathlib import Path


SPDX_LINE = "# SPDX-License-Identifier: MIT"
DIRECT_LOGGER = re.compile(r"logging\.getLogger\(__name__\)")


def check_spdx_header(file_path: Path) -> str | None:
    """Return an error message if the file lacks a valid SPDX header."""
    try:
        lines = file_path.read_text(encoding="utf-8").splitlines()[:10]
    except OSError as e:
        return f"Error reading file: {e}"

    for line in lines:
        if "SPDX-License-Identifier:" in line:
            if line.strip() == SPDX_LINE:
                return None
            return f"SPDX header incorrectly formatted: '{line.strip()}'"
    return "No SPDX license identifier found"


def check_logger_usage(file_path: Path) -> list[str]:
    """Return lines that create loggers directly instead of using logging_config."""
    if file_path.name == "logging_config.py":
        return []
    violations = []
    for number, line in enumerate(
        file_path.read_text(encoding="utf-8").splitlines(), start=1
    ):
        if DIRECT_LOGGER.search(line):
            violations.append(f"{file_path}:{number}: {line.strip()}")
    return violations


def main() -> int:
    project_root = Path(__file__).resolve().parent.parent
    python_files = [
        path
        for folder in ("src", "tests", "scripts", "examples")
        for path in sorted((project_root / folder).rglob("*.py"))
    ]

    missing_spdx = []
    for py_file in python_files:
        error = check_spdx_header(py_file)
        if error:
            missing_spdx.append(f"{py_file.relative_to(project_root)}: {error}")

    logger_violations = []
    for py_file in sorted((project_root / "src").rglob("*.py")):
        logger_violations.extend(check_logger_usage(py_file))

    if missing_spdx:
        print(f"❌ SPDX check failed for {len(missing_spdx)} file(s):")
        for entry in missing_spdx:
            print(f"  - {entry}")
    if logger_violations:
        print("❌ Direct logger usage found (use get_detail_logger/get_status_logger):")
        for entry in logger_violations:
            print(f"  - {entry}")

    if missing_spdx or logger_violations:
        return 1

    print(f"✅ Conventions check passed for {len(python_files)} Python files")
    return 0


if __name__ == "__main__":
    sys.exit(main())
