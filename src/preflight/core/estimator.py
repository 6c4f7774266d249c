"""Static estimation of live AI requests in a test corpus.

Test files are scanned as plain text and never imported or executed. A
test counts when its declaration (``test(``, ``test.only(``, ``test.skip(``
or ``test.fixme(``) has a quoted title containing the marker tag.
"""

import logging
import re
from pathlib import Path

from ..models import UsageEstimate

logger = logging.getLogger(__name__)


def marker_pattern(marker: str) -> re.Pattern[str]:
    """Build the regex matching test declarations whose title contains ``marker``."""
    return re.compile(
        r"\btest(?:\.(?:only|skip|fixme))?\s*\(\s*"
        r"(['\"`])"  # opening quote of the title
        r"(?:\\.|(?!\1).)*?"
        + re.escape(marker)
        + r"(?:\\.|(?!\1).)*?"
        r"\1",
        re.DOTALL,
    )


def iter_test_files(root: Path, suffix: str) -> list[Path]:
    """List test files under root whose name ends with suffix, sorted."""
    if not root.is_dir():
        return []
    return sorted(p for p in root.rglob("*") if p.is_file() and p.name.endswith(suffix))


def count_marked_cases(root: Path, marker: str, suffix: str) -> int:
    """Count marked test declarations across the corpus.

    Args:
        root: Corpus root directory (missing root counts as empty)
        marker: Literal tag searched for in test titles
        suffix: File name suffix selecting test-definition files

    Returns:
        Number of matching test declarations
    """
    pattern = marker_pattern(marker)
    total = 0
    for path in iter_test_files(root, suffix):
        content = path.read_text(encoding="utf-8", errors="replace")
        matches = len(pattern.findall(content))
        if matches:
            logger.debug(f"{path}: {matches} case(s) tagged {marker}")
        total += matches
    return total


def estimate_usage(
    root: Path,
    marker: str,
    requests_per_case: int,
    override: int | None = None,
    suffix: str = ".spec.ts",
) -> UsageEstimate:
    """Estimate the requests a live run will make.

    A positive ``override`` is returned as-is and the scan is skipped.
    """
    requests_per_case = max(1, requests_per_case)
    if override is not None and override > 0:
        return UsageEstimate(
            live_cases=0,
            requests_per_case=requests_per_case,
            planned_requests=override,
            overridden=True,
        )
    cases = count_marked_cases(root, marker, suffix)
    return UsageEstimate(
        live_cases=cases,
        requests_per_case=requests_per_case,
        planned_requests=cases * requests_per_case,
    )


def estimate(
    root: Path,
    marker: str,
    requests_per_case: int,
    override: int | None = None,
    suffix: str = ".spec.ts",
) -> int:
    """Planned request count for a live run (see estimate_usage)."""
    return estimate_usage(root, marker, requests_per_case, override, suffix).planned_requests
