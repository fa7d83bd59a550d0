"""
JSON / CSV / console output for co-purchase signal reports
"""

import json
import logging
import os
import tempfile
from typing import List

from copurchase_scanner.core.models import SignalReport, TokenCandidate

logger = logging.getLogger(__name__)


def _atomic_write(path: str, text: str):
    """Write to a temp file in the target directory, then replace"""
    dir_name = os.path.dirname(path) or "."
    os.makedirs(dir_name, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".copurchase_", suffix=".tmp", dir=dir_name)

    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        os.replace(tmp_path, path)
    finally:
        # Clean up temp file if it still exists
        try:
            os.remove(tmp_path)
        except OSError:
            pass


def render_json(report: SignalReport) -> str:
    return json.dumps(report.to_dict(), indent=2)


def write_json_report(report: SignalReport, path: str = "copurchase_signals.json"):
    _atomic_write(path, render_json(report))
    logger.info(f"Saved {path} - candidates: {len(report.candidates)}")


def render_csv(candidates: List[TokenCandidate]) -> str:
    """token,count,wallets with the wallets space-joined inside quotes"""
    lines = ["token,count,wallets"]
    for c in candidates:
        wallets = " ".join(c.wallets).replace('"', '""')
        lines.append(f'{c.token},{c.count},"{wallets}"')
    return "\n".join(lines)


def write_csv_report(report: SignalReport, path: str = "copurchase_signals.csv"):
    _atomic_write(path, render_csv(report.candidates))
    logger.info(f"Saved {path}")


def write_reports(report: SignalReport, json_path: str, csv_path: str):
    """Write the JSON and CSV reports, leaving neither behind if one fails"""
    json_text = render_json(report)
    csv_text = render_csv(report.candidates)

    _atomic_write(json_path, json_text)
    try:
        _atomic_write(csv_path, csv_text)
    except Exception:
        try:
            os.remove(json_path)
        except OSError:
            pass
        raise

    logger.info(f"Saved {json_path} and {csv_path} - candidates: {len(report.candidates)}")


def format_preview_table(candidates: List[TokenCandidate], limit: int = 30) -> str:
    """Fixed-width token/count table of the top candidates"""
    rows = candidates[:limit]
    token_width = max([len("token")] + [len(c.token) for c in rows])

    lines = [
        f"{'#':>3}  {'token':<{token_width}}  {'count':>5}",
        "-" * (token_width + 14),
    ]
    for i, c in enumerate(rows):
        lines.append(f"{i:>3}  {c.token:<{token_width}}  {c.count:>5}")

    if not rows:
        lines.append("(no candidates)")
    return "\n".join(lines)


def print_preview(candidates: List[TokenCandidate], limit: int = 30):
    print(format_preview_table(candidates, limit))
