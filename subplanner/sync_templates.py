"""Sync the bundled template file from a published Google Sheet.

Usage: subplanner-sync-templates <spreadsheet-url>
Example: subplanner-sync-templates https://docs.google.com/spreadsheets/d/SHEET_ID/edit#gid=305368109
"""

import argparse
import logging
import os
import re
import sys
import tempfile
from pathlib import Path
from typing import Optional

import httpx

from subplanner.config import settings
from subplanner.services.csv_codec import build_header_map

logger = logging.getLogger(__name__)

EXPORT_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv&gid={gid}"
EXPECTED_URL_FORMAT = "https://docs.google.com/spreadsheets/d/{ID}/edit#gid={GID}"

SHEET_ID_PATTERN = re.compile(r"/d/([a-zA-Z0-9_-]+)")
GID_PATTERN = re.compile(r"[#?&]gid=(\d+)")


class SyncError(Exception):
    """The spreadsheet could not be fetched or does not look like a template list."""


def parse_spreadsheet_url(url: str) -> Optional[tuple[str, str]]:
    """Extract ``(sheet_id, gid)`` from a spreadsheet URL. gid defaults to ``"0"``."""
    id_match = SHEET_ID_PATTERN.search(url)
    if not id_match:
        return None

    gid_match = GID_PATTERN.search(url)
    return id_match.group(1), gid_match.group(1) if gid_match else "0"


def build_export_url(sheet_id: str, gid: str) -> str:
    return EXPORT_URL.format(sheet_id=sheet_id, gid=gid)


def validate_template_csv(content: str) -> int:
    """Check the downloaded CSV and return the number of data rows."""
    lines = content.lstrip("\ufeff").strip().split("\n")
    if len(lines) < 2:
        raise SyncError("CSV must have at least a header row and one data row")

    columns = build_header_map(lines[0].rstrip("\r"))
    if "name" not in columns or "price" not in columns:
        raise SyncError('CSV must have "name" and "price" columns')

    return len(lines) - 1


def _write_atomically(destination: Path, content: str) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=destination.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as tmp:
            tmp.write(content)
        os.replace(tmp_path, destination)
    except OSError:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def sync_templates(url: str, destination: Path, timeout: float = 30.0) -> int:
    """Download the sheet behind ``url`` and overwrite ``destination``.

    Returns the number of template rows written. Nothing is written unless
    every check passes.
    """
    parsed = parse_spreadsheet_url(url)
    if parsed is None:
        raise SyncError(f"Invalid Google Sheets URL. Expected format: {EXPECTED_URL_FORMAT}")

    sheet_id, gid = parsed
    logger.info(f"Syncing templates from spreadsheet {sheet_id} (gid {gid})")

    try:
        response = httpx.get(build_export_url(sheet_id, gid), timeout=timeout, follow_redirects=True)
    except httpx.HTTPError as e:
        raise SyncError(f"Failed to download spreadsheet: {e}") from e

    if not response.is_success:
        raise SyncError(f"HTTP {response.status_code}: {response.reason_phrase}")

    content = response.text
    row_count = validate_template_csv(content)

    try:
        _write_atomically(destination, content)
    except OSError as e:
        raise SyncError(f"Could not write {destination}: {e}") from e

    logger.info(f"Synced {row_count} templates to {destination}")
    return row_count


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="subplanner-sync-templates",
        description="Sync templates from a published Google Sheet to the local CSV file",
    )
    parser.add_argument("url", nargs="?", help=f"Spreadsheet URL, e.g. {EXPECTED_URL_FORMAT}")
    parser.add_argument(
        "-o",
        "--output",
        dest="output",
        default=settings.templates_path,
        help="File to overwrite (default: the bundled templates.csv)",
    )
    args = parser.parse_args(argv)

    if not args.url:
        print("Missing spreadsheet URL", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1

    if parse_spreadsheet_url(args.url) is None:
        print("Invalid Google Sheets URL", file=sys.stderr)
        print(f"Expected format: {EXPECTED_URL_FORMAT}", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1

    try:
        row_count = sync_templates(args.url, Path(args.output))
    except SyncError as e:
        print(f"Failed to sync templates: {e}", file=sys.stderr)
        return 1

    print(f"Successfully synced {row_count} templates to {args.output}")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level)
    sys.exit(main())
