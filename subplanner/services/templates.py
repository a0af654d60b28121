import logging
from pathlib import Path
from typing import Optional

import httpx
from pydantic import ValidationError

from subplanner.config import settings
from subplanner.schemas.template import Template
from subplanner.services.csv_codec import build_header_map, parse_csv_line, read_records, value_for

logger = logging.getLogger(__name__)


def parse_templates(text: str) -> list[Template]:
    """Parse a ``name,price,cycle,category,icon`` CSV. Bad rows are skipped."""
    records = read_records(text)
    if len(records) < 2:
        return []

    header_map = build_header_map(records[0][1])
    templates = []

    for number, record in records[1:]:
        if not record:
            continue

        values = parse_csv_line(record)
        try:
            templates.append(
                Template(
                    name=value_for(values, header_map, "name"),
                    price=value_for(values, header_map, "price"),
                    cycle=value_for(values, header_map, "cycle"),
                    category=value_for(values, header_map, "category") or None,
                    icon=value_for(values, header_map, "icon") or None,
                )
            )
        except ValidationError as e:
            logger.warning(f"Skipping template on line {number}: {e.error_count()} invalid fields")
            continue

    return templates


class TemplateCatalog:
    """Read-only list of known services.

    Tries the remote CSV first, then the bundled file. If both fail the
    catalog is simply empty.
    """

    def __init__(
        self,
        remote_url: Optional[str] = None,
        bundled_path: Optional[str] = None,
        timeout: float = 10.0,
    ):
        self.remote_url = remote_url
        self.bundled_path = Path(bundled_path) if bundled_path else None
        self.timeout = timeout
        self._templates: Optional[list[Template]] = None

    def load(self) -> list[Template]:
        if self._templates is None:
            self._templates = self._load_from_sources()
        return self._templates

    def refresh(self) -> list[Template]:
        self.invalidate()
        return self.load()

    def invalidate(self) -> None:
        self._templates = None

    def _load_from_sources(self) -> list[Template]:
        if self.remote_url:
            try:
                templates = parse_templates(self._fetch_remote())
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                logger.warning(f"Remote templates unavailable, using bundled file: {e}")
            else:
                if templates:
                    logger.info(f"Loaded {len(templates)} templates from {self.remote_url}")
                    return templates
                logger.warning(f"No valid templates at {self.remote_url}, using bundled file")

        if self.bundled_path:
            try:
                templates = parse_templates(self.bundled_path.read_text(encoding="utf-8"))
                logger.info(f"Loaded {len(templates)} templates from {self.bundled_path}")
                return templates
            except OSError as e:
                logger.warning(f"Bundled templates unavailable: {e}")

        logger.warning("No template source available, template list is empty")
        return []

    def _fetch_remote(self) -> str:
        response = httpx.get(self.remote_url, timeout=self.timeout, follow_redirects=True)
        response.raise_for_status()
        return response.text


# Singleton instance
template_catalog = TemplateCatalog(
    remote_url=settings.templates_url,
    bundled_path=settings.templates_path,
    timeout=settings.templates_timeout_seconds,
)
