from __future__ import annotations

import logging
import re
import threading
import time
from typing import Callable, List, Optional, Sequence, Tuple

import httpx
from pydantic import BaseModel, ConfigDict

from config.settings import get_settings
from engine.errors import DirectoryFetchFailed


logger = logging.getLogger("perspectivology.experts")

AVAILABLE_STATUS = 0
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class ExpertRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    first_name: str
    last_name: str = ""
    years: str = ""
    field1: str = ""
    field2: str = ""
    descriptor: str = ""
    field3: str = ""
    status: int = AVAILABLE_STATUS
    gender: str = ""
    geography: str = ""
    recognizable: str = "No"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


def _parse_status(raw: Optional[str]) -> Optional[int]:
    """Leading-integer parse: ``" 2"`` -> 2, ``"1x"`` -> 1, ``"n/a"`` -> None."""
    if raw is None:
        return None
    match = _LEADING_INT.match(raw)
    if not match:
        return None
    return int(match.group(1))


def _column(values: Sequence[str], index: int, default: str = "") -> str:
    if index >= len(values):
        return default
    return values[index].strip() or default


def parse_expert_row(line: str, line_no: int = 0) -> ExpertRecord:
    values = line.split(",")
    status = _parse_status(values[7] if len(values) > 7 else None)
    if status is None:
        # Unreadable status counts as available.
        logger.warning("Expert row %s has no numeric status; treating as available", line_no)
        status = AVAILABLE_STATUS
    return ExpertRecord(
        last_name=_column(values, 0),
        first_name=_column(values, 1),
        years=_column(values, 2),
        field1=_column(values, 3),
        field2=_column(values, 4),
        descriptor=_column(values, 5),
        field3=_column(values, 6),
        status=status,
        gender=_column(values, 8),
        geography=_column(values, 9),
        recognizable=_column(values, 10, default="No"),
    )


def parse_expert_csv(text: str) -> List[ExpertRecord]:
    """Parse the sheet export, keeping only named, available experts.

    The first line is the header row. Fields are split on bare commas, so
    quoted values containing commas are not supported.
    """
    experts: List[ExpertRecord] = []
    lines = text.split("\n")
    for line_no, line in enumerate(lines[1:], start=2):
        if not line.strip():
            continue
        expert = parse_expert_row(line, line_no)
        if expert.first_name and expert.status == AVAILABLE_STATUS:
            experts.append(expert)
    return experts


def render_expert_pool(experts: Sequence[ExpertRecord]) -> str:
    return "\n".join(
        f"{e.full_name} ({e.years}) - {e.field1}, {e.descriptor}"
        for e in experts
    )


class SheetCsvFetcher:
    """Downloads the expert sheet as CSV text."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._transport = transport

    def __call__(self) -> str:
        try:
            with httpx.Client(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = client.get(self.url)
                response.raise_for_status()
                return response.text
        except httpx.HTTPError as exc:
            raise DirectoryFetchFailed(f"Expert sheet download failed: {exc}") from exc


class ExpertDirectory:
    """Time-bounded snapshot of available experts.

    The snapshot is replaced wholesale on a successful refresh. A failed
    refresh keeps the previous snapshot and its timestamp, so the next call
    tries again.
    """

    def __init__(
        self,
        fetch: Callable[[], str],
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch = fetch
        self._ttl = ttl_seconds
        self._clock = clock
        self._experts: Tuple[ExpertRecord, ...] = ()
        self._fetched_at: Optional[float] = None
        self._refresh_lock = threading.Lock()

    @property
    def fetched_at(self) -> Optional[float]:
        return self._fetched_at

    def _is_fresh(self) -> bool:
        if self._fetched_at is None:
            return False
        return self._clock() - self._fetched_at < self._ttl

    def get(self) -> Tuple[ExpertRecord, ...]:
        if self._is_fresh():
            return self._experts
        with self._refresh_lock:
            # Another thread may have refreshed while we waited.
            if self._is_fresh():
                return self._experts
            return self._refresh()

    def _refresh(self) -> Tuple[ExpertRecord, ...]:
        started = self._clock()
        try:
            experts = tuple(parse_expert_csv(self._fetch()))
        except DirectoryFetchFailed as exc:
            logger.error("Error fetching expert database: %s", exc.message)
            return self._experts
        except Exception:
            logger.exception("Error parsing expert database")
            return self._experts

        self._experts = experts
        self._fetched_at = started
        logger.info("Expert directory refreshed: %s available experts", len(experts))
        return self._experts


def build_expert_directory() -> ExpertDirectory:
    settings = get_settings()
    fetcher = SheetCsvFetcher(settings.expert_csv_url, timeout=settings.expert_fetch_timeout)
    return ExpertDirectory(fetcher, ttl_seconds=settings.expert_cache_seconds)
