"""Attach source code context to the frames of a crash report.

A pass selects frames, resolves each one to a local file or an allowlisted remote URL,
prefetches every remote URL concurrently under a single deadline, and then builds one
entry per frame. Summary entries go to ``analysis.sourceContext``; the faulting thread's
frames also receive an embedded ``sourceContext`` object.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import httpx

from crash_lens.config import EnricherSettings
from crash_lens.core.nodes import get_str
from crash_lens.enrich.fetch import SourceFetchTimeoutError, fetch_source_text
from crash_lens.enrich.frames import is_meaningful_frame, positive_line_number
from crash_lens.enrich.local import read_local_source
from crash_lens.enrich.selection import FAULTING_THREAD_KEY, FrameRef, select_frames, thread_id_of
from crash_lens.enrich.single_flight import SingleFlightCache
from crash_lens.enrich.urls import resolve_remote_url
from crash_lens.enrich.window import extract_window, split_lines
from crash_lens.models import SourceContextEntry, SourceStatus

logger = logging.getLogger(__name__)

Outcome = list[str] | BaseException


@dataclass(frozen=True)
class EnrichmentResult:
    analysis: dict[str, Any]
    entries: list[SourceContextEntry]
    embedded_count: int = 0

    def status_counts(self) -> dict[str, int]:
        return dict(Counter(str(entry.status) for entry in self.entries))


def _error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def _stamp_timeline(analysis: dict[str, Any], generated_at: datetime) -> None:
    timeline = analysis.get("timeline")
    if isinstance(timeline, dict) and not (get_str(timeline, "capturedAtUtc") or "").strip():
        timeline["capturedAtUtc"] = generated_at.astimezone(UTC).isoformat().replace("+00:00", "Z")


class SourceContextEnricher:
    def __init__(
        self,
        settings: EnricherSettings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        is_meaningful: Callable[[Any], bool] = is_meaningful_frame,
    ) -> None:
        self._settings = settings or EnricherSettings()
        self._client = client
        self._is_meaningful = is_meaningful

    @property
    def settings(self) -> EnricherSettings:
        return self._settings

    async def enrich(self, analysis: dict[str, Any], *, generated_at: datetime | None = None) -> EnrichmentResult:
        """Return an enriched copy of ``analysis``; the input is never mutated."""
        working = copy.deepcopy(analysis)
        _stamp_timeline(working, generated_at or datetime.now(UTC))

        selection = select_frames(working, self._settings, self._is_meaningful)
        refs = selection.unique()
        if not refs:
            working["sourceContext"] = []
            logger.info("Source context pass found no candidate frames")
            return EnrichmentResult(analysis=working, entries=[])

        remote_urls: dict[tuple[str, int], str] = {}
        local_entries: dict[tuple[str, int], SourceContextEntry] = {}
        for ref in refs:
            entry = self._try_local(ref)
            if entry is not None and entry.status == SourceStatus.LOCAL:
                local_entries[ref.key] = entry
                continue
            # a stale or unreadable local copy still leaves the remote source to try
            url = resolve_remote_url(get_str(ref.frame, "sourceRawUrl"), get_str(ref.frame, "sourceUrl"))
            if url is not None:
                remote_urls[ref.key] = url
            elif entry is not None:
                local_entries[ref.key] = entry

        outcomes = await self._prefetch(sorted(set(remote_urls.values())))

        built: dict[tuple[str, int], SourceContextEntry] = {}
        for ref in refs:
            if ref.key in local_entries:
                built[ref.key] = local_entries[ref.key]
            elif ref.key in remote_urls:
                url = remote_urls[ref.key]
                built[ref.key] = self._remote_entry(ref, url, outcomes[url])
            else:
                built[ref.key] = self._entry(ref, SourceStatus.UNAVAILABLE)

        entries = [built[ref.key] for ref in selection.summary if built[ref.key].status != SourceStatus.UNAVAILABLE]
        working["sourceContext"] = [entry.to_json_dict() for entry in entries]

        embedded = 0
        for ref in selection.faulting:
            entry = built[ref.key]
            if entry.status == SourceStatus.UNAVAILABLE:
                continue
            payload = entry.to_json_dict()
            ref.frame["sourceContext"] = payload
            mirror = self._mirror_frame(working, ref)
            if mirror is not None:
                mirror["sourceContext"] = copy.deepcopy(payload)
            embedded += 1

        result = EnrichmentResult(analysis=working, entries=entries, embedded_count=embedded)
        logger.info(
            "Source context pass: %d frames, %d remote URLs, %d summary entries %s, %d embedded",
            len(refs),
            len(outcomes),
            len(entries),
            result.status_counts(),
            embedded,
        )
        return result

    async def enrich_document(
        self, document: dict[str, Any], *, generated_at: datetime | None = None
    ) -> dict[str, Any]:
        """Enrich the ``analysis`` member of a full report document."""
        analysis = document.get("analysis")
        if not isinstance(analysis, dict):
            return copy.deepcopy(document)
        result = await self.enrich(analysis, generated_at=generated_at)
        enriched = copy.deepcopy({k: v for k, v in document.items() if k != "analysis"})
        enriched["analysis"] = result.analysis
        return enriched

    async def enrich_report_json(self, report_json: str, *, generated_at: datetime | None = None) -> str:
        """Enrich serialized report text; malformed input is returned unchanged."""
        try:
            document = json.loads(report_json)
            if not isinstance(document, dict):
                return report_json
            enriched = await self.enrich_document(document, generated_at=generated_at)
            return json.dumps(enriched, indent=2, ensure_ascii=False)
        except (TypeError, ValueError, RecursionError):
            logger.warning("Report JSON could not be enriched; returning it unchanged")
            return report_json

    def _entry(self, ref: FrameRef, status: SourceStatus, **fields: Any) -> SourceContextEntry:
        frame = ref.frame
        values: dict[str, Any] = {
            "thread_id": ref.thread.thread_id,
            "frame_number": ref.frame_number,
            "function": get_str(frame, "function") or "",
            "module": get_str(frame, "module") or "",
            "source_file": get_str(frame, "sourceFile"),
            "source_url": get_str(frame, "sourceUrl"),
            "source_raw_url": get_str(frame, "sourceRawUrl"),
            "line_number": positive_line_number(frame),
            "status": status,
        }
        values.update(fields)
        return SourceContextEntry(**values)

    def _window_entry(self, ref: FrameRef, status: SourceStatus, lines: list[str], **fields: Any) -> SourceContextEntry:
        try:
            window = extract_window(lines, positive_line_number(ref.frame) or 0)
        except ValueError as exc:
            return self._entry(ref, SourceStatus.ERROR, error=str(exc), **fields)
        return self._entry(
            ref, status, start_line=window.start_line, end_line=window.end_line, lines=window.lines, **fields
        )

    def _try_local(self, ref: FrameRef) -> SourceContextEntry | None:
        try:
            text = read_local_source(get_str(ref.frame, "sourceFile"), self._settings.source_roots)
        except OSError as exc:
            return self._entry(ref, SourceStatus.ERROR, error=_error_message(exc))
        if text is None:
            return None
        return self._window_entry(ref, SourceStatus.LOCAL, split_lines(text))

    def _remote_entry(self, ref: FrameRef, url: str, outcome: Outcome) -> SourceContextEntry:
        if isinstance(outcome, BaseException):
            return self._entry(ref, SourceStatus.ERROR, source_raw_url=url, error=_error_message(outcome))
        return self._window_entry(ref, SourceStatus.REMOTE, outcome, source_raw_url=url)

    @staticmethod
    def _mirror_frame(analysis: dict[str, Any], ref: FrameRef) -> dict[str, Any] | None:
        """Return the copy of ``ref.frame`` held under ``threads.faultingThread``, if any."""
        if ref.thread.index is None:
            return None
        threads = analysis.get("threads")
        faulting = threads.get(FAULTING_THREAD_KEY) if isinstance(threads, dict) else None
        if not isinstance(faulting, dict) or faulting is ref.thread.thread:
            return None
        if thread_id_of(faulting) != ref.thread.thread_id:
            return None
        call_stack = faulting.get("callStack")
        if not isinstance(call_stack, list) or ref.frame_index >= len(call_stack):
            return None
        mirror = call_stack[ref.frame_index]
        return mirror if isinstance(mirror, dict) else None

    async def _prefetch(self, urls: list[str]) -> dict[str, Outcome]:
        if not urls:
            return {}
        if self._client is not None:
            return await self._prefetch_with(self._client, urls)
        async with httpx.AsyncClient(timeout=self._settings.timeout_seconds) as client:
            return await self._prefetch_with(client, urls)

    async def _prefetch_with(self, client: httpx.AsyncClient, urls: list[str]) -> dict[str, Outcome]:
        async def load(url: str) -> list[str]:
            text = await fetch_source_text(client, url, max_bytes=self._settings.max_remote_bytes)
            return split_lines(text)

        cache: SingleFlightCache[list[str]] = SingleFlightCache(load, self._settings.max_concurrency)
        tasks = {url: asyncio.ensure_future(cache.get(url)) for url in urls}
        _, pending = await asyncio.wait(tasks.values(), timeout=self._settings.timeout_seconds)
        if pending:
            logger.warning(
                "Source fetch deadline of %.1fs expired with %d fetches pending",
                self._settings.timeout_seconds,
                len(pending),
            )
            for task in pending:
                task.cancel()
            await cache.cancel_pending()
            await asyncio.gather(*pending, return_exceptions=True)

        outcomes: dict[str, Outcome] = {}
        for url, task in tasks.items():
            if task in pending or task.cancelled():
                outcomes[url] = SourceFetchTimeoutError(
                    f"Source fetch timed out after {self._settings.timeout_seconds:g}s."
                )
            elif task.exception() is not None:
                exc = task.exception()
                logger.warning("Source fetch for %s failed: %s", url, _error_message(exc))
                outcomes[url] = exc
            else:
                outcomes[url] = task.result()
        return outcomes
