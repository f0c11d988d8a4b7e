"""Choose which stack frames receive source context.

The faulting thread is visited first and may use the whole budget; every other thread
contributes at most a couple of frames so the summary stays representative. Frames are
addressed by their thread and frame indices, never by object identity.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from crash_lens.config import EnricherSettings
from crash_lens.core.nodes import get_bool, get_int
from crash_lens.enrich.frames import has_source_location, is_meaningful_frame, positive_line_number

FramePredicate = Callable[[Any], bool]

FAULTING_THREAD_KEY = "faultingThread"


@dataclass(frozen=True)
class ThreadRef:
    key: str
    index: int | None
    thread_id: str
    thread: dict[str, Any]
    faulting: bool = False


@dataclass(frozen=True)
class FrameRef:
    thread: ThreadRef
    frame_index: int
    frame: dict[str, Any]

    @property
    def key(self) -> tuple[str, int]:
        return self.thread.key, self.frame_index

    @property
    def frame_number(self) -> int:
        number = get_int(self.frame, "frameNumber")
        return number if number is not None else self.frame_index


@dataclass(frozen=True)
class FrameSelection:
    summary: list[FrameRef]
    faulting: list[FrameRef]

    def unique(self) -> list[FrameRef]:
        seen: set[tuple[str, int]] = set()
        refs: list[FrameRef] = []
        for ref in [*self.summary, *self.faulting]:
            if ref.key not in seen:
                seen.add(ref.key)
                refs.append(ref)
        return refs


def thread_id_of(thread: Any) -> str:
    if not isinstance(thread, dict):
        return ""
    value = thread.get("threadId")
    if isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return ""


def ordered_threads(analysis: Any) -> list[ThreadRef]:
    """Return threads with the faulting thread first, the rest in report order."""
    threads = analysis.get("threads") if isinstance(analysis, dict) else None
    if not isinstance(threads, dict):
        return []
    all_threads = threads.get("all")
    if not isinstance(all_threads, list):
        all_threads = []
    faulting_obj = threads.get(FAULTING_THREAD_KEY)

    faulting_index: int | None = None
    for i, thread in enumerate(all_threads):
        if get_bool(thread, "isFaulting"):
            faulting_index = i
            break
    if faulting_index is None and isinstance(faulting_obj, dict):
        wanted = thread_id_of(faulting_obj)
        for i, thread in enumerate(all_threads):
            if wanted and thread_id_of(thread) == wanted:
                faulting_index = i
                break

    refs: list[ThreadRef] = []
    if faulting_index is not None:
        thread = all_threads[faulting_index]
        refs.append(ThreadRef(f"all[{faulting_index}]", faulting_index, thread_id_of(thread), thread, faulting=True))
    elif isinstance(faulting_obj, dict):
        refs.append(ThreadRef(FAULTING_THREAD_KEY, None, thread_id_of(faulting_obj), faulting_obj, faulting=True))

    for i, thread in enumerate(all_threads):
        if i == faulting_index or not isinstance(thread, dict):
            continue
        refs.append(ThreadRef(f"all[{i}]", i, thread_id_of(thread), thread))
    return refs


def candidate_frames(thread: ThreadRef, is_meaningful: FramePredicate = is_meaningful_frame) -> list[FrameRef]:
    call_stack = thread.thread.get("callStack")
    if not isinstance(call_stack, list):
        return []
    candidates: list[FrameRef] = []
    for i, frame in enumerate(call_stack):
        if not isinstance(frame, dict):
            continue
        if positive_line_number(frame) is None or not has_source_location(frame):
            continue
        if not is_meaningful(frame):
            continue
        candidates.append(FrameRef(thread, i, frame))
    return candidates


def select_faulting_frames(candidates: list[FrameRef], budget: int, reserved_slots: int) -> list[FrameRef]:
    """Pick up to ``budget`` frames from the front, keeping room for the first managed frames."""
    if budget <= 0 or not candidates:
        return []
    reserved = [i for i, ref in enumerate(candidates) if get_bool(ref.frame, "isManaged")]
    reserved = reserved[: min(reserved_slots, budget)]
    chosen = set(reserved)
    free_slots = budget - len(chosen)
    for i in range(len(candidates)):
        if free_slots <= 0:
            break
        if i in chosen:
            continue
        chosen.add(i)
        free_slots -= 1
    return [candidates[i] for i in sorted(chosen)]


def select_frames(
    analysis: Any,
    settings: EnricherSettings | None = None,
    is_meaningful: FramePredicate = is_meaningful_frame,
) -> FrameSelection:
    settings = settings or EnricherSettings()
    summary: list[FrameRef] = []
    faulting: list[FrameRef] = []

    for thread in ordered_threads(analysis):
        candidates = candidate_frames(thread, is_meaningful)
        if thread.faulting:
            faulting = candidates[: settings.max_embedded_frames]
        remaining = settings.max_entries - len(summary)
        if remaining <= 0:
            if thread.faulting:
                continue
            break
        if thread.faulting:
            budget = min(settings.max_faulting_entries, remaining)
            summary.extend(select_faulting_frames(candidates, budget, settings.reserved_managed_slots))
        else:
            summary.extend(candidates[: min(settings.max_entries_per_thread, remaining)])

    return FrameSelection(summary=summary, faulting=faulting)
