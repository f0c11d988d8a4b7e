import json
import logging
from typing import Any

from crash_lens.core.nodes import describe_node, get_int, get_str
from crash_lens.core.paths import try_resolve

logger = logging.getLogger(__name__)

HIGH_VALUE_PATHS = (
    "analysis.exception",
    "analysis.environment",
    "analysis.threads",
    "analysis.threads.faultingThread",
    "analysis.threads.all",
    "analysis.assemblies",
    "analysis.assemblies.items",
    "analysis.modules",
    "analysis.security",
    "analysis.synchronization",
    "analysis.memory",
)

HOW_TO_EXPAND = (
    'Agent: report_get(path="analysis.exception"); CLI: crash-lens get REPORT analysis.exception',
    'Agent: report_get(path="analysis.threads.faultingThread"); '
    "CLI: crash-lens get REPORT analysis.threads.faultingThread",
    'Agent: report_get(path="analysis.threads.all", limit=25, cursor=null); '
    "CLI: crash-lens get REPORT analysis.threads.all --limit 25",
    'Agent: report_get(path="analysis.assemblies.items", limit=50, select=["name", "assemblyVersion"]); '
    "CLI: crash-lens get REPORT analysis.assemblies.items --select name --select assemblyVersion",
    'Agent: report_get(path="analysis.modules", where={"field": "name", "equals": "libcoreclr.so"}); '
    "CLI: crash-lens get REPORT analysis.modules --where-field name --where-equals libcoreclr.so",
)


def build_summary(analysis: Any) -> dict[str, Any] | None:
    """Collect factual fields only; recommendations stay in the full report."""
    summary = analysis.get("summary") if isinstance(analysis, dict) else None
    if not isinstance(summary, dict):
        return None

    exception_type = get_str(analysis.get("exception"), "type")
    facts: dict[str, Any] = {
        "crashType": get_str(summary, "crashType"),
        "exceptionType": exception_type,
        "severity": get_str(summary, "severity"),
        "threadCount": get_int(summary, "threadCount"),
        "moduleCount": get_int(summary, "moduleCount"),
        "assemblyCount": get_int(summary, "assemblyCount"),
        "warnings": summary.get("warnings"),
        "errors": summary.get("errors"),
    }
    return {k: v for k, v in facts.items() if v is not None}


def build_toc(document: Any) -> list[dict[str, Any]]:
    analysis = document.get("analysis") if isinstance(document, dict) else None
    if not isinstance(analysis, dict):
        return []

    entries = [describe_node(f"analysis.{name}", value) for name, value in analysis.items()]
    for path in HIGH_VALUE_PATHS:
        found, value = try_resolve(document, path)
        if found:
            entries.append(describe_node(path, value))

    seen: set[str] = set()
    toc: list[dict[str, Any]] = []
    for entry in entries:
        if entry["path"] in seen:
            continue
        seen.add(entry["path"])
        toc.append(entry)
    return toc


def build_index(document: Any) -> dict[str, Any]:
    """Return a one-shot map of the report: metadata, factual summary, toc and usage hints."""
    metadata = document.get("metadata") if isinstance(document, dict) else None
    analysis = document.get("analysis") if isinstance(document, dict) else None
    index: dict[str, Any] = {
        "metadata": metadata if isinstance(metadata, dict) else None,
        "summary": build_summary(analysis),
        "toc": build_toc(document),
        "howToExpand": list(HOW_TO_EXPAND),
    }
    return {k: v for k, v in index.items() if v is not None}


def build_index_json(report_json: str) -> str:
    """Serialize the index for ``report_json``; malformed input is returned unchanged."""
    try:
        document = json.loads(report_json)
        if not isinstance(document, dict):
            return report_json
        return json.dumps(build_index(document), indent=2, ensure_ascii=False)
    except (TypeError, ValueError, RecursionError):
        logger.warning("Report JSON could not be indexed; returning it unchanged")
        return report_json
