"""Sync report formatting functions.

Provides human-readable and machine-readable output for sync passes:

- ``format_sync_report`` -- full post-pass summary.
- ``format_dry_run_preview`` -- dry-run preview grouped by action.
- ``report_to_json`` -- structured dict for the HTTP endpoint and ``--json``.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from .models import SyncAction

if TYPE_CHECKING:
    from .models import SyncReport, SyncResult


def _label(result: SyncResult) -> str:
    if result.group:
        return f"{result.relative_path} [{result.group}]"
    return result.relative_path


# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def format_sync_report(report: SyncReport) -> str:
    """Format a complete pass report as human-readable text.

    Sections are only included when they contain at least one result.
    Skipped files are summarised by count only.

    Args:
        report: The completed report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    header = "Sync report"
    if report.dry_run:
        header += " (DRY RUN)"
    lines.append(header)
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    if report.aborted:
        lines.append(f"Pass aborted: {report.error}")
        return "\n".join(lines).rstrip()

    lines.append(
        f"{report.local_count} local files, {report.remote_count} remote pins: "
        f"{len(report.uploaded)} uploaded, {len(report.deleted)} deleted, "
        f"{len(report.unresolved)} unresolved, {len(report.errors)} errors"
    )
    lines.append("")

    if report.uploaded:
        lines.append("Uploaded:")
        for r in report.uploaded:
            lines.append(f"  {_label(r)} -> {r.content_hash}")
        lines.append("")

    if report.deleted:
        lines.append("Unpinned:")
        for r in report.deleted:
            lines.append(f"  {r.content_hash} ({r.relative_path})")
        lines.append("")

    failed = [r for r in report.errors if r.action != SyncAction.UNRESOLVED]
    if report.unresolved:
        lines.append("Unresolved groups (retried next pass):")
        for r in report.unresolved:
            lines.append(f"  {_label(r)}: {r.error}")
        lines.append("")

    if failed:
        lines.append("Errors:")
        for r in failed:
            lines.append(f"  {r.action.value} {r.relative_path}: {r.error}")
        lines.append("")

    if report.skipped:
        lines.append(f"Skipped: {len(report.skipped)} files (already pinned)")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Dry-run preview
# ------------------------------------------------------------------


def format_dry_run_preview(report: SyncReport) -> str:
    """Format a dry-run preview grouped by action type.

    Args:
        report: A dry-run report (``dry_run=True``).

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = ["DRY RUN -- No changes will be made", ""]

    if report.aborted:
        lines.append(f"Pass aborted: {report.error}")
        return "\n".join(lines).rstrip()

    groups: dict[SyncAction, list[SyncResult]] = defaultdict(list)
    for r in report.results:
        groups[r.action].append(r)

    for action in (SyncAction.UPLOAD, SyncAction.DELETE):
        if action not in groups:
            continue
        lines.append(f"[{action.value.upper()}]")
        for r in groups[action]:
            lines.append(f"  {_label(r)}")
        lines.append("")

    skip_count = len(groups.get(SyncAction.SKIP, []))
    if skip_count > 0:
        lines.append(f"Skipped: {skip_count} files (unchanged)")
        lines.append("")

    if not any(a != SyncAction.SKIP for a in groups):
        lines.append("No changes needed.")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: SyncReport) -> dict:
    """Convert a report to a structured dict for JSON serialisation.

    Args:
        report: The pass report.

    Returns:
        Dict with status, counts, and per-result details.
    """
    results_list = []
    for r in report.results:
        if r.action == SyncAction.SKIP:
            continue
        entry: dict = {
            "path": r.relative_path,
            "hash": r.content_hash,
            "action": r.action.value,
            "success": r.success,
        }
        if r.group:
            entry["group"] = r.group
        if r.error:
            entry["error"] = r.error
        results_list.append(entry)

    data: dict = {
        "success": report.ok,
        "dry_run": report.dry_run,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "counts": {
            "local": report.local_count,
            "remote": report.remote_count,
            "uploaded": len(report.uploaded),
            "deleted": len(report.deleted),
            "skipped": len(report.skipped),
            "unresolved": len(report.unresolved),
            "errors": len(report.errors),
        },
        "results": results_list,
    }
    if report.aborted:
        data["error"] = report.error
    return data
