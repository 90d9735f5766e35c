"""Tests for sync reporter formatting functions.

Covers:
- format_sync_report with various result combinations
- format_dry_run_preview formatting
- report_to_json structure and completeness
- Aborted and all-skipped reports produce concise output
"""

from __future__ import annotations

from pin_mirror.sync.models import SyncAction, SyncReport, SyncResult
from pin_mirror.sync.reporter import (
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_report(
    results: list[SyncResult] | None = None,
    dry_run: bool = False,
    **kwargs,
) -> SyncReport:
    """Build a SyncReport with sensible defaults."""
    return SyncReport(
        dry_run=dry_run,
        results=results or [],
        started_at="2026-01-01T00:00:00+00:00",
        completed_at="2026-01-01T00:00:05+00:00",
        **kwargs,
    )


def _result(
    path: str,
    action: SyncAction,
    success: bool = True,
    error: str | None = None,
    group: str | None = None,
) -> SyncResult:
    return SyncResult(
        relative_path=path,
        content_hash=f"Qm{path.replace('/', '_')}",
        action=action,
        success=success,
        error=error,
        group=group,
    )


# ---------------------------------------------------------------------------
# format_sync_report
# ---------------------------------------------------------------------------


class TestFormatSyncReport:
    def test_sections(self):
        report = _make_report(
            [
                _result("a.txt", SyncAction.UPLOAD),
                _result("sub/b.txt", SyncAction.UPLOAD, group="sub"),
                _result("old.txt", SyncAction.DELETE),
                _result("bad.txt", SyncAction.UPLOAD, success=False, error="HTTP 500"),
                _result("x/c.txt", SyncAction.UNRESOLVED, success=False, error="no group", group="x"),
                _result("same.txt", SyncAction.SKIP),
            ],
            local_count=5,
            remote_count=2,
        )

        text = format_sync_report(report)

        assert text.startswith("Sync report\n")
        assert "5 local files, 2 remote pins: 2 uploaded, 1 deleted" in text
        assert "  sub/b.txt [sub] -> Qmsub_b.txt" in text
        assert "Unpinned:\n  Qmold.txt (old.txt)" in text
        assert "Unresolved groups (retried next pass):\n  x/c.txt [x]: no group" in text
        assert "Errors:\n  upload bad.txt: HTTP 500" in text
        assert "Skipped: 1 files (already pinned)" in text

    def test_all_skipped_is_concise(self):
        report = _make_report([_result("a.txt", SyncAction.SKIP)])

        text = format_sync_report(report)

        assert "Uploaded:" not in text
        assert "Errors:" not in text
        assert text.endswith("Skipped: 1 files (already pinned)")

    def test_aborted(self):
        report = _make_report(aborted=True, error="listing down")

        text = format_sync_report(report)

        assert text.endswith("Pass aborted: listing down")

    def test_dry_run_header(self):
        assert format_sync_report(_make_report(dry_run=True)).startswith(
            "Sync report (DRY RUN)"
        )


# ---------------------------------------------------------------------------
# format_dry_run_preview
# ---------------------------------------------------------------------------


class TestFormatDryRunPreview:
    def test_grouped_by_action(self):
        report = _make_report(
            [
                _result("a.txt", SyncAction.UPLOAD),
                _result("old.txt", SyncAction.DELETE),
                _result("keep.txt", SyncAction.SKIP),
            ],
            dry_run=True,
        )

        text = format_dry_run_preview(report)

        assert text.startswith("DRY RUN -- No changes will be made")
        assert "[UPLOAD]\n  a.txt" in text
        assert "[DELETE]\n  old.txt" in text
        assert "Skipped: 1 files (unchanged)" in text
        assert "No changes needed." not in text

    def test_no_changes(self):
        report = _make_report([_result("a.txt", SyncAction.SKIP)], dry_run=True)
        assert format_dry_run_preview(report).endswith("No changes needed.")


# ---------------------------------------------------------------------------
# report_to_json
# ---------------------------------------------------------------------------


class TestReportToJson:
    def test_structure(self):
        report = _make_report(
            [
                _result("a.txt", SyncAction.UPLOAD, group=None),
                _result("sub/b.txt", SyncAction.UPLOAD, success=False, error="boom", group="sub"),
                _result("keep.txt", SyncAction.SKIP),
            ],
            local_count=3,
            remote_count=1,
        )

        data = report_to_json(report)

        assert data["success"] is False
        assert data["dry_run"] is False
        assert data["counts"] == {
            "local": 3,
            "remote": 1,
            "uploaded": 1,
            "deleted": 0,
            "skipped": 1,
            "unresolved": 0,
            "errors": 1,
        }
        assert data["results"] == [
            {"path": "a.txt", "hash": "Qma.txt", "action": "upload", "success": True},
            {
                "path": "sub/b.txt",
                "hash": "Qmsub_b.txt",
                "action": "upload",
                "success": False,
                "group": "sub",
                "error": "boom",
            },
        ]
        assert "error" not in data

    def test_aborted_carries_error(self):
        data = report_to_json(_make_report(aborted=True, error="scan failed"))
        assert data["success"] is False
        assert data["error"] == "scan failed"
