"""
Unit tests for the admin CLI.

Runs commands against pre-built in-memory stores and checks both the
exit code and the resulting store state.
"""

from datetime import timedelta

import pytest

from activation_service.adapters.factory import Stores
from activation_service.cli import build_parser, main
from activation_service.domain.models import (
    CodeStatus,
    VerificationLogEntry,
    VerifyOutcome,
    utc_now,
)


class TestAdd:
    def test_add_code(self, stores: Stores, capsys: pytest.CaptureFixture[str]) -> None:
        exit_code = main(["add", "NEW_001", "doubao_plugin", "--interval", "48", "--notes", "vip"], stores=stores)

        assert exit_code == 0
        record = stores.code_store.get("NEW_001", "doubao_plugin")
        assert record.verify_interval_hours == 48
        assert record.notes == "vip"
        assert "Added activation code NEW_001" in capsys.readouterr().out

    def test_add_duplicate_fails(self, stores: Stores, capsys: pytest.CaptureFixture[str]) -> None:
        exit_code = main(["add", "DEMO_001", "doubao_plugin"], stores=stores)

        assert exit_code == 1
        assert "already exists" in capsys.readouterr().out

    def test_add_rejects_non_positive_interval(self, stores: Stores) -> None:
        with pytest.raises(SystemExit):
            main(["add", "X", "p", "--interval", "0"], stores=stores)


class TestUpdateDelete:
    def test_update_status(self, stores: Stores) -> None:
        exit_code = main(["update", "DEMO_001", "doubao_plugin", "--status", "inactive"], stores=stores)

        assert exit_code == 0
        assert stores.code_store.get("DEMO_001", "doubao_plugin").status == CodeStatus.INACTIVE

    def test_update_missing_code(self, stores: Stores) -> None:
        assert main(["update", "NOPE", "doubao_plugin", "--notes", "x"], stores=stores) == 1

    def test_update_without_fields(self, stores: Stores) -> None:
        assert main(["update", "DEMO_001", "doubao_plugin"], stores=stores) == 1

    def test_delete(self, stores: Stores) -> None:
        assert main(["delete", "DEMO_001", "doubao_plugin"], stores=stores) == 0
        assert stores.code_store.get("DEMO_001", "doubao_plugin") is None
        assert main(["delete", "DEMO_001", "doubao_plugin"], stores=stores) == 1


class TestQueries:
    def test_list(self, stores: Stores, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["list"], stores=stores) == 0

        out = capsys.readouterr().out
        assert "DEMO_001" in out
        assert "DISABLED_001" in out
        assert "3 code(s)" in out

    def test_search_by_status(self, stores: Stores, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["search", "--status", "inactive"], stores=stores) == 0

        out = capsys.readouterr().out
        assert "DISABLED_001" in out
        assert "DEMO_001" not in out

    def test_logs_filtered_by_result(self, stores: Stores, capsys: pytest.CaptureFixture[str]) -> None:
        stores.verification_log.append(VerificationLogEntry(code="DEMO_001", result=VerifyOutcome.SUCCESS))
        stores.verification_log.append(VerificationLogEntry(code="UNKNOWN", result=VerifyOutcome.FAILED))

        assert main(["logs", "--result", "failed"], stores=stores) == 0

        out = capsys.readouterr().out
        assert "UNKNOWN" in out
        assert "DEMO_001" not in out
        assert "1 entry" in out

    def test_stats(self, stores: Stores, capsys: pytest.CaptureFixture[str]) -> None:
        stores.verification_log.append(VerificationLogEntry(code="DEMO_001", result=VerifyOutcome.SUCCESS))

        assert main(["stats"], stores=stores) == 0

        out = capsys.readouterr().out
        assert "active_codes:        2" in out
        assert "today_success:       1" in out


class TestCleanup:
    def test_cleanup_removes_old_entries(self, stores: Stores, capsys: pytest.CaptureFixture[str]) -> None:
        old = utc_now() - timedelta(days=40)
        stores.verification_log.append(
            VerificationLogEntry(code="DEMO_001", result=VerifyOutcome.SUCCESS, timestamp=old)
        )
        stores.verification_log.append(VerificationLogEntry(code="DEMO_001", result=VerifyOutcome.SUCCESS))

        assert main(["cleanup", "--days", "30"], stores=stores) == 0

        assert stores.verification_log.count() == 1
        assert "Removed 1 log entry" in capsys.readouterr().out


class TestParser:
    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_logs_since_parses_naive_as_utc(self) -> None:
        args = build_parser().parse_args(["logs", "--since", "2024-01-01T00:00:00"])

        assert args.since.utcoffset() == timedelta(0)
