"""Tests for govulncheck output handling."""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from modinspect.vulndb import (
    ScanError,
    Scanner,
    ScannerNotFound,
    Vulnerability,
    filter_by_severity,
    group_by_severity,
    parse_stream,
)


def osv_message(advisory_id, packages, severity=None, fixed=None, summary="A bug"):
    affected = []
    for package in packages:
        events = [{"introduced": "0"}]
        if fixed:
            events.append({"fixed": fixed})
        affected.append({"package": {"name": package}, "ranges": [{"events": events}]})
    osv = {"id": advisory_id, "summary": summary, "affected": affected}
    if severity:
        osv["database_specific"] = {"severity": severity}
    return json.dumps({"osv": osv})


@pytest.mark.short
class TestParseStream:
    def test_one_finding_per_affected_package(self):
        lines = [osv_message("GO-2024-0001", ["example.com/a", "example.com/b"], "high", "1.2.3")]

        vulns = parse_stream(lines)

        assert [(v.id, v.package) for v in vulns] == [
            ("GO-2024-0001", "example.com/a"),
            ("GO-2024-0001", "example.com/b"),
        ]
        assert vulns[0].severity == "HIGH"
        assert vulns[0].fixed == "1.2.3"
        assert vulns[0].url == "https://pkg.go.dev/vuln/GO-2024-0001"
        assert vulns[0].description == "A bug"

    def test_defaults(self):
        vulns = parse_stream([osv_message("GO-2024-0002", ["example.com/a"])])
        assert vulns[0].severity == "UNKNOWN"
        assert vulns[0].fixed == "unknown"

    def test_skips_noise(self):
        lines = [
            "",
            "   ",
            "not json at all",
            "[1, 2, 3]",
            json.dumps({"config": {"scanner_name": "govulncheck"}}),
            json.dumps({"finding": {"osv": "GO-2024-0001"}}),
            osv_message("GO-2024-0003", ["example.com/a"]).encode("utf-8"),
        ]
        vulns = parse_stream(lines)
        assert [v.id for v in vulns] == ["GO-2024-0003"]

    def test_duplicates_collapse_keeping_first_position(self):
        lines = [
            osv_message("GO-1", ["example.com/a"], summary="first"),
            osv_message("GO-2", ["example.com/b"]),
            osv_message("GO-1", ["example.com/a"], summary="second"),
        ]
        vulns = parse_stream(lines)

        assert [v.id for v in vulns] == ["GO-1", "GO-2"]
        assert vulns[0].description == "second"

    def test_id_and_package_are_kept_apart(self):
        lines = [
            osv_message("GO-1", ["2example.com/a"]),
            osv_message("GO-12", ["example.com/a"]),
        ]
        vulns = parse_stream(lines)

        assert [(v.id, v.package) for v in vulns] == [
            ("GO-1", "2example.com/a"),
            ("GO-12", "example.com/a"),
        ]


@pytest.mark.short
class TestSeverityHelpers:
    def vulns(self):
        return [
            Vulnerability(id="1", package="a", severity="LOW"),
            Vulnerability(id="2", package="b", severity="CRITICAL"),
            Vulnerability(id="3", package="c", severity="weird"),
            Vulnerability(id="4", package="d", severity="LOW"),
        ]

    def test_filter_keeps_order(self):
        result = filter_by_severity(self.vulns(), ["low", "CRITICAL"])
        assert [v.id for v in result] == ["1", "2", "4"]

    def test_filter_without_severities(self):
        assert len(filter_by_severity(self.vulns(), [])) == 4
        assert len(filter_by_severity(self.vulns(), None)) == 4

    def test_group_order(self):
        groups = group_by_severity(self.vulns())
        assert list(groups) == ["CRITICAL", "LOW", "UNKNOWN"]
        assert [v.id for v in groups["LOW"]] == ["1", "4"]
        assert [v.id for v in groups["UNKNOWN"]] == ["3"]


@pytest.mark.short
class TestScanner:
    def test_create_missing_binary(self):
        with patch("modinspect.vulndb.scanner.shutil.which", return_value=None):
            with pytest.raises(ScannerNotFound, match="go install golang.org/x/vuln"):
                Scanner.create()

    def test_create_resolves_binary(self):
        with patch("modinspect.vulndb.scanner.shutil.which", return_value="/usr/bin/govulncheck"):
            assert Scanner.create().binary == "/usr/bin/govulncheck"

    def test_scan_module(self, tmp_path):
        output = (osv_message("GO-1", ["example.com/a"], "medium") + "\n").encode("utf-8")
        proc = MagicMock(returncode=3, stdout=output)

        with patch("modinspect.vulndb.scanner.subprocess.run", return_value=proc) as run:
            result = Scanner("govulncheck").scan_module(tmp_path)

        assert run.call_args.args[0] == ["govulncheck", "-json", "./..."]
        assert run.call_args.kwargs["cwd"] == str(tmp_path)
        assert result.total_scanned == 1
        assert result.total_vulns == 1
        assert result.vulnerabilities[0].severity == "MEDIUM"

    def test_failure_without_output(self, tmp_path):
        proc = MagicMock(returncode=1, stdout=b"")
        with patch("modinspect.vulndb.scanner.subprocess.run", return_value=proc):
            with pytest.raises(ScanError, match="exit status 1"):
                Scanner("govulncheck").scan_module(tmp_path)

    def test_timeout(self, tmp_path):
        error = subprocess.TimeoutExpired(cmd="govulncheck", timeout=1)
        with patch("modinspect.vulndb.scanner.subprocess.run", side_effect=error):
            with pytest.raises(ScanError, match="timed out"):
                Scanner("govulncheck").scan_module(tmp_path, timeout=1)

    def test_os_error(self, tmp_path):
        with patch("modinspect.vulndb.scanner.subprocess.run", side_effect=OSError("denied")):
            with pytest.raises(ScanError, match="denied"):
                Scanner("govulncheck").scan_module(tmp_path)
