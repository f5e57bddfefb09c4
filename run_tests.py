"""Run the test suite and write JUnit, coverage and markdown reports."""

import argparse
import subprocess
import sys
from pathlib import Path
from xml.etree import ElementTree as ET

COVERED_SOURCES = ("reporting_gateway", "main")


def run_pytest(repo_root: Path, reports_dir: Path, pytest_args=None) -> int:
    reports_dir.mkdir(parents=True, exist_ok=True)
    junit_path = reports_dir / "junit.xml"
    coverage_xml = reports_dir / "coverage.xml"

    cmd = [
        sys.executable,
        "-m",
        "pytest",
        "-q",
        "tests",
        f"--junitxml={junit_path}",
        *(f"--cov={source}" for source in COVERED_SOURCES),
        f"--cov-report=xml:{coverage_xml}",
        f"--cov-report=html:{reports_dir / 'coverage-html'}",
        "--cov-report=term-missing",
        *(pytest_args or []),
    ]
    return subprocess.run(cmd, cwd=repo_root).returncode


def parse_junit(junit_file: Path) -> dict:
    stats = {"tests": 0, "failures": 0, "errors": 0, "skipped": 0, "time": 0.0}
    if not junit_file.exists():
        return stats
    root = ET.parse(junit_file).getroot()
    suites = list(root) if root.tag == "testsuites" else [root]
    for suite in suites:
        for key in ("tests", "failures", "errors", "skipped"):
            stats[key] += int(suite.attrib.get(key, 0))
        stats["time"] += float(suite.attrib.get("time", 0.0))
    return stats


def parse_coverage(coverage_xml: Path) -> float:
    if not coverage_xml.exists():
        return 0.0
    line_rate = ET.parse(coverage_xml).getroot().attrib.get("line-rate")
    try:
        return round(float(line_rate) * 100.0, 2) if line_rate is not None else 0.0
    except ValueError:
        return 0.0


def write_markdown(report_md: Path, junit_stats: dict, coverage_pct: float) -> None:
    lines = [
        "# reporting-gateway Test Report\n",
        f"- Total tests: {junit_stats['tests']}\n",
        f"- Failures: {junit_stats['failures']}\n",
        f"- Errors: {junit_stats['errors']}\n",
        f"- Skipped: {junit_stats['skipped']}\n",
        f"- Duration (s): {round(junit_stats['time'], 3)}\n",
        f"- Line coverage: {coverage_pct}%\n",
    ]
    report_md.write_text("\n".join(lines))


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--reports-dir", default="reports")
    parser.add_argument("--fail-fast", action="store_true", help="stop after the first failure")
    args = parser.parse_args()

    repo_root = Path(__file__).parent
    reports_dir = repo_root / args.reports_dir
    code = run_pytest(repo_root, reports_dir, ["--maxfail=1"] if args.fail_fast else None)

    junit_stats = parse_junit(reports_dir / "junit.xml")
    coverage_pct = parse_coverage(reports_dir / "coverage.xml")
    write_markdown(reports_dir / "test-report.md", junit_stats, coverage_pct)
    print(f"JUnit XML: {reports_dir / 'junit.xml'}")
    print(f"Coverage: {coverage_pct}% ({reports_dir / 'coverage-html'}/index.html)")
    print(f"Markdown Report: {reports_dir / 'test-report.md'}")
    sys.exit(code)


if __name__ == "__main__":
    main()
