# main.py
import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from openpyxl.utils.exceptions import IllegalCharacterError

from bots._browser_launch import launch_browser, shutdown
from console_check import collected_messages, run_console_checks
from item_loader import CONSOLE_FALLBACK, load_console_items, load_items_or_fallback, load_test_items
from orchestrator import FAILED, RetryPolicy, RunContext, SuiteOrchestrator
from page_driver import PersonalizerPageDriver
from report_writer import CONSOLE_COLUMNS, PERSONALIZER_COLUMNS, write_report
from settings import Settings, load_settings
from title_smoke import run_title_smoke

PERSONALIZER_REPORT_NAME = "personalizer_report"


def publish_report(records, report_name: str, columns, settings: Settings) -> None:
    # report failures never fail the run
    try:
        path = write_report(records, report_name, columns=columns, report_dir=settings.report_dir)
    except (OSError, IllegalCharacterError) as exc:
        print(f"❌ Failed to write Excel report: {exc}")
        return
    if path is not None:
        print("📊 Excel report successfully written!")


def run_personalizer(settings: Settings) -> RunContext:
    items = load_items_or_fallback(load_test_items, settings.input_path, settings.personalizer_section)
    policy = RetryPolicy(max_retries=settings.max_retries, batch_size=settings.batch_size)

    playwright = None
    browser = None
    try:
        if items:
            playwright, browser = launch_browser(settings.launch)
        orchestrator = SuiteOrchestrator(PersonalizerPageDriver(browser, settings), policy)
        context = orchestrator.run(items)
    finally:
        shutdown(playwright, browser)

    if context.results:
        publish_report(context.results, PERSONALIZER_REPORT_NAME, PERSONALIZER_COLUMNS, settings)
    else:
        print("⚠️ No results to write to Excel.")

    summary = context.summary()
    print(
        f"\n🏁 {summary['items']} items, {summary['attempts']} attempts: "
        f"{summary['passed']} passed, {summary['failed']} failed"
    )
    return context


def run_console(settings: Settings) -> int:
    items = load_items_or_fallback(load_console_items, settings.input_path, settings.console_section, CONSOLE_FALLBACK)
    playwright, browser = launch_browser(settings.launch)
    try:
        outcomes = run_console_checks(browser, items, settings)
    finally:
        shutdown(playwright, browser)

    messages = collected_messages(outcomes)
    print(f"Total console messages collected: {len(messages)}")
    report_name = f"consoleLogs_{datetime.now().strftime('%Y-%m-%d')}"
    publish_report(messages, report_name, CONSOLE_COLUMNS, settings)
    return sum(1 for outcome in outcomes if not outcome.passed)


def run_smoke(settings: Settings) -> int:
    playwright, browser = launch_browser(settings.launch)
    try:
        results = run_title_smoke(browser)
    finally:
        shutdown(playwright, browser)
    return sum(1 for result in results if not result.passed)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Personalizer rank-vs-DOM regression checks")
    parser.add_argument("--input", help="Input workbook (.xlsx) or .json (overrides PERSONALIZER_INPUT)")
    parser.add_argument("--report-dir", help="Directory for excel reports")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("personalizer", help="Compare rendered offer order with the /rank response (default)")
    sub.add_parser("console", help="Collect console errors mentioning experiment ids")
    sub.add_parser("smoke", help="Check search engine page titles")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings()
    if args.input:
        settings.input_path = Path(args.input)
    if args.report_dir:
        settings.report_dir = Path(args.report_dir)

    print(f"Environment: {settings.launch.describe()}")
    command = args.command or "personalizer"
    if command == "console":
        failures = run_console(settings)
    elif command == "smoke":
        failures = run_smoke(settings)
    else:
        context = run_personalizer(settings)
        failures = sum(1 for state in context.final_outcomes().values() if state == FAILED)

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
