# console_check.py
#
# Opens the pages listed in the consoleError section and records console
# output, page errors and failed requests that mention an experiment id.
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional, Sequence

from playwright.sync_api import Browser, Error as PWError, TimeoutError as PWTimeoutError

from bots._browser_launch import VIEWPORT
from errors import NavigationTimeout
from models import ConsoleCheckItem, ConsoleMessage
from page_driver import PageObservers, describe_page_error, describe_request_failure, request_failure_text
from settings import Settings

PAGE_ERROR = "PAGE ERROR"
REQUEST_FAILED = "REQUEST FAILED"


class ConsoleErrorCollector:
    def __init__(self, item: ConsoleCheckItem):
        self.item = item
        self.messages: List[ConsoleMessage] = []
        self._errors: List[ConsoleMessage] = []

    def _record(self, error_type: str, kind: str, text: str, match_text: Optional[str] = None) -> None:
        # only match_text decides whether the entry names the experiment
        mentions = self.item.experiment_id in (text if match_text is None else match_text)
        if not (mentions or self.item.wants(error_type)):
            return
        entry = ConsoleMessage(type=kind, message=text, url=self.item.url, timestamp=datetime.now().isoformat())
        self.messages.append(entry)
        if mentions:
            self._errors.append(entry)

    def handle_console(self, message: Any) -> None:
        self._record("log", message.type, message.text)

    def handle_page_error(self, error: Any) -> None:
        self._record("pageerror", PAGE_ERROR, describe_page_error(error))

    def handle_request_failed(self, request: Any) -> None:
        self._record(
            "requestfailed", REQUEST_FAILED, describe_request_failure(request), request_failure_text(request)
        )

    def errors(self) -> List[ConsoleMessage]:
        return list(self._errors)


@dataclass
class ConsoleCheckOutcome:
    item: ConsoleCheckItem
    messages: List[ConsoleMessage] = field(default_factory=list)
    errors: List[ConsoleMessage] = field(default_factory=list)
    failure: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.failure is None and not self.errors


def run_console_check(browser: Browser, item: ConsoleCheckItem, settings: Settings) -> ConsoleCheckOutcome:
    collector = ConsoleErrorCollector(item)
    outcome = ConsoleCheckOutcome(item=item)
    context = None
    try:
        context = browser.new_context(viewport=dict(VIEWPORT))
        page = context.new_page()
        with PageObservers(page) as observers:
            observers.on_console(collector.handle_console)
            observers.on_page_error(collector.handle_page_error)
            observers.on_request_failed(collector.handle_request_failed)

            print(f"🧪 Navigating to: {item.url}")
            timeout = settings.console_navigation_timeout_ms
            try:
                page.goto(item.url, wait_until="networkidle", timeout=timeout)
                page.wait_for_timeout(settings.console_settle_delay_ms)
            except PWTimeoutError:
                outcome.failure = str(NavigationTimeout(item.url, timeout))
    except PWError as exc:
        outcome.failure = str(exc)
    finally:
        if context is not None:
            context.close()

    outcome.messages = list(collector.messages)
    outcome.errors = collector.errors()
    if outcome.errors:
        print(f"  ❌ Found {len(outcome.errors)} errors for {item.experiment_id} on {item.url}")
    elif outcome.failure:
        print(f"  ❌ Test failed for {item.url}: {outcome.failure}")
    else:
        print(f"  ✅ No console errors for {item.experiment_id}")
    return outcome


def run_console_checks(
    browser: Browser, items: Sequence[ConsoleCheckItem], settings: Settings
) -> List[ConsoleCheckOutcome]:
    return [run_console_check(browser, item, settings) for item in items]


def collected_messages(outcomes: Sequence[ConsoleCheckOutcome]) -> List[ConsoleMessage]:
    messages: List[ConsoleMessage] = []
    for outcome in outcomes:
        messages.extend(outcome.messages)
    return messages
