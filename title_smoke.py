# title_smoke.py
from dataclasses import dataclass
from typing import List, Optional, Sequence

from playwright.sync_api import Browser, Error as PWError

SMOKE_NAVIGATION_TIMEOUT_MS = 30000


@dataclass(frozen=True)
class TitleTarget:
    url: str
    expected: str


@dataclass
class TitleCheckResult:
    url: str
    expected: str
    title: str = ""
    error: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.error is None and title_matches(self.title, self.expected)


SEARCH_ENGINE_TARGETS = [
    TitleTarget("https://www.google.com", "Google"),
    TitleTarget("https://www.bing.com", "Bing"),
    TitleTarget("https://duckduckgo.com", "DuckDuckGo"),
]


def title_matches(title: str, expected: str) -> bool:
    return expected.lower() in (title or "").lower()


def check_title(browser: Browser, target: TitleTarget, timeout_ms: int = SMOKE_NAVIGATION_TIMEOUT_MS) -> TitleCheckResult:
    result = TitleCheckResult(url=target.url, expected=target.expected)
    context = browser.new_context()
    try:
        page = context.new_page()
        page.goto(target.url, wait_until="domcontentloaded", timeout=timeout_ms)
        result.title = page.title()
    except PWError as exc:
        result.error = str(exc)
    finally:
        context.close()

    icon = "✅" if result.passed else "❌"
    print(f"{icon} {target.url} → title '{result.title}' (expected to contain '{target.expected}')")
    return result


def run_title_smoke(browser: Browser, targets: Sequence[TitleTarget] = SEARCH_ENGINE_TARGETS) -> List[TitleCheckResult]:
    return [check_title(browser, target) for target in targets]
