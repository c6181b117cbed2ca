# page_driver.py
import re
from typing import Any, Callable, List, Optional, Sequence

from playwright.sync_api import Browser, Error as PWError, Page, Response, TimeoutError as PWTimeoutError

from bots._browser_launch import VIEWPORT
from comparator import RankingResponse, compare_rank_with_dom
from errors import (
    BrowserFailure,
    EmptyDomOrder,
    NavigationTimeout,
    NoClickableElements,
    PersonalizerCheckError,
    RecommendationNotLoaded,
)
from models import ObservedResult, TestItem
from report_writer import timestamped_filename
from settings import Settings

EXTRACT_IDS_JS = """(elements, attrs) => elements.map(
    el => el.getAttribute(attrs[0]) || el.getAttribute(attrs[1])
)"""

DISMISS_MODALS_JS = """(selectors) => {
    for (const selector of selectors) {
        const node = document.querySelector(selector);
        if (node) {
            node.remove();
        }
    }
}"""


class ObserverHandle:
    """A registered page listener. ``remove`` is idempotent."""

    def __init__(self, page: Page, event: str, callback: Callable[[Any], None]):
        self.page = page
        self.event = event
        self.callback = callback
        self.active = True

    def remove(self) -> None:
        if not self.active:
            return
        self.active = False
        self.page.remove_listener(self.event, self.callback)


class PageObservers:
    """Explicit registration of the page events the checks listen to."""

    def __init__(self, page: Page):
        self.page = page
        self._handles: List[ObserverHandle] = []

    def _register(self, event: str, callback: Callable[[Any], None]) -> ObserverHandle:
        self.page.on(event, callback)
        handle = ObserverHandle(self.page, event, callback)
        self._handles.append(handle)
        return handle

    def on_response(self, callback: Callable[[Any], None]) -> ObserverHandle:
        return self._register("response", callback)

    def on_page_error(self, callback: Callable[[Any], None]) -> ObserverHandle:
        return self._register("pageerror", callback)

    def on_request_failed(self, callback: Callable[[Any], None]) -> ObserverHandle:
        return self._register("requestfailed", callback)

    def on_console(self, callback: Callable[[Any], None]) -> ObserverHandle:
        return self._register("console", callback)

    def close(self) -> None:
        while self._handles:
            self._handles.pop().remove()

    def __enter__(self) -> "PageObservers":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def describe_page_error(error: Any) -> str:
    return getattr(error, "message", None) or str(error)


def request_failure_text(request: Any) -> str:
    failure = getattr(request, "failure", None)
    # older playwright builds expose an object with error_text
    if failure is not None and not isinstance(failure, str):
        failure = getattr(failure, "error_text", None) or str(failure)
    return failure or "unknown failure"


def describe_request_failure(request: Any) -> str:
    return f"{getattr(request, 'url', '')} :: {request_failure_text(request)}"


class NetworkCapture:
    """
    Collects the rank/reward traffic for one item and writes what it sees
    into that attempt's ObservedResult.
    """

    def __init__(self, identifier: str, result: ObservedResult, rank_endpoint: str, reward_endpoint: str):
        self.identifier = identifier
        self.result = result
        self.rank_endpoint = rank_endpoint
        self.reward_endpoint = reward_endpoint
        self.rank_responses: List[Response] = []

    def _is_rank(self, url: str) -> bool:
        return self.rank_endpoint in url and self.identifier in url

    def _is_reward(self, url: str) -> bool:
        return self.reward_endpoint in url and self.identifier in url

    def handle_response(self, response: Response) -> None:
        url = response.url
        if self._is_rank(url):
            self.rank_responses.append(response)
        if self._is_reward(url):
            self._record_reward(response)

    def _record_reward(self, response: Response) -> None:
        try:
            payload = response.request.post_data_json
        except (PWError, ValueError) as exc:
            print(f"  ❌ Failed to parse /reward for {self.identifier}: {exc}")
            return
        self.result.reward_api_observed = response.status == 200
        if isinstance(payload, dict):
            event_id = payload.get("eventId")
            self.result.reward_event_id = str(event_id) if event_id is not None else None
            self.result.reward_weight = payload.get("weight")
        print(f"  • Reward call observed for {self.identifier} (status {response.status})")

    def handle_page_error(self, error: Any) -> None:
        self.result.page_errors.append(describe_page_error(error))

    def handle_request_failed(self, request: Any) -> None:
        self.result.failed_requests.append(describe_request_failure(request))

    def decode_ranking(self, limit: int) -> RankingResponse:
        """Decode the most recent rank response that has a readable body."""
        for response in reversed(self.rank_responses):
            try:
                payload = response.json()
            except (PWError, ValueError) as exc:
                print(f"  ❌ Failed to parse /rank for {self.identifier}: {exc}")
                continue
            try:
                ranking = RankingResponse.from_payload(payload, self.identifier, limit)
            except RecommendationNotLoaded:
                continue
            self.result.rank_api_observed = True
            self.result.rank_event_id = ranking.event_id
            return ranking

        self.result.recommendation_not_loaded = True
        detail = "rank API response was not observed"
        if self.rank_responses:
            detail = f"{len(self.rank_responses)} rank response(s) had no usable ranking"
        raise RecommendationNotLoaded(self.identifier, detail)


def dismiss_modals(page: Page, selectors: Sequence[str]) -> bool:
    try:
        page.evaluate(DISMISS_MODALS_JS, list(selectors))
        return True
    except PWError as exc:
        print(f"  ⚠️ Popup close failed: {exc}")
        return False


def _slugify_identifier(value: str, fallback: str = "item") -> str:
    slug = re.sub(r"[^A-Za-z0-9_-]+", "_", value).strip("_")
    return slug[:60] if slug else fallback


class PersonalizerPageDriver:
    """Runs one rank-vs-DOM attempt for an item in its own browser context."""

    def __init__(self, browser: Browser, settings: Settings):
        self.browser = browser
        self.settings = settings

    def run_attempt(self, item: TestItem, result: ObservedResult) -> None:
        settings = self.settings
        context = None
        observers: Optional[PageObservers] = None
        try:
            try:
                context = self.browser.new_context(viewport=dict(VIEWPORT))
                page = context.new_page()
            except PWError as exc:
                raise BrowserFailure(f"Could not open a page for {item.identifier}: {exc}") from exc

            capture = NetworkCapture(item.identifier, result, settings.rank_endpoint, settings.reward_endpoint)
            observers = PageObservers(page)
            observers.on_response(capture.handle_response)
            observers.on_page_error(capture.handle_page_error)
            observers.on_request_failed(capture.handle_request_failed)

            try:
                self._check_page(page, item, result, capture)
            except PersonalizerCheckError:
                result.screenshot_path = self.capture_failure(page, item, result.attempt)
                raise
            except PWError as exc:
                result.screenshot_path = self.capture_failure(page, item, result.attempt)
                raise BrowserFailure(str(exc)) from exc
        finally:
            if observers is not None:
                observers.close()
            if context is not None:
                try:
                    context.close()
                except PWError as exc:
                    print(f"  ⚠️ Browser context close failed for {item.identifier}: {exc}")

    def _check_page(self, page: Page, item: TestItem, result: ObservedResult, capture: NetworkCapture) -> None:
        settings = self.settings
        self.navigate(page, item.url)
        dismiss_modals(page, settings.modal_selectors)
        page.wait_for_timeout(settings.settle_delay_ms)

        dom_order = self.extract_dom_order(page, item.element_selector)
        result.dom_order = list(dom_order)
        result.first_dom_id = dom_order[0]

        ranking = capture.decode_ranking(settings.rank_prefix_limit)
        comparison = compare_rank_with_dom(
            dom_order, ranking, settings.rank_prefix_limit, item.element_selector
        )
        comparison.apply_to(result)

        self.click_first_link(page, item.element_selector)
        page.wait_for_timeout(settings.settle_delay_ms)

        comparison.raise_for_mismatch()

    def navigate(self, page: Page, url: str) -> None:
        timeout = self.settings.navigation_timeout_ms
        try:
            page.goto(url, wait_until="domcontentloaded", timeout=timeout)
        except PWTimeoutError as exc:
            raise NavigationTimeout(url, timeout) from exc

    def extract_dom_order(self, page: Page, selector: str) -> List[str]:
        timeout = self.settings.selector_timeout_ms
        try:
            page.wait_for_selector(selector, timeout=timeout)
        except PWTimeoutError as exc:
            raise EmptyDomOrder(selector, f"Nothing matched within {timeout}ms.") from exc
        raw_ids = page.eval_on_selector_all(
            selector,
            EXTRACT_IDS_JS,
            [self.settings.primary_id_attribute, self.settings.secondary_id_attribute],
        )
        dom_order = [str(value) for value in raw_ids or [] if value]
        if not dom_order:
            raise EmptyDomOrder(selector)
        return dom_order

    def click_first_link(self, page: Page, selector: str) -> None:
        links = page.query_selector_all(f"{selector} a")
        if not links:
            raise NoClickableElements(selector)
        timeout = self.settings.click_navigation_timeout_ms
        try:
            with page.expect_navigation(wait_until="domcontentloaded", timeout=timeout):
                links[0].click()
        except PWTimeoutError as exc:
            raise NavigationTimeout(page.url, timeout, stage="click") from exc

    def capture_failure(self, page: Page, item: TestItem, attempt: int) -> Optional[str]:
        try:
            self.settings.screenshot_dir.mkdir(parents=True, exist_ok=True)
            name = timestamped_filename(f"{_slugify_identifier(item.identifier)}_retry{attempt}", "png")
            path = self.settings.screenshot_dir / name
            page.screenshot(path=str(path))
            print(f"  📸 Screenshot saved: {path}")
            return str(path)
        except (PWError, OSError) as exc:
            print(f"  • Failure screenshot failed: {exc}")
            return None
