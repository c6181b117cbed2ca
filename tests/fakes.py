"""In-memory stand-ins for the Playwright objects the checks drive."""

from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from playwright.sync_api import Error as PWError, TimeoutError as PWTimeoutError

RANK_URL = "https://api.ex.com/personalizerwrapperapi/v01/rank?personalizerId=p1"
REWARD_URL = "https://api.ex.com/personalizerwrapperapi/v01/reward?personalizerId=p1"


class FakeRequest:
    def __init__(self, url: str, post_data: Any = None, failure: Optional[str] = None):
        self.url = url
        self._post_data = post_data
        self.failure = failure

    @property
    def post_data_json(self):
        if isinstance(self._post_data, Exception):
            raise self._post_data
        return self._post_data


class FakeResponse:
    def __init__(self, url: str, body: Any = None, status: int = 200, request: Optional[FakeRequest] = None):
        self.url = url
        self.status = status
        self._body = body
        self.request = request or FakeRequest(url)

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


class FakeConsoleMessage:
    def __init__(self, text: str, type: str = "log"):
        self.text = text
        self.type = type


class FakePageError:
    def __init__(self, message: str):
        self.message = message


def rank_response(ids: List[str], reward_action_id: Optional[str], event_id: str = "evt-rank", url: str = RANK_URL):
    body = {
        "ranking": [{"id": item_id, "probability": 0.1} for item_id in ids],
        "rewardActionId": reward_action_id,
        "eventId": event_id,
    }
    return FakeResponse(url, body=body)


def reward_response(event_id: str = "evt-rank", weight: float = 1.0, status: int = 200, url: str = REWARD_URL):
    request = FakeRequest(url, post_data={"eventId": event_id, "weight": weight})
    return FakeResponse(url, body={}, status=status, request=request)


@dataclass
class PageScript:
    dom_ids: List[Optional[str]] = field(default_factory=list)
    load_events: List[Tuple[str, Any]] = field(default_factory=list)
    click_events: List[Tuple[str, Any]] = field(default_factory=list)
    link_count: int = 1
    goto_timeout: bool = False
    goto_error: Optional[str] = None
    click_timeout: bool = False
    evaluate_error: bool = False
    title: str = ""


class FakeElement:
    def __init__(self, page: "FakePage", index: int):
        self.page = page
        self.index = index

    def click(self):
        self.page.clicked.append(self.index)


class FakePage:
    def __init__(self, script: PageScript):
        self.script = script
        self.url = "about:blank"
        self.listeners: Dict[str, List[Any]] = {}
        self.waits: List[int] = []
        self.evaluated: List[Any] = []
        self.clicked: List[int] = []
        self.screenshots: List[str] = []
        self.goto_calls: List[Tuple[str, str, int]] = []

    def on(self, event: str, callback) -> None:
        self.listeners.setdefault(event, []).append(callback)

    def remove_listener(self, event: str, callback) -> None:
        self.listeners[event].remove(callback)

    def listener_count(self) -> int:
        return sum(len(callbacks) for callbacks in self.listeners.values())

    def emit(self, event: str, payload: Any) -> None:
        for callback in list(self.listeners.get(event, [])):
            callback(payload)

    def goto(self, url: str, wait_until: str = "load", timeout: int = 30000):
        self.goto_calls.append((url, wait_until, timeout))
        if self.script.goto_timeout:
            raise PWTimeoutError(f"Timeout {timeout}ms exceeded.")
        if self.script.goto_error:
            raise PWError(self.script.goto_error)
        self.url = url
        for event, payload in self.script.load_events:
            self.emit(event, payload)

    def evaluate(self, expression: str, arg: Any = None):
        if self.script.evaluate_error:
            raise PWError("Execution context was destroyed")
        self.evaluated.append(arg)

    def wait_for_timeout(self, timeout: int) -> None:
        self.waits.append(timeout)

    def wait_for_selector(self, selector: str, timeout: int = 30000):
        if not self.script.dom_ids:
            raise PWTimeoutError(f"waiting for locator('{selector}') timed out")

    def eval_on_selector_all(self, selector: str, expression: str, arg: Any = None):
        return list(self.script.dom_ids)

    def query_selector_all(self, selector: str):
        return [FakeElement(self, index) for index in range(self.script.link_count)]

    @contextmanager
    def expect_navigation(self, wait_until: str = "load", timeout: int = 30000):
        yield
        if self.script.click_timeout:
            raise PWTimeoutError(f"Timeout {timeout}ms exceeded while waiting for navigation")
        self.url = self.url + "#offer"
        for event, payload in self.script.click_events:
            self.emit(event, payload)

    def screenshot(self, path: str, **kwargs) -> None:
        Path(path).write_bytes(b"\x89PNG")
        self.screenshots.append(path)

    def title(self) -> str:
        return self.script.title


class FakeContext:
    def __init__(self, script: PageScript, options: Dict[str, Any]):
        self.options = options
        self.page = FakePage(script)
        self.closed = False

    def new_page(self) -> FakePage:
        return self.page

    def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self, script: Optional[PageScript] = None, context_error: Optional[str] = None):
        self.script = script or PageScript()
        self.context_error = context_error
        self.contexts: List[FakeContext] = []

    def new_context(self, **options) -> FakeContext:
        if self.context_error:
            raise PWError(self.context_error)
        context = FakeContext(self.script, options)
        self.contexts.append(context)
        return context

    @property
    def last_page(self) -> FakePage:
        return self.contexts[-1].page
