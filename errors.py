# errors.py
from typing import Optional, Sequence


class PersonalizerCheckError(Exception):
    """Base class for failures attributable to a single test item."""


class MissingSection(PersonalizerCheckError):
    def __init__(self, section: str, source: str):
        self.section = section
        self.source = source
        super().__init__(f"Section '{section}' not found in {source}.")


class NavigationTimeout(PersonalizerCheckError):
    def __init__(self, url: str, timeout_ms: int, stage: str = "goto"):
        self.url = url
        self.timeout_ms = timeout_ms
        self.stage = stage
        super().__init__(f"Navigation ({stage}) to {url} did not settle within {timeout_ms}ms.")


class EmptyDomOrder(PersonalizerCheckError):
    def __init__(self, selector: str, detail: Optional[str] = None):
        self.selector = selector
        message = f"No element ids found in the DOM for selector '{selector}'."
        if detail:
            message = f"{message} {detail}"
        super().__init__(message)


class NoClickableElements(PersonalizerCheckError):
    def __init__(self, selector: str):
        self.selector = selector
        super().__init__(f"No clickable links found inside '{selector}'.")


class RecommendationNotLoaded(PersonalizerCheckError):
    def __init__(self, identifier: str, detail: str = "rank API response was not observed"):
        self.identifier = identifier
        super().__init__(f"Recommendation not loaded for {identifier}: {detail}.")


class RankMismatch(PersonalizerCheckError):
    def __init__(
        self,
        dom_order: Sequence[str],
        rank_order: Sequence[str],
        reward_action_id: Optional[str],
        reason: str,
    ):
        self.dom_order = list(dom_order)
        self.rank_order = list(rank_order)
        self.reward_action_id = reward_action_id
        self.reason = reason
        super().__init__(
            f"{reason} (dom order: {self.dom_order}, rank order: {self.rank_order}, "
            f"reward action: {reward_action_id})"
        )


class BrowserFailure(PersonalizerCheckError):
    """Any other Playwright error raised while driving a page."""
