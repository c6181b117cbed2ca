# models.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple
from urllib.parse import urlparse

RECOMMENDATION_FLOW = "Recommendation"
CARD_SHUFFLE_FLOW = "Card Shuffle"


# one row of the input workbook. read-only once loaded.
@dataclass(frozen=True)
class TestItem:
    __test__ = False

    url: str
    identifier: str
    element_selector: str
    is_recommendation_flow: bool = False
    expected_weights: Tuple[float, ...] = ()

    @property
    def flow_type(self) -> str:
        return RECOMMENDATION_FLOW if self.is_recommendation_flow else CARD_SHUFFLE_FLOW

    @property
    def locale(self) -> Optional[str]:
        parts = [part for part in urlparse(self.url).path.split("/") if part]
        return parts[0] if parts else None

    def title(self) -> str:
        icon = "🎯" if self.is_recommendation_flow else "🔀"
        return f"{icon} {self.flow_type} Flow - personalizerId : {self.identifier} & locale : {self.locale}"


# one record per attempt (the first run and every retry get their own).
@dataclass
class ObservedResult:
    identifier: str
    flow_type: str
    url: str
    element_selector: str
    recommendation_not_loaded: bool = False
    dom_order: List[str] = field(default_factory=list)
    rank_order: List[str] = field(default_factory=list)
    rank_api_observed: bool = False
    reward_api_observed: bool = False
    first_ranked_id: Optional[str] = None
    first_dom_id: Optional[str] = None
    order_matches: bool = False
    rank_event_id: Optional[str] = None
    reward_event_id: Optional[str] = None
    reward_weight_list: List[float] = field(default_factory=list)
    reward_weight: Optional[float] = None
    page_errors: List[str] = field(default_factory=list)
    failed_requests: List[str] = field(default_factory=list)
    error: Optional[str] = None
    screenshot_path: Optional[str] = None
    batch_number: int = 1
    attempt: int = 0

    @classmethod
    def for_item(cls, item: TestItem, batch_number: int = 1, attempt: int = 0) -> "ObservedResult":
        return cls(
            identifier=item.identifier,
            flow_type=item.flow_type,
            url=item.url,
            element_selector=item.element_selector,
            reward_weight_list=list(item.expected_weights),
            batch_number=batch_number,
            attempt=attempt,
        )

    @property
    def passed(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ConsoleCheckItem:
    url: str
    experiment_id: str
    error_types: Tuple[str, ...] = ()

    def wants(self, error_type: str) -> bool:
        return error_type in self.error_types


@dataclass
class ConsoleMessage:
    type: str
    message: str
    url: str
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
