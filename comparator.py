# comparator.py
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from errors import EmptyDomOrder, RankMismatch, RecommendationNotLoaded
from models import ObservedResult

RANK_PREFIX_LIMIT = 4


@dataclass(frozen=True)
class RankingResponse:
    """Decoded body of the personalizer ``/rank`` call."""

    ranking_ids: List[str] = field(default_factory=list)
    reward_action_id: Optional[str] = None
    event_id: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any, identifier: str = "", limit: int = RANK_PREFIX_LIMIT) -> "RankingResponse":
        if not isinstance(payload, dict) or not isinstance(payload.get("ranking"), list):
            raise RecommendationNotLoaded(identifier, "rank response has no ranking list")
        ranking_ids = [
            str(entry.get("id"))
            for entry in payload["ranking"]
            if isinstance(entry, dict) and entry.get("id") is not None
        ]
        reward_action_id = payload.get("rewardActionId")
        event_id = payload.get("eventId")
        return cls(
            ranking_ids=ranking_ids[: max(0, limit)],
            reward_action_id=str(reward_action_id) if reward_action_id is not None else None,
            event_id=str(event_id) if event_id is not None else None,
        )


@dataclass(frozen=True)
class RankComparison:
    dom_order: List[str]
    rank_order: List[str]
    reward_action_id: Optional[str]
    prefix_length: int
    reward_matches: bool
    prefix_matches: bool

    @property
    def order_matches(self) -> bool:
        return self.reward_matches and self.prefix_matches

    @property
    def first_dom_id(self) -> Optional[str]:
        return self.dom_order[0] if self.dom_order else None

    @property
    def first_ranked_id(self) -> Optional[str]:
        return self.rank_order[0] if self.rank_order else None

    def apply_to(self, result: ObservedResult) -> None:
        result.dom_order = list(self.dom_order)
        result.rank_order = list(self.rank_order)
        result.first_ranked_id = self.first_ranked_id
        result.first_dom_id = self.first_dom_id
        result.order_matches = self.order_matches

    def raise_for_mismatch(self) -> None:
        if not self.reward_matches:
            raise RankMismatch(
                self.dom_order,
                self.rank_order,
                self.reward_action_id,
                f"First DOM element {self.first_dom_id!r} is not the reward action {self.reward_action_id!r}",
            )
        if not self.prefix_matches:
            raise RankMismatch(
                self.dom_order,
                self.rank_order,
                self.reward_action_id,
                f"DOM order differs from rank order in the first {self.prefix_length} positions",
            )


def compare_rank_with_dom(
    dom_order: Sequence[str],
    ranking: RankingResponse,
    limit: int = RANK_PREFIX_LIMIT,
    selector: str = "",
) -> RankComparison:
    """Compare the rendered order with the ranking on their common prefix only."""
    dom = [str(item) for item in dom_order]
    if not dom:
        raise EmptyDomOrder(selector)
    rank = list(ranking.ranking_ids[: max(0, limit)])
    prefix_length = min(len(dom), len(rank), max(0, limit))
    return RankComparison(
        dom_order=dom,
        rank_order=rank,
        reward_action_id=ranking.reward_action_id,
        prefix_length=prefix_length,
        reward_matches=dom[0] == ranking.reward_action_id,
        prefix_matches=dom[:prefix_length] == rank[:prefix_length],
    )
