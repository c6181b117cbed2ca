# orchestrator.py
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence, TypeVar

from errors import PersonalizerCheckError
from models import ObservedResult, TestItem

T = TypeVar("T")

PASSED = "passed"
FAILED = "failed"


class AttemptRunner(Protocol):
    def run_attempt(self, item: TestItem, result: ObservedResult) -> None:
        ...


def chunk_items(items: Sequence[T], size: int) -> List[List[T]]:
    if size < 1:
        raise ValueError(f"batch size must be positive, got {size}")
    return [list(items[start:start + size]) for start in range(0, len(items), size)]


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 2
    batch_size: int = 5

    @property
    def max_attempts(self) -> int:
        return 1 + self.max_retries

    def is_retry_eligible(self, item: TestItem, failure_count: int, round_number: int) -> bool:
        # round R replays every item that has failed at least R times so far
        return round_number <= self.max_retries and failure_count >= round_number


class FailureTracker:
    """identifier -> number of failed attempts."""

    def __init__(self):
        self._counts: Dict[str, int] = {}

    def record_failure(self, identifier: str) -> int:
        self._counts[identifier] = self._counts.get(identifier, 0) + 1
        return self._counts[identifier]

    def count(self, identifier: str) -> int:
        return self._counts.get(identifier, 0)

    def as_dict(self) -> Dict[str, int]:
        return dict(self._counts)

    def __len__(self) -> int:
        return len(self._counts)


@dataclass
class RunContext:
    policy: RetryPolicy
    tracker: FailureTracker = field(default_factory=FailureTracker)
    batches: List[List[TestItem]] = field(default_factory=list)
    results: List[ObservedResult] = field(default_factory=list)

    def batch_number_for(self, item: TestItem) -> int:
        for index, batch in enumerate(self.batches, start=1):
            if any(candidate.identifier == item.identifier for candidate in batch):
                return index
        return 0

    def attempts_for(self, identifier: str) -> List[ObservedResult]:
        return [result for result in self.results if result.identifier == identifier]

    def final_outcomes(self) -> Dict[str, str]:
        outcomes: Dict[str, str] = {}
        for result in self.results:
            outcomes[result.identifier] = PASSED if result.passed else FAILED
        return outcomes

    def summary(self) -> Dict[str, int]:
        outcomes = self.final_outcomes()
        return {
            "items": len(outcomes),
            "attempts": len(self.results),
            PASSED: sum(1 for state in outcomes.values() if state == PASSED),
            FAILED: sum(1 for state in outcomes.values() if state == FAILED),
        }


class SuiteOrchestrator:
    """Runs items batch by batch, then replays failures in bounded retry rounds."""

    def __init__(self, runner: AttemptRunner, policy: Optional[RetryPolicy] = None):
        self.runner = runner
        self.policy = policy or RetryPolicy()

    def run(self, items: Sequence[TestItem]) -> RunContext:
        context = RunContext(policy=self.policy, batches=chunk_items(items, self.policy.batch_size))

        for batch_number, batch in enumerate(context.batches, start=1):
            print(f"\n🗂️ Batch {batch_number}/{len(context.batches)} ({len(batch)} items)")
            for item in batch:
                self.run_item(context, item, batch_number, attempt=0)

        for round_number in range(1, self.policy.max_retries + 1):
            candidates = [
                item
                for item in items
                if self.policy.is_retry_eligible(item, context.tracker.count(item.identifier), round_number)
            ]
            if not candidates:
                break
            print(f"\n🔁 Scheduling Retry {round_number} for {len(candidates)} items...\n")
            for item in candidates:
                self.run_item(context, item, context.batch_number_for(item), attempt=round_number)

        return context

    def run_item(self, context: RunContext, item: TestItem, batch_number: int, attempt: int) -> ObservedResult:
        label = "🧪" if attempt == 0 else f"♻️ Retry {attempt}"
        print(f"{label} Batch {batch_number} | {item.title()} - {item.url}")

        result = ObservedResult.for_item(item, batch_number=batch_number, attempt=attempt)
        try:
            self.runner.run_attempt(item, result)
        except PersonalizerCheckError as exc:
            result.error = str(exc)
            failures = context.tracker.record_failure(item.identifier)
            print(f"  ❌ {item.identifier} failed (failure {failures}): {exc}")
        else:
            print(f"  ✅ {item.identifier} - rank matches DOM")
        finally:
            context.results.append(result)
        return result
