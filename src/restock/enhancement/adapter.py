"""Optional LLM second opinion on low-confidence or high-stakes decisions.

The adapter never changes a heuristic decision. It attaches a validated
:class:`~restock.models.enhancement.Enhancement` next to it, or nothing at all, and it
never raises for external failures: an unreachable, slow or confused LLM simply leaves
the heuristic output as the answer.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Generic, List, Mapping, Optional, Sequence, Type, TypeVar, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from rapidfuzz import fuzz, process

from restock.categories import detect_category
from restock.config import Settings, get_settings
from restock.enhancement.prompts import build_prune_prompt, build_substitution_prompt
from restock.llm.client import EnhancementUnavailableError, build_decision_llm_client, parse_json_reply
from restock.llm.interface import DecisionLLM
from restock.metrics import ENHANCEMENT_CALLS, ENHANCEMENT_LATENCY
from restock.models.enhancement import EnhancedDecision, Enhancement, EnhancementResult
from restock.models.pruning import PruneDecision, PruneReason
from restock.models.substitution import SubstitutionResult
from restock.normalize import normalize_name

logger = logging.getLogger(__name__)

DecisionT = TypeVar("DecisionT", PruneDecision, SubstitutionResult)

NAME_MATCH_CUTOFF = 80.0
POLL_INTERVAL_SECONDS = 0.05

NO_CLIENT_REASON = "LLM client not configured"
NOTHING_SELECTED_REASON = "no items required review"


class UnsafeEnhancementError(ValueError):
    """An LLM reply tried to make a decision less conservative without saying why."""


class InvocationState(str, Enum):
    IDLE = "idle"
    INVOKING = "invoking"
    SUCCEEDED = "succeeded"
    FAILED_FALLBACK = "failed_fallback"


_TRANSITIONS: Dict[InvocationState, frozenset[InvocationState]] = {
    InvocationState.IDLE: frozenset({InvocationState.INVOKING, InvocationState.FAILED_FALLBACK}),
    InvocationState.INVOKING: frozenset(
        {InvocationState.INVOKING, InvocationState.SUCCEEDED, InvocationState.FAILED_FALLBACK}
    ),
    InvocationState.SUCCEEDED: frozenset(),
    InvocationState.FAILED_FALLBACK: frozenset(),
}


@dataclass
class ItemInvocation:
    """Per-item progress through IDLE -> INVOKING -> SUCCEEDED | FAILED_FALLBACK."""

    index: int
    label: str
    state: InvocationState = InvocationState.IDLE
    attempts: int = 0
    enhancement: Optional[Enhancement] = None
    error: Optional[str] = None
    flagged: bool = False

    def advance(self, state: InvocationState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid enhancement transition {self.state.value} -> {state.value}")
        self.state = state

    def succeed(self, enhancement: Enhancement) -> None:
        self.advance(InvocationState.SUCCEEDED)
        self.enhancement = enhancement

    def fall_back(self, error: str, *, flagged: bool = False) -> None:
        self.advance(InvocationState.FAILED_FALLBACK)
        self.error = error
        self.flagged = flagged


@dataclass(frozen=True)
class EnhancementPolicy:
    uncertainty_threshold: float = 0.7
    high_consequence_categories: tuple[str, ...] = ("baby-care", "pet-supplies")
    sensitive_names: tuple[str, ...] = ()
    max_retries: int = 2
    workers: int = 3
    deadline_seconds: float = 90.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "EnhancementPolicy":
        return cls(
            uncertainty_threshold=settings.enhancement_uncertainty_threshold,
            high_consequence_categories=tuple(settings.high_consequence_categories),
            sensitive_names=tuple(settings.sensitive_names),
            max_retries=settings.enhancement_max_retries,
            workers=settings.enhancement_workers,
            deadline_seconds=settings.enhancement_deadline_seconds,
        )


@dataclass(frozen=True)
class EnhancementContext:
    """Run-wide information shared by every prompt in one pass."""

    cart_item_names: Sequence[str] = ()
    cancel_event: Optional[threading.Event] = None
    # Purchase analytics keyed by normalized product name.
    analytics_by_item: Mapping[str, Mapping[str, object]] = field(default_factory=dict)
    # Absolute time.monotonic() shared by every pass of one session.
    deadline: Optional[float] = None


class PruneReview(BaseModel):
    """Expected LLM reply when reviewing a prune decision."""

    product_name: str = Field(default="", validation_alias=AliasChoices("product_name", "productName"))
    should_prune: bool = Field(validation_alias=AliasChoices("should_prune", "shouldPrune"))
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str = ""
    safety_flags: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("safety_flags", "safetyFlags")
    )

    model_config = ConfigDict(extra="ignore")


class SubstitutionReview(BaseModel):
    """Expected LLM reply when reviewing a ranked substitution list."""

    recommended_product: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("recommended_product", "recommendedProduct")
    )
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str = ""
    safety_flags: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("safety_flags", "safetyFlags")
    )

    model_config = ConfigDict(extra="ignore")


def _unique(flags: Sequence[str]) -> list[str]:
    return list(dict.fromkeys(flag.strip() for flag in flags if flag and flag.strip()))


class ReviewKind(ABC, Generic[DecisionT]):
    """How one decision type is selected, prompted, and interpreted."""

    name: str
    result_type: Type[EnhancementResult]
    item_type: Type[EnhancedDecision]

    def __init__(self, policy: EnhancementPolicy) -> None:
        self.policy = policy

    @abstractmethod
    def label(self, decision: DecisionT) -> str:
        """Human-readable item name."""

    @abstractmethod
    def category(self, decision: DecisionT) -> str:
        """Category value used for the high-consequence check."""

    @abstractmethod
    def confidence(self, decision: DecisionT) -> float:
        """Heuristic confidence compared against the uncertainty threshold."""

    @abstractmethod
    def prompt(self, decision: DecisionT, context: EnhancementContext) -> dict[str, str]:
        """System/user prompt pair."""

    @abstractmethod
    def interpret(self, decision: DecisionT, payload: dict) -> Enhancement:
        """Validate a decoded reply; raise ``ValueError`` when it cannot be used."""

    def eligible(self, decision: DecisionT) -> bool:
        return True

    def is_high_consequence(self, decision: DecisionT) -> bool:
        return self.category(decision) in self.policy.high_consequence_categories

    def is_sensitive(self, decision: DecisionT) -> bool:
        name = normalize_name(self.label(decision))
        return any(normalize_name(term) in name for term in self.policy.sensitive_names if term.strip())

    def needs_review(self, decision: DecisionT) -> bool:
        if not self.eligible(decision):
            return False
        return (
            self.confidence(decision) < self.policy.uncertainty_threshold
            or self.is_high_consequence(decision)
            or self.is_sensitive(decision)
        )


class PruneReviewKind(ReviewKind[PruneDecision]):
    name = "prune"
    result_type = EnhancementResult[PruneDecision]
    item_type = EnhancedDecision[PruneDecision]

    def label(self, decision: PruneDecision) -> str:
        return decision.product_name

    def category(self, decision: PruneDecision) -> str:
        return decision.context.category.value

    def confidence(self, decision: PruneDecision) -> float:
        return decision.confidence

    def eligible(self, decision: PruneDecision) -> bool:
        # Household preferences are authoritative.
        return decision.reason_code is not PruneReason.USER_PREFERENCE

    def prompt(self, decision: PruneDecision, context: EnhancementContext) -> dict[str, str]:
        analytics = context.analytics_by_item.get(normalize_name(decision.product_name))
        return build_prune_prompt(decision, context.cart_item_names, analytics)

    def interpret(self, decision: PruneDecision, payload: dict) -> Enhancement:
        review = PruneReview.model_validate(payload)
        if review.product_name:
            similarity = fuzz.token_sort_ratio(
                normalize_name(review.product_name), normalize_name(decision.product_name)
            )
            if similarity < NAME_MATCH_CUTOFF:
                raise ValueError(f"reply refers to a different item: {review.product_name!r}")

        reason = review.reason.strip()
        flips_to_removal = review.should_prune and not decision.prune
        if flips_to_removal and not reason:
            raise UnsafeEnhancementError("removal suggested without justification")
        if not reason:
            raise ValueError("reply carries no reasoning")

        flags = list(review.safety_flags)
        if flips_to_removal:
            flags.append("removal_against_heuristic")
        if review.should_prune and self.is_high_consequence(decision):
            flags.append("high_consequence_category")
        return Enhancement(
            llm_reasoning=reason,
            llm_confidence=review.confidence,
            recommendation="prune" if review.should_prune else "keep",
            safety_flags=_unique(flags),
        )


class SubstitutionReviewKind(ReviewKind[SubstitutionResult]):
    name = "substitution"
    result_type = EnhancementResult[SubstitutionResult]
    item_type = EnhancedDecision[SubstitutionResult]

    def label(self, decision: SubstitutionResult) -> str:
        return decision.original_item.name

    def category(self, decision: SubstitutionResult) -> str:
        return detect_category(decision.original_item.name).category.value

    def confidence(self, decision: SubstitutionResult) -> float:
        best = decision.best
        return best.score.overall if best is not None else 0.0

    def eligible(self, decision: SubstitutionResult) -> bool:
        return decision.has_substitutes

    def prompt(self, decision: SubstitutionResult, context: EnhancementContext) -> dict[str, str]:
        return build_substitution_prompt(decision)

    def interpret(self, decision: SubstitutionResult, payload: dict) -> Enhancement:
        review = SubstitutionReview.model_validate(payload)
        reason = review.reason.strip()
        if not reason:
            raise ValueError("reply carries no reasoning")

        flags = list(review.safety_flags)
        recommendation: Optional[str] = None
        if review.recommended_product and review.recommended_product.strip():
            names = [normalize_name(ranked.candidate.name) for ranked in decision.substitutes]
            match = process.extractOne(
                normalize_name(review.recommended_product),
                names,
                scorer=fuzz.token_sort_ratio,
                score_cutoff=NAME_MATCH_CUTOFF,
            )
            if match is None:
                raise ValueError(
                    f"recommended product is not a listed candidate: {review.recommended_product!r}"
                )
            chosen = decision.substitutes[match[2]].candidate
            recommendation = chosen.product_id
            best = decision.best
            if best is not None and chosen.product_id != best.candidate.product_id:
                flags.append("differs_from_top_ranked")
        else:
            flags.append("no_acceptable_substitute")

        if self.is_high_consequence(decision):
            flags.append("high_consequence_category")
        return Enhancement(
            llm_reasoning=reason,
            llm_confidence=review.confidence,
            recommendation=recommendation,
            safety_flags=_unique(flags),
        )


class EnhancementAdapter:
    """Dispatch selected decisions to the LLM with bounded concurrency."""

    def __init__(
        self,
        client: Optional[DecisionLLM],
        policy: Optional[EnhancementPolicy] = None,
    ) -> None:
        self._client = client
        self.policy = policy or EnhancementPolicy()

    @property
    def available(self) -> bool:
        return self._client is not None

    def enhance(
        self,
        decisions: Sequence[Union[PruneDecision, SubstitutionResult]],
        context: Optional[EnhancementContext] = None,
    ) -> EnhancementResult:
        """Route prune decisions or substitution results to the matching review."""

        items = list(decisions)
        if items and all(isinstance(item, SubstitutionResult) for item in items):
            return self.enhance_substitutions(items, context)  # type: ignore[arg-type]
        if all(isinstance(item, PruneDecision) for item in items):
            return self.enhance_prune(items, context)  # type: ignore[arg-type]
        raise TypeError("decisions must all be PruneDecision or all SubstitutionResult")

    def enhance_prune(
        self,
        decisions: Sequence[PruneDecision],
        context: Optional[EnhancementContext] = None,
    ) -> EnhancementResult[PruneDecision]:
        return self._run(PruneReviewKind(self.policy), decisions, context or EnhancementContext())

    def enhance_substitutions(
        self,
        results: Sequence[SubstitutionResult],
        context: Optional[EnhancementContext] = None,
    ) -> EnhancementResult[SubstitutionResult]:
        return self._run(SubstitutionReviewKind(self.policy), results, context or EnhancementContext())

    def _fallback(self, kind: ReviewKind, decisions: Sequence, reason: str) -> EnhancementResult:
        return kind.result_type(
            decisions=[kind.item_type(decision=decision) for decision in decisions],
            invoked=False,
            invocation_reason=reason,
            items_enhanced=0,
            items_fallback=len(decisions),
        )

    def _run(self, kind: ReviewKind, decisions: Sequence, context: EnhancementContext) -> EnhancementResult:
        decisions = list(decisions)
        if self._client is None:
            return self._fallback(kind, decisions, NO_CLIENT_REASON)
        try:
            return self._dispatch(kind, decisions, context)
        except Exception:
            logger.exception("Enhancement pass failed; keeping heuristic %s decisions", kind.name)
            return self._fallback(kind, decisions, "enhancement failed unexpectedly")

    def _dispatch(self, kind: ReviewKind, decisions: list, context: EnhancementContext) -> EnhancementResult:
        selected = [index for index, decision in enumerate(decisions) if kind.needs_review(decision)]
        if not selected:
            return self._fallback(kind, decisions, NOTHING_SELECTED_REASON)

        cancel_event = context.cancel_event or threading.Event()
        if cancel_event.is_set():
            return self._fallback(kind, decisions, "cancelled before enhancement")
        deadline = time.monotonic() + self.policy.deadline_seconds
        if context.deadline is not None:
            if context.deadline <= time.monotonic():
                return self._fallback(kind, decisions, "deadline exceeded before enhancement")
            deadline = min(deadline, context.deadline)

        stop = threading.Event()

        def should_stop() -> bool:
            return stop.is_set() or cancel_event.is_set()

        logger.info(
            "Enhancing %s of %s %s decision(s) with %s worker(s)",
            len(selected),
            len(decisions),
            kind.name,
            self.policy.workers,
        )
        completed: Dict[int, ItemInvocation] = {}
        abandoned: Optional[str] = None

        executor = ThreadPoolExecutor(
            max_workers=max(1, min(self.policy.workers, len(selected))),
            thread_name_prefix="restock-enhance",
        )
        try:
            futures: Dict[Future, int] = {
                executor.submit(
                    self._invoke,
                    kind,
                    decisions[index],
                    context,
                    ItemInvocation(index=index, label=kind.label(decisions[index])),
                    should_stop,
                ): index
                for index in selected
            }
            pending = set(futures)
            while pending:
                if cancel_event.is_set():
                    abandoned = "cancelled"
                    break
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    abandoned = "deadline exceeded"
                    break
                done, pending = wait(
                    pending, timeout=min(remaining, POLL_INTERVAL_SECONDS), return_when=FIRST_COMPLETED
                )
                for future in done:
                    completed[futures[future]] = future.result()
        finally:
            stop.set()
            executor.shutdown(wait=False, cancel_futures=True)

        if abandoned:
            logger.warning(
                "Enhancement %s: %s of %s %s item(s) fall back to heuristics",
                abandoned,
                len(selected) - len(completed),
                len(selected),
                kind.name,
            )
        return self._merge(kind, decisions, selected, completed, abandoned)

    def _merge(
        self,
        kind: ReviewKind,
        decisions: list,
        selected: List[int],
        completed: Dict[int, ItemInvocation],
        abandoned: Optional[str],
    ) -> EnhancementResult:
        merged = []
        flagged: List[str] = []
        errors: List[str] = []
        for index, decision in enumerate(decisions):
            invocation = completed.get(index)
            enhancement = None
            if invocation is not None:
                if invocation.state is InvocationState.SUCCEEDED:
                    enhancement = invocation.enhancement
                elif invocation.error:
                    errors.append(invocation.error)
                if invocation.flagged:
                    flagged.append(invocation.label)
            merged.append(kind.item_type(decision=decision, enhancement=enhancement))

        enhanced_count = sum(1 for item in merged if item.enhancement is not None)
        if enhanced_count:
            reason = f"reviewed {len(selected)} item(s), enhanced {enhanced_count}"
            if abandoned:
                reason = f"{reason}; {abandoned}"
        else:
            detail = abandoned or (errors[-1] if errors else "no usable replies")
            reason = f"LLM unavailable: {detail}"
        return kind.result_type(
            decisions=merged,
            invoked=enhanced_count > 0,
            invocation_reason=reason,
            items_enhanced=enhanced_count,
            items_fallback=len(decisions) - enhanced_count,
            flagged_items=flagged,
        )

    def _invoke(
        self,
        kind: ReviewKind,
        decision,
        context: EnhancementContext,
        invocation: ItemInvocation,
        should_stop: Callable[[], bool],
    ) -> ItemInvocation:
        prompt = kind.prompt(decision, context)
        while True:
            if should_stop():
                invocation.fall_back("cancelled")
                return invocation

            invocation.advance(InvocationState.INVOKING)
            invocation.attempts += 1
            started = time.perf_counter()
            try:
                reply = self._client.complete(prompt["system"], prompt["user"])
                enhancement = kind.interpret(decision, parse_json_reply(reply))
            except UnsafeEnhancementError as exc:
                ENHANCEMENT_CALLS.labels(kind=kind.name, outcome="rejected").inc()
                logger.warning("Discarding %s enhancement for %s: %s", kind.name, invocation.label, exc)
                invocation.fall_back(str(exc), flagged=True)
                return invocation
            except (ValueError, EnhancementUnavailableError) as exc:
                ENHANCEMENT_CALLS.labels(kind=kind.name, outcome="invalid").inc()
                logger.warning(
                    "Enhancement attempt %s for %s failed: %s",
                    invocation.attempts,
                    invocation.label,
                    exc,
                )
                invocation.error = str(exc)
            except Exception as exc:
                ENHANCEMENT_CALLS.labels(kind=kind.name, outcome="error").inc()
                logger.exception(
                    "Enhancement attempt %s for %s raised", invocation.attempts, invocation.label
                )
                invocation.error = str(exc) or exc.__class__.__name__
            else:
                ENHANCEMENT_CALLS.labels(kind=kind.name, outcome="success").inc()
                invocation.succeed(enhancement)
                return invocation
            finally:
                ENHANCEMENT_LATENCY.labels(kind=kind.name).observe(time.perf_counter() - started)

            if invocation.attempts > self.policy.max_retries:
                invocation.fall_back(invocation.error or "retries exhausted")
                return invocation


def build_enhancement_adapter(settings: Optional[Settings] = None) -> EnhancementAdapter:
    """Adapter wired from settings; without a configured LLM every pass falls back."""

    settings = settings or get_settings()
    return EnhancementAdapter(
        build_decision_llm_client(settings),
        EnhancementPolicy.from_settings(settings),
    )


__all__ = [
    "EnhancementAdapter",
    "EnhancementContext",
    "EnhancementPolicy",
    "InvocationState",
    "ItemInvocation",
    "PruneReview",
    "SubstitutionReview",
    "UnsafeEnhancementError",
    "build_enhancement_adapter",
]
