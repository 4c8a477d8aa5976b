"""One review session: diff, prune, substitute, score slots, enhance, assemble."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from datetime import date, datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence

from restock.agents.cart_differ import diff, items_needing_substitution
from restock.agents.review_assembler import AssemblyRequest, ReviewAssembler
from restock.agents.slot_scorer import rank_slots
from restock.agents.stock_pruner import evaluate, find_item_history, purchase_analytics
from restock.agents.substitute_ranker import find_substitutes
from restock.config import Settings, get_settings
from restock.enhancement.adapter import EnhancementAdapter, EnhancementContext, build_enhancement_adapter
from restock.logging_utils import session_context
from restock.models.cart import CartSnapshot
from restock.models.history import PurchaseRecord
from restock.models.pruning import PrunerConfig, UserOverride
from restock.models.review import ReviewPack
from restock.models.slots import DeliverySlot, SlotPreferences
from restock.models.substitution import SubstituteCandidate, SubstitutionResult
from restock.normalize import normalize_name

logger = logging.getLogger(__name__)


class ReviewSession:
    """Run every decision stage over one cart and return a Review Pack."""

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        adapter: Optional[EnhancementAdapter] = None,
        pruner_config: Optional[PrunerConfig] = None,
        slot_preferences: Optional[SlotPreferences] = None,
        overrides: Optional[Mapping[str, UserOverride]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.adapter = adapter if adapter is not None else build_enhancement_adapter(self.settings)
        self.pruner_config = pruner_config or PrunerConfig(
            conservative_mode=self.settings.conservative_mode,
            min_prune_confidence=self.settings.min_prune_confidence,
            use_learned_cadences=self.settings.use_learned_cadences,
        )
        self.slot_preferences = slot_preferences or SlotPreferences()
        self.overrides = dict(overrides or {})

    def run(
        self,
        previous: CartSnapshot,
        current: CartSnapshot,
        history: Sequence[PurchaseRecord],
        candidates_by_item: Optional[Mapping[str, Sequence[SubstituteCandidate]]] = None,
        slots: Sequence[DeliverySlot] = (),
        reference_date: Optional[date] = None,
        cancel_event: Optional[threading.Event] = None,
        deadline_seconds: Optional[float] = None,
    ) -> ReviewPack:
        """
        Build the Review Pack for one cart.

        ``deadline_seconds`` bounds all enhancement passes of the session together and
        defaults to the adapter policy's deadline.
        """

        budget = self.adapter.policy.deadline_seconds if deadline_seconds is None else deadline_seconds
        deadline = time.monotonic() + budget
        session_id = uuid.uuid4().hex
        with session_context(session_id):
            return self._run(
                session_id,
                previous,
                current,
                tuple(history),
                candidates_by_item or {},
                slots,
                reference_date or date.today(),
                cancel_event,
                deadline,
            )

    def _run(
        self,
        session_id: str,
        previous: CartSnapshot,
        current: CartSnapshot,
        history: Sequence[PurchaseRecord],
        candidates_by_item: Mapping[str, Sequence[SubstituteCandidate]],
        slots: Sequence[DeliverySlot],
        reference_date: date,
        cancel_event: Optional[threading.Event],
        deadline: float,
    ) -> ReviewPack:
        logger.info(
            "Review session started items=%s history_records=%s reference_date=%s",
            len(current.items),
            len(history),
            reference_date.isoformat(),
        )
        cart_diff = diff(previous, current)
        pruning = evaluate(current, history, reference_date, self.pruner_config, self.overrides)
        substitutions = self._substitutions(current, candidates_by_item)
        scored_slots = rank_slots(slots, self.slot_preferences)

        prune_enhancement = None
        substitution_enhancement = None
        if self.adapter.available:
            context = EnhancementContext(
                cart_item_names=[item.name for item in current.items],
                cancel_event=cancel_event,
                analytics_by_item=self._analytics(current, history),
                deadline=deadline,
            )
            prune_enhancement = self.adapter.enhance_prune(pruning.decisions, context)
            substitution_enhancement = self.adapter.enhance_substitutions(substitutions, context)

        return ReviewAssembler().run(
            AssemblyRequest(
                previous=previous,
                current=current,
                diff=cart_diff,
                pruning=pruning,
                substitutions=substitutions,
                slots=scored_slots,
                prune_enhancement=prune_enhancement,
                substitution_enhancement=substitution_enhancement,
                price_threshold=self.settings.price_attention_threshold,
                household_id=self.settings.household_id,
                session_id=session_id,
                generated_at=datetime.now(timezone.utc),
            )
        )

    @staticmethod
    def _analytics(current: CartSnapshot, history: Sequence[PurchaseRecord]) -> Dict[str, Dict[str, object]]:
        summaries: Dict[str, Dict[str, object]] = {}
        for item in current.items:
            analytics = purchase_analytics(find_item_history(item.name, history))
            if analytics is not None:
                summaries[normalize_name(item.name)] = analytics.as_dict()
        return summaries

    def _substitutions(
        self,
        current: CartSnapshot,
        candidates_by_item: Mapping[str, Sequence[SubstituteCandidate]],
    ) -> List[SubstitutionResult]:
        by_name = {normalize_name(name): candidates for name, candidates in candidates_by_item.items()}
        results: List[SubstitutionResult] = []
        for item in items_needing_substitution(current):
            candidates = by_name.get(normalize_name(item.name), ())
            results.append(
                find_substitutes(item, candidates, max_substitutes=self.settings.max_substitutes)
            )
        return results


__all__ = ["ReviewSession"]
