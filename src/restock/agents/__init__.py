"""Decision agents for the household reorder review."""

from restock.agents.base import Agent
from restock.agents.cart_differ import CartDiffer
from restock.agents.stock_pruner import StockPruner
from restock.agents.substitute_ranker import SubstituteRanker
from restock.agents.slot_scorer import SlotScorer
from restock.agents.review_assembler import ReviewAssembler

__all__ = [
    "Agent",
    "CartDiffer",
    "StockPruner",
    "SubstituteRanker",
    "SlotScorer",
    "ReviewAssembler",
]
