"""
Restock household reorder assistant.

The package rebuilds a grocery cart from order history and produces a reviewable set of
recommendations: cart changes, items likely still in stock, and substitutes for
unavailable products. It never places an order.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
