"""Recommendation engine for SmartShop.

This module contains the similarity computations, the user-based, item-based
and content-based recommenders, the popularity fallback chain and the hybrid
aggregator that merges them, together with the store interfaces and the
recommendation cache the engine reads from and writes to.
"""
