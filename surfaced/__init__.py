"""Surfaced: AI visibility toolkit for Shopify stores"""

__version__ = "1.0.0"
