"""Retailer search URL derivation."""

from __future__ import annotations

from urllib.parse import quote

SEARCH_URL_TEMPLATES = {
    "amazon": "https://www.amazon.com/s?k={query}",
    "amazon grocery": "https://www.amazon.com/s?k={query}&i=amazonfresh",
    "amazon fresh": "https://www.amazon.com/s?k={query}&i=amazonfresh",
    "walmart": "https://www.walmart.com/search?q={query}",
    "target": "https://www.target.com/s?searchTerm={query}",
}

FALLBACK_SEARCH_URL = "https://www.google.com/search?q={query}"


def derive_url(product_name: str | None, retailer: str | None = None, default_retailer: str = "Amazon") -> str:
    """Return a search URL for the product at the retailer.

    Total: unknown retailers fall back to a generic web search.
    """

    query = quote((product_name or "").strip(), safe="")
    key = (retailer or default_retailer or "").strip().lower()
    return SEARCH_URL_TEMPLATES.get(key, FALLBACK_SEARCH_URL).format(query=query)
