"""
Place search layer.

Responsibilities:
- Define the Place record and the PlaceFilter contract shared by chat, UI and search.
- Sanitize free-text filter values before they reach a pattern-match query.
- Translate a PlaceFilter into AND-of-OR clauses and run them against a store.
- Cache search results for repeated filters.
"""
