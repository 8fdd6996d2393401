"""
Headless client for the halal map.

Responsibilities:
- Talk to the API over HTTP (chat, search, ratings, suggestions).
- Hold UI state: chat history, the displayed place set, map markers and selection.
- Persist favorites, guest quota and map position the way a browser would.
"""
