"""
Terminal chat against a running halal map API.

    python -m halalmap.client --url http://localhost:8000

Commands: /reset, /fav <place name>, /favorites, /more <place name>,
/certified, /no-alcohol, /cuisine <name>, /clear, /quit
"""
from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import replace
from pathlib import Path

from .api import HalalMapClient
from .browser import PlaceBrowser
from .config import DEFAULT_CLIENT_CONFIG
from .filters import CUISINE_OPTIONS, FilterControls
from .session import ChatSession
from .storage import FavoritesStore, GuestQuota, JsonFileStorage


def _print_new(session: ChatSession, start: int) -> None:
    for message in session.messages[start:]:
        if message.role == "user":
            continue
        print(f"\n{message.content}")
        for i, place in enumerate(session.visible_places(message), start=1):
            marker = "*" if session.browser.favorites.is_favorite(place.id) else " "
            print(f"  {i:>2}.{marker} {place.name} ({place.cuisine_label}, {place.city or '?'})")
        if message.recommended_place:
            print(f"  -> /more {message.recommended_place}")
    if session.browser.search_error:
        print(f"\n[!] {session.browser.search_error}")
        session.browser.dismiss_error()


def _describe(session: ChatSession, name: str) -> None:
    place = session.browser.select_by_name(name)
    if place is None:
        print(f"No place called {name!r} on the map.")
        return
    print(f"\n{place.name} - {place.halal_status or 'Unverified'}")
    print(f"  {place.address or ''} {place.city or ''}".rstrip())
    if place.price_level:
        print(f"  Price: {place.price_level}")
    if place.google_maps_url:
        print(f"  {place.google_maps_url}")


async def _filter_command(controls: FilterControls, line: str) -> None:
    if line == "/certified":
        await controls.toggle_certified()
    elif line == "/no-alcohol":
        await controls.toggle_no_alcohol()
    elif line == "/clear":
        await controls.clear()
    else:
        name = line[len("/cuisine"):].strip()
        if name not in CUISINE_OPTIONS:
            print("Cuisines: " + ", ".join(CUISINE_OPTIONS))
            return
        await controls.choose_cuisine(name)

    browser = controls.browser
    if browser.search_error:
        print(f"[!] {browser.search_error}")
        browser.dismiss_error()
        return
    active = ", ".join(f"{k}={v}" for k, v in controls.active.model_dump(exclude_none=True).items())
    print(f"{len(browser.places)} places ({active or 'no filters'})")


async def run(url: str, state_path: Path, signed_in: bool) -> None:
    config = replace(DEFAULT_CLIENT_CONFIG, base_url=url)
    storage = JsonFileStorage(state_path)
    favorites = FavoritesStore(storage)

    async with HalalMapClient(config) as api:
        browser = PlaceBrowser(api, favorites, config=config)
        await browser.load_initial()
        session = ChatSession(
            api,
            browser,
            config=config,
            quota=GuestQuota(storage, config.max_free_queries),
            authenticated=signed_in,
        )
        controls = FilterControls(browser)
        print(f"{len(browser.places)} halal places loaded. Try: " + " / ".join(session.quick_questions()))

        while True:
            try:
                line = (await asyncio.to_thread(input, "\n> ")).strip()
            except EOFError:
                return
            if line in ("/quit", "/exit"):
                return
            if line == "/reset":
                await session.reset()
                print("Chat cleared.")
                continue
            if line == "/favorites":
                for place in browser.favorite_places():
                    print(f"  * {place.name}")
                continue
            if line.startswith("/fav "):
                place = browser.select_by_name(line[5:].strip())
                if place is None:
                    print("No such place on the map.")
                else:
                    added = favorites.toggle(place.id)
                    print(("Saved " if added else "Removed ") + place.name)
                continue
            if line.startswith("/more "):
                _describe(session, line[6:].strip())
                continue
            if line in ("/certified", "/no-alcohol", "/clear") or line.startswith("/cuisine"):
                await _filter_command(controls, line)
                continue

            start = len(session.messages)
            await session.submit(line)
            _print_new(session, start)


def main() -> None:
    parser = argparse.ArgumentParser(description="Chat with the halal map assistant")
    parser.add_argument("--url", default=DEFAULT_CLIENT_CONFIG.base_url)
    parser.add_argument("--state", type=Path, default=DEFAULT_CLIENT_CONFIG.state_path)
    parser.add_argument("--signed-in", action="store_true", help="skip the guest question limit")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    asyncio.run(run(args.url, args.state, args.signed_in))


if __name__ == "__main__":
    main()
