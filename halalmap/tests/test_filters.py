from __future__ import annotations

import asyncio

import httpx
import pytest

from halalmap.app import app
from halalmap.client.api import HalalMapClient
from halalmap.client.browser import PlaceBrowser
from halalmap.client.config import ClientConfig
from halalmap.client.filters import CERTIFIED, FilterControls
from halalmap.client.storage import FavoritesStore, MemoryStorage
from halalmap.places.cache import search_cache
from halalmap.places.models import PlaceFilter

CONFIG = ClientConfig(base_url="http://testserver")


def _run(coro):
    return asyncio.run(coro)


def _controls() -> FilterControls:
    search_cache.clear()
    api = HalalMapClient(CONFIG, transport=httpx.ASGITransport(app=app))
    return FilterControls(PlaceBrowser(api, FavoritesStore(MemoryStorage()), config=CONFIG))


def test_certified_chip_toggles_on_and_off():
    controls = _controls()

    async def go():
        await controls.browser.load_initial()
        await controls.toggle_certified()
        on = list(controls.browser.places)
        assert controls.is_active("halal_status", CERTIFIED)
        await controls.toggle_certified()
        return on

    on = _run(go())
    assert len(on) == 8
    assert {p.halal_status for p in on} == {"Certified"}
    assert not controls.has_active
    assert len(controls.browser.places) == 16


def test_cuisine_menu_is_single_choice():
    controls = _controls()

    async def go():
        await controls.browser.load_initial()
        await controls.choose_cuisine("Ramen")
        ramen = len(controls.browser.places)
        label = controls.cuisine_label
        await controls.choose_cuisine("Indian")
        return ramen, label

    ramen, label = _run(go())
    assert ramen == 4
    assert label == "Ramen"
    assert controls.active == PlaceFilter(cuisine_category="Indian")
    assert controls.cuisine_label == "Indian"
    assert [p.name for p in controls.browser.places] == ["Shinjuku Spice Palace"]


def test_chip_refines_chat_filter_and_clear_restores():
    controls = _controls()

    async def go():
        await controls.browser.load_initial()
        # a filter applied by chat shows up as the active state
        await controls.browser.apply_filter(PlaceFilter(keyword="Shibuya"))
        assert controls.is_active("keyword")
        await controls.toggle_no_alcohol()
        refined = [p.name for p in controls.browser.places]
        await controls.clear()
        return refined

    refined = _run(go())
    assert refined == ["Lahore Grill Shibuya"]
    assert not controls.has_active
    assert controls.cuisine_label == "Cuisine"
    assert len(controls.browser.places) == 16


def test_unknown_keys_and_options_rejected():
    controls = _controls()
    with pytest.raises(ValueError):
        _run(controls.toggle("favorites", "yes"))
    with pytest.raises(ValueError):
        _run(controls.choose_cuisine("Pizza"))
    assert not controls.has_active
