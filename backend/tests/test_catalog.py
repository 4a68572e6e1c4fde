"""
Test catalog lookups and ranked app content.
"""

from datetime import datetime, timezone

import pytest

from learnpath.agents.tools.catalog import (
    get_language_variant,
    list_app_content,
    list_learning_apps,
    sample_unseen_content,
    suggest_starter_apps,
)


USER = "user-1"
NOW = datetime(2024, 5, 10, tzinfo=timezone.utc)


@pytest.mark.asyncio
class TestCatalog:
    """App catalog lookups."""

    async def test_learning_apps_only(self, seed):
        await seed.app("kasus", tags='["deutsch", "grammatik"]')
        await seed.app("rechner", type="tool")
        await seed.app("verben", tags="not json")

        apps = await list_learning_apps()

        assert [app.id for app in apps] == ["kasus", "verben"]
        assert apps[0].tags == ["deutsch", "grammatik"]
        assert apps[1].tags == []

    async def test_starter_apps_fewer_than_requested(self, seed):
        await seed.app("kasus")
        await seed.app("verben")

        apps = await suggest_starter_apps(5)

        assert sorted(app.id for app in apps) == ["kasus", "verben"]

    async def test_language_variant_defaults_to_swiss(self, seed):
        assert await get_language_variant(USER) == "swiss"
        await seed.user("user-2", language_variant="standard")
        assert await get_language_variant("user-2") == "standard"

    async def test_unseen_sample_excludes_attempted_and_tools(self, seed):
        await seed.app("kasus")
        await seed.app("rechner", type="tool")
        attempted = await seed.questions("kasus", 2)
        fresh = [await seed.content("kasus", {"q": i}) for i in range(3)]
        await seed.content("rechner", {"q": "tool"})

        sample = await sample_unseen_content(USER, 10)

        assert sorted(item.id for item in sample) == sorted(fresh)
        assert not set(attempted) & {item.id for item in sample}
        assert len(await sample_unseen_content(USER, 2)) == 2


@pytest.mark.asyncio
class TestListAppContent:
    """Per-app content listing."""

    async def test_ranked_struggling_first_mastered_last(self, seed):
        await seed.app("kasus")
        mastered = await seed.content("kasus", {"q": "m"})
        unseen = await seed.content("kasus", {"q": "u"})
        struggling = await seed.content("kasus", {"q": "s"})
        await seed.progress("kasus", mastered, success=5, failure=0)
        await seed.progress("kasus", struggling, success=0, failure=3)

        items = await list_app_content(USER, "kasus", now=NOW)

        assert [item.id for item in items] == [struggling, unseen, mastered]
        assert [item.mastery for item in items] == ["struggling", "new", "mastered"]
        assert items[0].failure_count == 3
        assert items[1].success_count == 0

    async def test_anonymous_listing_keeps_catalog_order(self, seed):
        await seed.app("kasus")
        first = await seed.content("kasus", {"q": 1})
        broken = await seed.content("kasus", "{not json")

        items = await list_app_content(None, "kasus")

        assert [item.id for item in items] == [first, broken]
        assert items[1].data is None
        assert items[0].mastery is None

    async def test_level_filters(self, seed):
        await seed.app("kasus")
        easy = await seed.content("kasus", {"q": 1}, level=1, skill_level=0.2)
        hard = await seed.content("kasus", {"q": 2}, level=2, skill_level=0.9)
        open_item = await seed.content("kasus", {"q": 3})

        by_skill = await list_app_content(None, "kasus", skill_level=0.5)
        by_level = await list_app_content(None, "kasus", level=2)

        assert [item.id for item in by_skill] == [easy, open_item]
        assert [item.id for item in by_level] == [hard, open_item]
