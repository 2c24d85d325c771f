"""Unit tests for translation, facet tree building, URL helpers and sessions."""

import json
from unittest.mock import AsyncMock, MagicMock

from vufind_ajax.infrastructure.i18n.translator import Translator
from vufind_ajax.repository.session_store_repository import SessionStoreRepository
from vufind_ajax.service.hierarchical_facet_helper import HierarchicalFacetHelper
from vufind_ajax.service.session_settings import SessionSettings
from vufind_ajax.service.url_query_helper import UrlQueryHelper

from tests.conftest import make_session

# ---------------------------------------------------------------------------
# Translator
# ---------------------------------------------------------------------------


class TestTranslator:
    """Tests for INI-backed translation."""

    def test_known_key(self, translator) -> None:
        assert translator.translate("on_reserve") == "On Reserve"
        assert translator.translate("plain_key") == "Plain value"

    def test_unknown_key_falls_back(self, translator) -> None:
        assert translator.translate("nope") == "nope"
        assert translator.translate("nope", default="Fallback") == "Fallback"
        assert translator.translate(None) == ""
        assert translator.translate(5) == "5"

    def test_placeholders(self, translator) -> None:
        text = translator.translate(
            "stats_key",
            {"%%start%%": 1, "%%end%%": 20, "total": 42, "lookfor": "dune"},
        )

        assert text == "Showing 1 - 20 of 42 for dune"

    def test_prefix(self, translator) -> None:
        assert translator.translate_with_prefix("location_", "MAIN") == "Main Library"
        assert translator.translate_with_prefix("location_", "on_reserve") == (
            "On Reserve"
        )
        assert translator.translate_with_prefix("location_", "") == ""

    def test_missing_language_file(self, translator) -> None:
        german = translator.with_language("de")

        assert german.language == "de"
        assert german.translate("on_reserve") == "on_reserve"
        assert translator.translate("on_reserve") == "On Reserve"


# ---------------------------------------------------------------------------
# Hierarchical facets
# ---------------------------------------------------------------------------


def _entry(value, count=1, applied=False, display=None):
    entry = {"value": value, "count": count, "isApplied": applied}
    if display is not None:
        entry["displayText"] = display
    return entry


class TestHierarchicalFacetHelper:
    """Tests for sorting, tree building and filtering."""

    def test_sorts_top_level_only(self) -> None:
        facets = [
            _entry("0/Science/", display="Science"),
            _entry("1/Science/Physics/", display="Physics"),
            _entry("0/Arts/", display="Arts"),
            _entry("1/Science/Biology/", display="Biology"),
        ]

        HierarchicalFacetHelper().sort_facet_list(facets)

        assert [f["displayText"] for f in facets] == [
            "Arts",
            "Science",
            "Physics",
            "Biology",
        ]

    def test_sorts_every_level(self) -> None:
        facets = [
            _entry("1/Science/Physics/", display="Physics"),
            _entry("1/Science/Biology/", display="Biology"),
        ]

        HierarchicalFacetHelper().sort_facet_list(facets, top_level_only=False)

        assert [f["displayText"] for f in facets] == ["Biology", "Physics"]

    def test_builds_tree(self) -> None:
        facets = [
            _entry("0/Main/", count=5),
            _entry("1/Main/Reference/", count=2, applied=True),
            _entry("0/Branch & Annex/", count=1),
        ]
        helper = UrlQueryHelper(filters=['building:"1/Main/Reference/"'])

        tree = HierarchicalFacetHelper().build_facet_array("building", facets, helper)

        main, annex = tree
        assert main["displayText"] == "Main"
        assert main["hasAppliedChildren"] is True
        child = main["children"][0]
        assert child["level"] == 1
        assert child["href"] == "/Search/Results"
        assert annex["displayText"] == "Branch &amp; Annex"
        assert annex["href"].startswith("/Search/Results?filter%5B%5D=")

    def test_orphans_become_roots(self) -> None:
        tree = HierarchicalFacetHelper().build_facet_array(
            "building", [_entry("1/Gone/Shelf/")], escape=False
        )

        assert [n["displayText"] for n in tree] == ["Shelf"]

    def test_filters(self) -> None:
        helper = HierarchicalFacetHelper()
        tree = helper.build_facet_array(
            "building",
            [
                _entry("0/Main/"),
                _entry("1/Main/Reference/"),
                _entry("1/Main/Stacks/"),
                _entry("0/Other/"),
            ],
        )

        filtered = helper.filter_facets(
            tree, include=[r"0/Main/"], exclude=[r"1/Main/Stacks/"]
        )

        assert [n["value"] for n in filtered] == ["0/Main/"]
        assert [c["value"] for c in filtered[0]["children"]] == ["1/Main/Reference/"]

    def test_included_descendant_keeps_parent(self) -> None:
        helper = HierarchicalFacetHelper()
        tree = helper.build_facet_array(
            "building", [_entry("0/Main/"), _entry("1/Main/Reference/")]
        )

        filtered = helper.filter_facets(tree, include=[r"1/Main/Reference/"])

        assert filtered[0]["value"] == "0/Main/"
        assert len(filtered[0]["children"]) == 1


# ---------------------------------------------------------------------------
# UrlQueryHelper
# ---------------------------------------------------------------------------


class TestUrlQueryHelper:
    def test_add_and_remove(self) -> None:
        helper = UrlQueryHelper("dune", filters=['format:"Book"'])

        added = helper.add_facet("language", "English")
        removed = helper.remove_facet("format", "Book")

        assert "lookfor=dune" in added
        assert added.count("filter%5B%5D") == 2
        assert removed == "/Search/Results?lookfor=dune&type=AllFields"

    def test_suppressed_query(self) -> None:
        helper = UrlQueryHelper("dune")
        helper.set_suppress_query(True)

        assert helper.get_params() == "/Search/Results"

    def test_from_request(self) -> None:
        helper = UrlQueryHelper.from_request({"lookfor": "x", "filter": 'a:"b"'})

        assert helper.is_filter_applied("a", "b")
        assert helper.remove_field("a") == "/Search/Results?lookfor=x&type=AllFields"


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


def _redis():
    redis = MagicMock()
    redis.get = AsyncMock(return_value=None)
    redis.setex = AsyncMock()
    redis.expire = AsyncMock(return_value=1)
    redis.exists = AsyncMock(return_value=0)
    redis.delete = AsyncMock()
    return redis


class TestSessionStoreRepository:
    """Tests for Redis-backed catalog sessions."""

    async def test_save_uses_ttl_and_clears_dirty(self) -> None:
        redis = _redis()
        store = SessionStoreRepository(redis, default_ttl_seconds=60)
        session = make_session("01HABC", {"closed_broadcasts": ["1"]})
        session.dirty = True

        await store.save(session)

        key, ttl, payload = redis.setex.await_args.args
        assert key == "session:01HABC"
        assert ttl == 60
        assert json.loads(payload)["data"] == {"closed_broadcasts": ["1"]}
        assert session.dirty is False

    async def test_load(self) -> None:
        redis = _redis()
        redis.get.return_value = make_session("01HABC", {"k": "v"}).to_payload()
        store = SessionStoreRepository(redis)

        session = await store.load("01HABC")

        assert session.session_id == "01HABC"
        assert session.get("k") == "v"
        assert session.is_new is False

    async def test_load_missing(self) -> None:
        assert await SessionStoreRepository(_redis()).load("x") is None

    async def test_touch_exists_destroy(self) -> None:
        redis = _redis()
        store = SessionStoreRepository(redis)

        assert await store.touch("01HABC", ttl_seconds=5) is True
        assert await store.exists("01HABC") is False
        await store.destroy("01HABC")

        redis.expire.assert_awaited_once_with("session:01HABC", 5)
        redis.delete.assert_awaited_once_with("session:01HABC")

    def test_new_session(self) -> None:
        session = SessionStoreRepository(_redis()).new_session()

        assert len(session.session_id) == 26
        assert session.is_new is True
        assert session.dirty is True


class TestCatalogSession:
    def test_append_unique(self) -> None:
        session = make_session()

        session.append_unique("closed_broadcasts", "1")
        session.append_unique("closed_broadcasts", "1")

        assert session.get("closed_broadcasts") == ["1"]
        assert session.dirty is True

    def test_append_existing_value_keeps_session_clean(self) -> None:
        session = make_session(data={"closed_broadcasts": ["1"]})

        session.append_unique("closed_broadcasts", "1")

        assert session.dirty is False


class TestSessionSettings:
    def test_disable_write_is_idempotent(self) -> None:
        settings = SessionSettings()
        assert settings.writes_disabled is False

        settings.disable_write()
        settings.disable_write()

        assert settings.writes_disabled is True
