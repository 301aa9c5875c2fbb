"""Tests for snapshot payloads, deep links and the in-process share collaborator."""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from tests.conftest import HOUSEHOLD_ID, WEEK_START, make_entry
from weekmenu.plan.inclusion import EMPTY_STATE, MarkGroupsExcluded, ToggleMeal, reduce
from weekmenu.plan.shopping_list import build_meal_groups, build_shopping_list
from weekmenu.plan.snapshot import (
    EmptySnapshotError,
    SnapshotBuilder,
    build_bring_deeplink,
    export_text,
    snapshot_title,
)
from weekmenu.plan.week import week_interval
from weekmenu.schemas import ShareSnapshotInput, ShareSnapshotResult
from weekmenu.share import InMemoryShareCollaborator, ShareUnavailableError


@pytest.fixture
def groups(rice_recipe, soup_recipe):
    entries = [
        make_entry("r1", date(2025, 10, 8), servings=4),
        make_entry("r2", date(2025, 10, 9), "lunch", servings=2),
    ]
    return build_meal_groups(entries, [rice_recipe, soup_recipe], *week_interval(WEEK_START))


@pytest.fixture
def collaborator():
    mock = MagicMock()
    mock.name = "mock"
    mock.available = True
    mock.publish = AsyncMock(
        return_value=ShareSnapshotResult(
            token="abc",
            url="https://weekmenu.example/share/abc",
            expires_at=datetime(2025, 10, 7, tzinfo=timezone.utc),
            title="Boodschappen 6-10-2025",
        )
    )
    return mock


# =============================================================================
# Payload Tests
# =============================================================================


class TestBuildPayload:
    """Tests for SnapshotBuilder.build_payload."""

    def test_title_and_metadata(self, collaborator, groups):
        payload = SnapshotBuilder(collaborator).build_payload(groups, EMPTY_STATE, WEEK_START)

        wire = payload.to_wire()
        assert wire["title"] == "Boodschappen 6-10-2025"
        assert wire["servings"] == 1
        assert wire["sourceWeekStart"] == "2025-10-06"

    def test_items_are_merged_and_rounded(self, collaborator, groups):
        """Test that items are merged across meals and carry rounded amounts."""
        payload = SnapshotBuilder(collaborator).build_payload(groups, EMPTY_STATE, WEEK_START)

        assert [(item.name, item.amount, item.unit) for item in payload.items] == [
            ("Bouillon", 1.0, "l"),
            ("Rijst", 550.0, "g"),
            ("Ui", 2.0, "stuk"),
            ("Zout", 2.0, "snufje"),
        ]

    def test_excluded_meal_left_out(self, collaborator, groups):
        state = reduce(EMPTY_STATE, ToggleMeal(groups[0]))

        payload = SnapshotBuilder(collaborator).build_payload(groups, state, WEEK_START)

        assert [item.name for item in payload.items] == ["Bouillon", "rijst", "Zout"]

    def test_everything_excluded_is_empty(self, collaborator, groups):
        state = reduce(EMPTY_STATE, MarkGroupsExcluded(tuple(groups)))

        with pytest.raises(EmptySnapshotError):
            SnapshotBuilder(collaborator).build_payload(groups, state, WEEK_START)

    def test_empty_week(self, collaborator):
        with pytest.raises(EmptySnapshotError, match="no selected groceries"):
            SnapshotBuilder(collaborator).build_payload([], EMPTY_STATE, WEEK_START)

    def test_snapshot_title(self):
        assert snapshot_title(date(2025, 1, 5)) == "Boodschappen 5-1-2025"

    def test_snapshot_title_unknown_locale(self):
        assert snapshot_title(date(2025, 1, 5), "xx-YY") == "Boodschappen 5-1-2025"


# =============================================================================
# Publish Tests
# =============================================================================


class TestPublish:
    """Tests for SnapshotBuilder.publish."""

    @pytest.mark.asyncio
    async def test_publish_calls_collaborator(self, collaborator, groups):
        result = await SnapshotBuilder(collaborator).publish(
            HOUSEHOLD_ID, "user-1", groups, EMPTY_STATE, WEEK_START
        )

        assert result.token == "abc"
        collaborator.publish.assert_awaited_once()
        household_id, user_id, payload = collaborator.publish.call_args.args
        assert household_id == HOUSEHOLD_ID
        assert user_id == "user-1"
        assert isinstance(payload, ShareSnapshotInput)
        assert len(payload.items) == 4

    @pytest.mark.asyncio
    async def test_empty_does_not_call_collaborator(self, collaborator):
        with pytest.raises(EmptySnapshotError):
            await SnapshotBuilder(collaborator).publish(
                HOUSEHOLD_ID, "user-1", [], EMPTY_STATE, WEEK_START
            )

        collaborator.publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_unavailable_checked_first(self, collaborator):
        """Test that an unavailable collaborator wins over an empty list."""
        collaborator.available = False

        with pytest.raises(ShareUnavailableError):
            await SnapshotBuilder(collaborator).publish(
                HOUSEHOLD_ID, "user-1", [], EMPTY_STATE, WEEK_START
            )

        collaborator.publish.assert_not_called()


# =============================================================================
# Deep Link and Text Export Tests
# =============================================================================


class TestBringDeeplink:
    """Tests for build_bring_deeplink function."""

    def test_encodes_share_url(self):
        link = build_bring_deeplink("https://weekmenu.example/share/abc")

        assert link == (
            "https://api.getbring.com/rest/bringrecipes/deeplink"
            "?url=https%3A%2F%2Fweekmenu.example%2Fshare%2Fabc"
            "&source=web&baseQuantity=1&requestedQuantity=1"
        )

    def test_custom_endpoint(self):
        link = build_bring_deeplink("https://x.test/share/a b", "https://deeplink.test")

        assert link.startswith("https://deeplink.test?url=https%3A%2F%2Fx.test%2Fshare%2Fa%20b&")


class TestExportText:
    """Tests for export_text function."""

    def test_one_line_per_item(self, groups):
        text = export_text(build_shopping_list(groups))

        assert text.splitlines() == ["1 l Bouillon", "550 g Rijst", "2 stuk Ui", "2 snufje Zout"]

    def test_empty(self):
        assert export_text([]) == ""


# =============================================================================
# In-Memory Collaborator Tests
# =============================================================================


class TestInMemoryShareCollaborator:
    """Tests for InMemoryShareCollaborator."""

    @pytest.fixture
    def payload(self):
        return ShareSnapshotInput(
            title="Boodschappen 6-10-2025",
            items=[{"name": "Rijst", "amount": 550, "unit": "g"}],
            source_week_start="2025-10-06",
        )

    @pytest.mark.asyncio
    async def test_publish_and_read(self, payload):
        collaborator = InMemoryShareCollaborator("https://weekmenu.example/")

        result = await collaborator.publish(HOUSEHOLD_ID, "user-1", payload)

        assert result.url == f"https://weekmenu.example/share/{result.token}"
        assert result.title == "Boodschappen 6-10-2025"
        snapshot = collaborator.get(result.token)
        assert snapshot is not None
        assert snapshot.created_by == "user-1"
        assert snapshot.expires_at - snapshot.created_at == timedelta(hours=24)
        assert snapshot.items[0].name == "Rijst"

    @pytest.mark.asyncio
    async def test_expired_snapshot_not_returned(self, payload):
        collaborator = InMemoryShareCollaborator("https://weekmenu.example", ttl=timedelta(hours=1))
        result = await collaborator.publish(HOUSEHOLD_ID, "user-1", payload)

        later = result.expires_at + timedelta(seconds=1)

        assert collaborator.get(result.token, now=later) is None

    def test_unknown_token(self):
        assert InMemoryShareCollaborator("https://weekmenu.example").get("nope") is None
