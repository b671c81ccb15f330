from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest

from recipe_ledger.app.domain.errors import (
    LedgerIntegrityError,
    RecipeNotFoundError,
    RecipePermissionError,
    RecipeValidationError,
)
from recipe_ledger.app.domain.models import (
    LedgerSnapshot,
    RecipeCreated,
    RecipeUpdated,
    VisibilityChanged,
)
from recipe_ledger.app.services.events import RecentEventLog
from recipe_ledger.app.services.recipe_store import RecipeStore

ALICE = "0xA11CE"
BOB = "0xB0B"
START = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self) -> None:
        self.now = START

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> RecipeStore:
    return RecipeStore(clock=clock)


@pytest.fixture
def event_log(store: RecipeStore) -> RecentEventLog:
    log = RecentEventLog()
    store.events.subscribe(log)
    return log


def _create(store: RecipeStore, caller: str = ALICE, **overrides) -> int:
    fields = dict(
        name="Soup",
        body="water,salt",
        instructions="boil",
        category="Main",
        is_public=False,
    )
    fields.update(overrides)
    return store.create_recipe(caller=caller, **fields)


def _update(store: RecipeStore, recipe_id: int, caller: str = ALICE, **overrides) -> None:
    fields = dict(name="Soup", body="water,salt", instructions="boil", category="Main")
    fields.update(overrides)
    store.update_recipe(recipe_id, caller=caller, **fields)


class TestCreateRecipe:
    def test_ids_increase_and_match_total(self, store: RecipeStore) -> None:
        ids = [_create(store, name=f"Recipe {n}") for n in range(5)]

        assert ids == [1, 2, 3, 4, 5]
        stats = store.stats()
        assert stats.total_recipes == 5
        assert stats.recipe_counter == 5

    def test_get_returns_submitted_fields(self, store: RecipeStore, clock: FakeClock) -> None:
        recipe_id = _create(store)
        recipe = store.get_recipe(recipe_id, ALICE)

        assert recipe.id == 1
        assert recipe.name == "Soup"
        assert recipe.body == "water,salt"
        assert recipe.instructions == "boil"
        assert recipe.category == "Main"
        assert recipe.owner == ALICE
        assert recipe.created_at == START
        assert recipe.is_public is False

    @pytest.mark.parametrize("field", ["name", "body", "instructions"])
    def test_empty_required_field_rejected(self, store: RecipeStore, event_log: RecentEventLog, field: str) -> None:
        with pytest.raises(RecipeValidationError) as exc_info:
            _create(store, **{field: ""})

        assert exc_info.value.field == field
        assert store.stats().total_recipes == 0
        assert store.list_by_owner(ALICE) == []
        assert len(event_log) == 0

    def test_empty_category_is_a_valid_bucket(self, store: RecipeStore) -> None:
        recipe_id = _create(store, category="", is_public=True)

        assert store.list_public_by_category("") == [recipe_id]

    def test_whitespace_counts_as_text(self, store: RecipeStore) -> None:
        assert _create(store, name=" ") == 1

    def test_emits_created_event(self, store: RecipeStore, event_log: RecentEventLog) -> None:
        recipe_id = _create(store, is_public=True)

        assert event_log.recent() == [
            RecipeCreated(recipe_id=recipe_id, name="Soup", owner=ALICE, category="Main", is_public=True)
        ]


class TestUpdateRecipe:
    def test_overwrites_text_fields_only(self, store: RecipeStore, clock: FakeClock) -> None:
        recipe_id = _create(store, is_public=True)
        clock.advance(60)

        _update(store, recipe_id, name="Stew", body="beef", instructions="simmer", category="Main")

        recipe = store.get_recipe(recipe_id, ALICE)
        assert (recipe.name, recipe.body, recipe.instructions) == ("Stew", "beef", "simmer")
        assert recipe.owner == ALICE
        assert recipe.created_at == START
        assert recipe.is_public is True

    def test_category_change_moves_index_entry(self, store: RecipeStore) -> None:
        recipe_id = _create(store, category="A", is_public=True)

        _update(store, recipe_id, category="B")

        assert store.list_public_by_category("A") == []
        assert store.list_public_by_category("B") == [recipe_id]
        assert store.get_recipe(recipe_id).category == "B"

    def test_category_match_is_case_sensitive(self, store: RecipeStore) -> None:
        recipe_id = _create(store, category="main", is_public=True)

        _update(store, recipe_id, category="Main")

        assert store.list_public_by_category("main") == []
        assert store.list_public_by_category("Main") == [recipe_id]

    def test_removal_swaps_last_into_place(self, store: RecipeStore) -> None:
        for _ in range(4):
            _create(store, category="Main", is_public=True)

        _update(store, 1, category="Dessert")

        assert store.list_public_by_category("Main") == [4, 2, 3]
        assert store.list_public_by_category("Dessert") == [1]

    def test_same_category_keeps_bucket_order(self, store: RecipeStore) -> None:
        for _ in range(3):
            _create(store, is_public=True)

        _update(store, 1, name="Renamed", category="Main")

        assert store.list_public_by_category("Main") == [1, 2, 3]

    def test_unknown_id(self, store: RecipeStore) -> None:
        with pytest.raises(RecipeNotFoundError):
            _update(store, 1)

    def test_id_zero_never_exists(self, store: RecipeStore) -> None:
        _create(store)
        with pytest.raises(RecipeNotFoundError) as exc_info:
            _update(store, 0)
        assert exc_info.value.recipe_id == 0

    def test_non_owner_rejected_without_change(self, store: RecipeStore, event_log: RecentEventLog) -> None:
        recipe_id = _create(store, category="A", is_public=True)
        before = store.snapshot()

        with pytest.raises(RecipePermissionError):
            _update(store, recipe_id, caller=BOB, name="Hacked", category="B")

        assert store.snapshot() == before
        assert len(event_log) == 1

    def test_empty_name_leaves_index_untouched(self, store: RecipeStore) -> None:
        first = _create(store, category="A", is_public=True)
        second = _create(store, category="A", is_public=True)

        with pytest.raises(RecipeValidationError):
            _update(store, first, name="", category="B")

        assert store.list_public_by_category("A") == [first, second]
        assert store.list_public_by_category("B") == []
        assert store.get_recipe(first).name == "Soup"

    def test_permission_checked_before_validation(self, store: RecipeStore) -> None:
        recipe_id = _create(store)

        with pytest.raises(RecipePermissionError):
            _update(store, recipe_id, caller=BOB, name="")

    def test_emits_updated_event(self, store: RecipeStore, event_log: RecentEventLog) -> None:
        recipe_id = _create(store)

        _update(store, recipe_id, name="Stew")

        assert event_log.recent()[-1] == RecipeUpdated(recipe_id=recipe_id, name="Stew", owner=ALICE)


class TestToggleVisibility:
    def test_two_toggles_restore_visibility(self, store: RecipeStore) -> None:
        recipe_id = _create(store, is_public=False)

        assert store.toggle_visibility(recipe_id, caller=ALICE) is True
        assert store.toggle_visibility(recipe_id, caller=ALICE) is False
        assert store.get_recipe(recipe_id, ALICE).is_public is False

    def test_non_owner_rejected_without_change(self, store: RecipeStore, event_log: RecentEventLog) -> None:
        recipe_id = _create(store)
        before = store.get_recipe(recipe_id, ALICE)

        with pytest.raises(RecipePermissionError):
            store.toggle_visibility(recipe_id, caller=BOB)

        assert store.get_recipe(recipe_id, ALICE) == before
        assert [type(event) for event in event_log.recent()] == [RecipeCreated]

    def test_unknown_id(self, store: RecipeStore) -> None:
        with pytest.raises(RecipeNotFoundError):
            store.toggle_visibility(3, caller=ALICE)

    def test_emits_visibility_event(self, store: RecipeStore, event_log: RecentEventLog) -> None:
        recipe_id = _create(store)

        store.toggle_visibility(recipe_id, caller=ALICE)

        assert event_log.recent()[-1] == VisibilityChanged(recipe_id=recipe_id, is_public=True, owner=ALICE)


class TestGetRecipe:
    def test_private_recipe_walkthrough(self, store: RecipeStore) -> None:
        recipe_id = _create(
            store, name="Soup", body="water,salt", instructions="boil", category="Main", is_public=False
        )
        assert recipe_id == 1
        assert store.get_recipe(1, ALICE).name == "Soup"

        with pytest.raises(RecipePermissionError) as exc_info:
            store.get_recipe(1, BOB)
        assert exc_info.value.reason == "private, not owner"
        assert store.list_public_by_category("Main") == []

        store.toggle_visibility(1, caller=ALICE)

        assert store.get_recipe(1, BOB).is_public is True
        assert store.list_public_by_category("Main") == [1]

    def test_anonymous_sees_public_only(self, store: RecipeStore) -> None:
        private_id = _create(store)
        public_id = _create(store, is_public=True)

        assert store.get_recipe(public_id).id == public_id
        with pytest.raises(RecipePermissionError):
            store.get_recipe(private_id)

    def test_unknown_id(self, store: RecipeStore) -> None:
        with pytest.raises(RecipeNotFoundError):
            store.get_recipe(1, ALICE)

    def test_returned_record_is_a_snapshot(self, store: RecipeStore) -> None:
        recipe_id = _create(store)
        before = store.get_recipe(recipe_id, ALICE)

        _update(store, recipe_id, name="Stew")

        assert before.name == "Soup"
        assert store.get_recipe(recipe_id, ALICE).name == "Stew"


class TestListings:
    def test_list_by_owner_counts_creates(self, store: RecipeStore) -> None:
        ids = [_create(store, category=f"C{n}") for n in range(3)]
        _create(store, caller=BOB)

        store.toggle_visibility(ids[0], caller=ALICE)
        _update(store, ids[1], category="Other")

        assert store.list_by_owner(ALICE) == ids
        assert store.list_by_owner(BOB) == [4]
        assert store.list_by_owner("nobody") == []

    def test_list_by_owner_includes_private_ids(self, store: RecipeStore) -> None:
        private_id = _create(store, is_public=False)

        assert store.list_by_owner(ALICE) == [private_id]

    def test_list_by_category_filters_private(self, store: RecipeStore) -> None:
        public_id = _create(store, is_public=True)
        _create(store, is_public=False)
        other_owner = _create(store, caller=BOB, is_public=True)

        assert store.list_public_by_category("Main") == [public_id, other_owner]

    def test_list_by_category_reflects_live_visibility(self, store: RecipeStore) -> None:
        recipe_id = _create(store, is_public=True)
        store.toggle_visibility(recipe_id, caller=ALICE)

        assert store.list_public_by_category("Main") == []

    def test_listings_are_copies(self, store: RecipeStore) -> None:
        _create(store, is_public=True)
        store.list_by_owner(ALICE).append(99)
        store.list_public_by_category("Main").append(99)

        assert store.list_by_owner(ALICE) == [1]
        assert store.list_public_by_category("Main") == [1]


class TestSnapshotRestore:
    def test_restore_preserves_disturbed_order(self, store: RecipeStore, clock: FakeClock) -> None:
        for _ in range(3):
            _create(store, is_public=True)
        _update(store, 1, category="Dessert")

        restored = RecipeStore(snapshot=store.snapshot(), clock=clock)

        assert restored.list_public_by_category("Main") == [3, 2]
        assert restored.list_by_owner(ALICE) == [1, 2, 3]
        assert restored.stats() == store.stats()
        assert _create(restored) == 4

    def test_counter_mismatch_rejected(self, store: RecipeStore) -> None:
        _create(store)
        snapshot = store.snapshot()
        snapshot.total_recipes = 2

        with pytest.raises(LedgerIntegrityError):
            RecipeStore(snapshot=snapshot)

    def test_stale_category_entry_rejected(self, store: RecipeStore) -> None:
        recipe_id = _create(store, category="A")
        snapshot = store.snapshot()
        snapshot.by_category["B"] = [recipe_id]

        with pytest.raises(LedgerIntegrityError):
            RecipeStore(snapshot=snapshot)

    def test_missing_owner_entry_rejected(self, store: RecipeStore) -> None:
        _create(store)
        snapshot = store.snapshot()
        snapshot.by_owner[ALICE] = []

        with pytest.raises(LedgerIntegrityError):
            RecipeStore(snapshot=snapshot)

    def test_sequence_counts_committed_mutations(self, store: RecipeStore) -> None:
        recipe_id = _create(store)
        _update(store, recipe_id, name="Stew")
        store.toggle_visibility(recipe_id, caller=ALICE)
        with pytest.raises(RecipePermissionError):
            store.toggle_visibility(recipe_id, caller=BOB)

        assert store.snapshot().sequence == 3
        assert RecipeStore(snapshot=store.snapshot()).snapshot().sequence == 3

    def test_empty_snapshot(self) -> None:
        restored = RecipeStore(snapshot=LedgerSnapshot())

        assert restored.stats().total_recipes == 0


class TestConcurrency:
    def test_parallel_creates_assign_unique_ids(self, store: RecipeStore) -> None:
        owners = [f"owner-{n}" for n in range(8)]
        per_owner = 50

        def worker(owner: str) -> None:
            for n in range(per_owner):
                _create(store, caller=owner, name=f"{owner}-{n}", category=str(n % 3), is_public=True)

        threads = [threading.Thread(target=worker, args=(owner,)) for owner in owners]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        total = len(owners) * per_owner
        assert store.stats().total_recipes == total
        assert store.stats().recipe_counter == total
        all_ids = [recipe_id for owner in owners for recipe_id in store.list_by_owner(owner)]
        assert sorted(all_ids) == list(range(1, total + 1))
        for owner in owners:
            owned = store.list_by_owner(owner)
            assert len(owned) == per_owner
            assert owned == sorted(owned)
        by_category = sum(len(store.list_public_by_category(str(n))) for n in range(3))
        assert by_category == total
