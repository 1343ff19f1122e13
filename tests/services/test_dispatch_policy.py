"""Tests for DispatchPolicy (eager/deferred mode controller)."""

import pytest

from geovault.services.dispatch_policy import DispatchPolicy, DisplayState, Mode
from geovault.services.fetcher import FetchFailure, FetchSuccess


@pytest.fixture
def scheduler(make_scheduler):
    return make_scheduler()


def make_policy(scheduler, mode=Mode.EAGER, **kwargs):
    policy = DispatchPolicy(scheduler, mode, **kwargs)
    updates = []
    policy.on_display(updates.append)
    return policy, updates


class TestEagerMode:
    """Cache misses are submitted as soon as a key is visible."""

    @pytest.mark.asyncio
    async def test_visible_key_is_fetched(self, scheduler, fetcher, clock) -> None:
        # Given
        policy, updates = make_policy(scheduler, Mode.EAGER)

        # When
        state = policy.notify_key_visible("bob")
        await clock.advance(0)

        # Then
        assert state is DisplayState.LOADING
        assert fetcher.call_count("bob") == 1
        assert [u.state for u in updates] == [DisplayState.LOADING, DisplayState.CACHED]
        assert updates[-1].value == fetcher.value_for("bob")
        assert policy.display_state("bob") is DisplayState.CACHED

    @pytest.mark.asyncio
    async def test_failed_lookup_is_shown_as_failed(self, scheduler, fetcher, clock) -> None:
        policy, _ = make_policy(scheduler, Mode.EAGER)
        fetcher.script("bob", FetchFailure("nope"))

        policy.notify_key_visible("bob")
        await clock.advance(0)

        assert policy.display_state("bob") is DisplayState.FAILED

    def test_should_fetch(self, scheduler) -> None:
        policy, _ = make_policy(scheduler, Mode.EAGER)
        scheduler.cache.set("alice", {"location": "Canada"})

        assert policy.should_fetch("bob") is True
        assert policy.should_fetch("alice") is False


class TestCacheFirst:
    """A live cache entry is shown without the scheduler in both modes."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode", [Mode.EAGER, Mode.DEFERRED])
    async def test_cached_key_is_shown_without_fetch(self, scheduler, fetcher, clock, mode) -> None:
        policy, updates = make_policy(scheduler, mode)
        scheduler.cache.set("alice", {"location": "Canada"})

        state = policy.notify_key_visible("alice")
        await clock.advance(10_000)

        assert state is DisplayState.CACHED
        assert updates[0].value == {"location": "Canada"}
        assert fetcher.call_count() == 0
        assert scheduler.get_stats()["submitted"] == 0


class TestDeferredMode:
    """Nothing is fetched without an explicit trigger."""

    @pytest.mark.asyncio
    async def test_visible_key_waits_for_trigger(self, scheduler, fetcher, clock) -> None:
        # Given
        policy, _ = make_policy(scheduler, Mode.DEFERRED)

        # When
        state = policy.notify_key_visible("bob")
        await clock.advance(10_000)

        # Then
        assert state is DisplayState.FETCH_AVAILABLE
        assert fetcher.call_count("bob") == 0
        assert policy.should_fetch("bob") is False

        future = policy.trigger_fetch("bob")
        await clock.advance(0)

        assert fetcher.call_count("bob") == 1
        assert future.result() == fetcher.value_for("bob")
        assert policy.display_state("bob") is DisplayState.CACHED

    @pytest.mark.asyncio
    async def test_trigger_only_fetches_that_key(self, scheduler, fetcher, clock) -> None:
        policy, _ = make_policy(scheduler, Mode.DEFERRED)
        for key in ("a", "b", "c"):
            policy.notify_key_visible(key)

        policy.trigger_fetch("b")
        await clock.advance(10_000)

        assert [key for key, _ in fetcher.calls] == ["b"]
        assert policy.display_state("a") is DisplayState.FETCH_AVAILABLE
        assert policy.display_state("c") is DisplayState.FETCH_AVAILABLE

    @pytest.mark.asyncio
    async def test_visible_key_attaches_to_running_lookup(self, scheduler, fetcher, clock) -> None:
        policy, _ = make_policy(scheduler, Mode.DEFERRED)
        gate = fetcher.hold("bob")
        policy.trigger_fetch("bob")
        await clock.advance(0)

        state = policy.notify_key_visible("bob")
        gate.set_result(FetchSuccess({"location": "Chile"}))
        await clock.advance(0)

        assert state is DisplayState.LOADING
        assert fetcher.call_count("bob") == 1
        assert policy.display_state("bob") is DisplayState.CACHED


class TestModeTransitions:
    """Reconciling surfaced keys when the mode changes."""

    @pytest.mark.asyncio
    async def test_deferred_to_eager_submits_available_keys_once(self, scheduler, fetcher, clock) -> None:
        # Given
        policy, _ = make_policy(scheduler, Mode.DEFERRED)
        scheduler.cache.set("alice", {"location": "Canada"})
        for key in ("alice", "bob", "carl"):
            policy.notify_key_visible(key)

        # When
        policy.set_mode(Mode.EAGER)
        policy.set_mode(Mode.EAGER)
        await clock.advance(10_000)

        # Then
        assert fetcher.call_count("alice") == 0
        assert fetcher.call_count("bob") == 1
        assert fetcher.call_count("carl") == 1
        assert policy.display_state("bob") is DisplayState.CACHED

    @pytest.mark.asyncio
    async def test_eager_to_deferred_leaves_running_lookups(self, scheduler, fetcher, clock) -> None:
        # Given
        policy, _ = make_policy(scheduler, Mode.EAGER)
        fetcher.script("failed", FetchFailure("nope"))
        gate = fetcher.hold("running")
        policy.notify_key_visible("failed")
        policy.notify_key_visible("running")
        await clock.advance(0)

        # When
        policy.set_mode(Mode.DEFERRED)

        # Then
        assert policy.display_state("failed") is DisplayState.FETCH_AVAILABLE
        assert policy.display_state("running") is DisplayState.LOADING

        gate.set_result(FetchSuccess({"location": "Chile"}))
        await clock.advance(0)
        assert policy.display_state("running") is DisplayState.CACHED

        policy.notify_key_visible("new")
        await clock.advance(10_000)
        assert fetcher.call_count("new") == 0
        assert fetcher.call_count("failed") == 1

    def test_mode_listeners(self, scheduler) -> None:
        policy, _ = make_policy(scheduler, Mode.EAGER)
        seen = []
        unsubscribe = policy.on_mode_change(seen.append)

        policy.set_mode("manual")
        unsubscribe()
        policy.set_mode("auto")

        assert seen == [Mode.DEFERRED]
        assert policy.mode is Mode.EAGER

    def test_unknown_mode_is_rejected(self, scheduler) -> None:
        policy, _ = make_policy(scheduler)

        with pytest.raises(ValueError):
            policy.set_mode("sometimes")


class TestEnabled:
    """Turning processing off."""

    @pytest.mark.asyncio
    async def test_disabled_policy_ignores_visible_keys(self, scheduler, fetcher, clock) -> None:
        policy, updates = make_policy(scheduler, Mode.EAGER, enabled=False)

        assert policy.notify_key_visible("bob") is None
        await clock.advance(10_000)

        assert fetcher.call_count() == 0
        assert updates == []

    def test_disabling_hides_surfaced_keys(self, scheduler) -> None:
        policy, updates = make_policy(scheduler, Mode.DEFERRED)
        policy.notify_key_visible("a")
        policy.notify_key_visible("b")

        policy.set_enabled(False)

        assert [(u.key, u.state) for u in updates[-2:]] == [
            ("a", DisplayState.HIDDEN),
            ("b", DisplayState.HIDDEN),
        ]
        assert policy.surfaced_keys() == []

    def test_forget(self, scheduler) -> None:
        policy, _ = make_policy(scheduler, Mode.DEFERRED)
        policy.notify_key_visible("a")

        policy.forget("a")

        assert policy.display_state("a") is None

    @pytest.mark.asyncio
    async def test_forgotten_key_stays_forgotten_after_lookup(self, scheduler, fetcher, clock) -> None:
        policy, updates = make_policy(scheduler, Mode.EAGER)
        gate = fetcher.hold("bob")
        policy.notify_key_visible("bob")
        await clock.advance(0)

        policy.forget("bob")
        gate.set_result(FetchSuccess({"location": "Chile"}))
        await clock.advance(0)

        assert policy.display_state("bob") is None
        assert policy.surfaced_keys() == []
        assert [u.state for u in updates] == [DisplayState.LOADING]
        assert scheduler.cache.get("bob") == {"location": "Chile"}

    @pytest.mark.asyncio
    async def test_trigger_while_disabled_is_ignored(self, scheduler, fetcher, clock) -> None:
        policy, updates = make_policy(scheduler, Mode.DEFERRED, enabled=False)

        future = policy.trigger_fetch("bob")
        await clock.advance(10_000)

        assert future.done()
        assert future.result() is None
        assert fetcher.call_count() == 0
        assert updates == []
