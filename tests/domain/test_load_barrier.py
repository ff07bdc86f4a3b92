"""Tests for the bootstrap load barrier."""

import asyncio
import itertools

import pytest

from clusterops.domain.load_barrier import BOOTSTRAP_TASKS, LoadBarrier


class TestMarkDone:
    def test_starts_unloaded(self):
        barrier = LoadBarrier()
        assert barrier.is_loaded is False
        assert barrier.pending == list(BOOTSTRAP_TASKS)

    def test_loaded_after_last_task(self):
        barrier = LoadBarrier()
        for name in BOOTSTRAP_TASKS[:-1]:
            assert barrier.mark_done(name) is False
            assert barrier.is_loaded is False
        assert barrier.mark_done(BOOTSTRAP_TASKS[-1]) is True
        assert barrier.is_loaded is True

    def test_flips_exactly_once_in_any_order(self):
        tasks = ("hosts", "runs", "services")
        for order in itertools.permutations(tasks):
            barrier = LoadBarrier(tasks)
            flips = [barrier.mark_done(name) for name in order]
            assert flips == [False, False, True]
            assert barrier.mark_done(order[0]) is False
            assert barrier.is_loaded is True

    def test_redundant_marks_do_not_load(self):
        barrier = LoadBarrier()
        for _ in range(5):
            barrier.mark_done("hosts")
        assert barrier.is_loaded is False
        assert barrier.status["hosts"] is True

    def test_unknown_task_ignored(self):
        barrier = LoadBarrier(("hosts",))
        assert barrier.mark_done("nope") is False
        assert "nope" not in barrier.status
        assert barrier.is_loaded is False

    def test_status_is_a_copy(self):
        barrier = LoadBarrier(("hosts",))
        barrier.status["hosts"] = True
        assert barrier.is_loaded is False
        assert barrier.status["hosts"] is False

    def test_settle_all(self):
        barrier = LoadBarrier()
        barrier.mark_done("hosts")
        barrier.settle_all()
        assert barrier.is_loaded is True
        assert barrier.pending == []

    def test_empty_task_set_rejected(self):
        with pytest.raises(ValueError):
            LoadBarrier(())


class TestListeners:
    def test_listener_called_once(self):
        barrier = LoadBarrier(("a", "b"))
        calls = []
        barrier.on_loaded(lambda: calls.append(1))
        barrier.mark_done("a")
        barrier.mark_done("b")
        barrier.mark_done("b")
        assert calls == [1]

    def test_late_listener_called_immediately(self):
        barrier = LoadBarrier(("a",))
        barrier.mark_done("a")
        calls = []
        barrier.on_loaded(lambda: calls.append(1))
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_wait_resolves_on_flip(self):
        barrier = LoadBarrier(("a", "b"))
        waiter = asyncio.create_task(barrier.wait())
        await asyncio.sleep(0)
        barrier.mark_done("a")
        await asyncio.sleep(0)
        assert not waiter.done()
        barrier.mark_done("b")
        await asyncio.wait_for(waiter, timeout=1)

    @pytest.mark.asyncio
    async def test_wait_when_already_loaded(self):
        barrier = LoadBarrier(("a",))
        barrier.mark_done("a")
        await asyncio.wait_for(barrier.wait(), timeout=1)
