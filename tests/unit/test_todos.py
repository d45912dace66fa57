import asyncio
import re

import pytest

from codeloom.todos import TodoNotFound, TodoStatus, TodoStore

from tests.conftest import PROJECT


class TestTodoStatus:
    @pytest.mark.parametrize("raw,expected", [
        ("pending", TodoStatus.PENDING),
        ("IN_PROGRESS", TodoStatus.IN_PROGRESS),
        ("in-progress", TodoStatus.IN_PROGRESS),
        (" completed ", TodoStatus.COMPLETED),
        ("done", None),
    ])
    def test_parse(self, raw, expected):
        assert TodoStatus.parse(raw) is expected


class TestTodoStore:
    @pytest.mark.asyncio
    async def test_create_and_update(self):
        store = TodoStore()
        item = await store.create(PROJECT, "Build header", "nav + logo")
        updated = await store.update_status(PROJECT, item.id, TodoStatus.COMPLETED)

        assert item.status is TodoStatus.PENDING
        assert updated.status is TodoStatus.COMPLETED
        assert [t.status for t in await store.list(PROJECT)] == [TodoStatus.COMPLETED]

    @pytest.mark.asyncio
    async def test_returned_items_are_copies(self):
        store = TodoStore()
        item = await store.create(PROJECT, "x")
        item.status = TodoStatus.COMPLETED
        assert (await store.list(PROJECT))[0].status is TodoStatus.PENDING

    @pytest.mark.asyncio
    async def test_unknown_id(self):
        with pytest.raises(TodoNotFound):
            await TodoStore().update_status(PROJECT, "missing", TodoStatus.PENDING)

    @pytest.mark.asyncio
    async def test_any_transition_allowed(self):
        store = TodoStore()
        item = await store.create(PROJECT, "x")
        await store.update_status(PROJECT, item.id, TodoStatus.COMPLETED)
        back = await store.update_status(PROJECT, item.id, TodoStatus.PENDING)
        assert back.status is TodoStatus.PENDING

    @pytest.mark.asyncio
    async def test_concurrent_creates(self):
        store = TodoStore()
        await asyncio.gather(*(store.create(PROJECT, f"t{i}") for i in range(25)))
        assert len(await store.list(PROJECT)) == 25

    @pytest.mark.asyncio
    async def test_clear(self):
        store = TodoStore()
        await store.create(PROJECT, "x")
        await store.create("other", "y")
        await store.clear(PROJECT)

        assert await store.list(PROJECT) == []
        assert len(await store.list("other")) == 1

    @pytest.mark.asyncio
    async def test_clear_drops_project_lock(self):
        store = TodoStore()
        for i in range(10):
            await store.create(f"session-{i}", "x")
            await store.clear(f"session-{i}")
        await store.list("never-used")

        assert store._locks == {}
        assert store._waiters == {}

    @pytest.mark.asyncio
    async def test_clear_racing_creates(self):
        store = TodoStore()
        await asyncio.gather(
            *(store.create(PROJECT, f"t{i}") for i in range(10)),
            store.clear(PROJECT),
            *(store.create(PROJECT, f"u{i}") for i in range(10)),
        )

        assert len(await store.list(PROJECT)) == 10
        assert set(store._locks) == {PROJECT}
        await store.clear(PROJECT)
        assert store._locks == {}


class TestTodoTools:
    @pytest.mark.asyncio
    async def test_create_update_list(self, run_tool, callback):
        created = await run_tool("create_todo", {"title": "Style footer"})
        todo_id = re.search(r"id: ([0-9a-f-]+)", created.output).group(1)
        updated = await run_tool("update_todo", {"todo_id": todo_id, "status": "in_progress"})
        listed = await run_tool("list_todos")

        assert created.success
        assert updated.output == "Todo 'Style footer' is now in_progress"
        assert listed.output == f"[~] Style footer (id: {todo_id})"
        assert [t.title for t in callback.todos_created] == ["Style footer"]
        assert [t.status for t in callback.todos_updated] == [TodoStatus.IN_PROGRESS]

    @pytest.mark.asyncio
    async def test_invalid_status(self, run_tool, callback):
        created = await run_tool("create_todo", {"title": "x"})
        todo_id = callback.todos_created[0].id
        result = await run_tool("update_todo", {"todo_id": todo_id, "status": "finished"})

        assert created.success
        assert not result.success
        assert result.error.startswith("Invalid status: finished")
        assert callback.todos_updated == []

    @pytest.mark.asyncio
    async def test_unknown_todo(self, run_tool):
        result = await run_tool("update_todo", {"todo_id": "nope", "status": "completed"})
        assert result.error == "Todo not found: nope"

    @pytest.mark.asyncio
    async def test_empty_list(self, run_tool):
        assert (await run_tool("list_todos")).output == "No todos yet"

    @pytest.mark.asyncio
    async def test_end_session_clears_todos(self, run_tool, executor):
        await run_tool("create_todo", {"title": "x"})
        await executor.end_session(PROJECT)
        assert (await run_tool("list_todos")).output == "No todos yet"
