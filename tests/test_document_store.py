import pytest
from sqlalchemy import event

from core.errors import NotFoundError
from services.document_store import InMemoryDocumentStore, SqlDocumentStore, create_document_store


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request):
    if request.param == "memory":
        return InMemoryDocumentStore(max_query_limit=3)
    return SqlDocumentStore("sqlite://", max_query_limit=3)


@pytest.mark.asyncio
async def test_create_get_update_delete(any_store):
    doc_id = await any_store.create("things", {"name": "a", "n": 1})
    assert (await any_store.get("things", doc_id)).data == {"name": "a", "n": 1}

    await any_store.update("things", doc_id, {"n": 2})
    assert (await any_store.get("things", doc_id)).data == {"name": "a", "n": 2}

    await any_store.delete("things", doc_id)
    assert await any_store.get("things", doc_id) is None


@pytest.mark.asyncio
async def test_update_missing_document_raises(any_store):
    with pytest.raises(NotFoundError):
        await any_store.update("things", "missing", {"n": 1})


@pytest.mark.asyncio
async def test_set_merge_and_replace(any_store):
    await any_store.set("things", "k", {"a": 1, "b": 1})
    await any_store.set("things", "k", {"b": 2}, merge=True)
    assert (await any_store.get("things", "k")).data == {"a": 1, "b": 2}

    await any_store.set("things", "k", {"c": 3})
    assert (await any_store.get("things", "k")).data == {"c": 3}


@pytest.mark.asyncio
async def test_query_filters_order_and_limit(any_store):
    for n in (3, 1, 4, 2, 5):
        await any_store.create("things", {"kind": "x", "n": n})
    await any_store.create("things", {"kind": "y", "n": 0})

    ascending = await any_store.query("things", {"kind": "x"}, order_by="n", limit=2)
    assert [d.data["n"] for d in ascending] == [1, 2]

    descending = await any_store.query("things", {"kind": "x"}, order_by="-n")
    # clamped to max_query_limit
    assert [d.data["n"] for d in descending] == [5, 4, 3]


@pytest.mark.asyncio
async def test_batch_is_all_or_nothing(any_store):
    batch = any_store.batch().set("things", "new", {"v": 1}).update("things", "missing", {"v": 2})
    with pytest.raises(NotFoundError):
        await batch.commit()
    assert await any_store.get("things", "new") is None


@pytest.mark.asyncio
async def test_in_memory_store_returns_copies():
    store = InMemoryDocumentStore()
    await store.set("things", "k", {"tags": ["a"]})
    doc = await store.get("things", "k")
    doc.data["tags"].append("b")
    assert (await store.get("things", "k")).data == {"tags": ["a"]}


def test_factory_selects_backend():
    assert isinstance(create_document_store(""), InMemoryDocumentStore)
    assert isinstance(create_document_store("sqlite://"), SqlDocumentStore)


@pytest.mark.asyncio
async def test_sql_query_pushes_filters_and_limit_into_sql():
    store = SqlDocumentStore("sqlite://", max_query_limit=3)
    for i in range(8):
        await store.create("student_progress", {"user_id": "someone-else", "lesson_index": i})
    await store.create("student_progress", {"user_id": "u1", "lesson_index": 0, "completed": True})
    await store.create("student_progress", {"user_id": "u1", "lesson_index": 1, "completed": False})

    statements = []
    event.listen(store._engine, "before_cursor_execute",
                 lambda conn, cursor, statement, *args: statements.append(statement))

    mine = await store.query("student_progress", {"user_id": "u1"})
    assert sorted(d.data["lesson_index"] for d in mine) == [0, 1]

    done = await store.query("student_progress", {"user_id": "u1", "completed": True})
    assert [d.data["lesson_index"] for d in done] == [0]

    assert [d.data["lesson_index"] for d in await store.query("student_progress", {"lesson_index": 5})] == [5]
    assert len(await store.query("student_progress")) == 3

    selects = [s.upper() for s in statements if s.lstrip().upper().startswith("SELECT")]
    assert selects and all("JSON_EXTRACT" in s for s in selects[:3])
    assert all("LIMIT" in s for s in selects)
