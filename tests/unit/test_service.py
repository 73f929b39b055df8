import re

import pytest
from sqlalchemy.exc import OperationalError

from tinylink.errors import (
    CodeConflict,
    DuplicateCode,
    GenerationExhausted,
    InvalidCode,
    InvalidTarget,
    NotFound,
    StoreUnavailable,
)
from tinylink.crud import LinkStore
from tinylink.services.links import LinkService


class BrokenStore:
    """Every operation fails the way a dropped database connection does."""

    def _fail(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    async def exists(self, code):
        self._fail()

    async def insert(self, code, target_url):
        self._fail()

    async def select_by_code(self, code):
        self._fail()

    async def select_all(self):
        self._fail()

    async def delete_by_code(self, code):
        self._fail()

    async def increment_clicks(self, code):
        self._fail()


class SaturatedStore:
    async def exists(self, code):
        return True

    async def insert(self, code, target_url):
        raise DuplicateCode(code)


class RacingStore:
    """Reports the code free, then loses the insert to a concurrent writer."""

    async def exists(self, code):
        return False

    async def insert(self, code, target_url):
        raise DuplicateCode(code)


@pytest.mark.asyncio
async def test_create_with_generated_code(service):
    link = await service.create_link("https://example.com/page")

    assert re.fullmatch(r"[A-Za-z0-9]{6}", link.code)
    assert link.target_url == "https://example.com/page"
    assert link.total_clicks == 0
    assert link.created_at is not None
    assert link.last_clicked is None


@pytest.mark.asyncio
async def test_create_round_trip(service):
    created = await service.create_link("https://example.com/page")
    fetched = await service.get_link(created.code)

    assert fetched.target_url == "https://example.com/page"
    assert fetched.total_clicks == 0


@pytest.mark.asyncio
async def test_create_with_custom_code(service):
    link = await service.create_link("https://a.com", "my link!")
    assert link.code == "my link!"


@pytest.mark.asyncio
async def test_empty_code_is_treated_as_absent(service):
    link = await service.create_link("https://a.com", "")
    assert len(link.code) == 6


@pytest.mark.asyncio
@pytest.mark.parametrize("target", [None, "", "ftp://a.com", "not a url"])
async def test_create_rejects_bad_target(service, store, target):
    with pytest.raises(InvalidTarget):
        await service.create_link(target)
    assert await store.select_all() == []


@pytest.mark.asyncio
@pytest.mark.parametrize("code", ["abc", "<b>bold</b>", "health", "metrics", "openapi.json", 123456, ["abc123"]])
async def test_create_rejects_bad_code(service, code):
    with pytest.raises(InvalidCode):
        await service.create_link("https://a.com", code)


@pytest.mark.asyncio
async def test_create_duplicate_code_conflicts(service, store):
    await service.create_link("https://a.com", "abc123")
    with pytest.raises(CodeConflict):
        await service.create_link("https://b.com", "abc123")

    links = await store.select_all()
    assert [link.target_url for link in links] == ["https://a.com"]


@pytest.mark.asyncio
async def test_insert_race_on_custom_code_is_conflict():
    with pytest.raises(CodeConflict):
        await LinkService(RacingStore()).create_link("https://a.com", "abc123")


@pytest.mark.asyncio
async def test_insert_race_on_generated_code_is_server_error():
    with pytest.raises(GenerationExhausted) as exc_info:
        await LinkService(RacingStore()).create_link("https://a.com")
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_saturated_store_exhausts_generation():
    with pytest.raises(GenerationExhausted):
        await LinkService(SaturatedStore(), code_attempts=3).create_link("https://a.com")


@pytest.mark.asyncio
async def test_get_link_errors(service):
    with pytest.raises(InvalidCode):
        await service.get_link("bad")
    with pytest.raises(NotFound):
        await service.get_link("xyz999")


@pytest.mark.asyncio
async def test_list_links_newest_first(service):
    for code in ("first1", "second", "third3"):
        await service.create_link("https://a.com", code)

    links = await service.list_links()
    assert [link.code for link in links] == ["third3", "second", "first1"]


@pytest.mark.asyncio
async def test_delete_link(service):
    await service.create_link("https://a.com", "abc123")
    await service.delete_link("abc123")

    with pytest.raises(NotFound):
        await service.get_link("abc123")
    with pytest.raises(NotFound):
        await service.delete_link("abc123")
    with pytest.raises(InvalidCode):
        await service.delete_link("<nope>")


@pytest.mark.asyncio
async def test_resolve_redirect_counts_clicks(service, session_factory):
    await service.create_link("https://example.com/page", "abc123")

    assert await service.resolve_redirect("abc123") == "https://example.com/page"
    assert await service.resolve_redirect("abc123") == "https://example.com/page"

    async with session_factory() as fresh:
        link = await LinkService(LinkStore(fresh)).get_link("abc123")
    assert link.total_clicks == 2
    assert link.last_clicked >= link.created_at


@pytest.mark.asyncio
async def test_resolve_redirect_decodes_before_validating(service):
    await service.create_link("https://a.com", "my link")
    assert await service.resolve_redirect("my%20link") == "https://a.com"


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["abc", "%zz%zz%zz", "%3Cscript%3E", ""])
async def test_resolve_redirect_invalid_codes(service, raw):
    with pytest.raises(InvalidCode):
        await service.resolve_redirect(raw)


@pytest.mark.asyncio
async def test_resolve_redirect_unknown_code(service):
    with pytest.raises(NotFound):
        await service.resolve_redirect("xyz999")


@pytest.mark.asyncio
async def test_store_failures_become_store_unavailable(caplog):
    service = LinkService(BrokenStore())

    with pytest.raises(StoreUnavailable):
        await service.create_link("https://a.com")
    with pytest.raises(StoreUnavailable):
        await service.create_link("https://a.com", "abc123")
    with pytest.raises(StoreUnavailable):
        await service.get_link("abc123")
    with pytest.raises(StoreUnavailable):
        await service.list_links()
    with pytest.raises(StoreUnavailable):
        await service.delete_link("abc123")
    with pytest.raises(StoreUnavailable):
        await service.resolve_redirect("abc123")

    assert "connection refused" in caplog.text


@pytest.mark.asyncio
async def test_validation_happens_before_store_access():
    service = LinkService(BrokenStore())

    with pytest.raises(InvalidTarget):
        await service.create_link("ftp://a.com")
    with pytest.raises(InvalidCode):
        await service.get_link("bad")
    with pytest.raises(InvalidCode):
        await service.resolve_redirect("%zz")
