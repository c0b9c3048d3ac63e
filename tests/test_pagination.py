"""Page normalization and paged repository reads."""
import pytest
from framework.repository.pagination import DEFAULT_PAGE_SIZE, PagedResult, normalize_page
from sample_models import Item


@pytest.fixture
async def many_items(uow_factory):
    """25 items named item-01 .. item-25, ids 1..25."""
    async with uow_factory.scope() as uow:
        await uow.get_repository(Item).add_range(Item(name=f"item-{i:02d}") for i in range(1, 26))
        await uow.save_changes()


@pytest.mark.parametrize(
    "page_number, page_size, total_count, expected",
    [
        (3, 10, 25, (3, 10)),
        (4, 10, 25, (1, 10)),
        (2, 10, 5, (1, 10)),
        (0, 10, 25, (1, 10)),
        (-2, 10, 25, (1, 10)),
        (2, 0, 25, (2, DEFAULT_PAGE_SIZE)),
        (1, -5, 25, (1, DEFAULT_PAGE_SIZE)),
        (1, 10, 0, (1, 10)),
    ],
)
def test_normalize_page(page_number, page_size, total_count, expected):
    page = normalize_page(page_number, page_size, total_count)
    assert (page.page_number, page.page_size) == expected


def test_paged_result_navigation():
    result = PagedResult(items=(), page_number=2, page_size=10, total_count=25)
    assert result.total_pages == 3
    assert result.has_previous is True
    assert result.has_next is True

    empty = PagedResult(items=(), page_number=1, page_size=10, total_count=0)
    assert empty.total_pages == 0
    assert empty.has_next is False


async def test_last_page_is_partial(uow, many_items):
    result = await uow.get_repository(Item).get_paged(3, 10, ascending=True, order_by=Item.id)
    assert [item.id for item in result.items] == [21, 22, 23, 24, 25]
    assert result.page_number == 3
    assert result.total_count == 25


async def test_default_order_is_primary_key(uow, many_items):
    result = await uow.get_repository(Item).get_paged(1, 10)
    assert [item.id for item in result.items] == list(range(1, 11))


async def test_order_by_descending(uow, many_items):
    result = await uow.get_repository(Item).get_paged(1, 5, order_by=lambda m: m.name)
    assert [item.name for item in result.items] == [f"item-{i:02d}" for i in range(25, 20, -1)]


async def test_page_beyond_range_falls_back_to_first(uow, many_items):
    result = await uow.get_repository(Item).get_paged(4, 10, ascending=True, order_by=Item.id)
    assert result.page_number == 1
    assert [item.id for item in result.items] == list(range(1, 11))


async def test_non_positive_page_size_uses_default(uow, many_items):
    result = await uow.get_repository(Item).get_paged(1, 0)
    assert result.page_size == DEFAULT_PAGE_SIZE
    assert len(result.items) == DEFAULT_PAGE_SIZE


async def test_paged_with_predicate(uow, many_items):
    result = await uow.get_repository(Item).get_paged(
        1, 10, ascending=True, predicate=Item.id > 20, order_by=Item.id
    )
    assert result.total_count == 5
    assert [item.id for item in result.items] == [21, 22, 23, 24, 25]


async def test_paged_query(uow, many_items):
    repo = uow.get_repository(Item)
    statement = repo.query(Item.name.like("item-1%")).order_by(Item.id)
    result = await repo.get_paged_query(2, 5, statement)
    assert result.total_count == 10
    assert [item.name for item in result.items] == [f"item-{i}" for i in range(15, 20)]


async def test_paged_on_empty_table(uow):
    result = await uow.get_repository(Item).get_paged(3, 10)
    assert result.items == ()
    assert result.page_number == 1
    assert result.total_count == 0
