import decimal
import logging

import httpx
import pytest

from ..exceptions import (
    ApiError,
    NotFoundError,
    TransportError,
    TypeMismatchError,
    UnknownTypeError,
)
from ..models import ResourceAttributeDescriptor, ResourceType
from ..query import Query
from ..resource import Resource
from ..transformers import Transformer
from ..transport import HTTPXTransport, Method
from .testing import Article, Comment, FakeTransport, Person, Tag, make_type_registry

BASE_URL = "https://example.com/api"


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def target(transport):
    from ..client import Client

    return Client(BASE_URL, transport=transport, type_registry=make_type_registry())


def person_document(id="9", name="Dan"):
    return {"data": {"type": "people", "id": id, "attributes": {"name": name}}}


class TestFind:
    @pytest.mark.asyncio
    async def test_find_all(self, target, transport):
        transport.respond(
            200,
            {
                "data": [
                    {"type": "people", "id": "1", "attributes": {"name": "a"}},
                    {"type": "people", "id": "2", "attributes": {"name": "b"}},
                ],
                "links": {"next": f"{BASE_URL}/people?page[number]=2"},
            },
        )
        result = await target.find(Person)
        assert transport.requests[0].method is Method.GET
        assert transport.requests[0].url == f"{BASE_URL}/people"
        assert transport.requests[0].payload is None
        assert [p["name"] for p in result] == ["a", "b"]
        assert all(isinstance(p, Person) for p in result)
        assert result.pagination.next == f"{BASE_URL}/people?page[number]=2"

    @pytest.mark.asyncio
    async def test_find_by_ids(self, target, transport):
        transport.respond(200, {"data": []})
        result = await target.find(Person, ["1", "2"])
        assert transport.requests[0].url == f"{BASE_URL}/people/1,2"
        assert len(result) == 0

    @pytest.mark.asyncio
    async def test_find_by_query(self, target, transport):
        transport.respond(200, {"data": []})
        await target.find(Query(Article).include("author").where("status", "published"))
        assert (
            transport.requests[0].url
            == f"{BASE_URL}/articles?include=author&filter[status]=published"
        )

        with pytest.raises(TypeError):
            await target.find(Query(Article), ["1"])

    @pytest.mark.asyncio
    async def test_find_one(self, target, transport):
        transport.respond(200, person_document())
        person = await target.find_one(Person, "9")
        assert transport.requests[0].url == f"{BASE_URL}/people/9"
        assert isinstance(person, Person)
        assert person.id == "9"
        assert person["name"] == "Dan"
        assert person.is_loaded

    @pytest.mark.asyncio
    async def test_find_one_by_type_name(self, target, transport):
        transport.respond(200, person_document())
        person = await target.find_one("people", "9")
        assert isinstance(person, Person)

    @pytest.mark.asyncio
    async def test_find_one_not_found(self, target, transport):
        transport.respond(200, {"data": None})
        with pytest.raises(NotFoundError) as e:
            await target.find_one(Person, "9")
        assert e.value.resource_type == "people"
        assert e.value.resource_ids == ("9",)

        transport.respond(200, {"data": []})
        with pytest.raises(NotFoundError):
            await target.find_one(Query(Person).where("name", "nobody"))

    @pytest.mark.asyncio
    async def test_find_one_type_mismatch(self, target, transport):
        transport.respond(200, person_document())
        with pytest.raises(TypeMismatchError) as e:
            await target.find_one(Article, "9")
        assert e.value.expected == "articles"
        assert e.value.actual == "people"

    @pytest.mark.asyncio
    async def test_find_one_requires_an_identifier(self, target, transport):
        with pytest.raises(TypeError):
            await target.find_one(Person)
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_included_resources_share_identity(self, target, transport):
        transport.respond(
            200,
            {
                "data": {
                    "type": "articles",
                    "id": "1",
                    "relationships": {
                        "author": {"data": {"type": "people", "id": "9"}},
                        "comments": {"data": [{"type": "comments", "id": "5"}]},
                    },
                },
                "included": [
                    {
                        "type": "comments",
                        "id": "5",
                        "relationships": {"author": {"data": {"type": "people", "id": "9"}}},
                    },
                ],
            },
        )
        article = await target.find_one(Article, "1")
        assert article["comments"][0]["author"] is article["author"]
        assert not article["author"].is_loaded


class TestEnsure:
    @pytest.mark.asyncio
    async def test_loaded_resource_is_returned_as_is(self, target, transport):
        transport.respond(200, person_document())
        person = await target.find_one(Person, "9")
        assert await target.ensure(person) is person
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_placeholder_is_loaded_in_place(self, target, transport):
        placeholder = Person("9")
        transport.respond(200, person_document())
        result = await target.ensure(placeholder)
        assert result is placeholder
        assert placeholder.is_loaded
        assert placeholder["name"] == "Dan"
        assert transport.requests[0].url == f"{BASE_URL}/people/9"

    @pytest.mark.asyncio
    async def test_query_modifier(self, target, transport):
        article = Article("1")
        transport.respond(
            200,
            {
                "data": {
                    "type": "articles",
                    "id": "1",
                    "attributes": {"title": "t"},
                    "relationships": {"author": {"data": {"type": "people", "id": "9"}}},
                },
                "included": [person_document()["data"]],
            },
        )
        await target.ensure(article, lambda q: q.include("author"))
        assert transport.requests[0].url == f"{BASE_URL}/articles/1?include=author"
        assert article["author"].is_loaded
        assert article["author"]["name"] == "Dan"

    @pytest.mark.asyncio
    async def test_not_found(self, target, transport):
        transport.respond(200, {"data": None})
        with pytest.raises(NotFoundError):
            await target.ensure(Person("9"))


class TestSave:
    @pytest.mark.asyncio
    async def test_create(self, target, transport):
        article = Article()
        article["title"] = "Hello"
        article["author"] = Person("9")
        article["tags"].add(Tag("1"))
        transport.respond(
            201,
            {
                "data": {
                    "type": "articles",
                    "id": "42",
                    "attributes": {"title": "Hello", "view-count": 0},
                },
            },
        )

        result = await target.save(article)

        assert result is article
        assert len(transport.requests) == 1
        request = transport.requests[0]
        assert request.method is Method.POST
        assert request.url == f"{BASE_URL}/articles"
        assert "id" not in request.payload["data"]
        assert request.payload["data"]["attributes"] == {
            "title": "Hello",
            "body": None,
            "published-at": None,
        }
        assert request.payload["data"]["relationships"] == {
            "author": {"data": {"type": "people", "id": "9"}},
            "comments": {"data": []},
            "tags": {"data": [{"type": "tags", "id": "1"}]},
        }

        assert article.id == "42"
        assert article.is_loaded
        assert article["view_count"] == 0
        assert article.dirty_attributes == frozenset()
        assert not article["tags"].has_changes
        assert [t.id for t in article["tags"]] == ["1"]

    @pytest.mark.asyncio
    async def test_create_with_unsaved_tag(self, target, transport):
        article = Article()
        article["title"] = "Hello"
        tag = Tag()
        article["tags"].add(tag)

        with pytest.raises(AssertionError):
            await target.save(article)

        assert transport.requests == []
        assert article.id is None
        assert article["tags"].has_changes
        assert list(article["tags"].added_resources) == [tag]

    @pytest.mark.asyncio
    async def test_update(self, target, transport):
        article = Article("1")
        article.populate("title", "Old")
        article["comments"].link(Comment("5"))
        article["title"] = "New"
        article["comments"].add(Comment("6"))
        article["comments"].add(Comment("7"))
        article["comments"].remove(Comment("5"))
        transport.respond(204).respond(204).respond(204)

        result = await target.save(article)

        assert result is article
        assert [(r.method, r.url, r.payload) for r in transport.requests] == [
            (
                Method.PUT,
                f"{BASE_URL}/articles/1",
                {"data": {"type": "articles", "id": "1", "attributes": {"title": "New"}}},
            ),
            (
                Method.POST,
                f"{BASE_URL}/articles/1/relationships/comments",
                {"data": [{"type": "comments", "id": "6"}, {"type": "comments", "id": "7"}]},
            ),
            (
                Method.DELETE,
                f"{BASE_URL}/articles/1/relationships/comments/5",
                {"data": [{"type": "comments", "id": "5"}]},
            ),
        ]
        assert article.dirty_attributes == frozenset()
        assert not article["comments"].has_changes
        assert [c.id for c in article["comments"]] == ["6", "7"]

    @pytest.mark.asyncio
    async def test_update_maps_the_response(self, target, transport):
        article = Article("1")
        article["title"] = "New"
        transport.respond(
            200,
            {
                "data": {
                    "type": "articles",
                    "id": "1",
                    "attributes": {"title": "New", "view-count": 5},
                },
            },
        )
        await target.save(article)
        assert len(transport.requests) == 1
        assert article["view_count"] == 5
        assert article.is_loaded

    @pytest.mark.asyncio
    async def test_update_replaces_to_one(self, target, transport):
        article = Article("1")
        article["author"] = Person("9")
        transport.respond(204).respond(204)
        await target.save(article)
        assert transport.requests[0].payload == {"data": {"type": "articles", "id": "1"}}
        assert transport.requests[1] == (
            Method.PUT,
            f"{BASE_URL}/articles/1/relationships/author",
            {"data": {"type": "people", "id": "9"}},
        )

    @pytest.mark.asyncio
    async def test_relationship_failure_aborts_the_rest(self, target, transport, caplog):
        article = Article("1")
        article["comments"].link(Comment("5"))
        article["comments"].add(Comment("6"))
        article["comments"].remove(Comment("5"))
        article["tags"].add(Tag("1"))
        transport.respond(204).respond(
            500, {"errors": [{"status": "500", "title": "Internal Server Error"}]}
        )

        with caplog.at_level(logging.WARNING, logger="jsonapi_sync.client"):
            with pytest.raises(ApiError) as e:
                await target.save(article)

        assert e.value.status == 500
        assert e.value.title == "Internal Server Error"
        assert [r.method for r in transport.requests] == [Method.PUT, Method.POST]
        # nothing got synchronized
        assert [c.id for c in article["comments"].added_resources] == ["6"]
        assert [c.id for c in article["comments"].removed_resources] == ["5"]
        assert [t.id for t in article["tags"].added_resources] == ["1"]
        assert "error updating relationship comments of articles 1" in caplog.text

    @pytest.mark.asyncio
    async def test_partial_synchronization_is_kept(self, target, transport):
        article = Article("1")
        article["comments"].link(Comment("5"))
        article["comments"].add(Comment("6"))
        article["comments"].remove(Comment("5"))
        error = TransportError("connection reset")
        transport.respond(204).respond(204).fail(error)

        with pytest.raises(TransportError) as e:
            await target.save(article)

        assert e.value is error
        assert article["comments"].added_resources == ()
        assert [c.id for c in article["comments"].removed_resources] == ["5"]

    @pytest.mark.asyncio
    async def test_update_failure(self, target, transport):
        article = Article("1")
        article["title"] = "New"
        article["tags"].add(Tag("1"))
        transport.respond(
            422,
            {
                "errors": [
                    {
                        "status": "422",
                        "code": "too_short",
                        "source": {"pointer": "/data/attributes/title"},
                    },
                ],
            },
        )
        with pytest.raises(ApiError) as e:
            await target.save(article)
        assert e.value.status == 422
        assert e.value.code == "too_short"
        assert len(transport.requests) == 1
        assert article.is_dirty("title")
        assert article["tags"].has_changes


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete(self, target, transport):
        transport.respond(204)
        article = Article("1")
        await target.delete(article)
        assert transport.requests == [(Method.DELETE, f"{BASE_URL}/articles/1", None)]
        assert article.id == "1"

    @pytest.mark.asyncio
    async def test_transport_error_is_raised_as_is(self, target, transport):
        error = TransportError("timed out")
        transport.fail(error)
        with pytest.raises(TransportError) as e:
            await target.delete(Article("1"))
        assert e.value is error

    @pytest.mark.asyncio
    async def test_resource_without_identifier(self, target, transport):
        with pytest.raises(ValueError):
            await target.delete(Article())
        assert transport.requests == []


class TestErrors:
    @pytest.mark.asyncio
    async def test_api_error_without_document(self, target, transport):
        transport.respond(404)
        with pytest.raises(ApiError) as e:
            await target.find_one(Person, "9")
        assert e.value.status == 404
        assert e.value.errors == ()

    @pytest.mark.asyncio
    async def test_unknown_type(self, target, transport):
        transport.respond(200, {"data": {"type": "unicorns", "id": "1"}})
        with pytest.raises(UnknownTypeError):
            await target.find("unicorns")


class Money:
    def __init__(self, cents):
        self.cents = cents


class MoneyTransformer(Transformer):
    native_type = Money

    def deserialize(self, value, attribute):
        return Money(int(decimal.Decimal(value) * 100))

    def serialize(self, value, attribute):
        return str(decimal.Decimal(value.cents) / 100)


class Product(Resource):
    resource_type = ResourceType(
        "products",
        [
            ResourceAttributeDescriptor("price", type=Money),
        ],
    )


class TestConfiguration:
    @pytest.mark.asyncio
    async def test_registration(self, target, transport):
        target.register_resource("products", Product)
        target.register_transformer(MoneyTransformer())
        transport.respond(
            200, {"data": {"type": "products", "id": "1", "attributes": {"price": "1.50"}}}
        )
        product = await target.find_one(Product, "1")
        assert product["price"].cents == 150

        product["price"] = Money(275)
        transport.respond(204)
        await target.save(product)
        assert transport.requests[1].payload["data"]["attributes"] == {"price": "2.75"}

    def test_properties(self, target, transport):
        assert target.base_url == BASE_URL
        target.base_url = "https://example.org"
        assert target.base_url == "https://example.org"

        assert not target.trace_enabled
        target.trace_enabled = True
        assert transport.trace_enabled
        assert target.transport is transport

    def test_trace_enabled_on_construction(self):
        from ..client import Client

        transport = FakeTransport()
        Client(transport=transport, trace_enabled=True)
        assert transport.trace_enabled


@pytest.mark.asyncio
async def test_over_httpx():
    from ..client import Client

    seen = []

    def handler(request):
        seen.append(request)
        if request.method == "GET":
            return httpx.Response(
                200,
                content=b'{"data": {"type": "people", "id": "9", "attributes": {"name": "Dan"}}}',
            )
        return httpx.Response(
            409,
            content=b'{"errors": [{"status": "409", "title": "Conflict"}]}',
        )

    transport = HTTPXTransport(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    async with Client(BASE_URL, transport=transport, type_registry=make_type_registry()) as client:
        person = await client.find_one(Person, "9")
        assert person["name"] == "Dan"

        person["name"] = "Daniel"
        with pytest.raises(ApiError) as e:
            await client.save(person)
        assert e.value.status == 409
        assert str(e.value) == "server responded with status 409: Conflict"

    assert [(r.method, str(r.url)) for r in seen] == [
        ("GET", f"{BASE_URL}/people/9"),
        ("PUT", f"{BASE_URL}/people/9"),
    ]
