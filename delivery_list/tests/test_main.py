from contextlib import asynccontextmanager

import httpx
import pytest

from delivery_list.config import ConfigurationError
from delivery_list.main import create_app


@asynccontextmanager
async def running_app(settings, source_client):
    """Runs the app lifespan, waits for the initial fetch and yields an HTTP client against it."""
    app = create_app(settings=settings, source_client=source_client)
    async with app.router.lifespan_context(app):
        await app.state.view.wait_loaded()
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client


@pytest.mark.asyncio
async def test_list_deliveries(settings, source_client):
    """Tests GET /deliveries without a search term."""
    async with running_app(settings, source_client) as client:
        response = await client.get("/deliveries")

    assert response.status_code == 200
    body = response.json()
    assert body["total_count"] == 3
    assert body["visible_count"] == 2
    assert body["label"] == "You have 3 active deliveries"
    assert [d["delCode"] for d in body["data"]] == ["D1", "D2"]

    d1 = body["data"][0]
    assert d1["client"] == "Parts for Acme"
    assert d1["deadline"] == "2 days 12 hrs left"
    assert d1["progress"] == pytest.approx(30)
    assert d1["severity"] == "medium"
    assert d1["href"] == "/delivery/D1"


@pytest.mark.asyncio
async def test_search_deliveries(settings, source_client):
    """Tests GET /deliveries with a search term; the source is not queried again."""
    async with running_app(settings, source_client) as client:
        response = await client.get("/deliveries", params={"search": "GLOBEX"})
        empty = await client.get("/deliveries", params={"search": "nothing"})

    assert [d["delCode"] for d in response.json()["data"]] == ["D2"]
    assert empty.json()["data"] == []
    assert empty.json()["label"] == "You have 0 active deliveries"


@pytest.mark.asyncio
async def test_page_renders_cards(settings, source_client):
    """Tests GET / renders the page with lazily mounted cards."""
    async with running_app(settings, source_client) as client:
        response = await client.get("/")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    html = response.text
    assert "List of Deliveries" in html
    assert "You have 3 active deliveries" in html
    assert 'href="/delivery/D1"' in html
    assert "3 of 10 Planned" in html
    assert "bg-warning" in html
    assert "lazy-placeholder" in html
    assert "/delivery/D3" not in html


@pytest.mark.asyncio
async def test_cards_fragment_escapes_search(settings, source_client):
    """Tests GET /cards returns only the list markup."""
    async with running_app(settings, source_client) as client:
        response = await client.get("/cards", params={"search": "<b>"})

    assert response.status_code == 200
    assert "<html" not in response.text
    assert "You have 0 active deliveries" in response.text


@pytest.mark.asyncio
async def test_page_escapes_search_term(settings, source_client):
    async with running_app(settings, source_client) as client:
        response = await client.get("/", params={"search": '"><script>'})

    assert '"><script>' not in response.text
    assert "&quot;&gt;&lt;script&gt;" in response.text


@pytest.mark.asyncio
async def test_source_failure_renders_empty_list(settings, make_source_client):
    async with running_app(settings, make_source_client({"detail": "down"}, status_code=502)) as client:
        response = await client.get("/deliveries")
        health = await client.get("/health")

    assert response.json()["total_count"] == 0
    assert health.json()["status"] == "ok"
    assert health.json()["loaded"] is True


@pytest.mark.asyncio
async def test_missing_visible_count_fails_startup(monkeypatch, source_client):
    monkeypatch.delenv("VISIBLE_COUNT", raising=False)
    app = create_app(source_client=source_client)

    with pytest.raises(ConfigurationError):
        async with app.router.lifespan_context(app):
            pass
    await source_client.aclose()


@pytest.mark.asyncio
async def test_long_search_term_is_accepted(settings, source_client):
    """Tests GET /cards and /deliveries with a free-text term of arbitrary length."""
    term = "a" * 500
    async with running_app(settings, source_client) as client:
        cards = await client.get("/cards", params={"search": term})
        deliveries = await client.get("/deliveries", params={"search": term})

    assert cards.status_code == 200
    assert "You have 0 active deliveries" in cards.text
    assert deliveries.status_code == 200
    assert deliveries.json()["search"] == term


@pytest.mark.asyncio
async def test_card_content_is_escaped(settings, make_source_client):
    """Tests that record text is escaped in cards and the code is quoted in links."""
    payload = {
        "X": [{
            "Step_ID": 0,
            "DelCode_w_o__": 'A/<b>"1',
            "Short_description": "<script>alert(1)</script>",
            "Client": "Evil & Co",
            "Planned_Tasks": 1,
            "Total_Tasks": 2,
        }],
    }
    async with running_app(settings, make_source_client(payload)) as client:
        page = await client.get("/")
        cards = await client.get("/cards")

    for html in (page.text, cards.text):
        assert "<script>alert(1)" not in html
        assert "&lt;script&gt;alert(1)&lt;/script&gt; for Evil &amp; Co" in html
        assert 'href="/delivery/A%2F%3Cb%3E%221"' in html
        assert 'data-key="A/&lt;b&gt;&quot;1"' in html
        assert '<b>"1' not in html
