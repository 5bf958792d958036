import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import FastAPI, Query, Request
from fastapi.responses import HTMLResponse

from delivery_list.config import Settings
from delivery_list.render.html import render_list, render_page
from delivery_list.schemas import DeliveryListResponse, HealthResponse
from delivery_list.source.client import DeliverySourceClient, get_source_client
from delivery_list.view import DeliveryListView

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("delivery_list")

SearchTerm = Annotated[str, Query(description="Case-insensitive filter on the client text.")]


def create_app(settings: Optional[Settings] = None, source_client: Optional[DeliverySourceClient] = None) -> FastAPI:
    """
    Builds the application. Settings are read from the environment at startup
    when not given, so a missing VISIBLE_COUNT fails the launch rather than the import.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        config = settings or Settings.from_env()
        client = source_client or get_source_client(config.source_url, timeout=config.source_timeout)

        view = DeliveryListView(client, visible_count=config.visible_count, tz=config.tzinfo)
        app.state.view = view
        logger.info(f"Showing up to {config.visible_count} deliveries from {config.source_url}")
        view.mount()

        yield

        await view.unmount()
        await client.aclose()
        logger.info("Application shutting down.")

    app = FastAPI(
        title="Delivery List",
        version="1.0.0",
        description="Searchable list of top-level deliveries fetched from a remote JSON endpoint.",
        lifespan=lifespan,
    )

    @app.get("/", response_class=HTMLResponse, tags=["Deliveries"])
    def delivery_page(request: Request, search: SearchTerm = ""):
        """Full page: search box, count label and the lazily mounted cards."""
        view: DeliveryListView = request.app.state.view
        return HTMLResponse(render_page(view.snapshot(search)))

    @app.get("/cards", response_class=HTMLResponse, tags=["Deliveries"])
    def delivery_cards(request: Request, search: SearchTerm = ""):
        """Count label and cards only, swapped into the page on each keystroke."""
        view: DeliveryListView = request.app.state.view
        return HTMLResponse(render_list(view.snapshot(search)))

    @app.get("/deliveries", response_model=DeliveryListResponse, tags=["Deliveries"])
    def list_deliveries(request: Request, search: SearchTerm = ""):
        """Filtered deliveries, limited to the configured visible count."""
        view: DeliveryListView = request.app.state.view
        snapshot = view.snapshot(search)

        return DeliveryListResponse(
            total_count=snapshot.total_count,
            visible_count=snapshot.visible_count,
            search=snapshot.search,
            label=snapshot.label,
            data=snapshot.cards,
        )

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    def health_check(request: Request):
        """Simple health endpoint."""
        view: DeliveryListView = request.app.state.view
        return HealthResponse(
            status="ok",
            loaded=view.loaded,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "delivery_list.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
