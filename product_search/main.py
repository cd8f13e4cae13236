"""FastAPI application wiring the search gateway."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from .config import Settings, settings
from .errors import SearchServiceError
from .es_client import create_client
from .gateway import SearchGateway
from .importer import import_products, require_categories
from .models import AggregateSummary, Product, ProductUpdate, SearchRequest

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level_name: str) -> None:
    level = logging.getLevelName(level_name.upper())
    # ``force=True`` replaces uvicorn's default handlers.
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "elastic_transport"):
        logging.getLogger(name).setLevel(level)


configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


def get_gateway(request: Request) -> SearchGateway:
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise HTTPException(status_code=503, detail="Search gateway is not initialised")
    return gateway


def _client_address(request: Request) -> str:
    return request.client.host if request.client else "-"


def create_app(gateway: Optional[SearchGateway] = None, app_settings: Settings = settings) -> FastAPI:
    """Build the application.

    When ``gateway`` is omitted the Elasticsearch client is created at startup
    from ``app_settings``; the index is created if missing and the seed file is
    imported before the first request is served.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_client = app.state.gateway is None
        if owns_client:
            client = await asyncio.to_thread(create_client, app_settings)
            gw = SearchGateway(
                client,
                app_settings.es_index,
                fuzzy=app_settings.fuzzy_search,
                suggest_size=app_settings.suggest_size,
            )
            try:
                await asyncio.to_thread(gw.ensure_index, app_settings.mapping_path)
                if app_settings.load_on_startup:
                    imported = await asyncio.to_thread(import_products, gw, Path(app_settings.products_path))
                    logger.info("Imported %s products on startup", imported)
            except Exception:
                client.close()
                raise
            app.state.gateway = gw
        yield
        if owns_client:
            app.state.gateway.client.close()

    app = FastAPI(title="Product Search Service", lifespan=lifespan)
    app.state.gateway = gateway

    @app.exception_handler(SearchServiceError)
    async def service_error_handler(request: Request, exc: SearchServiceError) -> JSONResponse:
        # The search route logs its own failures with the request context.
        if exc.status_code >= 500 and request.url.path != "/search":
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

    @app.get("/health")
    async def health(gw: SearchGateway = Depends(get_gateway)) -> dict:
        status = await asyncio.to_thread(gw.health)
        empty = await asyncio.to_thread(gw.is_empty)
        return {"elasticsearch": status, "index": gw.index, "empty": empty}

    @app.get("/search", response_model=List[Product])
    async def search(
        request: Request,
        q: str = Query(..., description="Search query"),
        page: int = Query(1, ge=1),
        size: int = Query(10, ge=1),
        sort: str = Query("price", description="Field to sort on, ascending"),
        category: Optional[str] = None,
        price_min: Optional[str] = None,
        price_max: Optional[str] = None,
        stock_min: Optional[str] = None,
        stock_max: Optional[str] = None,
        created_at_min: Optional[str] = None,
        created_at_max: Optional[str] = None,
        gw: SearchGateway = Depends(get_gateway),
    ) -> List[Product]:
        if not q.strip():
            raise HTTPException(status_code=400, detail="Query parameter 'q' is required")
        search_request = SearchRequest(
            query=q,
            page=page,
            size=size,
            sort=sort or "price",
            category=category,
            price_min=price_min,
            price_max=price_max,
            stock_min=stock_min,
            stock_max=stock_max,
            created_at_min=created_at_min,
            created_at_max=created_at_max,
        )
        try:
            products = await asyncio.to_thread(gw.search, search_request)
        except SearchServiceError:
            logger.exception(
                "search failed q=%r page=%s size=%s sort=%s filters=%s ip=%s",
                q,
                page,
                size,
                sort,
                search_request.filters(),
                _client_address(request),
            )
            raise
        logger.info(
            "search q=%r page=%s size=%s sort=%s filters=%s hits=%s ip=%s",
            q,
            page,
            size,
            sort,
            search_request.filters(),
            len(products),
            _client_address(request),
        )
        return products

    @app.post("/import", response_class=PlainTextResponse)
    async def import_endpoint(products: List[Product], gw: SearchGateway = Depends(get_gateway)) -> str:
        require_categories(products)
        await asyncio.to_thread(gw.index_products, products)
        return "Products successfully indexed"

    @app.put("/update", response_class=PlainTextResponse)
    async def update_endpoint(updates: List[ProductUpdate], gw: SearchGateway = Depends(get_gateway)) -> str:
        require_categories(updates, action="products in the update")
        await asyncio.to_thread(gw.update_products, updates)
        return "Products updated successfully"

    @app.get("/aggregation", response_model=AggregateSummary)
    async def aggregation(gw: SearchGateway = Depends(get_gateway)) -> AggregateSummary:
        return await asyncio.to_thread(gw.aggregate)

    @app.get("/suggest", response_model=List[str])
    async def suggest(
        q: str = Query(..., description="Prefix to complete"),
        gw: SearchGateway = Depends(get_gateway),
    ) -> List[str]:
        if not q.strip():
            raise HTTPException(status_code=400, detail="Query parameter 'q' is required")
        return await asyncio.to_thread(gw.suggest, q)

    @app.get("/stats")
    async def stats(gw: SearchGateway = Depends(get_gateway)) -> dict:
        return await asyncio.to_thread(gw.stats)

    return app


app = create_app()
