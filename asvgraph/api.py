"""HTTP endpoints for the sample similarity engine."""

import asyncio
import logging
from typing import Iterator

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from asvgraph.config import settings
from asvgraph.database import SampleStore
from asvgraph.errors import BackingStoreError, InvalidInputError, UnknownSampleError
from asvgraph.queries import GraphQuery, NeighborQuery, ProximityQuery, SamplesQuery, TaxonomyQuery
from asvgraph.service import SampleGraphService

VERSION = "0.1.0"

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def get_store() -> Iterator[SampleStore]:
    """One connection per request, always closed when the request ends."""
    store = SampleStore(database=settings.database, read_only=True)
    try:
        yield store
    finally:
        store.close()


def get_service(store: SampleStore = Depends(get_store)) -> SampleGraphService:
    return SampleGraphService(store)


async def _run(fn, *args):
    return await asyncio.wait_for(run_in_threadpool(fn, *args), timeout=settings.query_timeout_seconds)


@router.get("/health")
async def health() -> dict:
    return {"status": "ok", "version": VERSION}


@router.get("/samples")
async def list_samples(request: Request, service: SampleGraphService = Depends(get_service)):
    query = SamplesQuery.from_params(request.query_params)
    samples = await _run(service.samples, query)
    return [sample.model_dump() for sample in samples]


@router.get("/samples/{sample_id}")
async def get_sample(sample_id: str, service: SampleGraphService = Depends(get_service)):
    sample = await _run(service.sample, sample_id)
    return sample.model_dump()


@router.get("/nearby")
async def nearby(request: Request, service: SampleGraphService = Depends(get_service)):
    query = ProximityQuery.from_params(request.query_params)
    result = await _run(service.nearby, query)
    return result.model_dump()


@router.get("/similarity")
async def similarity(request: Request, service: SampleGraphService = Depends(get_service)):
    query = GraphQuery.from_params(request.query_params)
    graph = await _run(service.similarity_graph, query)
    return {
        "nodes": [node.model_dump() for node in graph.nodes],
        "links": [
            {"source": e.source, "target": e.target, "value": e.shared_count, "sharedCount": e.shared_count}
            for e in graph.edges
        ],
    }


@router.get("/shared-asvs")
async def shared_asvs(request: Request, service: SampleGraphService = Depends(get_service)):
    query = NeighborQuery.from_params(request.query_params)
    shares = await _run(service.shared_features, query)
    return [{"neighbor": share.neighbor, "sequences": share.shared_features} for share in shares]


@router.post("/asv-profile")
async def asv_profile(request: Request, service: SampleGraphService = Depends(get_service)):
    try:
        body = await request.json()
    except ValueError as e:
        raise InvalidInputError("Request body must be JSON") from e
    if not isinstance(body, dict):
        raise InvalidInputError("Request body must be a JSON object")
    query = TaxonomyQuery.from_params(body)
    records = await _run(service.taxonomy, query)
    return [record.model_dump(by_alias=True) for record in records]


@router.get("/taxonomy")
async def taxonomy(request: Request, service: SampleGraphService = Depends(get_service)):
    feature_id = request.query_params.get("asvSeq", "").strip()
    text = request.query_params.get("query", "").strip()
    if feature_id:
        records = await _run(service.taxonomy, TaxonomyQuery(feature_ids=[feature_id]))
        return records[0].model_dump(by_alias=True) if records else None
    if text:
        records = await _run(service.search_taxonomy, text)
        return [record.model_dump(by_alias=True) for record in records]
    raise InvalidInputError("asvSeq or query is required")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app() -> FastAPI:
    app = FastAPI(
        title="ASV Graph",
        description="Sample proximity and ASV co-occurrence queries",
        version=VERSION,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidInputError)
    async def invalid_input(request: Request, exc: InvalidInputError):
        return _error(400, str(exc))

    @app.exception_handler(UnknownSampleError)
    async def unknown_sample(request: Request, exc: UnknownSampleError):
        return _error(404, str(exc))

    @app.exception_handler(BackingStoreError)
    async def store_failure(request: Request, exc: BackingStoreError):
        logger.error(f"Store failure on {request.url.path}: {exc}")
        return _error(500, "Failed to query sample store")

    @app.exception_handler(asyncio.TimeoutError)
    async def timed_out(request: Request, exc: asyncio.TimeoutError):
        logger.error(f"Timed out after {settings.query_timeout_seconds}s on {request.url.path}")
        return _error(504, "Query timed out")

    app.include_router(router)
    return app


app = create_app()
