"""FastAPI application entry point for the document search API."""

from contextlib import asynccontextmanager
import os
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from server.api.routers.ManageRouter import manage_router
from server.api.routers.SearchRouter import search_router
from services.search.HybridSearchService import HybridSearchService
from services.search.SearchIntegrationService import SearchIntegrationService
from shared.clients.database.DatabaseClient import DatabaseClient
from shared.clients.database.FileRepository import FileRepository
from shared.clients.search.SearchClientManager import SearchClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.errors import DocumentValidationError, SearchBackendError

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown."""
    app.state.logging = setup_logging()
    app.state.config = HelperConfig(logger=app.state.logging)

    # Initialise clients
    search_client = SearchClientManager(helper_config=app.state.config).get_client()
    database_client = DatabaseClient(helper_config=app.state.config)
    await search_client.boot()
    await database_client.boot()

    # Health check, an unreachable cluster is not fatal: searches degrade to the database
    health = await search_client.do_health_check()
    if health.status == "healthy":
        app.state.logging.info("Search backend: %s", health.message)
        try:
            await search_client.do_create_index()
        except SearchBackendError as e:
            app.state.logging.error("Could not ensure index %s: %s", search_client.get_index_name(), e)
    else:
        app.state.logging.warning("Search backend unhealthy at startup: %s", health.message)

    # Wire up services
    file_repository = FileRepository(helper_config=app.state.config, database_client=database_client)
    app.state.database_client = database_client
    app.state.search_service = HybridSearchService(
        helper_config=app.state.config,
        search_client=search_client,
        file_repository=file_repository,
    )
    app.state.integration_service = SearchIntegrationService(
        helper_config=app.state.config,
        search_service=app.state.search_service,
        file_repository=file_repository,
    )

    app.state.logging.info("Document search API ready.", color="green")
    yield

    # Shutdown
    await search_client.close()
    await database_client.close()
    app.state.logging.info("Document search API shut down.")


app = FastAPI(
    title="Document Library Search",
    description="Tenant-scoped full-text search over the document library, backed by Elasticsearch or OpenSearch.",
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DocumentValidationError)
async def handle_document_validation_error(request: Request, exc: DocumentValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "field": exc.field, "error": exc.reason})


app.include_router(search_router)
app.include_router(manage_router)


# Server Start
if __name__ == "__main__":
    # start server
    import uvicorn
    logging.info(f"Starting Document Search API Server v{app_version} from root dir: {os.getenv('ROOT_DIR', os.getcwd())} on port 8000...")
    uvicorn.run(app, host="0.0.0.0", port=8000)
