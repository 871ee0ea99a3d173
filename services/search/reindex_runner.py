"""Reindex runner entry point.

Rebuilds the search index for the organizations listed in
REINDEX_ORGANIZATION_IDS (e.g. "[1,7,8]") from the database.

Usage:
    python -m services.search.reindex_runner
"""

import asyncio

from services.search.HybridSearchService import HybridSearchService
from services.search.SearchIntegrationService import SearchIntegrationService
from shared.clients.database.DatabaseClient import DatabaseClient
from shared.clients.database.FileRepository import FileRepository
from shared.clients.search.SearchClientManager import SearchClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging


async def main() -> int:
    """Reindex every configured organization.

    Returns:
        int: Process exit code, 1 if the backend is unhealthy or any file failed.
    """
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    organization_ids = config.get_list_val("REINDEX_ORGANIZATION_IDS")

    search_client = SearchClientManager(helper_config=config).get_client()
    database_client = DatabaseClient(helper_config=config)

    try:
        await search_client.boot()
        await database_client.boot()

        # no point in reindexing into a cluster we cannot reach
        health = await search_client.do_health_check()
        if health.status != "healthy":
            logger.error(f"Search backend {search_client.get_engine_name()} is unhealthy: {health.message}. Aborting.")
            return 1

        file_repository = FileRepository(helper_config=config, database_client=database_client)
        search_service = HybridSearchService(
            helper_config=config,
            search_client=search_client,
            file_repository=file_repository,
        )
        integration_service = SearchIntegrationService(
            helper_config=config,
            search_service=search_service,
            file_repository=file_repository,
        )

        all_ok = True
        for organization_id in organization_ids:
            if not await integration_service.reindex_organization(organization_id):
                all_ok = False
        return 0 if all_ok else 1
    finally:
        await search_client.close()
        await database_client.close()


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
