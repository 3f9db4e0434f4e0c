from __future__ import annotations

import asyncio
from typing import Optional

import typer

from docvault.app.core.logging import setup_logging
from docvault.app.settings import get_settings

app = typer.Typer(no_args_is_help=True, add_completion=False, help="docvault document service")


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: Optional[int] = typer.Option(None, help="Port; defaults to PORT (8081)"),
    reload: bool = typer.Option(False, help="Auto-reload on code changes (dev only)"),
):
    """Run the HTTP service with uvicorn."""
    import uvicorn

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    uvicorn.run(
        "docvault.api.fastapi.setup:create_app",
        factory=True,
        host=host,
        port=port or settings.port,
        reload=reload,
        log_config=None,  # keep the dictConfig from setup_logging
    )


@app.command("ensure-indexes")
def ensure_indexes():
    """Create the metadata collection indexes (owner, case, unique doc_id)."""
    from docvault.db.nosql.indexes import ensure_document_indexes
    from docvault.db.nosql.session import create_mongo_client, dispose_mongo, get_database

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    async def _run() -> list[str]:
        client = create_mongo_client(settings)
        try:
            collection = get_database(client, settings)[settings.metadata_collection]
            return await ensure_document_indexes(collection)
        finally:
            dispose_mongo(client)

    names = asyncio.run(_run())
    typer.echo(f"Indexes on {settings.mongo_db}.{settings.metadata_collection}: {', '.join(names)}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
