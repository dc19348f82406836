"""FastMCP server implementation for ragpack."""

import json
from typing import Any, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import BaseModel, Field

from ragpack.factory import Components
from ragpack.server.tools import RagTools


class AuthInput(BaseModel):
    """Basic authentication details."""

    username: str = Field(description="Username for basic authentication")
    password: str = Field(description="Password or API token for basic authentication")


def _render(payload: Any) -> str:
    return json.dumps(payload, indent=2)


def create_mcp_server(
    components: Components,
    host: str = "127.0.0.1",
    port: int = 8000,
) -> FastMCP:
    """Create an MCP server for one project.

    Design: 1 process = 1 project. Every tool shares the same store
    connection and embedding model.

    Args:
        components: Store, embedder and pipelines built from settings
        host: Bind address for the HTTP transports
        port: Port for the HTTP transports

    Returns:
        Configured FastMCP server instance
    """
    mcp = FastMCP(name="ragpack", host=host, port=port)
    tools = RagTools(components)

    @mcp.tool()
    async def fetch_relevant_documents(query: str) -> str:
        """Fetch relevant information from ingested documents.

        Args:
            query: Query to search in documents.

        Returns:
            JSON object whose documents list holds the matching chunks with
            similarity_score, page_content and metadata, best match first
        """
        return _render(await tools.fetch_relevant_documents(query))

    @mcp.tool()
    async def list_ingested_documents() -> str:
        """List file IDs of all ingested documents."""
        return _render(await tools.list_ingested_documents())

    @mcp.tool()
    async def ingest_file_url(
        data: str,
        auth: Optional[AuthInput] = None,
        name: Optional[str] = None,
    ) -> str:
        """Ingest a file into the system using its URL.

        Args:
            data: File URL to ingest.
            auth: Optional authentication details for the URL, if required.
            name: Name of the document to ingest.
        """
        return _render(
            await tools.ingest_file_url(data, auth.model_dump() if auth else None, name)
        )

    @mcp.tool()
    async def ingest_confluence_page(baseurl: str, pageId: str, auth: AuthInput) -> str:
        """Ingest content of a confluence page into the system.

        Args:
            baseurl: Confluence base URL.
            pageId: ID of the Confluence page to ingest.
            auth: Username and API token for the Confluence site.
        """
        return _render(await tools.ingest_confluence_page(baseurl, pageId, auth.model_dump()))

    @mcp.tool()
    async def delete_document(fileIds: list[str]) -> str:
        """Delete documents from the system.

        Args:
            fileIds: Array of File Ids of the documents to delete.

        Returns:
            JSON report listing the ids that were deleted and those that failed
        """
        return _render(await tools.delete_document(fileIds))

    return mcp
