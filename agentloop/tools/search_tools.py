"""
Web Search Tool
===============

Web search through a Serper-compatible API (https://serper.dev).

Search API Notes:
- Uses httpx for async HTTP requests
- Requires SEARCH_API_KEY; without it the tool reports "not configured"
- ``search_type == "news"`` is sent to the sibling ``/news`` endpoint
- Results are normalized to ``{title, url, snippet}``
"""

import httpx

from agentloop.tools import Tool, ToolResult
from agentloop.utils.config import SearchConfig, is_search_configured
from agentloop.utils.logger import Logger

logger = Logger("SearchTools")

SEARCH_TYPES = ("general", "technical", "news", "academic")

REQUEST_TIMEOUT_SECONDS = 15.0


def _endpoint_for(config: SearchConfig, search_type: str) -> str:
    if search_type == "news" and config.api_base.endswith("/search"):
        return config.api_base[: -len("/search")] + "/news"
    return config.api_base


def _normalize_results(payload: dict, search_type: str, limit: int) -> list[dict]:
    """Pick the result list out of a Serper response."""
    key = "news" if search_type == "news" else "organic"
    items = payload.get(key) or payload.get("organic") or []

    results = []
    for item in items[:limit]:
        results.append({
            "title": item.get("title", ""),
            "url": item.get("link", ""),
            "snippet": item.get("snippet", ""),
        })
    return results


def create_web_search_tool(config: SearchConfig) -> Tool:
    """
    Create the web_search tool bound to a search configuration.

    Args:
        config: API key, endpoint and default result count
    """

    async def _web_search(params: dict) -> ToolResult:
        if not is_search_configured(config):
            return ToolResult(
                success=False,
                error="Web search is not configured. Set SEARCH_API_KEY in .env"
            )

        query = str(params.get("query") or "").strip()
        if not query:
            return ToolResult(success=False, error="A search query is required")

        search_type = params.get("search_type") or params.get("searchType") or "general"
        if search_type not in SEARCH_TYPES:
            search_type = "general"

        try:
            max_results = int(params.get("max_results") or params.get("maxResults") or config.max_results)
        except (TypeError, ValueError):
            max_results = config.max_results
        max_results = max(1, min(max_results, 20))

        headers = {
            "X-API-KEY": config.api_key,
            "Content-Type": "application/json"
        }
        body = {"q": query, "num": max_results}

        try:
            async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS) as client:
                response = await client.post(
                    _endpoint_for(config, search_type),
                    headers=headers,
                    json=body
                )

            if response.status_code >= 400:
                logger.error(f"Search API error: {response.status_code} - {response.text[:200]}")
                return ToolResult(
                    success=False,
                    error=f"Search request failed with status {response.status_code}",
                    data={"query": query}
                )

            results = _normalize_results(response.json(), search_type, max_results)

        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Search request failed for '{query}'", e)
            return ToolResult(success=False, error=str(e), data={"query": query})

        logger.debug(f"Search returned {len(results)} results", {"query": query})
        return ToolResult(success=True, data={
            "query": query,
            "search_type": search_type,
            "results": results,
            "total_results": len(results)
        })

    return Tool(
        name="web_search",
        description="Search the web for current information",
        parameters={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search keywords"},
                "search_type": {
                    "type": "string",
                    "enum": list(SEARCH_TYPES),
                    "description": "Kind of search"
                },
                "max_results": {"type": "integer", "description": "Maximum results (1-20)"}
            },
            "required": ["query"]
        },
        execute=_web_search,
        category="information"
    )
