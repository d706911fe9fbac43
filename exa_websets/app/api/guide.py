"""``websets_guide`` tool: usage guidance for the websets tools."""

from typing import Annotated, Dict, Literal, Tuple

from pydantic import Field

GuideTopic = Literal[
    "getting_started",
    "creating_websets",
    "searching_content",
    "enhancing_data",
    "setting_notifications",
    "workflow_examples",
    "troubleshooting",
    "best_practices",
]

GUIDES: Dict[str, Tuple[str, str]] = {
    "getting_started": (
        "Getting Started with Websets",
        """A webset is a collection of web entities gathered by an asynchronous search.

**Step 1: Create a webset**

    websets_manager(operation="create_webset",
                    webset={"search_query": "AI startups in San Francisco", "count": 20, "entity_type": "company"})

**Step 2: Monitor progress**

    websets_manager(operation="get_webset_status", resource_id="<websetId>")

**Step 3: Explore the results**

    websets_manager(operation="list_content_items", resource_id="<websetId>")

Every operation is also available as a dedicated tool, e.g. `websets_create`
or `websets_list_items`.""",
    ),
    "creating_websets": (
        "Creating Effective Websets",
        """Websets take 10-15 minutes to build.

- Be specific: "B2B SaaS companies in Berlin founded after 2020" beats "software companies".
- Add criteria for hard requirements: `criteria: ["Raised a Series A", "Has a public API"]`.
- Start with a small `count` (10-25) and grow once the query returns what you expect.
- Use `external_id` and `metadata` to tie the webset to your own records.""",
    ),
    "searching_content": (
        "Searching Within a Webset",
        """Run a new search against an existing webset:

    websets_manager(operation="search_webset", resource_id="<websetId>",
                    search={"query": "companies hiring ML engineers", "count": 25})

Set `wait_for_results: true` to poll for up to a minute. Otherwise check later:

    websets_manager(operation="get_search_results", resource_id="<searchId>", webset_id="<websetId>")

A new search replaces the webset's current items.""",
    ),
    "enhancing_data": (
        "Enhancing Data with Enrichments",
        """Enrichments extract one extra field for every item:

    websets_manager(operation="enhance_content", resource_id="<websetId>",
                    enhancement={"task": "Total funding raised", "format": "number"})

Formats: text, date, number, options, email, phone. The `options` format needs
between 1 and 50 choices:

    enhancement={"task": "Primary industry", "format": "options",
                 "options": ["Fintech", "Healthcare", "Developer tools"]}""",
    ),
    "setting_notifications": (
        "Setting Up Notifications",
        """Webhooks push events to your server instead of polling:

    websets_manager(operation="setup_notifications",
                    notification={"url": "https://example.com/hooks/exa",
                                  "events": ["webset.idle", "webset.item.enriched"]})

The response contains the signing secret once. Store it and verify every
delivery with it.""",
    ),
    "workflow_examples": (
        "Workflow Examples",
        """**Market map**
1. `create_webset` for the target segment.
2. `get_webset_status` until the status is `idle`.
3. `enhance_content` for funding, headcount and industry.
4. `list_content_items` and page with `query.cursor`.

**Lead list with alerts**
1. `setup_notifications` for `webset.item.created`.
2. `create_webset` with strict criteria.
3. Process items as their events arrive.""",
    ),
    "troubleshooting": (
        "Troubleshooting",
        """- **AUTHENTICATION_ERROR**: pass `api_key` or set EXA_API_KEY.
- **NOT_FOUND**: check the ID; search and enhancement operations also need `webset_id`.
- **RATE_LIMIT_EXCEEDED**: wait a moment; the client already backs off and retries.
- **CIRCUIT_BREAKER_OPEN**: repeated failures paused requests; retry after the window in `details`.
- **VALIDATION_ERROR**: read `message`; it names the missing or invalid parameter.

`websets_client_stats` shows the rate limiter and circuit breaker state.""",
    ),
    "best_practices": (
        "Best Practices",
        """- Check status before reading items; items appear while a webset is still running.
- Prefer webhooks over polling for long jobs.
- Page through large websets with `limit` and `cursor` instead of fetching everything.
- Keep enrichment tasks short and specific; each one runs for every item.
- Cancel searches and enrichments you no longer need to save credits.""",
    ),
}


async def websets_guide(
    topic: Annotated[GuideTopic, Field(description="What you'd like guidance on")],
) -> str:
    """Get guidance, examples and workflows for creating, searching, enriching and monitoring websets."""
    title, content = GUIDES[topic]
    others = ", ".join(name for name in GUIDES if name != topic)
    return f"# {title}\n\n{content}\n\n---\n\n**Need more help?** Other topics: {others}"


TOOLS = [websets_guide]
