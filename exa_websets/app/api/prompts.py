"""MCP prompts: short guided workflows that point at the right tools."""


def quick_start() -> str:
    """Walk through creating a first webset."""
    return """# Quick start: your first webset

A webset is a collection of web entities (companies, people, papers, ...)
found by an asynchronous search and optionally enriched with extracted fields.

## 1. Create the webset

    websets_create(query="AI startups in Europe that raised a Series A", count=25)

The call returns a `websetId` right away. Collection runs in the background
and usually takes 10-15 minutes.

## 2. Monitor progress

    websets_get_status(webset_id="<websetId>")

`running` means work is still going on; `idle` means the webset is done.
For long jobs, register a webhook instead of polling (see `webhook_setup_guide`).

## 3. Read the results

    websets_list_items(webset_id="<websetId>", limit=25)

Use `nextCursor` from the response to page through larger websets.

## 4. Add enrichments (optional)

    websets_enrichment_create(webset_id="<websetId>", description="Total funding raised", format="number")

See `enrichment_workflow` for details.
"""


def webset_status_check(webset_id: str) -> str:
    """Check a webset and decide what to do next."""
    return f"""# Status check for webset {webset_id}

1. Call `websets_get_status(webset_id="{webset_id}")`.
2. Read `status` and `progress.overallProgress` from the response:
   - `running`: searches or enrichments are still in progress. Check again
     in a few minutes, or cancel with `websets_cancel` if it is no longer needed.
   - `idle`: everything has finished. Fetch results with
     `websets_list_items(webset_id="{webset_id}")`.
   - `paused`: processing stopped. Inspect the searches array for errors.
3. If the call fails with NOT_FOUND, list your websets with `websets_list`
   and confirm the ID.
"""


def webhook_setup_guide() -> str:
    """Register a webhook and handle its deliveries."""
    return """# Webhook setup

Webhooks push webset events to your server so you do not have to poll.

## 1. Register

    websets_webhook_create(url="https://example.com/exa-webhook", events=["webset.idle", "webset.item.created"])

The response includes a signing `secret`. It is shown only once; store it.

## 2. Verify deliveries

Every delivery carries a signature header computed with the secret. Verify it
before trusting the payload, and reject requests that fail verification.

## 3. Respond quickly

Return a 2xx status as soon as the payload is stored. Slow or failing
endpoints are retried and eventually disabled.

## 4. Manage

- `websets_webhook_list` shows registered webhooks.
- `websets_webhook_get(webhook_id=...)` shows one webhook.
- `websets_webhook_delete(webhook_id=...)` removes it.
- `websets_event_list(types=["webset.idle"])` replays recent events if a
  delivery was missed.
"""


def enrichment_workflow(webset_id: str) -> str:
    """Plan and run enrichments on a webset."""
    return f"""# Enrichment workflow for webset {webset_id}

Enrichments extract one field for every item in the webset.

## 1. Choose a format

| format  | use for                           |
|---------|-----------------------------------|
| text    | free-form answers                 |
| number  | counts, amounts, sizes            |
| date    | founding dates, announcements     |
| options | classification into fixed labels  |
| email   | contact addresses                 |
| phone   | phone numbers                     |

`options` requires a list of labels.

## 2. Create

    websets_enrichment_create(webset_id="{webset_id}", description="Industry", format="options", options=["Fintech", "Health", "Other"])

## 3. Track

    websets_enrichment_get(webset_id="{webset_id}", enrichment_id="<enrichmentId>")

Cancel with `websets_enrichment_cancel` or remove with
`websets_enrichment_delete`.

## 4. Read

Enriched values appear on each item from
`websets_list_items(webset_id="{webset_id}")`.
"""


def webset_discovery() -> str:
    """Explore the websets already in the account."""
    return """# Webset discovery

## See what exists

    websets_list(limit=25)

Each webset shows its `status`:
- `running`: searches or enrichments are still collecting (can take 10-15 minutes)
- `idle`: finished and ready to read
- `paused`: processing stopped; inspect its searches for errors

Page with `nextCursor` when `hasMore` is true.

## Look closer

- `websets_get_status(webset_id="<id>")` for progress and metadata
- `websets_list_items(webset_id="<id>", limit=10)` for a first look at results
- the `webset_status_check` prompt for a guided status check

## Start something new

    websets_create(query="sustainable fashion brands in Europe", count=25)

Specific queries give better websets. Add enrichments once items arrive.
"""


def webset_analysis_guide(webset_id: str) -> str:
    """Work through the data in a completed webset."""
    return f"""# Analysis guide for webset {webset_id}

## 1. Confirm it is done

    websets_get_status(webset_id="{webset_id}")

Analysis works best once `status` is `idle`.

## 2. Read the items

    websets_list_items(webset_id="{webset_id}", limit=50)

Repeat with `cursor=<nextCursor>` until `hasMore` is false. Each item carries
its URL, title, extracted properties and any enrichment results.

## 3. Add the fields you need

    websets_enrichment_create(webset_id="{webset_id}", description="Employee count", format="number")
    websets_enrichment_create(webset_id="{webset_id}", description="Business model", format="options",
                              options=["B2B", "B2C", "Marketplace"])

## 4. Summarize

Group items by enrichment values, count them per category, and call out
outliers. Use `web_search_exa` to check recent news on the most interesting items.

## 5. Keep it current

Register a webhook for `webset.item.created` with `websets_webhook_create`
to hear about new items without polling.
"""


def list_mcp_assets() -> str:
    """List every tool and prompt this server provides."""
    from exa_websets.app.api.server import ALL_TOOLS

    lines = ["# Exa Websets MCP server assets", "", "## Tools", ""]
    for tool in ALL_TOOLS:
        lines.append(f"- **{tool.__name__}**: {(tool.__doc__ or '').strip().splitlines()[0]}")
    lines += ["", "## Prompts", ""]
    for prompt in PROMPTS:
        lines.append(f"- **{prompt.__name__}**: {(prompt.__doc__ or '').strip().splitlines()[0]}")
    lines += [
        "",
        "## Key concepts",
        "",
        "- Websets are asynchronous: creation returns an ID at once and collection continues in the background.",
        "- Poll with `websets_get_status` or register a webhook to learn when a webset is `idle`.",
        "- Every tool accepts an optional `api_key`; otherwise EXA_API_KEY is used.",
    ]
    return "\n".join(lines) + "\n"


PROMPTS = [
    quick_start,
    webset_discovery,
    webset_status_check,
    webset_analysis_guide,
    webhook_setup_guide,
    enrichment_workflow,
    list_mcp_assets,
]
