"""Tests for the MCP tools, prompts and server wiring."""

import json

import httpx
import pytest
import respx

from exa_websets.app.api import guide, manager, prompts, tools
from exa_websets.app.api.server import ALL_TOOLS, build_server

BASE_URL = "https://api.test/websets/v0"


@pytest.fixture(autouse=True)
def use_test_settings(monkeypatch, test_settings):
    monkeypatch.setattr("exa_websets.app.services.settings", test_settings)


class TestWebsetTools:
    """Test webset tool responses."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_create_success(self):
        route = respx.post(f"{BASE_URL}/websets").mock(
            return_value=httpx.Response(201, json={"id": "ws_1", "status": "running"})
        )

        result = json.loads(
            await tools.websets_create(query="AI startups", count=5, entity_type="company", criteria=["Series A"])
        )

        assert result["success"] is True
        assert result["websetId"] == "ws_1"
        assert any("websets_get_status" in step for step in result["nextSteps"])
        assert json.loads(route.calls.last.request.content) == {
            "search": {
                "query": "AI startups",
                "count": 5,
                "entity": {"type": "company"},
                "criteria": [{"description": "Series A"}],
            }
        }

    @pytest.mark.asyncio
    @respx.mock
    async def test_explicit_api_key(self):
        route = respx.get(f"{BASE_URL}/websets").mock(return_value=httpx.Response(200, json={"data": []}))

        await tools.websets_list(api_key="caller-key")

        assert route.calls.last.request.headers["x-api-key"] == "caller-key"

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_status_includes_progress(self):
        respx.get(f"{BASE_URL}/websets/ws_1").mock(
            return_value=httpx.Response(
                200,
                json={"id": "ws_1", "status": "idle", "searches": [{"status": "completed"}], "enrichments": []},
            )
        )

        result = json.loads(await tools.websets_get_status(webset_id="ws_1"))

        assert result["status"] == "idle"
        assert result["progress"]["overallProgress"] == 100
        assert any("websets_list_items" in step for step in result["nextSteps"])

    @pytest.mark.asyncio
    @respx.mock
    async def test_not_found_is_reported(self):
        respx.get(f"{BASE_URL}/websets/ws_missing").mock(return_value=httpx.Response(404))

        result = json.loads(await tools.websets_get_status(webset_id="ws_missing"))

        assert result["success"] is False
        assert result["code"] == "NOT_FOUND"
        assert result["status"] == 404
        assert result["message"] == "The requested resource was not found."
        assert result["troubleshooting"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_error_omits_stack(self):
        respx.get(f"{BASE_URL}/websets").mock(side_effect=httpx.ConnectError("connection refused"))

        result = json.loads(await tools.websets_list())

        assert result["success"] is False
        assert result["code"] == "NETWORK_ERROR"
        assert result["details"]["exception"] == "ConnectError"
        assert "stack" not in result["details"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_list_items_pagination(self):
        respx.get(f"{BASE_URL}/websets/ws_1/items").mock(
            return_value=httpx.Response(200, json={"data": [{"id": "i1"}], "hasMore": True, "nextCursor": "c2"})
        )

        result = json.loads(await tools.websets_list_items(webset_id="ws_1", limit=1))

        assert result["count"] == 1
        assert result["hasMore"] is True
        assert result["nextCursor"] == "c2"


class TestValidationReporting:
    """Test client-side validation surfaces as a tool result."""

    @pytest.mark.asyncio
    @respx.mock(assert_all_called=False)
    async def test_options_enrichment_without_options(self):
        route = respx.post(f"{BASE_URL}/websets/ws_1/enrichments")

        result = json.loads(
            await tools.websets_enrichment_create(webset_id="ws_1", description="Industry", format="options")
        )

        assert result["success"] is False
        assert result["code"] == "VALIDATION_ERROR"
        assert "Options are required" in result["message"]
        assert not route.called

    @pytest.mark.asyncio
    async def test_webhook_url_scheme(self):
        result = json.loads(await tools.websets_webhook_create(url="ftp://example.com", events=["webset.idle"]))
        assert result["success"] is False


class TestWebhookTools:

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_masks_secret(self):
        respx.get(f"{BASE_URL}/webhooks/wh_1").mock(
            return_value=httpx.Response(200, json={"id": "wh_1", "secret": "whsec_abc"})
        )

        text = await tools.websets_webhook_get(webhook_id="wh_1")

        assert "whsec_abc" not in text

    @pytest.mark.asyncio
    @respx.mock
    async def test_create_returns_secret_once(self):
        respx.post(f"{BASE_URL}/webhooks").mock(
            return_value=httpx.Response(201, json={"id": "wh_1", "secret": "whsec_abc", "events": ["webset.idle"]})
        )

        result = json.loads(
            await tools.websets_webhook_create(url="https://example.com/hook", events=["webset.idle"])
        )

        assert result["secret"] == "whsec_abc"
        assert result["webhookId"] == "wh_1"


class TestOtherTools:

    @pytest.mark.asyncio
    @respx.mock
    async def test_web_search(self):
        respx.post("https://search.test/search").mock(
            return_value=httpx.Response(200, json={"results": [{"url": "https://example.com"}]})
        )

        result = json.loads(await tools.web_search_exa(query="exa websets"))

        assert result["results"] == [{"url": "https://example.com"}]

    @pytest.mark.asyncio
    async def test_client_stats(self):
        result = json.loads(await tools.websets_client_stats())

        assert result["success"] is True
        assert result["stats"]["circuitBreaker"]["state"] == "closed"
        assert result["stats"]["rateLimiter"]["requestsPerSecond"] == 100


class TestSearchVariants:
    """Test the domain-focused search tools."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_github_search_prefixes_query(self):
        route = respx.post("https://search.test/search").mock(
            return_value=httpx.Response(200, json={"results": [{"url": "https://github.com/exa-labs"}]})
        )

        result = json.loads(await tools.github_search(query="mcp servers"))

        body = json.loads(route.calls.last.request.content)
        assert body["query"] == "exa.ai GitHub: mcp servers"
        assert body["includeDomains"] == ["github.com"]
        assert result["count"] == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_github_query_kept_when_it_mentions_github(self):
        route = respx.post("https://search.test/search").mock(return_value=httpx.Response(200, json={"results": []}))

        await tools.github_search(query="GitHub actions for python")

        assert json.loads(route.calls.last.request.content)["query"] == "GitHub actions for python"

    @pytest.mark.asyncio
    @respx.mock
    async def test_domain_filters(self):
        route = respx.post("https://search.test/search").mock(return_value=httpx.Response(200, json={"results": []}))

        await tools.linkedin_search(query="Exa company page", num_results=3)
        linkedin = json.loads(route.calls.last.request.content)
        await tools.wikipedia_search_exa(query="token bucket")
        wikipedia = json.loads(route.calls.last.request.content)

        assert linkedin["includeDomains"] == ["linkedin.com"]
        assert linkedin["numResults"] == 3
        assert wikipedia["includeDomains"] == ["wikipedia.org"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_research_papers(self):
        route = respx.post("https://search.test/search").mock(return_value=httpx.Response(200, json={"results": []}))

        await tools.research_paper_search(query="circuit breakers", max_characters=500)

        body = json.loads(route.calls.last.request.content)
        assert body["category"] == "research paper"
        assert body["contents"] == {"text": {"maxCharacters": 500}, "livecrawl": "fallback"}
        assert "includeDomains" not in body


class TestWebsetsManager:
    """Test operation routing in the unified tool."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_create_webset(self):
        route = respx.post(f"{BASE_URL}/websets").mock(
            return_value=httpx.Response(201, json={"id": "ws_9", "status": "running"})
        )

        result = json.loads(
            await manager.websets_manager(
                operation="create_webset",
                webset=manager.WebsetParams(search_query="robotics startups", count=15, entity_type="company"),
            )
        )

        assert result["success"] is True
        assert result["operation"] == "create_webset"
        assert result["websetId"] == "ws_9"
        assert json.loads(route.calls.last.request.content)["search"] == {
            "query": "robotics startups",
            "count": 15,
            "entity": {"type": "company"},
        }

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_search_results_uses_parent_webset(self):
        route = respx.get(f"{BASE_URL}/websets/ws_1/searches/s_1").mock(
            return_value=httpx.Response(200, json={"id": "s_1", "status": "completed"})
        )

        result = json.loads(
            await manager.websets_manager(operation="get_search_results", resource_id="s_1", webset_id="ws_1")
        )

        assert route.called
        assert result["search"]["status"] == "completed"

    @pytest.mark.asyncio
    @respx.mock
    async def test_list_content_items(self):
        respx.get(f"{BASE_URL}/websets/ws_1/items").mock(
            return_value=httpx.Response(200, json={"data": [{"id": "i1"}, {"id": "i2"}], "hasMore": False})
        )

        result = json.loads(
            await manager.websets_manager(
                operation="list_content_items", resource_id="ws_1", query=manager.QueryParams(limit=2)
            )
        )

        assert result["count"] == 2
        assert [item["id"] for item in result["items"]] == ["i1", "i2"]

    @pytest.mark.asyncio
    async def test_missing_resource_id(self):
        result = json.loads(await manager.websets_manager(operation="delete_webset"))

        assert result["success"] is False
        assert result["code"] == "VALIDATION_ERROR"
        assert "resource_id is required" in result["message"]
        assert result["help"]

    @pytest.mark.asyncio
    async def test_missing_enhancement_settings_shows_help(self):
        result = json.loads(await manager.websets_manager(operation="enhance_content", resource_id="ws_1"))

        assert result["success"] is False
        assert result["help"] == manager.get_operation_help("enhance_content")

    def test_every_operation_is_routed(self):
        assert set(manager.OPERATIONS) == set(manager.Operation.__args__)


class TestGuide:

    @pytest.mark.asyncio
    async def test_topics(self):
        text = await guide.websets_guide(topic="enhancing_data")

        assert text.startswith("# Enhancing Data with Enrichments")
        assert "enhance_content" in text
        assert "troubleshooting" in text

    @pytest.mark.asyncio
    async def test_every_topic_has_content(self):
        for topic in guide.GuideTopic.__args__:
            assert (await guide.websets_guide(topic=topic)).startswith("# ")


class TestPrompts:

    def test_prompts_mention_tools(self):
        assert "websets_create" in prompts.quick_start()
        assert "websets_list" in prompts.webset_discovery()
        assert "ws_42" in prompts.webset_status_check("ws_42")
        assert "ws_42" in prompts.webset_analysis_guide("ws_42")
        assert "websets_webhook_create" in prompts.webhook_setup_guide()
        assert "ws_42" in prompts.enrichment_workflow("ws_42")

    def test_asset_list_covers_everything(self):
        listing = prompts.list_mcp_assets()

        for name in ("websets_manager", "websets_guide", "github_search", "research_paper_search"):
            assert f"**{name}**" in listing
        for prompt in prompts.PROMPTS:
            assert f"**{prompt.__name__}**" in listing


class TestServer:
    """Test FastMCP registration."""

    @pytest.mark.asyncio
    async def test_registers_all_tools_and_prompts(self):
        server = build_server()

        tool_names = {tool.name for tool in await server.list_tools()}
        prompt_names = {prompt.name for prompt in await server.list_prompts()}

        assert tool_names == {fn.__name__ for fn in ALL_TOOLS}
        assert len(tool_names) == 28
        assert {"websets_manager", "websets_guide", "github_search", "wikipedia_search_exa"} <= tool_names
        assert prompt_names == {
            "quick_start",
            "webset_discovery",
            "webset_status_check",
            "webset_analysis_guide",
            "webhook_setup_guide",
            "enrichment_workflow",
            "list_mcp_assets",
        }

    @pytest.mark.asyncio
    async def test_tools_accept_api_key(self):
        server = build_server()

        for tool in await server.list_tools():
            if tool.name == "websets_guide":
                continue
            assert "api_key" in tool.inputSchema["properties"], tool.name
