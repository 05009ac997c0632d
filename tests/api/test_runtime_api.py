"""HTTP tests for publishing and the public runtime surface."""

import pytest

from conftest import auth_headers
from toolsmith.llm.models import LLMError


async def _build_tool(client, name="Resume Builder", access_tier="public"):
    """Create a one-step tool over HTTP and return its id."""
    headers = auth_headers()
    project = await client.post(
        "/api/v1/projects",
        json={"name": name, "system_prompt": "You are an expert resume writer.", "access_tier": access_tier},
        headers=headers,
    )
    project_id = project.json()["data"]["id"]
    step = await client.post(f"/api/v1/projects/{project_id}/steps", json={"name": "About you"}, headers=headers)
    step_id = step.json()["data"]["id"]
    await client.post(
        f"/api/v1/steps/{step_id}/fields", json={"label": "Full Name", "required": True}, headers=headers
    )
    await client.post(
        f"/api/v1/steps/{step_id}/fields",
        json={"label": "Seniority", "field_type": "select",
              "choices": [{"label": "Junior", "value": "junior"}, {"label": "Senior", "value": "senior"}]},
        headers=headers,
    )
    return project_id


class TestPublish:

    @pytest.mark.asyncio
    async def test_deploy_and_status(self, client, bundle_host, analytics):
        project_id = await _build_tool(client)

        response = await client.post(f"/api/v1/projects/{project_id}/deploy", headers=auth_headers())

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["slug"] == "resume-builder"
        assert data["public_url"].startswith("https://resume-builder.tool.")
        assert await bundle_host.exists("resume-builder")
        assert "deployed" in analytics.names()

        status = await client.get(f"/api/v1/projects/{project_id}/deployment", headers=auth_headers())
        assert status.json()["data"]["status"] == "active"

    @pytest.mark.asyncio
    async def test_undeploy(self, client, bundle_host):
        project_id = await _build_tool(client)
        await client.post(f"/api/v1/projects/{project_id}/deploy", headers=auth_headers())

        response = await client.post(f"/api/v1/projects/{project_id}/undeploy", headers=auth_headers())

        assert response.json()["data"]["deployed"] is False
        assert not await bundle_host.exists("resume-builder")
        status = await client.get(f"/api/v1/projects/{project_id}/deployment", headers=auth_headers())
        assert status.json()["data"] is None

    @pytest.mark.asyncio
    async def test_subdomain_conflict(self, client):
        first = await _build_tool(client)
        second = await _build_tool(client)
        await client.post(f"/api/v1/projects/{first}/deploy", headers=auth_headers())

        response = await client.post(f"/api/v1/projects/{second}/deploy", headers=auth_headers())

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["error_code"] == "SUBDOMAIN_CONFLICT"
        assert error["details"]["slug"] == "resume-builder"
        assert error["details"]["suggested_names"]

    @pytest.mark.asyncio
    async def test_change_subdomain(self, client, bundle_host):
        project_id = await _build_tool(client)
        await client.post(f"/api/v1/projects/{project_id}/deploy", headers=auth_headers())

        response = await client.put(
            f"/api/v1/projects/{project_id}/subdomain", json={"subdomain": "cv-maker"}, headers=auth_headers()
        )

        assert response.status_code == 200
        assert response.json()["data"]["subdomain"] == "cv-maker"
        assert await bundle_host.exists("cv-maker")
        assert not await bundle_host.exists("resume-builder")


class TestPublicRuntime:

    @pytest.mark.asyncio
    async def test_manifest(self, client):
        project_id = await _build_tool(client)
        await client.post(f"/api/v1/projects/{project_id}/deploy", headers=auth_headers())

        response = await client.get("/api/v1/public/resume-builder")

        assert response.status_code == 200
        manifest = response.json()["data"]
        assert manifest["headerTitle"] == "Resume Builder"
        assert [f["name"] for f in manifest["steps"][0]["fields"]] == ["full_name", "seniority"]

    @pytest.mark.asyncio
    async def test_unknown_slug(self, client):
        response = await client.get("/api/v1/public/nothing-here")

        assert response.status_code == 404
        assert response.json()["error"]["error_code"] == "TOOL_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_submit(self, client, llm):
        project_id = await _build_tool(client)
        await client.post(f"/api/v1/projects/{project_id}/deploy", headers=auth_headers())

        response = await client.post(
            "/api/v1/public/resume-builder/submit",
            json={"responses": {"Full Name": "Ada Lovelace", "seniority": "senior", "tone": "formal"}},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["ai_response"] == "Here is your tailored result."
        assert data["session_id"]
        user_content = llm.calls[-1].messages[-1].content
        assert "Full Name: Ada Lovelace" in user_content
        assert "tone: formal" in user_content

        sessions = await client.get(f"/api/v1/projects/{project_id}/sessions", headers=auth_headers())
        recorded = sessions.json()["data"]["sessions"]
        assert [s["id"] for s in recorded] == [data["session_id"]]

    @pytest.mark.asyncio
    async def test_missing_required(self, client):
        project_id = await _build_tool(client)
        await client.post(f"/api/v1/projects/{project_id}/deploy", headers=auth_headers())

        response = await client.post("/api/v1/public/resume-builder/submit", json={"responses": {}})

        assert response.status_code == 400
        assert response.json()["error"]["details"]["field"] == "full_name"

    @pytest.mark.asyncio
    async def test_gated_tool_needs_identity(self, client):
        project_id = await _build_tool(client, access_tier="registered")
        await client.post(f"/api/v1/projects/{project_id}/deploy", headers=auth_headers())

        anonymous = await client.post(
            "/api/v1/public/resume-builder/submit", json={"responses": {"full_name": "Ada"}}
        )
        owner = await client.post(
            "/api/v1/public/resume-builder/submit", json={"responses": {"full_name": "Ada"}},
            headers=auth_headers(),
        )

        assert anonymous.status_code == 401
        assert owner.status_code == 200

    @pytest.mark.asyncio
    async def test_upstream_failure(self, client, llm):
        project_id = await _build_tool(client)
        await client.post(f"/api/v1/projects/{project_id}/deploy", headers=auth_headers())
        llm.set_error_on_next(LLMError.rate_limit("Too many requests"))

        response = await client.post(
            "/api/v1/public/resume-builder/submit", json={"responses": {"full_name": "Ada"}}
        )

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["error_code"] == "UPSTREAM_GENERATION_FAILED"
        assert error["details"]["session_id"]
