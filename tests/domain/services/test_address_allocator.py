"""Tests for public address derivation and claiming."""

import uuid

import pytest

from conftest import OWNER, make_tool
from toolsmith.api.models import Deployment, DeploymentStatus
from toolsmith.api.v1.exceptions import ConflictError, ValidationError
from toolsmith.domain.services.address_allocator import (
    AddressAllocator,
    derive_slug,
    require_slug,
    suggest_names,
)


class TestDeriveSlug:

    @pytest.mark.parametrize("name,slug", [
        ("Resume Builder", "resume-builder"),
        ("  Resume   Builder!! ", "resume-builder"),
        ("Résumé Builder", "resume-builder"),
        ("AI-Powered Tool", "aipowered-tool"),
        ("Tool 2.0", "tool-20"),
        ("!!!", ""),
    ])
    def test_derivation(self, name, slug):
        assert derive_slug(name) == slug

    def test_is_deterministic(self):
        assert derive_slug("Cover Letter Writer") == derive_slug("Cover Letter Writer")

    def test_length_is_capped(self):
        slug = derive_slug("word " * 40)

        assert len(slug) <= 50
        assert not slug.endswith("-")

    def test_require_slug_rejects_empty(self):
        with pytest.raises(ValidationError) as exc_info:
            require_slug("???")

        assert exc_info.value.details["field"] == "subdomain"


class TestSuggestNames:

    def test_suggestions_differ_from_original(self):
        suggestions = suggest_names("Resume Builder")

        assert "Resume Builder Pro" in suggestions
        assert all(derive_slug(s) != "resume-builder" for s in suggestions)


class TestAddressAllocator:

    @pytest.mark.asyncio
    async def test_claim_inserts_active_deployment(self, db, store):
        project = await make_tool(store)

        deployment = await AddressAllocator(db).claim(project.id, project.name, "resume-builder", "https://x")
        await db.commit()

        assert deployment.slug == "resume-builder"
        assert deployment.status == DeploymentStatus.ACTIVE.value

    @pytest.mark.asyncio
    async def test_claim_reuses_row_for_same_project(self, db, store):
        project = await make_tool(store)
        allocator = AddressAllocator(db)

        first = await allocator.claim(project.id, project.name, "resume-builder", "https://a")
        second = await allocator.claim(project.id, project.name, "resume-builder-v2", "https://b")
        await db.commit()

        assert first.id == second.id
        assert second.slug == "resume-builder-v2"

    @pytest.mark.asyncio
    async def test_conflicting_claim(self, db, store):
        """A slug held by another project's active deployment cannot be claimed."""
        first = await make_tool(store)
        second = await make_tool(store, name="Another Tool")
        allocator = AddressAllocator(db)
        await allocator.claim(first.id, first.name, "resume-builder", "https://a")
        await db.commit()

        with pytest.raises(ConflictError) as exc_info:
            await allocator.claim(second.id, "Resume Builder", "resume-builder", "https://a")

        assert exc_info.value.status_code == 409
        assert exc_info.value.details["slug"] == "resume-builder"
        assert "Resume Builder Pro" in exc_info.value.suggested_names

    @pytest.mark.asyncio
    async def test_inactive_deployment_frees_slug(self, db, store):
        first = await make_tool(store)
        second = await make_tool(store, name="Another Tool")
        db.add(Deployment(
            project_id=first.id, slug="resume-builder", public_url="https://a",
            status=DeploymentStatus.INACTIVE.value,
        ))
        await db.commit()

        deployment = await AddressAllocator(db).claim(second.id, "Resume Builder", "resume-builder", "https://a")

        assert deployment.project_id == second.id

    @pytest.mark.asyncio
    async def test_ensure_available(self, db, store):
        first = await make_tool(store)
        allocator = AddressAllocator(db)
        await allocator.claim(first.id, first.name, "resume-builder", "https://a")
        await db.commit()

        await allocator.ensure_available("resume-builder", "Resume Builder", first.id)
        with pytest.raises(ConflictError):
            await allocator.ensure_available("resume-builder", "Resume Builder", uuid.uuid4())
