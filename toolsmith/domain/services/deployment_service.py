"""
Publish / undeploy.

Publish is one logical unit: claim the address (storage-enforced), write
the bundle, commit. Any failure before the commit rolls the project back
to its pre-publish state; a failed commit removes the bundle it just wrote.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from toolsmith.api.models import Deployment, DeploymentStatus, Project
from toolsmith.api.v1.exceptions import (
    ConflictError,
    MaterializationError,
    PersistenceError,
    ValidationError,
)
from toolsmith.core.config import settings
from toolsmith.domain.bundle_host import BundleHost
from toolsmith.domain.services.address_allocator import AddressAllocator, require_slug
from toolsmith.domain.services.analytics_sink import AnalyticsSink, LoggingAnalyticsSink, emit_safely
from toolsmith.domain.services.bundle_builder import render_bundle
from toolsmith.domain.services.definition_store import DefinitionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishResult:
    deployment_id: uuid.UUID
    slug: str
    public_url: str
    bundle_location: str


class DeploymentService:
    def __init__(
        self,
        db: AsyncSession,
        bundle_host: BundleHost,
        analytics: Optional[AnalyticsSink] = None,
        retain_subdomain_on_undeploy: Optional[bool] = None,
    ):
        self.db = db
        self.bundle_host = bundle_host
        self.analytics = analytics or LoggingAnalyticsSink()
        self.store = DefinitionStore(db, bundle_host)
        self.allocator = AddressAllocator(db)
        self.retain_subdomain = (
            settings.RETAIN_SUBDOMAIN_ON_UNDEPLOY
            if retain_subdomain_on_undeploy is None
            else retain_subdomain_on_undeploy
        )

    async def _active_deployment(self, project_id: uuid.UUID) -> Optional[Deployment]:
        stmt = select(Deployment).where(
            Deployment.project_id == project_id,
            Deployment.status == DeploymentStatus.ACTIVE.value,
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def deployment_status(self, owner_id: str, project_id: uuid.UUID) -> Optional[Deployment]:
        await self.store.load_tree(owner_id, project_id)
        return await self._active_deployment(project_id)

    async def _fail(self, project_id: uuid.UUID, slug: str, reason: str) -> None:
        logger.warning(f"Deploy failed for {project_id} at {slug}: {reason}")
        await emit_safely(self.analytics, "deploy_failed", project_id=str(project_id), slug=slug, reason=reason)

    async def deploy(self, owner_id: str, project_id: uuid.UUID) -> PublishResult:
        """
        Publish (or re-publish) a project.

        Idempotent: a second publish overwrites the bundle at the same
        address and reuses the single active Deployment row. When the
        project's subdomain changed since the last publish, the row moves
        to the new slug and the old bundle is removed after commit.
        """
        project = await self.store.load_tree(owner_id, project_id)
        if not project.steps:
            raise ValidationError("A tool needs at least one step before it can be deployed", field="steps")

        name = project.name
        slug = project.subdomain or require_slug(name)
        public_url = settings.public_url(slug)

        previous = await self._active_deployment(project_id)
        previous_slug = previous.slug if previous is not None else None
        files = render_bundle(project, slug)

        try:
            deployment = await self.allocator.claim(project_id, name, slug, public_url)
        except ConflictError as e:
            await self._fail(project_id, slug, "conflict")
            raise e

        project.subdomain = slug
        project.deployed = True

        try:
            location = await self.bundle_host.publish(slug, files)
        except MaterializationError:
            await self.db.rollback()
            await self._fail(project_id, slug, "materialization")
            raise

        deployment.bundle_location = location
        deployment_id = deployment.id
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            await self._fail(project_id, slug, "persistence")
            if previous_slug != slug:
                await self._remove_quietly(slug)
            raise PersistenceError(f"Failed to record deployment: {e.__class__.__name__}")

        if previous_slug and previous_slug != slug:
            await self._remove_quietly(previous_slug)

        logger.info(f"Deployed {project_id} at {public_url}")
        await emit_safely(self.analytics, "deployed", project_id=str(project_id), slug=slug)
        return PublishResult(
            deployment_id=deployment_id,
            slug=slug,
            public_url=public_url,
            bundle_location=location,
        )

    async def _remove_quietly(self, slug: str) -> None:
        try:
            await self.bundle_host.remove(slug)
        except MaterializationError as e:
            logger.error(f"Orphaned bundle left at {slug}: {e.message}")

    async def undeploy(self, owner_id: str, project_id: uuid.UUID) -> Project:
        """
        Take a project offline. Sessions and responses are kept; the
        Deployment row is marked inactive, so its slug is free immediately.
        """
        project = await self.store.load_tree(owner_id, project_id)
        deployment = await self._active_deployment(project_id)
        # Only an active row proves this project still owns the address
        slug = deployment.slug if deployment is not None else None

        project.deployed = False
        if deployment is not None:
            deployment.status = DeploymentStatus.INACTIVE.value
        if not self.retain_subdomain:
            project.subdomain = None

        if slug:
            try:
                await self.bundle_host.remove(slug)
            except MaterializationError:
                await self.db.rollback()
                raise

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(f"Failed to record undeploy: {e.__class__.__name__}")

        logger.info(f"Undeployed {project_id} (slug={slug or project.subdomain})")
        await emit_safely(self.analytics, "undeployed", project_id=str(project_id), slug=slug)
        return await self.store.load_tree(owner_id, project_id)

    async def change_subdomain(self, owner_id: str, project_id: uuid.UUID, requested_name: str) -> Project:
        """
        Explicitly set the project's subdomain.

        Hyphens in the request are treated as word separators, so "my-tool"
        yields "my-tool". A slug held by another active deployment is
        rejected up front; the claim at publish time remains authoritative.
        """
        project = await self.store.load_tree(owner_id, project_id)
        slug = require_slug((requested_name or "").replace("-", " "))
        await self.allocator.ensure_available(slug, requested_name, project_id)

        project.subdomain = slug
        if project.deployed:
            # Republish in the same unit of work; a failed claim or bundle write reverts the change
            await self.deploy(owner_id, project_id)
        else:
            try:
                await self.db.commit()
            except SQLAlchemyError as e:
                await self.db.rollback()
                raise PersistenceError(f"Failed to save subdomain: {e.__class__.__name__}")
        logger.info(f"Subdomain for {project_id} set to {slug}")
        return await self.store.load_tree(owner_id, project_id)
