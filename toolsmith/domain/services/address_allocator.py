"""
Public address allocation.

`derive_slug` is a pure function of the name. Claiming is not a
read-then-write: the deployments table carries a partial unique index on
slug for active rows, so the insert (or update) itself is the check, and a
lost race surfaces as IntegrityError at flush.
"""

import logging
import re
import unicodedata
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from toolsmith.api.models import Deployment, DeploymentStatus
from toolsmith.api.v1.exceptions import ConflictError, ValidationError

logger = logging.getLogger(__name__)

MAX_SLUG_LENGTH = 50
SUGGESTION_PATTERNS = ("{name} Pro", "{name} Plus", "{name} Advanced", "My {name}", "Custom {name}")


def derive_slug(name: str) -> str:
    """
    "Résumé Builder!!" -> "resume-builder"

    Accents are folded to ASCII before characters outside [a-z0-9 ] are
    stripped, so accented names keep their letters.
    """
    folded = unicodedata.normalize("NFKD", name or "")
    folded = folded.encode("ascii", "ignore").decode("ascii")
    slug = folded.lower()
    slug = re.sub(r"[^a-z0-9\s]", "", slug)
    slug = re.sub(r"\s+", "-", slug.strip())
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")
    return slug[:MAX_SLUG_LENGTH].strip("-")


def suggest_names(name: str) -> List[str]:
    """Alternative names whose derived slugs differ from the original's."""
    original = derive_slug(name)
    suggestions = []
    for pattern in SUGGESTION_PATTERNS:
        candidate = pattern.format(name=name.strip())
        slug = derive_slug(candidate)
        if slug and slug != original and candidate not in suggestions:
            suggestions.append(candidate)
    return suggestions


def require_slug(name: str) -> str:
    slug = derive_slug(name)
    if not slug:
        raise ValidationError(
            f"'{name}' does not contain any characters usable in an address",
            field="subdomain",
        )
    return slug


class AddressAllocator:
    """Claims slugs for active deployments."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def holder_of(self, slug: str) -> Optional[Deployment]:
        """Active deployment currently holding `slug`, if any. Advisory only."""
        stmt = select(Deployment).where(
            Deployment.slug == slug,
            Deployment.status == DeploymentStatus.ACTIVE.value,
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def ensure_available(self, slug: str, name: str, project_id: uuid.UUID) -> None:
        """Early rejection for explicit subdomain changes."""
        holder = await self.holder_of(slug)
        if holder is not None and holder.project_id != project_id:
            raise ConflictError(slug, suggest_names(name))

    async def claim(
        self,
        project_id: uuid.UUID,
        name: str,
        slug: str,
        public_url: str,
        bundle_location: Optional[str] = None,
    ) -> Deployment:
        """
        Point the project's single active deployment at `slug`.

        Updates the existing active row when there is one, otherwise inserts.
        On a uniqueness violation the whole unit of work is rolled back and
        ConflictError is raised.
        """
        stmt = select(Deployment).where(
            Deployment.project_id == project_id,
            Deployment.status == DeploymentStatus.ACTIVE.value,
        )
        deployment = (await self.db.execute(stmt)).scalar_one_or_none()
        if deployment is None:
            deployment = Deployment(
                project_id=project_id,
                slug=slug,
                public_url=public_url,
                bundle_location=bundle_location,
                status=DeploymentStatus.ACTIVE.value,
            )
            self.db.add(deployment)
        else:
            deployment.slug = slug
            deployment.public_url = public_url
            deployment.bundle_location = bundle_location

        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            logger.info(f"Address claim lost: slug={slug} project={project_id}")
            raise ConflictError(slug, suggest_names(name))
        return deployment
