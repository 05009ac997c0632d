"""
Access policy for runtime generation.

Evaluation order, each step failing with its own error kind:

1. public tier                          -> admit
2. no verified identity                 -> AuthError
3. entitlement below the required tier  -> EntitlementError (owner exempt)
4. rolling 24h quota exhausted          -> QuotaExceededError (owner included)

Quota counting tolerates slight over-admission under concurrency; it is a
soft business limit.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from toolsmith.api.models import AccessTier, Package, Project, UsageEvent, UserPackage
from toolsmith.api.v1.exceptions import AuthError, EntitlementError, QuotaExceededError
from toolsmith.auth.models import Identity
from toolsmith.core.config import settings

logger = logging.getLogger(__name__)

QUOTA_WINDOW = timedelta(hours=24)


@dataclass(frozen=True)
class Entitlement:
    tier: AccessTier
    package_name: Optional[str]
    daily_limit: Optional[int]


@dataclass(frozen=True)
class AccessDecision:
    subject_id: Optional[str]
    tier: AccessTier
    package_name: Optional[str] = None
    limit: Optional[int] = None
    usage: int = 0

    @property
    def counts_usage(self) -> bool:
        return self.subject_id is not None


class AccessPolicy:
    def __init__(self, db: AsyncSession, default_daily_limit: Optional[int] = None):
        self.db = db
        self.default_daily_limit = (
            default_daily_limit if default_daily_limit is not None else settings.DEFAULT_DAILY_REQUEST_LIMIT
        )

    async def entitlement_for(self, subject_id: str) -> Entitlement:
        """Highest-tier active package, or the implicit registered entitlement."""
        stmt = (
            select(Package)
            .join(UserPackage, UserPackage.package_id == Package.id)
            .where(UserPackage.subject_id == subject_id, UserPackage.is_active.is_(True))
        )
        packages = (await self.db.execute(stmt)).scalars().all()
        if not packages:
            return Entitlement(AccessTier.REGISTERED, None, self.default_daily_limit)
        best = max(packages, key=lambda p: p.access_tier.level)
        return Entitlement(best.access_tier, best.name, best.daily_request_limit)

    async def usage_in_window(self, subject_id: str, now: Optional[datetime] = None) -> int:
        since = (now or datetime.now(timezone.utc)) - QUOTA_WINDOW
        stmt = select(func.count(UsageEvent.id)).where(
            UsageEvent.subject_id == subject_id,
            UsageEvent.occurred_at >= since,
        )
        return (await self.db.execute(stmt)).scalar() or 0

    async def _required(self, project: Project) -> tuple:
        """(required tier, description of what is required)."""
        if project.required_package_id:
            package = await self.db.get(Package, project.required_package_id)
            if package is not None:
                return package.access_tier, package.describe()
        return project.tier, {"name": project.tier.value, "display_name": project.tier.value.title(), "tier": project.tier.value}

    async def evaluate(self, project: Project, identity: Optional[Identity]) -> AccessDecision:
        if project.tier == AccessTier.PUBLIC and not project.required_package_id:
            return AccessDecision(
                subject_id=identity.subject_id if identity else None,
                tier=AccessTier.PUBLIC,
            )

        if identity is None or not identity.verified:
            logger.info(f"Access denied to {project.id}: no identity")
            raise AuthError("Sign in to use this tool")

        entitlement = await self.entitlement_for(identity.subject_id)
        is_owner = identity.subject_id == project.owner_id
        required_tier, required_package = await self._required(project)

        if not is_owner and entitlement.tier.level < required_tier.level:
            logger.info(
                f"Access denied to {project.id}: {identity.subject_id} has {entitlement.tier.value}, "
                f"needs {required_tier.value}"
            )
            raise EntitlementError(required_package)

        usage = await self.usage_in_window(identity.subject_id)
        limit = entitlement.daily_limit
        if limit is not None and usage >= limit:
            logger.info(f"Quota exhausted for {identity.subject_id}: {usage}/{limit}")
            raise QuotaExceededError(limit=limit, current_usage=usage)

        return AccessDecision(
            subject_id=identity.subject_id,
            tier=entitlement.tier,
            package_name=entitlement.package_name,
            limit=limit,
            usage=usage,
        )
