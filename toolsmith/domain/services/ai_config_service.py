"""
Versioned completion-service configuration.

The active configuration is the newest active `ai_config_versions` row and
is resolved on every call; with no rows the environment defaults apply.
Publishing a version is one insert, so a change takes effect on the next
call without a restart.
"""

from typing import List, Optional
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from toolsmith.api.models import AIConfigVersion
from toolsmith.api.v1.exceptions import ValidationError
from toolsmith.llm.completion import (
    SUPPORTED_PROVIDERS,
    CompletionClient,
    CompletionConfig,
    build_provider,
)
from toolsmith.llm.providers.base import LLMProvider

logger = logging.getLogger(__name__)


class AIConfigService:
    """Reads and publishes completion configuration versions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve(self) -> CompletionConfig:
        stmt = (
            select(AIConfigVersion)
            .where(AIConfigVersion.is_active.is_(True))
            .order_by(AIConfigVersion.version.desc())
            .limit(1)
        )
        row = (await self.db.execute(stmt)).scalar_one_or_none()
        if row is None:
            return CompletionConfig.from_settings()
        return CompletionConfig(
            provider=row.provider,
            model=row.model,
            max_tokens=row.max_tokens,
            temperature=row.temperature,
            timeout_seconds=row.timeout_seconds,
            version=row.version,
        )

    async def list_versions(self) -> List[AIConfigVersion]:
        stmt = select(AIConfigVersion).order_by(AIConfigVersion.version.desc())
        return list((await self.db.execute(stmt)).scalars().all())

    async def publish_version(
        self,
        provider: str,
        model: str,
        max_tokens: int,
        temperature: float,
        timeout_seconds: float,
        created_by: Optional[str] = None,
    ) -> AIConfigVersion:
        """Append a new active version; earlier rows stay as history."""
        if provider not in SUPPORTED_PROVIDERS:
            raise ValidationError(
                f"Unsupported provider '{provider}' (expected one of {', '.join(SUPPORTED_PROVIDERS)})",
                field="provider",
            )
        if max_tokens <= 0:
            raise ValidationError("max_tokens must be positive", field="max_tokens")
        if not 0.0 <= temperature <= 1.0:
            raise ValidationError("temperature must be between 0 and 1", field="temperature")
        if timeout_seconds <= 0:
            raise ValidationError("timeout_seconds must be positive", field="timeout_seconds")

        current = (await self.db.execute(select(func.max(AIConfigVersion.version)))).scalar()
        row = AIConfigVersion(
            version=(current or 0) + 1,
            provider=provider,
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            timeout_seconds=timeout_seconds,
            is_active=True,
            created_by=created_by,
        )
        self.db.add(row)
        await self.db.commit()
        logger.info(f"Published AI config v{row.version}: {provider}/{model}")
        return row

    async def completion_client(self, provider_override: Optional[LLMProvider] = None) -> CompletionClient:
        """Client bound to the configuration in force right now."""
        config = await self.resolve()
        provider = provider_override or build_provider(config)
        return CompletionClient(provider, config)
