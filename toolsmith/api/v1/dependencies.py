"""FastAPI dependency injection for API endpoints."""

from functools import lru_cache
from typing import Callable, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from toolsmith.core.config import settings
from toolsmith.core.database import async_session_factory, get_db
from toolsmith.domain.bundle_host import BundleHost, FilesystemBundleHost
from toolsmith.domain.services.analytics_sink import AnalyticsSink, LoggingAnalyticsSink
from toolsmith.domain.services.definition_store import DefinitionStore
from toolsmith.domain.services.deployment_service import DeploymentService
from toolsmith.domain.services.runtime_executor import RuntimeExecutor
from toolsmith.domain.services.structure_synthesizer import StructureSynthesizer
from toolsmith.llm.providers.base import LLMProvider


@lru_cache
def get_bundle_host() -> BundleHost:
    return FilesystemBundleHost(settings.BUNDLE_ROOT)


@lru_cache
def get_analytics_sink() -> AnalyticsSink:
    return LoggingAnalyticsSink()


def get_llm_provider() -> Optional[LLMProvider]:
    """Provider override; None means build one from the active AI config."""
    return None


def get_session_factory() -> Callable[[], AsyncSession]:
    return async_session_factory


def get_definition_store(
    db: AsyncSession = Depends(get_db),
    bundle_host: BundleHost = Depends(get_bundle_host),
) -> DefinitionStore:
    return DefinitionStore(db, bundle_host)


def get_deployment_service(
    db: AsyncSession = Depends(get_db),
    bundle_host: BundleHost = Depends(get_bundle_host),
    analytics: AnalyticsSink = Depends(get_analytics_sink),
) -> DeploymentService:
    return DeploymentService(db, bundle_host, analytics)


def get_runtime_executor(
    db: AsyncSession = Depends(get_db),
    llm_provider: Optional[LLMProvider] = Depends(get_llm_provider),
    analytics: AnalyticsSink = Depends(get_analytics_sink),
    session_factory: Callable[[], AsyncSession] = Depends(get_session_factory),
) -> RuntimeExecutor:
    return RuntimeExecutor(db, llm_provider, analytics, session_factory)


def get_structure_synthesizer(
    db: AsyncSession = Depends(get_db),
    llm_provider: Optional[LLMProvider] = Depends(get_llm_provider),
) -> StructureSynthesizer:
    return StructureSynthesizer(db, llm_provider)


def clear_caches() -> None:
    """Clear cached dependencies (for testing)."""
    get_bundle_host.cache_clear()
    get_analytics_sink.cache_clear()
