"""
Shared pytest fixtures for all tests.

Every test gets its own in-memory SQLite database (aiosqlite + StaticPool,
so all sessions share one connection), a temporary bundle root, a mock
completion provider and an in-memory analytics sink.
"""

from typing import Any, Dict, Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from toolsmith.auth.token_service import TokenService
from toolsmith.core.database import Base, import_models
from toolsmith.domain.bundle_host import FilesystemBundleHost
from toolsmith.domain.services.analytics_sink import InMemoryAnalyticsSink
from toolsmith.domain.services.definition_store import DefinitionStore
from toolsmith.domain.services.deployment_service import DeploymentService
from toolsmith.domain.services.runtime_executor import RuntimeExecutor
from toolsmith.llm.providers.mock import MockLLMProvider

OWNER = "owner@example.com"
OTHER = "someone-else@example.com"


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    import_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# =============================================================================
# COLLABORATOR FIXTURES
# =============================================================================

@pytest.fixture
def bundle_host(tmp_path):
    return FilesystemBundleHost(tmp_path / "bundles")


@pytest.fixture
def analytics():
    return InMemoryAnalyticsSink()


@pytest.fixture
def llm():
    return MockLLMProvider(default_response="Here is your tailored result.")


@pytest.fixture
def store(db, bundle_host):
    return DefinitionStore(db, bundle_host)


@pytest.fixture
def deployer(db, bundle_host, analytics):
    return DeploymentService(db, bundle_host, analytics)


@pytest.fixture
def executor(db, llm, analytics, session_factory):
    return RuntimeExecutor(db, llm, analytics, session_factory)


@pytest.fixture
def tokens():
    return TokenService()


def auth_headers(subject_id: str = OWNER) -> Dict[str, str]:
    return {"Authorization": f"Bearer {TokenService().issue(subject_id)}"}


# =============================================================================
# TREE BUILDERS
# =============================================================================

async def make_tool(
    store: DefinitionStore,
    owner_id: str = OWNER,
    name: str = "Resume Builder",
    access_tier: str = "public",
    system_prompt: str = "You are an expert resume writer.",
    required_package_id: Optional[Any] = None,
):
    """Project with one step: full_name (required), email, seniority (select), skills (checkbox)."""
    project = await store.create_project(owner_id, {
        "name": name,
        "system_prompt": system_prompt,
        "access_tier": access_tier,
        "required_package_id": required_package_id,
    })
    step = await store.add_step(owner_id, project.id, {"name": "About you"})
    await store.add_field(owner_id, step.id, {"name": "full_name", "label": "Full Name", "required": True})
    await store.add_field(owner_id, step.id, {"name": "email", "label": "Email", "field_type": "email"})
    await store.add_field(owner_id, step.id, {
        "name": "seniority",
        "label": "Seniority",
        "field_type": "select",
        "choices": [{"label": "Junior", "value": "junior"}, {"label": "Senior", "value": "senior"}],
    })
    await store.add_field(owner_id, step.id, {
        "name": "skills",
        "label": "Skills",
        "field_type": "checkbox",
        "choices": [{"label": "Python"}, {"label": "SQL"}, {"label": "Go"}],
    })
    return await store.load_tree(owner_id, project.id)


# =============================================================================
# HTTP FIXTURES
# =============================================================================

@pytest.fixture
def app(session_factory, bundle_host, analytics, llm):
    from toolsmith.api.main import create_app
    from toolsmith.api.v1 import dependencies
    from toolsmith.core.database import get_db

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application = create_app(init_db=False)
    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[dependencies.get_bundle_host] = lambda: bundle_host
    application.dependency_overrides[dependencies.get_analytics_sink] = lambda: analytics
    application.dependency_overrides[dependencies.get_llm_provider] = lambda: llm
    application.dependency_overrides[dependencies.get_session_factory] = lambda: session_factory
    return application


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
