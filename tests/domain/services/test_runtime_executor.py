"""Tests for the runtime executor."""

import pytest
from sqlalchemy import delete, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import selectinload

from conftest import OWNER, make_tool
from toolsmith.api.models import ToolSession, UsageEvent
from toolsmith.api.v1.exceptions import (
    AuthError,
    NotFoundError,
    PersistenceError,
    UpstreamGenerationError,
    ValidationError,
)
from toolsmith.auth.models import Identity
from toolsmith.domain.services.ai_config_service import AIConfigService
from toolsmith.domain.services.runtime_executor import (
    EMPTY_PROMPT,
    RuntimeExecutor,
    assemble_prompt,
)
from toolsmith.llm import LLMError, MockLLMProvider

SLUG = "resume-builder"

ANSWERS = {
    "full_name": "Ada Lovelace",
    "Email": "ada@example.com",
    "seniority": "senior",
    "skills": ["Python", "SQL"],
}


async def _publish(store, deployer, **kwargs):
    project = await make_tool(store, **kwargs)
    await deployer.deploy(OWNER, project.id)
    return project


def _disk_failure():
    raise OperationalError("COMMIT", {}, Exception("disk I/O error"))


class VanishingSessionProvider(MockLLMProvider):
    """Deletes every recorded session while the completion is in flight."""

    def __init__(self, session_factory):
        super().__init__(default_response="Too late.")
        self.session_factory = session_factory

    async def complete(self, *args, **kwargs):
        async with self.session_factory() as other:
            await other.execute(delete(ToolSession))
            await other.commit()
        return await super().complete(*args, **kwargs)


async def _sessions(session_factory):
    async with session_factory() as fresh:
        rows = await fresh.execute(
            select(ToolSession).options(selectinload(ToolSession.responses)).order_by(ToolSession.started_at)
        )
        return list(rows.scalars().all())


class TestAssemblePrompt:

    def test_labels_and_unattributed_sections(self):
        prompt = assemble_prompt(
            "You are helpful.",
            [("Full Name", "Ada"), ("Skills", "Python, SQL")],
            {"favourite_colour": "green"},
        )

        assert prompt.system_instructions == "You are helpful."
        assert prompt.user_content == (
            "User Information:\nFull Name: Ada\nSkills: Python, SQL"
            "\n\nAdditional Information:\nfavourite_colour: green"
        )
        assert prompt.text.startswith("You are helpful.\n\nUser Information:")

    def test_empty_values_skipped(self):
        prompt = assemble_prompt("", [("Full Name", "Ada"), ("Email", "")], {"blank": "  "})

        assert prompt.user_content == "User Information:\nFull Name: Ada"
        assert prompt.text == prompt.user_content

    def test_nothing_to_say(self):
        prompt = assemble_prompt("System", [], {})

        assert prompt.user_content == EMPTY_PROMPT

    def test_only_unattributed(self):
        prompt = assemble_prompt(None, [], {"tags": ["a", "b"]})

        assert prompt.user_content == "Additional Information:\ntags: a, b"


class TestManifest:

    @pytest.mark.asyncio
    async def test_manifest_for_published_tool(self, store, deployer, executor):
        await _publish(store, deployer)

        manifest = await executor.manifest(SLUG)

        assert manifest["name"] == "Resume Builder"
        fields = manifest["steps"][0]["fields"]
        assert [f["name"] for f in fields] == ["full_name", "email", "seniority", "skills"]
        assert fields[2]["choices"][0] == {"label": "Junior", "value": "junior", "isDefault": False}

    @pytest.mark.asyncio
    async def test_unknown_slug(self, executor):
        with pytest.raises(NotFoundError) as exc_info:
            await executor.manifest("nothing-here")

        assert exc_info.value.error_code == "TOOL_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_disabled_tool_is_not_served(self, store, deployer, executor):
        project = await _publish(store, deployer)
        await store.toggle_enabled(OWNER, project.id)

        with pytest.raises(NotFoundError):
            await executor.manifest(SLUG)

    @pytest.mark.asyncio
    async def test_undeployed_tool_is_not_served(self, store, deployer, executor):
        project = await _publish(store, deployer)
        await deployer.undeploy(OWNER, project.id)

        with pytest.raises(NotFoundError):
            await executor.manifest(SLUG)


class TestSubmit:

    @pytest.mark.asyncio
    async def test_successful_submission(self, store, deployer, executor, llm, analytics, session_factory):
        await _publish(store, deployer)

        result = await executor.submit(SLUG, {**ANSWERS, "favourite_colour": "green"}, client_address="198.51.100.4")

        assert result.ai_response == "Here is your tailored result."
        assert result.unattributed == {"favourite_colour": "green"}

        call = llm.last_call()
        assert call.system_prompt == "You are an expert resume writer."
        assert call.messages[-1].content == (
            "User Information:\n"
            "Full Name: Ada Lovelace\n"
            "Email: ada@example.com\n"
            "Seniority: senior\n"
            "Skills: Python, SQL\n\n"
            "Additional Information:\n"
            "favourite_colour: green"
        )

        [session] = await _sessions(session_factory)
        assert session.id == result.session_id
        assert session.ai_response == "Here is your tailored result."
        assert session.completed_at is not None
        assert session.client_address == "198.51.100.4"
        assert session.subject_id is None
        assert session.unattributed_inputs == {"favourite_colour": "green"}
        assert sorted(r.value for r in session.responses) == sorted(
            ["Ada Lovelace", "ada@example.com", "senior", "Python, SQL"]
        )
        assert analytics.names()[-2:] == ["session_started", "session_completed"]

    @pytest.mark.asyncio
    async def test_upstream_failure_keeps_session(self, store, deployer, executor, llm, analytics, session_factory):
        """A failed completion leaves the session recorded with a null response."""
        await _publish(store, deployer)
        llm.set_error_on_next(LLMError.api_error("overloaded", 529))

        with pytest.raises(UpstreamGenerationError) as exc_info:
            await executor.submit(SLUG, ANSWERS)

        [session] = await _sessions(session_factory)
        assert exc_info.value.failure_kind == UpstreamGenerationError.REJECTED
        assert exc_info.value.details["session_id"] == str(session.id)
        assert session.ai_response is None
        assert session.completed_at is None
        assert len(session.responses) == 4
        failed = [e for e in analytics.events if e.name == "session_failed"]
        assert failed[0].properties["failure_kind"] == "rejected"

    @pytest.mark.asyncio
    async def test_timeout_uses_active_config(self, db, store, deployer, analytics, session_factory):
        await _publish(store, deployer)
        await AIConfigService(db).publish_version("mock", "sonnet", 256, 0.2, 0.05)
        slow = RuntimeExecutor(db, MockLLMProvider(delay_seconds=0.5), analytics, session_factory)

        with pytest.raises(UpstreamGenerationError) as exc_info:
            await slow.submit(SLUG, ANSWERS)

        assert exc_info.value.failure_kind == UpstreamGenerationError.TIMEOUT
        [session] = await _sessions(session_factory)
        assert session.ai_response is None

    @pytest.mark.asyncio
    async def test_gated_tool_rejects_anonymous_before_generation(self, store, deployer, executor, llm, session_factory):
        await _publish(store, deployer, access_tier="registered")

        with pytest.raises(AuthError):
            await executor.submit(SLUG, ANSWERS)

        assert llm.call_count == 0
        assert await _sessions(session_factory) == []

    @pytest.mark.asyncio
    async def test_signed_in_submission_counts_usage(self, db, store, deployer, executor, session_factory):
        await _publish(store, deployer, access_tier="registered")
        visitor = Identity(subject_id="visitor@example.com")

        result = await executor.submit(SLUG, ANSWERS, identity=visitor)

        async with session_factory() as fresh:
            events = (await fresh.execute(select(UsageEvent))).scalars().all()
        assert [(e.subject_id, e.session_id) for e in events] == [("visitor@example.com", result.session_id)]

    @pytest.mark.asyncio
    async def test_optional_fields_may_be_omitted(self, store, deployer, executor, llm):
        await _publish(store, deployer)

        await executor.submit(SLUG, {"full_name": "Ada"})

        assert llm.last_call().messages[-1].content == "User Information:\nFull Name: Ada"

    @pytest.mark.asyncio
    async def test_checkbox_accepts_comma_string(self, store, deployer, executor, llm):
        await _publish(store, deployer)

        await executor.submit(SLUG, {"full_name": "Ada", "skills": "Python, Go"})

        assert "Skills: Python, Go" in llm.last_call().messages[-1].content

    @pytest.mark.asyncio
    async def test_session_write_failure_is_a_storage_error(self, db, store, deployer, executor, llm, monkeypatch):
        await _publish(store, deployer)

        async def failing_commit():
            _disk_failure()

        monkeypatch.setattr(db, "commit", failing_commit)

        with pytest.raises(PersistenceError) as exc_info:
            await executor.submit(SLUG, ANSWERS)

        assert not isinstance(exc_info.value, UpstreamGenerationError)
        assert exc_info.value.error_code == "PERSISTENCE_ERROR"
        assert exc_info.value.message == "Failed to record your submission"
        assert llm.call_count == 0

    @pytest.mark.asyncio
    async def test_result_write_failure_is_a_storage_error(self, db, store, deployer, llm, analytics, session_factory):
        await _publish(store, deployer)

        def failing_factory():
            session = session_factory()

            async def failing_commit():
                _disk_failure()

            session.commit = failing_commit
            return session

        executor = RuntimeExecutor(db, llm, analytics, failing_factory)

        with pytest.raises(PersistenceError) as exc_info:
            await executor.submit(SLUG, ANSWERS)

        assert not isinstance(exc_info.value, UpstreamGenerationError)
        assert exc_info.value.message == "Failed to record the result of your submission"
        assert llm.call_count == 1
        [session] = await _sessions(session_factory)
        assert session.ai_response is None
        assert session.responses == []
        assert "session_completed" not in analytics.names()

    @pytest.mark.asyncio
    async def test_session_deleted_mid_completion(self, db, store, deployer, analytics, session_factory):
        await _publish(store, deployer)
        executor = RuntimeExecutor(db, VanishingSessionProvider(session_factory), analytics, session_factory)

        with pytest.raises(PersistenceError) as exc_info:
            await executor.submit(SLUG, ANSWERS)

        assert exc_info.value.message == "Failed to record the result of your submission"
        assert await _sessions(session_factory) == []

    @pytest.mark.asyncio
    async def test_non_object_payload(self, store, deployer, executor):
        await _publish(store, deployer)

        with pytest.raises(ValidationError):
            await executor.submit(SLUG, ["not", "an", "object"])


class TestSubmitValidation:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("answers,field", [
        ({"email": "ada@example.com"}, "full_name"),
        ({"full_name": "   "}, "full_name"),
        ({"full_name": "Ada", "email": "not-an-email"}, "email"),
        ({"full_name": "Ada", "seniority": "principal"}, "seniority"),
        ({"full_name": "Ada", "skills": ["Python", "COBOL"]}, "skills"),
        ({"full_name": "Ada", "seniority": ["junior", "senior"]}, "seniority"),
        ({"full_name": {"first": "Ada"}}, "full_name"),
    ])
    async def test_invalid_submissions(self, store, deployer, executor, llm, session_factory, answers, field):
        await _publish(store, deployer)

        with pytest.raises(ValidationError) as exc_info:
            await executor.submit(SLUG, answers)

        assert exc_info.value.details["field"] == field
        assert llm.call_count == 0
        assert await _sessions(session_factory) == []

    @pytest.mark.asyncio
    async def test_type_and_rule_checks(self, store, deployer, executor):
        project = await _publish(store, deployer)
        step = project.steps[0]
        await store.add_field(OWNER, step.id, {"name": "years", "label": "Years", "field_type": "number"})
        await store.add_field(OWNER, step.id, {"name": "start", "label": "Start", "field_type": "date"})
        await store.add_field(OWNER, step.id, {
            "name": "code", "label": "Code", "validation": {"pattern": "^[A-Z]{3}$", "max_length": 3},
        })

        for answers, field in [
            ({"years": "ten"}, "years"),
            ({"start": "18/10/2026"}, "start"),
            ({"code": "abc"}, "code"),
            ({"code": "ABCD"}, "code"),
        ]:
            with pytest.raises(ValidationError) as exc_info:
                await executor.submit(SLUG, {"full_name": "Ada", **answers})
            assert exc_info.value.details["field"] == field

        result = await executor.submit(SLUG, {"full_name": "Ada", "years": "7.5", "start": "2026-10-18", "code": "ABC"})
        assert result.ai_response
