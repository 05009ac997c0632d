"""Tests for role-keyed field suggestions."""

import pytest

from toolsmith.api.models import FieldType
from toolsmith.domain.services.field_recommendations import (
    CATALOGUE,
    known_roles,
    recommend,
)


class TestRecommend:

    @pytest.mark.parametrize("role", ["Story Writer", "story_writer", "  STORY writer "])
    def test_role_lookup_ignores_spelling(self, role):
        rec = recommend(role)

        assert rec.is_default is False
        assert rec.fields[0].name == "story_premise"

    def test_known_role_prompt_names_role_and_idea(self):
        rec = recommend("Fitness Coach", "a 6 week running plan")

        assert rec.system_prompt.startswith("You are a certified Fitness Coach. Create a plan for: a 6 week running plan.")

    def test_unknown_role_gets_default(self):
        rec = recommend("Tax Advisor")

        assert rec.is_default is True
        assert [f.name for f in rec.fields] == ["user_input", "additional_details"]
        assert rec.fields[0].type == FieldType.TEXTAREA
        assert rec.fields[0].required is True
        assert "Tax Advisor" in rec.fields[0].placeholder
        assert rec.system_prompt.startswith("You are an expert Tax Advisor. Help the user with their request.")

    def test_blank_role(self):
        assert recommend("").role == "assistant"

    def test_catalogue_is_not_mutated_by_callers(self):
        rec = recommend("Resume Writer")
        rec.fields[0].label = "Changed"

        assert CATALOGUE["resume_writer"]["fields"][0].label == "Full Name"

    def test_choice_values_are_field_names(self):
        rec = recommend("Business Consultant")
        size = next(f for f in rec.fields if f.name == "company_size")

        assert [c.value for c in size.choices] == ["just_me", "2_10", "11_50", "51"]

    def test_known_roles(self):
        assert known_roles() == ["business_consultant", "fitness_coach", "resume_writer", "story_writer"]

    def test_field_summary(self):
        summary = recommend("Resume Writer").field_summary()

        assert summary.splitlines()[0] == "- full_name (text, required): Full Name"
