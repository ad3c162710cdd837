# tests/test_slugs.py
"""Tests for community slug helpers."""

import uuid

import pytest
from pydantic import ValidationError

from agora.models import CommunityVisibility
from agora.schemas.community import CommunityCreate, CommunityResponse
from agora.utils.slugs import generate_slug


@pytest.mark.parametrize(
    ("title", "slug"),
    [
        ("Python Help", "python-help"),
        ("  Core   Devs  ", "core-devs"),
        ("Python  Q&A -- Beginners!", "python-qa-beginners"),
        ("C++", "c"),
        ("!!!", ""),
    ],
)
def test_generate_slug(title, slug):
    assert generate_slug(title) == slug


def test_create_schema_fills_slug_from_title():
    data = CommunityCreate(title="  Data Science  ", description="  ")

    assert data.title == "Data Science"
    assert data.slug == "data-science"
    assert data.description is None


def test_create_schema_keeps_explicit_slug():
    data = CommunityCreate(title="Data Science", slug="ds")

    assert data.slug == "ds"


@pytest.mark.parametrize(
    "payload",
    [
        {"title": "   "},
        {"title": "???"},
        {"title": "Valid", "slug": "Not Valid"},
    ],
)
def test_create_schema_rejects_bad_input(payload):
    with pytest.raises(ValidationError):
        CommunityCreate(**payload)


def test_community_link_uses_slug():
    community = CommunityResponse(
        id=uuid.uuid4(),
        title="Core Devs",
        slug="core-devs",
        visibility=CommunityVisibility.PRIVATE,
        owner_id=uuid.uuid4(),
    )

    assert community.link == "/community/core-devs"
    assert "link" not in community.model_dump()
