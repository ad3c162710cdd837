"""Mention extraction endpoint."""

from fastapi import APIRouter

from agora.api.v1.dependencies import StoreDep
from agora.schemas.notification import MentionExtractRequest, MentionExtractResponse

router = APIRouter(prefix="/mentions", tags=["mentions"])


@router.post("/extract", response_model=MentionExtractResponse)
async def extract_mentions(
    body: MentionExtractRequest,
    store: StoreDep,
) -> MentionExtractResponse:
    """Return the ``@handles`` referenced in a piece of content."""
    return MentionExtractResponse(mentions=await store.extract_mentions(body.content))
