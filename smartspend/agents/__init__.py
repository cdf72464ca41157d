"""AI Agents package."""

from smartspend.agents.ai_client import (
    EXTRACTION_SCHEMA,
    CredentialStatus,
    FinanceAIClient,
    build_analysis_prompt,
    build_extraction_prompt,
    credential_status,
)
from smartspend.agents.category_resolver import CATEGORY_KEYWORDS, resolve_category

__all__ = [
    "CATEGORY_KEYWORDS",
    "EXTRACTION_SCHEMA",
    "CredentialStatus",
    "FinanceAIClient",
    "build_analysis_prompt",
    "build_extraction_prompt",
    "credential_status",
    "resolve_category",
]
