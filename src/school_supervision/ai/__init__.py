"""Generative-AI collaborator: LLM client, document extraction and code generation."""

from .llm import (
    LLMError,
    RateLimitError,
    APIError,
    LLMRequest,
    LLMResponse,
    LLMProvider,
    ClaudeLLMProvider,
    GeminiLLMProvider,
    LLMClient,
    create_llm_client,
)
from .codes import generate_unique_code, random_code
from .extraction import (
    COVERAGE_IMPORT_STRUCTURE,
    BranchImport,
    CoverageImport,
    build_extraction_prompt,
    extract_json,
    extract_structured,
    spreadsheet_to_text,
    names_match,
    find_teacher,
    parse_coverage_import,
    merge_coverage_import,
    import_coverage_report,
)

__all__ = [
    "LLMError",
    "RateLimitError",
    "APIError",
    "LLMRequest",
    "LLMResponse",
    "LLMProvider",
    "ClaudeLLMProvider",
    "GeminiLLMProvider",
    "LLMClient",
    "create_llm_client",
    "generate_unique_code",
    "random_code",

    # Extraction
    "COVERAGE_IMPORT_STRUCTURE",
    "BranchImport",
    "CoverageImport",
    "build_extraction_prompt",
    "extract_json",
    "extract_structured",
    "spreadsheet_to_text",
    "names_match",
    "find_teacher",
    "parse_coverage_import",
    "merge_coverage_import",
    "import_coverage_report",
]
