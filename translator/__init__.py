"""
Multi Translate Engines

Supported engines:
- M2M100 on Cloudflare Workers AI (neural MT)
- DeepL API (free and pro plans)
- Google Cloud Translation v3
- OpenAI chat completions (LLM translation)
"""
from .base import (
    BaseTranslator,
    ConfigurationError,
    DetectionUnsupported,
    Provider,
    ProviderError,
    ProviderResult,
    UpstreamError,
    parse_providers,
)
from .assignment import Assignment, AssignmentEngine
from .detection import DetectionArbiter, DetectionOutcome
from .m2m import M2MTranslator
from .deepl_api import DeepLAPITranslator
from .google import GoogleTranslator
from .llm import OpenAITranslator
from .orchestrator import RequestRejected, TranslationOrchestrator, TranslationResponse
from .factory import (
    AVAILABLE_ENGINES,
    build_orchestrator,
    build_translator,
    build_translators,
    get_available_engines,
)
from .status import check_status

__all__ = [
    "AVAILABLE_ENGINES",
    "Assignment",
    "AssignmentEngine",
    "BaseTranslator",
    "ConfigurationError",
    "DeepLAPITranslator",
    "DetectionArbiter",
    "DetectionOutcome",
    "DetectionUnsupported",
    "GoogleTranslator",
    "M2MTranslator",
    "OpenAITranslator",
    "Provider",
    "ProviderError",
    "ProviderResult",
    "RequestRejected",
    "TranslationOrchestrator",
    "TranslationResponse",
    "UpstreamError",
    "build_orchestrator",
    "build_translator",
    "build_translators",
    "check_status",
    "get_available_engines",
    "parse_providers",
]
