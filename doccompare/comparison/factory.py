from typing import ClassVar

from doccompare.comparison.base import BaseComparator
from doccompare.comparison.comparator import Comparator
from doccompare.comparison.example_client_adapter import ExampleClientAdapter
from doccompare.comparison.openai_client_adapter import OpenAIClientAdapter
from doccompare.comparison.similarity_comparator import SimilarityComparator
from doccompare.config.settings import Settings


class ComparatorFactory:
    """Creates the configured comparator."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseComparator:
        """Create a configured comparator from application settings."""
        provider = settings.comparison_provider.lower()
        if provider == "similarity":
            return SimilarityComparator()
        if provider == "example":
            return Comparator(client=ExampleClientAdapter(), model="example")
        client = OpenAIClientAdapter(
            api_key=settings.openai_api_key,
            timeout_seconds=settings.openai_timeout_seconds,
            base_url=cls._resolve_base_url(provider, settings),
        )
        return Comparator(
            client=client,
            model=settings.openai_model_name,
            temperature=settings.openai_temperature,
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        override = (settings.openai_base_url or "").strip()
        if provider == "openai":
            return override or None
        if provider == "openai_compatible":
            if not override:
                raise ValueError(
                    "openai_base_url is required for comparison_provider=openai_compatible"
                )
            return override
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return override or default_base_url
        supported = [
            "example",
            "similarity",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(
            f"Unknown comparison provider '{provider}'. Choose from: {supported}"
        )
