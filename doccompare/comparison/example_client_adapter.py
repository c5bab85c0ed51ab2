"""Offline comparison client adapter.

Implement BaseComparisonClient and register the provider in ComparatorFactory
to add a new AI provider.
"""

import json
from typing import ClassVar

from doccompare.comparison.client_base import BaseComparisonClient


class ExampleClientAdapter(BaseComparisonClient):
    """Adapter that returns a fixed valid comparison JSON without network calls."""

    DEFAULT_RESPONSE: ClassVar[dict[str, object]] = {
        "summary": "No material differences found.",
        "score": 100,
        "differences": [],
    }

    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> str:
        _ = model, temperature, system_prompt, user_prompt, json_schema
        return json.dumps(self.DEFAULT_RESPONSE)
