"""AI-powered document comparator."""

import json
from pathlib import Path

from doccompare.comparison.base import BaseComparator
from doccompare.comparison.client_base import BaseComparisonClient
from doccompare.comparison.exceptions import ComparisonError
from doccompare.comparison.models import ComparisonResult
from doccompare.comparison.prompt_loader import load_json_schema, load_prompt_template
from doccompare.comparison.validator import validate_and_build
from doccompare.logging.logger import Log


class Comparator(BaseComparator):
    """Compares two document texts using an AI provider."""

    def __init__(
        self,
        *,
        client: BaseComparisonClient,
        model: str,
        temperature: float = 0.0,
        prompt_template_path: Path | None = None,
        json_schema_path: Path | None = None,
        system_prompt: str = "",
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(0.2, temperature))
        self._system_prompt = system_prompt
        self._prompt_template = load_prompt_template(prompt_template_path)
        schema_str = load_json_schema(json_schema_path)
        self._json_schema = schema_str
        self._json_schema_dict = json.loads(schema_str)

    def compare(self, text1: str, text2: str) -> ComparisonResult:
        prompt = self._build_prompt(text1, text2)
        Log.debug(f"Comparison prompt:\n{prompt}")

        raw_response = self._call_ai(prompt)
        Log.debug(f"AI raw response:\n{raw_response}")

        result = validate_and_build(parse_reply(raw_response))
        Log.info(
            f"Comparison complete: score {result.score}, "
            f"{len(result.differences)} differences"
        )
        return result

    def _build_prompt(self, text1: str, text2: str) -> str:
        return self._prompt_template.format(
            standard_text=text1,
            compared_text=text2,
            json_schema=self._json_schema,
        )

    def _call_ai(self, prompt: str) -> str:
        return self._client.create_chat_completion(
            model=self._model,
            temperature=self._temperature,
            system_prompt=self._system_prompt,
            user_prompt=prompt,
            json_schema=self._json_schema_dict,
        )


def parse_reply(raw: str) -> dict[str, object]:
    """Decode a structured-output reply; the response format guarantees bare JSON."""
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ComparisonError(f"Invalid JSON response: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ComparisonError("JSON response must be an object")
    return parsed
