import httpx
import openai

from doccompare.comparison.client_base import BaseComparisonClient
from doccompare.comparison.exceptions import ComparisonError, ComparisonNetworkError


class OpenAIClientAdapter(BaseComparisonClient):
    """Comparison AI client adapter built on OpenAI-compatible chat API."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )

    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> str:
        try:
            response = self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": "comparison_result",
                        "strict": True,
                        "schema": json_schema,
                    },
                },
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ComparisonNetworkError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise ComparisonNetworkError(f"AI provider API error: {exc}") from exc
        except openai.OpenAIError as exc:
            raise ComparisonError(f"AI provider client error: {exc}") from exc
        return _reply_text(response)


def _reply_text(response: object) -> str:
    choices = getattr(response, "choices", None)
    if not choices:
        raise ComparisonError("AI returned no choices")
    content = choices[0].message.content
    if content is None:
        raise ComparisonError("AI returned empty response")
    return content
