from typing import Any, Dict, Mapping

from ...models.generation import FinishReason
from ..openai.adapter import OpenAICompatibleConverter


class OpenRouterConverter(OpenAICompatibleConverter):
    """
    OpenRouter chat completions.

    OpenRouter routes to an upstream model and reports which one served the
    request. The upstream ``provider`` and ``native_finish_reason`` are
    kept on ``Message.ext``; ``cost`` stays on ``Usage.ext``.
    """

    name = "openrouter"
    finish_reasons = {
        **OpenAICompatibleConverter.finish_reasons,
        "limit": FinishReason.LENGTH,
        "error": FinishReason.OTHER,
    }

    def _response_ext(self, body: Mapping[str, Any], choice: Mapping[str, Any]) -> Dict[str, Any]:
        ext = super()._response_ext(body, choice)
        native = choice.get("native_finish_reason")
        if native is not None:
            ext["native_finish_reason"] = native
        return ext
