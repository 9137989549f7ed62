from typing import Any, Mapping, Optional

from ...models.usage import Usage
from ..openai.adapter import OpenAICompatibleConverter


class GroqConverter(OpenAICompatibleConverter):
    """Groq OpenAI-compatible chat completions."""

    name = "groq"
    request_stream_usage = False

    def _chunk_usage(self, chunk: Mapping[str, Any]) -> Optional[Usage]:
        # Streamed usage arrives under the x_groq extension of the last chunk
        x_groq = chunk.get("x_groq") or {}
        return self.usage_to_canonical(chunk.get("usage") or x_groq.get("usage"))
