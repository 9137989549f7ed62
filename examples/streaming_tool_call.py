"""
Example: one conversation, streamed from two providers

Builds a request from canonical messages, streams it over httpx and
reassembles the reply. Needs OPENAI_API_KEY and ANTHROPIC_API_KEY in the
environment or a .env file.
"""

import asyncio
import os

import httpx
from dotenv import load_dotenv

from llm_bridge import Message, ToolSpec, get_converter
from llm_bridge.config.constants import ANTHROPIC_VERSION
from llm_bridge.providers import ErrorMapper
from llm_bridge.streaming import StreamAdapter

load_dotenv()

WEATHER_TOOL = ToolSpec(
    name="get_weather",
    description="Current weather for a city",
    parameters={
        "type": "object",
        "properties": {"city": {"type": "string"}},
        "required": ["city"],
    },
)

ENDPOINTS = {
    "openai": (
        "https://api.openai.com/v1/chat/completions",
        lambda: {"Authorization": f"Bearer {os.environ['OPENAI_API_KEY']}"},
        "gpt-4o-mini",
    ),
    "anthropic": (
        "https://api.anthropic.com/v1/messages",
        lambda: {"x-api-key": os.environ["ANTHROPIC_API_KEY"], "anthropic-version": ANTHROPIC_VERSION},
        "claude-3-5-haiku-latest",
    ),
}


async def stream_reply(client: httpx.AsyncClient, provider: str, messages):
    """Stream one reply and print text as it arrives."""
    url, headers, model = ENDPOINTS[provider]
    converter = get_converter(provider)
    request = converter.canonical_to_provider_request(
        messages, tools=[WEATHER_TOOL], model=model, max_tokens=300, stream=True,
    )

    async with client.stream("POST", url, json=request.body, headers=headers()) as response:
        if response.status_code >= 400:
            await response.aread()
            raise ErrorMapper.from_http_response(response, provider)

        adapter = StreamAdapter(converter)
        print(f"=== {provider} ===")
        result = await adapter.collect(response)

    print(result.message.text)
    for call in result.message.tool_calls:
        print(f"  tool call {call.name}({call.args})")
    if result.usage:
        print(f"  tokens: {result.usage.prompt_tokens} in / {result.usage.completion_tokens} out")
    return result


async def main():
    messages = [
        Message.system("Use tools when they help."),
        Message.user("What's the weather in Lisbon?"),
    ]
    async with httpx.AsyncClient(timeout=60) as client:
        for provider in ENDPOINTS:
            await stream_reply(client, provider, messages)


if __name__ == "__main__":
    asyncio.run(main())
