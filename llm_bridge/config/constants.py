"""
Wire constants shared by converters and the stream parser.

Values here are fixed by provider contracts; tunable settings live in
llm_bridge.config.settings.
"""

# Terminal marker sent by OpenAI-compatible streaming endpoints
DONE_SENTINEL = "[DONE]"

# Anthropic requires max_tokens on every request
DEFAULT_MAX_TOKENS = 4096
ANTHROPIC_VERSION = "2023-06-01"

# Largest record the parser will buffer before declaring the stream corrupt
DEFAULT_MAX_RECORD_BYTES = 8 * 1024 * 1024

# Ext keys each provider can carry on the wire, by part kind
ANTHROPIC_EXT_KEYS = ("cache_control", "citations", "is_error")
GEMINI_PART_EXT_KEYS = ("thoughtSignature", "thought", "videoMetadata")
GEMINI_FUNCTION_RESPONSE_EXT_KEYS = ("willContinue", "scheduling")
BEDROCK_TOOL_RESULT_EXT_KEYS = ("status",)

# Environment variables read by BridgeSettings
ENV_DEFAULT_MAX_TOKENS = "LLM_BRIDGE_DEFAULT_MAX_TOKENS"
ENV_STRICT_STREAM_TERMINATION = "LLM_BRIDGE_STRICT_STREAM_TERMINATION"
ENV_MAX_RECORD_BYTES = "LLM_BRIDGE_MAX_RECORD_BYTES"
ENV_LOG_RAW_FRAGMENTS = "LLM_BRIDGE_LOG_RAW_FRAGMENTS"

# Provider identifiers
PROVIDER_ANTHROPIC = "anthropic"
PROVIDER_GEMINI = "gemini"
PROVIDER_OPENAI = "openai"
PROVIDER_MISTRAL = "mistral"
PROVIDER_GROQ = "groq"
PROVIDER_OPENROUTER = "openrouter"
PROVIDER_BEDROCK = "bedrock"

SUPPORTED_PROVIDERS = (
    PROVIDER_ANTHROPIC,
    PROVIDER_GEMINI,
    PROVIDER_OPENAI,
    PROVIDER_MISTRAL,
    PROVIDER_GROQ,
    PROVIDER_OPENROUTER,
    PROVIDER_BEDROCK,
)
