from ...models.generation import FinishReason
from ..openai.adapter import OpenAICompatibleConverter


class MistralConverter(OpenAICompatibleConverter):
    """
    Mistral chat completions.

    Same shape as OpenAI with three differences: ``image_url`` is a bare
    string, tool messages carry the function ``name``, and a function with
    no parameters must omit the ``parameters`` key entirely.
    """

    name = "mistral"
    finish_reasons = {
        **OpenAICompatibleConverter.finish_reasons,
        "model_length": FinishReason.LENGTH,
        "error": FinishReason.OTHER,
    }
    option_renames = {"seed": "random_seed"}
    image_url_as_string = True
    omit_empty_parameters = True
    # Mistral always sends usage on the final chunk and rejects stream_options
    request_stream_usage = False
