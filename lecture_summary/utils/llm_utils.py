"""Utility functions for working with OpenAI-compatible Chat Completions APIs."""

CHAT_COMPLETIONS_PATH = "/chat/completions"


def chat_completions_base_url(endpoint_url: str) -> str:
    """
    Converts a full chat-completions endpoint URL into the base URL the OpenAI SDK expects.

    "https://router.huggingface.co/v1/chat/completions" -> "https://router.huggingface.co/v1"
    URLs that do not end in the chat-completions path are returned unchanged.
    """
    url = endpoint_url.rstrip("/")
    if url.endswith(CHAT_COMPLETIONS_PATH):
        return url[: -len(CHAT_COMPLETIONS_PATH)]
    return url


def extract_text_from_response(response) -> str:
    """
    Extract text content from an OpenAI Chat Completions API response.

    The Chat Completions API structure is:
    {
        "choices": [{
            "message": {
                "content": "..."
            }
        }]
    }

    Args:
        response: The response object from OpenAI SDK chat.completions.create()

    Returns:
        The extracted text string, or empty string if not found
    """
    if not hasattr(response, "choices") or not response.choices:
        return ""

    choice = response.choices[0]
    if not hasattr(choice, "message") or choice.message is None:
        return ""

    message = choice.message
    if not hasattr(message, "content") or not isinstance(message.content, str):
        return ""

    return message.content
