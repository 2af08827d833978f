"""Slash-command intent resolution.

Chat surfaces deliver commands as a leading token ("/infra Create a VPC").
An explicit intent on the request always wins over the command.
"""

from typing import Dict

from contracts import ChatRequest, Intent


COMMAND_ALIASES: Dict[str, Intent] = {
    "/infra": Intent.INFRASTRUCTURE,
    "/infrastructure": Intent.INFRASTRUCTURE,
    "/iac": Intent.INFRASTRUCTURE,
    "/api": Intent.API,
    "/component": Intent.COMPONENT,
    "/ui": Intent.COMPONENT,
}


def resolve_intent(request: ChatRequest) -> ChatRequest:
    """Return the request with a leading command stripped into `intent`.

    Requests without a known leading command are returned unchanged.
    """
    stripped = request.text.strip()
    if not stripped.startswith("/"):
        return request

    prefix = stripped.split(None, 1)[0].lower()
    command_intent = COMMAND_ALIASES.get(prefix)
    if command_intent is None:
        return request

    return request.model_copy(update={
        "text": stripped[len(prefix):].strip(),
        "intent": request.intent or command_intent.value,
    })
