"""Chat model catalogue schemas."""

from pydantic import BaseModel


class ModelRead(BaseModel):
    """A selectable chat model.

    Attributes:
        id: Model id sent back in ``ChatRequest.model``.
        name: Display name.
        provider: Vendor key (``openai``, ``anthropic``, ``google``).
        available: Whether the vendor has an API key on this server.
        is_default: Whether requests without a model use this one.
    """

    id: str
    name: str
    provider: str
    available: bool
    is_default: bool = False
