"""Account-linking and session response schemas."""

from pydantic import BaseModel


class LinkStartResponse(BaseModel):
    """Response for POST /auth/link.

    Attributes:
        redirect_url: Provider consent page to send the browser to.
        connection_id: Provider id of the pending connection.
    """

    redirect_url: str
    connection_id: str


class LinkedUser(BaseModel):
    user_id: str
