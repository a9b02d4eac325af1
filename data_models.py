"""
Defines the message structures exchanged over the socket using Pydantic.

Inbound messages form a closed set of request variants discriminated by their
'type' field; anything outside that set is rejected by the codec. Outbound
messages share a single shape carrying a protocol-level Status and, depending
on the situation, a result or a prompt.
"""
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class StatusCode:
    """Protocol-level outcome codes. These never carry interpreter output."""

    SUCCESS = 100
    MORE_INPUT = 101
    READY = 102
    FAILURE = 500
    NOT_AUTHENTICATED = 501
    EXECUTION_ERROR = 3
    NOT_IMPLEMENTED = 4


class Label(str, Enum):
    """
    The 'type' value written on outbound messages.

    LOGIN covers login/logout replies, the not-authenticated rejection and the
    ready-for-input prompt. INTERACTIVE covers results, the continuation prompt
    and execution errors.
    """

    LOGIN = "login"
    INTERACTIVE = "interactive"
    EXECUTE = "execute"
    UNDEFINED = "undefined"


class Status(BaseModel):
    code: int
    text: str


class LoginRequest(BaseModel):
    """Authenticates the connection with the shared secret."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    type: Literal["login"]
    # Kept out of repr so it never reaches logs or traces.
    password: Optional[str] = Field(default=None, repr=False)


class LogoutRequest(BaseModel):
    """Ends the session; the server closes the channel after replying."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["logout"]


class InteractiveRequest(BaseModel):
    """A fragment of source typed at the prompt."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    type: Literal["interactive"]
    command: Optional[str] = None


class FileRequest(BaseModel):
    """Reserved for file transfer, which the server does not implement."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["file"]


MESSAGE_TYPES = frozenset({"login", "logout", "interactive", "file"})

InboundMessage = Annotated[
    Union[LoginRequest, LogoutRequest, InteractiveRequest, FileRequest],
    Field(discriminator="type"),
]


class OutboundMessage(BaseModel):
    """
    A message sent from the server to the client.

    Absent fields are omitted from the wire form, so a login reply carries
    only 'type' and 'status' while a result carries 'result' as well.
    """

    type: Label
    status: Status
    result: Optional[str] = None
    prompt: Optional[str] = None
