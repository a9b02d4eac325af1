"""
Converts between the JSON wire envelope and the typed message models.
"""
import json

from pydantic import TypeAdapter, ValidationError

from data_models import MESSAGE_TYPES, InboundMessage, OutboundMessage

_inbound_adapter = TypeAdapter(InboundMessage)


class MessageDecodeError(ValueError):
    """Raised when a text frame is not a recognizable inbound message."""


class InvalidFieldsError(MessageDecodeError):
    """
    Raised when a frame names a known type but its other fields do not fit it.

    message_type holds the lowercased type so the caller can still apply the
    rules of that type, such as the authentication check.
    """

    def __init__(self, message_type: str, detail: str):
        super().__init__(detail)
        self.message_type = message_type


# Not traced: decoded requests carry source text and must not reach the shared trace log.
def decode_message(raw: str) -> InboundMessage:
    """
    Parses a text frame into one of the inbound request variants.

    The 'type' field is matched case-insensitively. Numeric 'password' and
    'command' values are accepted as their string form.

    Raises:
        MessageDecodeError: If the frame is not a JSON object, has no string
            'type', or names a type outside the known set.
        InvalidFieldsError: If the type is known but another field has the
            wrong shape.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MessageDecodeError(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MessageDecodeError("Message must be a JSON object.")
    message_type = data.get("type")
    if not isinstance(message_type, str):
        raise MessageDecodeError("Message has no 'type' field.")
    data["type"] = message_type = message_type.lower()
    if message_type not in MESSAGE_TYPES:
        raise MessageDecodeError(f"Unrecognized message type '{message_type}'.")
    try:
        return _inbound_adapter.validate_python(data)
    except ValidationError as e:
        fields = ", ".join(".".join(str(part) for part in error["loc"]) for error in e.errors())
        raise InvalidFieldsError(message_type, f"Invalid fields for '{message_type}': {fields}") from e


def encode_message(message: OutboundMessage) -> str:
    """Serializes an outbound message to compact JSON, leaving out absent fields."""
    return json.dumps(message.model_dump(mode="json", exclude_none=True), separators=(",", ":"))
