import json
from typing import Any
from urllib.parse import parse_qsl

from starlette.requests import Request


class MalformedBodyError(ValueError):
    """Raised when a request body cannot be parsed as JSON."""

    def __init__(self, origin: str) -> None:
        super().__init__(f"Invalid JSON body ({origin})")
        self.origin = origin


def decode_body(raw: Any) -> Any:
    """Normalize a request body that may be parsed, raw bytes, or text.

    Returns ``None`` when there is no usable body. Only undecodable bytes and
    strings are errors; unknown shapes fall through to ``None``.
    """
    if raw is None:
        return None

    if isinstance(raw, (bytes, bytearray, memoryview)):
        try:
            return json.loads(bytes(raw).decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise MalformedBodyError("buffer") from exc

    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise MalformedBodyError("string") from exc

    if isinstance(raw, (dict, list)):
        return raw

    return None


async def read_request_body(request: Request) -> Any:
    """Hand the body to ``decode_body`` in the shape its content type implies.

    JSON and unknown content types stay raw bytes so they are parsed exactly
    once, by ``decode_body``.
    """
    body = await request.body()
    if not body:
        return None

    content_type = request.headers.get("content-type", "").split(";", maxsplit=1)[0].strip().lower()
    if content_type.startswith("text/"):
        return body.decode("utf-8", errors="replace")
    if content_type == "application/x-www-form-urlencoded":
        return dict(parse_qsl(body.decode("utf-8", errors="replace"), keep_blank_values=True))
    return body


async def read_json_object(request: Request) -> dict[str, Any]:
    payload = decode_body(await read_request_body(request))
    if isinstance(payload, dict):
        return payload
    return {}
