from fastapi import Request
from starlette.requests import ClientDisconnect

from errors import APIError

MAX_CHAT_BYTES = 20_000_000


def _too_large(limit: int) -> APIError:
    return APIError(
        413,
        f"Request body too large (limit {limit} bytes)",
        headers={"Connection": "close"},
    )


async def read_limited_body(request: Request, limit: int) -> str:
    """
    Read the request body as UTF-8, giving up with a 413 as soon as more than
    `limit` bytes have arrived. The rest of the upload is never consumed.
    """
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise _too_large(limit)

    chunks = []
    received = 0
    try:
        async for chunk in request.stream():
            received += len(chunk)
            if received > limit:
                raise _too_large(limit)
            chunks.append(chunk)
    except ClientDisconnect as e:
        raise APIError(400, "Failed to read request body", cause=e)

    return b"".join(chunks).decode("utf-8", errors="replace")
