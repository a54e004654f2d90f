from pathlib import Path

from fastapi.responses import FileResponse

from errors import APIError

INDEX_FILE = "math-solver.html"

MIME_TYPES = {
    ".html": "text/html; charset=utf-8",
    ".js": "text/javascript; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".json": "application/json; charset=utf-8",
}
DEFAULT_MIME = "text/plain; charset=utf-8"


def content_type_for(path: Path) -> str:
    return MIME_TYPES.get(path.suffix, DEFAULT_MIME)


def resolve_static_path(root: Path, request_path: str) -> Path:
    """
    Map a URL path onto a file under `root`. Anything that resolves outside
    the root (../ segments, absolute paths, symlinks) is a 403.
    """
    file = INDEX_FILE if request_path in ("", "/") else request_path.lstrip("/")
    base = Path(root).resolve()
    try:
        resolved = (base / file).resolve()
    except ValueError:
        raise APIError(403, "Forbidden")

    if base not in resolved.parents:
        raise APIError(403, "Forbidden")
    return resolved


def serve_static(root: Path, request_path: str) -> FileResponse:
    shown = f"/{INDEX_FILE}" if request_path in ("", "/") else request_path
    try:
        path = resolve_static_path(root, request_path)
        found = path.is_file()
    except OSError:
        # unreadable paths (ENAMETOOLONG, EACCES) are reported as missing
        found = False
    if not found:
        raise APIError(404, f"Not found: {shown}")
    return FileResponse(path, media_type=content_type_for(path))
