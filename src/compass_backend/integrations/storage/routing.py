"""Extension-based routing of uploads to a blob store and folder.

Routes are an ordered table: the first route whose extension set contains the
file's extension wins, otherwise the default route applies. Adding a file
family means adding a row, not editing code.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import PurePosixPath

from compass_backend.errors import RoutingFailed

from .blob_store import DOCUMENTS_STORE, IMAGES_STORE

IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "bmp", "webp"})


@dataclass(frozen=True)
class BlobRoute:
    extensions: frozenset[str]
    store: str
    folder: str


def file_extension(filename: str | None) -> str:
    return PurePosixPath((filename or "").strip().lower()).suffix.lstrip(".")


class BlobRouter:
    def __init__(self, routes: Sequence[BlobRoute], *, default: BlobRoute | None = None) -> None:
        self._routes = tuple(routes)
        self._default = default

    def resolve(self, filename: str | None) -> BlobRoute:
        ext = file_extension(filename)
        for route in self._routes:
            if ext and ext in route.extensions:
                return route
        if self._default is None:
            raise RoutingFailed(f"no blob store accepts {filename or 'unnamed file'!r}")
        return self._default


_NOTES_DEFAULT = BlobRoute(frozenset({"pdf"}), DOCUMENTS_STORE, "Notes")

NOTE_ROUTER = BlobRouter(
    [
        _NOTES_DEFAULT,
        BlobRoute(frozenset({"ppt", "pptx"}), DOCUMENTS_STORE, "PPT"),
        BlobRoute(frozenset({"doc", "docx"}), DOCUMENTS_STORE, "Docs"),
        # Not reachable from the admin notes endpoints (NOTE_FILE_EXTENSIONS has no
        # images); kept for callers driving the coordinator directly.
        BlobRoute(IMAGE_EXTENSIONS, DOCUMENTS_STORE, "Thumbnails"),
    ],
    default=_NOTES_DEFAULT,
)


def blog_router(images_folder: str) -> BlobRouter:
    route = BlobRoute(IMAGE_EXTENSIONS, IMAGES_STORE, images_folder)
    return BlobRouter([route], default=route)
