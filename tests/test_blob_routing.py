from __future__ import annotations

import pytest

from compass_backend.errors import RoutingFailed
from compass_backend.integrations.storage.blob_store import DOCUMENTS_STORE, IMAGES_STORE
from compass_backend.integrations.storage.routing import (
    NOTE_ROUTER,
    BlobRoute,
    BlobRouter,
    blog_router,
    file_extension,
)


def test_file_extension_is_lowercased():
    assert file_extension("Lecture.PDF") == "pdf"
    assert file_extension("archive.tar.gz") == "gz"
    assert file_extension("README") == ""
    assert file_extension(None) == ""


@pytest.mark.parametrize(
    ("filename", "folder"),
    [
        ("a.pdf", "Notes"),
        ("slides.pptx", "PPT"),
        ("slides.PPT", "PPT"),
        ("essay.docx", "Docs"),
        ("essay.doc", "Docs"),
        ("cover.png", "Thumbnails"),
        ("plain.txt", "Notes"),
        ("noext", "Notes"),
    ],
)
def test_note_router_folders(filename: str, folder: str):
    route = NOTE_ROUTER.resolve(filename)
    assert route.store == DOCUMENTS_STORE
    assert route.folder == folder


def test_blog_router_sends_everything_to_images():
    router = blog_router("lms-images")
    route = router.resolve("cover.JPG")
    assert route.store == IMAGES_STORE
    assert route.folder == "lms-images"
    assert router.resolve("odd.tiff").store == IMAGES_STORE


def test_router_without_default_raises_routing_failed():
    router = BlobRouter([BlobRoute(frozenset({"pdf"}), DOCUMENTS_STORE, "Notes")])
    assert router.resolve("x.pdf").folder == "Notes"
    with pytest.raises(RoutingFailed):
        router.resolve("x.exe")
