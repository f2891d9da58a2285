import asyncio
import io
import time

import pytest

from invite_request.exceptions import RelocationError
from invite_request.models.schemas.submission import UploadedFile
from invite_request.services import uploads as uploads_module
from invite_request.services.uploads import public_filename, public_uri, relocate_uploads

ORIGIN = "http://testserver"


def _upload(field, filename, data=b"data"):
    return UploadedFile(field_name=field, filename=filename, file=io.BytesIO(data), size=len(data))


def _relocate(items, images_dir, timeout=5.0):
    return asyncio.run(relocate_uploads(items, images_dir=images_dir, origin=ORIGIN, timeout=timeout))


def test_public_filename_strips_directories():
    assert public_filename("resume", "cv.pdf") == "resume-cv.pdf"
    assert public_filename("resume", "../../etc/passwd") == "resume-passwd"
    assert public_filename("resume", "C:\\Users\\jane\\cv.pdf") == "resume-cv.pdf"


@pytest.mark.parametrize("filename", ["", ".", "..", "dir/"])
def test_public_filename_rejects_unusable_names(filename):
    with pytest.raises(RelocationError):
        public_filename("resume", filename)


def test_public_uri_is_percent_encoded():
    assert public_uri("http://h/", "avatar-my photo.png") == "http://h/images/avatar-my%20photo.png"


def test_relocation_writes_files_in_upload_order(tmp_path):
    images = tmp_path / "images"
    result = _relocate([_upload("resume", "cv.pdf", b"PDF"), _upload("avatar", "me.png", b"PNG")], images)

    assert [f.filename for f in result] == ["resume-cv.pdf", "avatar-me.png"]
    assert [f.uri for f in result] == [
        f"{ORIGIN}/images/resume-cv.pdf",
        f"{ORIGIN}/images/avatar-me.png",
    ]
    assert (images / "resume-cv.pdf").read_bytes() == b"PDF"
    assert (images / "avatar-me.png").read_bytes() == b"PNG"


def test_relocating_same_name_twice_overwrites(tmp_path):
    _relocate([_upload("resume", "cv.pdf", b"first")], tmp_path)
    _relocate([_upload("resume", "cv.pdf", b"second")], tmp_path)

    assert (tmp_path / "resume-cv.pdf").read_bytes() == b"second"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["resume-cv.pdf"]


def test_no_uploads_is_a_no_op(tmp_path):
    assert _relocate([], tmp_path / "never-created") == []
    assert not (tmp_path / "never-created").exists()


def test_single_failure_fails_the_set(tmp_path, monkeypatch):
    real_copy = uploads_module._copy_into_place

    def flaky_copy(stream, destination):
        if destination.name.startswith("avatar-"):
            raise OSError("disk full")
        real_copy(stream, destination)

    monkeypatch.setattr(uploads_module, "_copy_into_place", flaky_copy)

    with pytest.raises(RelocationError) as excinfo:
        _relocate([_upload("resume", "cv.pdf"), _upload("avatar", "me.png")], tmp_path)

    assert excinfo.value.field_name == "avatar"
    assert "disk full" in str(excinfo.value)
    # Siblings that landed stay put; no partial temp files are left behind
    assert sorted(p.name for p in tmp_path.iterdir()) == ["resume-cv.pdf"]


def test_traversal_name_fails_the_set(tmp_path):
    with pytest.raises(RelocationError):
        _relocate([_upload("resume", "..")], tmp_path)


def test_timeout(tmp_path, monkeypatch):
    def slow_copy(stream, destination):
        time.sleep(0.5)

    monkeypatch.setattr(uploads_module, "_copy_into_place", slow_copy)

    with pytest.raises(RelocationError, match="exceeded"):
        _relocate([_upload("resume", "cv.pdf")], tmp_path, timeout=0.05)


@pytest.mark.parametrize("field_name", ["../../outside", "a/b", "..\\x", ".", "..", "bad\x00name"])
def test_public_filename_rejects_field_names_with_path_parts(field_name):
    with pytest.raises(RelocationError):
        public_filename(field_name, "cv.pdf")


def test_field_name_cannot_escape_images_dir(tmp_path):
    images = tmp_path / "public" / "images"
    with pytest.raises(RelocationError):
        _relocate([_upload("../../outside", "a.txt")], images)
    assert not (tmp_path / "outside-a.txt").exists()
