"""Tests for the multipart upload pipeline."""

import pytest

from webtoolkit import (
    MultipartParseError,
    NoFileProvidedError,
    ToolkitConfig,
    TooLargeError,
    TooManyFilesError,
    TypeNotAllowedError,
)

IMAGE_TYPES = frozenset({"image/jpeg", "image/png"})


@pytest.mark.parametrize("rename", [True, False])
def test_upload_allowed_type(make_client, upload_dir, png_bytes, rename):
    """Test a PNG upload passes an allow-list containing image/png."""
    client = make_client(ToolkitConfig(allowed_file_types=IMAGE_TYPES))

    response = client.post(
        "/upload",
        params={"rename": rename},
        files={"file": ("img.png", png_bytes, "image/png")},
    )

    assert response.status_code == 200
    (uploaded,) = response.json()["data"]
    assert uploaded["original_file_name"] == "img.png"
    assert uploaded["file_size"] == len(png_bytes)
    stored = upload_dir / uploaded["new_file_name"]
    assert stored.read_bytes() == png_bytes


def test_upload_renames_with_random_name_and_extension(make_client, png_bytes):
    """Test renamed uploads get 25 random characters plus the extension."""
    client = make_client()

    response = client.post("/upload", files={"file": ("photo.PNG", png_bytes, "image/png")})

    new_name = response.json()["data"][0]["new_file_name"]
    assert new_name.endswith(".PNG")
    assert len(new_name) == 25 + len(".PNG")


@pytest.mark.parametrize(
    ("original", "extension"),
    [(".env", ".env"), ("backup.tar.gz", ".gz"), ("README", "")],
)
def test_upload_rename_keeps_last_extension(make_client, png_bytes, original, extension):
    """Test the part after the last dot survives renaming, dotfiles included."""
    client = make_client()

    response = client.post("/upload", files={"file": (original, png_bytes, "image/png")})

    new_name = response.json()["data"][0]["new_file_name"]
    assert len(new_name) == 25 + len(extension)
    assert new_name.endswith(extension)


def test_upload_without_rename_keeps_name(make_client, png_bytes):
    """Test rename=False stores the file under its original name."""
    client = make_client()

    response = client.post(
        "/upload",
        params={"rename": False},
        files={"file": ("img.png", png_bytes, "image/png")},
    )

    assert response.json()["data"][0]["new_file_name"] == "img.png"


def test_upload_without_rename_drops_directories(make_client, upload_dir, png_bytes):
    """Test client-sent directory components never reach the filesystem."""
    client = make_client()

    response = client.post(
        "/upload",
        params={"rename": False},
        files={"file": ("../../escape.png", png_bytes, "image/png")},
    )

    assert response.json()["data"][0]["new_file_name"] == "escape.png"
    assert (upload_dir / "escape.png").is_file()


def test_upload_type_not_allowed(make_client, upload_dir, png_bytes):
    """Test a PNG is rejected when only image/jpeg is allowed."""
    client = make_client(ToolkitConfig(allowed_file_types=frozenset({"image/jpeg"})))

    with pytest.raises(TypeNotAllowedError) as exc_info:
        client.post("/upload", files={"file": ("img.png", png_bytes, "image/png")})

    assert exc_info.value.content_type == "image/png"
    assert exc_info.value.uploaded_files == []
    assert list(upload_dir.iterdir()) == []


def test_upload_allow_list_is_case_insensitive(make_client, png_bytes):
    """Test allow-list entries match regardless of case."""
    client = make_client(ToolkitConfig(allowed_file_types=frozenset({"IMAGE/PNG"})))

    response = client.post("/upload", files={"file": ("img.png", png_bytes, "image/png")})

    assert response.status_code == 200


def test_upload_sniffs_content_not_declared_type(make_client):
    """Test the declared part content type is ignored in favour of sniffing."""
    client = make_client(ToolkitConfig(allowed_file_types=IMAGE_TYPES))

    with pytest.raises(TypeNotAllowedError) as exc_info:
        client.post("/upload", files={"file": ("fake.png", b"just some text", "image/png")})

    assert exc_info.value.content_type == "text/plain; charset=utf-8"


def test_upload_multiple_files(make_client, upload_dir, png_bytes):
    """Test every file part is stored, in request order."""
    client = make_client()

    response = client.post(
        "/upload",
        files=[
            ("first", ("a.png", png_bytes, "image/png")),
            ("second", ("b.txt", b"hello", "text/plain")),
        ],
    )

    data = response.json()["data"]
    assert [f["original_file_name"] for f in data] == ["a.png", "b.txt"]
    assert [f["file_size"] for f in data] == [len(png_bytes), 5]
    assert len(list(upload_dir.iterdir())) == 2


def test_upload_stops_at_first_failure(make_client, upload_dir, png_bytes):
    """Test files written before a failing part are kept and reported."""
    client = make_client(ToolkitConfig(allowed_file_types=frozenset({"image/png"})))

    with pytest.raises(TypeNotAllowedError) as exc_info:
        client.post(
            "/upload",
            files=[
                ("file", ("a.png", png_bytes, "image/png")),
                ("file", ("b.txt", b"hello", "text/plain")),
                ("file", ("c.png", png_bytes, "image/png")),
            ],
        )

    (partial,) = exc_info.value.uploaded_files
    assert partial.original_file_name == "a.png"
    assert [p.name for p in upload_dir.iterdir()] == [partial.new_file_name]


def test_upload_too_large(make_client, upload_dir, png_bytes):
    """Test a request over max_file_size fails before anything is stored."""
    client = make_client(ToolkitConfig(max_file_size=256))

    with pytest.raises(TooLargeError) as exc_info:
        client.post("/upload", files={"file": ("img.png", png_bytes, "image/png")})

    assert exc_info.value.limit == 256
    assert list(upload_dir.iterdir()) == []


def test_upload_requires_multipart(make_client):
    """Test a non multipart body is a parse error, not a size error."""
    client = make_client()

    with pytest.raises(MultipartParseError):
        client.post("/upload", json={"foo": "bar"})


def test_upload_creates_destination(make_client, upload_dir, png_bytes):
    """Test the upload directory and its parents are created on demand."""
    client = make_client()
    assert not upload_dir.exists()

    client.post("/upload", files={"file": ("img.png", png_bytes, "image/png")})

    assert upload_dir.is_dir()


def test_upload_one_file(make_client, upload_dir, png_bytes):
    """Test the single file variant returns the stored file."""
    client = make_client()

    response = client.post("/upload-one", files={"file": ("img.png", png_bytes, "image/png")})

    uploaded = response.json()["data"]
    assert uploaded["original_file_name"] == "img.png"
    assert (upload_dir / uploaded["new_file_name"]).is_file()


def test_upload_one_file_without_file(make_client, upload_dir):
    """Test a multipart request with no file part raises NoFileProvidedError."""
    client = make_client()

    with pytest.raises(NoFileProvidedError):
        client.post("/upload-one", data={"name": "value"}, files={"file": ("", b"", "text/plain")})


def test_upload_one_file_with_two_files(make_client, upload_dir, png_bytes):
    """Test several file parts are refused before anything is written."""
    client = make_client()

    with pytest.raises(TooManyFilesError):
        client.post(
            "/upload-one",
            files=[
                ("file", ("a.png", png_bytes, "image/png")),
                ("file", ("b.png", png_bytes, "image/png")),
            ],
        )

    assert list(upload_dir.iterdir()) == []
