"""Tests for the resize-service client: request fields, response naming and errors."""

import json
from pathlib import Path

import httpx
import pytest

from resizeit.errors import ImageLoadError, TransportError, ValidationError
from resizeit.models import OutputSpec
from resizeit.output_set import OutputSet
from resizeit.resize_client import (
    ResizeResult,
    build_request,
    download_filename,
    request_resize,
    save_result,
    send_request,
)

URL = "http://resize.test/resize"


class Recorder:
    """MockTransport handler that records the request and replays a canned response."""

    def __init__(self, response: httpx.Response | None = None, exc: Exception | None = None):
        self.response = response or httpx.Response(200, content=b"PNGDATA", headers={"content-type": "image/png"})
        self.exc = exc
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return self.response

    @property
    def body(self) -> bytes:
        return self.requests[-1].content


def _client(recorder: Recorder) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(recorder))


@pytest.fixture
def source(make_image) -> Path:
    return make_image("holiday photo.png", size=(40, 20))


@pytest.fixture
def outputs() -> OutputSet:
    return OutputSet([OutputSpec(640, 480, "jpeg"), OutputSpec(128, 128, "png")])


# ============================================================================
# VALIDATION
# ============================================================================


def test_build_request_requires_source(outputs):
    with pytest.raises(ValidationError, match="upload a file"):
        build_request(None, outputs, True, "cover")


def test_build_request_requires_outputs(source):
    empty = OutputSet([])
    with pytest.raises(ValidationError, match="at least one output"):
        build_request(source, empty, True, "cover")


def test_validation_error_sends_nothing(outputs):
    recorder = Recorder()
    with pytest.raises(ValidationError):
        request_resize(None, outputs, True, "cover", url=URL, client=_client(recorder))
    assert recorder.requests == []


# ============================================================================
# REQUEST FIELDS
# ============================================================================


def test_build_request_form_with_aspect(source, outputs):
    request = build_request(source, outputs, True, "contain")
    assert json.loads(request.form["outputs"]) == [
        {"width": 640, "height": 480, "format": "jpeg"},
        {"width": 128, "height": 128, "format": "png"},
    ]
    assert request.form["maintainAspect"] == "true"
    assert request.form["fit"] == "contain"
    assert request.headers == {}


def test_build_request_omits_fit_without_aspect(source, outputs):
    request = build_request(source, outputs, False, "cover")
    assert request.form["maintainAspect"] == "false"
    assert "fit" not in request.form


def test_build_request_sends_raw_output_values(source):
    outputs = OutputSet([OutputSpec(0, 9000, "webp")])
    request = build_request(source, outputs, True, "cover")
    assert json.loads(request.form["outputs"]) == [{"width": 0, "height": 9000, "format": "webp"}]


def test_bearer_token_header(source, outputs):
    request = build_request(source, outputs, True, "cover", token="abc.def")
    assert request.headers == {"Authorization": "Bearer abc.def"}


def test_send_request_posts_multipart(source, outputs):
    recorder = Recorder()

    send_request(build_request(source, outputs, True, "cover", token="tok"), url=URL, client=_client(recorder))

    sent = recorder.requests[-1]
    assert sent.method == "POST"
    assert str(sent.url) == URL
    assert sent.headers["authorization"] == "Bearer tok"
    assert sent.headers["content-type"].startswith("multipart/form-data")
    body = recorder.body
    assert b'name="logo"; filename="holiday photo.png"' in body
    assert b"Content-Type: image/png" in body
    assert source.read_bytes() in body
    assert b'name="maintainAspect"\r\n\r\ntrue' in body
    assert b'name="fit"\r\n\r\ncover' in body
    assert json.dumps(outputs.to_payload()).encode() in body


def test_send_request_without_aspect_has_no_fit_field(source, outputs):
    recorder = Recorder()
    send_request(build_request(source, outputs, False, "cover"), url=URL, client=_client(recorder))
    assert b'name="fit"' not in recorder.body
    assert "authorization" not in recorder.requests[-1].headers


def test_send_request_missing_source_file(tmp_path, outputs):
    request = build_request(tmp_path / "gone.png", outputs, True, "cover")
    with pytest.raises(ImageLoadError):
        send_request(request, url=URL, client=_client(Recorder()))


# ============================================================================
# RESPONSES
# ============================================================================


def test_single_image_response_named_after_source(source, outputs):
    recorder = Recorder(httpx.Response(200, content=b"JPEG", headers={"content-type": "image/jpeg"}))

    result = request_resize(source, outputs, True, "cover", url=URL, client=_client(recorder))

    assert result.content == b"JPEG"
    assert result.filename == "holiday photo_640x480.jpeg"
    assert not result.is_archive


def test_zip_response_without_disposition(source, outputs):
    recorder = Recorder(httpx.Response(200, content=b"PK\x03\x04", headers={"content-type": "application/zip"}))

    result = request_resize(source, outputs, True, "cover", url=URL, client=_client(recorder))

    assert result.filename == "resized.zip"
    assert result.is_archive


def test_content_disposition_wins(source, outputs):
    recorder = Recorder(httpx.Response(
        200,
        content=b"PK",
        headers={
            "content-type": "application/zip",
            "content-disposition": 'attachment; filename="holiday_outputs.zip"',
        },
    ))

    result = request_resize(source, outputs, True, "cover", url=URL, client=_client(recorder))

    assert result.filename == "holiday_outputs.zip"


@pytest.mark.parametrize(
    "disposition, expected",
    [
        ('attachment; filename="a.png"', "a.png"),
        ("attachment; filename=b.webp", "b.webp"),
        ("attachment; FILENAME=c.jpeg; size=10", "c.jpeg"),
        ("inline", "pic_640x480.jpeg"),
        ("", "pic_640x480.jpeg"),
    ],
)
def test_download_filename(disposition, expected):
    outputs = [{"width": 640, "height": 480, "format": "jpeg"}]
    assert download_filename("image/jpeg", disposition, Path("/tmp/pic.png"), outputs) == expected


def test_download_filename_without_source_name():
    outputs = [{"width": 1, "height": 2, "format": "png"}]
    assert download_filename("image/png", "", Path(""), outputs) == "image_1x2.png"


def test_error_response_carries_server_message(source, outputs):
    recorder = Recorder(httpx.Response(401, text="Invalid token"))

    with pytest.raises(TransportError) as excinfo:
        request_resize(source, outputs, True, "cover", url=URL, client=_client(recorder))

    assert excinfo.value.message == "Invalid token"
    assert excinfo.value.status_code == 401


def test_error_response_without_body_uses_generic_message(source, outputs):
    recorder = Recorder(httpx.Response(500, content=b""))

    with pytest.raises(TransportError) as excinfo:
        request_resize(source, outputs, True, "cover", url=URL, client=_client(recorder))

    assert str(excinfo.value) == "Failed to resize"
    assert excinfo.value.status_code == 500


def test_network_failure_becomes_transport_error(source, outputs):
    recorder = Recorder(exc=httpx.ConnectError("connection refused"))

    with pytest.raises(TransportError) as excinfo:
        request_resize(source, outputs, True, "cover", url=URL, client=_client(recorder))

    assert "connection refused" in str(excinfo.value)
    assert excinfo.value.status_code is None


# ============================================================================
# SAVING
# ============================================================================


def test_save_result_never_overwrites(tmp_path):
    result = ResizeResult(b"data", "image/png", "out_10x10.png")

    first = save_result(result, tmp_path / "downloads")
    second = save_result(result, tmp_path / "downloads")

    assert first.name == "out_10x10.png"
    assert second.name == "out_10x10-01.png"
    assert second.read_bytes() == b"data"


def test_save_result_ignores_directory_parts_in_name(tmp_path):
    result = ResizeResult(b"zip", "application/zip", "../../evil.zip")
    path = save_result(result, tmp_path)
    assert path == tmp_path / "evil.zip"
