"""
Client for the external resize service.

The service takes the source image plus the JSON-encoded output list as a
multipart form and answers with either a single encoded image or a zip
archive holding one file per output.  This module builds that request,
sends it with httpx, and names the download the way the service intends
(``Content-Disposition``) or, failing that, after the source file.

Request format::

    logo            <source bytes>  (filename, content type)
    outputs         [{"width": 512, "height": 512, "format": "png"}, ...]
    maintainAspect  "true" | "false"
    fit             "cover" | "contain"   (only when maintainAspect is "true")

This module is Qt-free; the window runs ``request_resize`` on a worker
thread.
"""

import json
import logging
import mimetypes
import re
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from resizeit.config import (
    DEFAULT_SERVICE_URL, FALLBACK_BASE_NAME, FALLBACK_ZIP_NAME,
    GENERIC_ERROR_MESSAGE, IMAGE_FIELD, REQUEST_TIMEOUT,
)
from resizeit.errors import ImageLoadError, TransportError, ValidationError
from resizeit.image_io import unique_path
from resizeit.output_set import OutputSet

logger = logging.getLogger(__name__)

_FILENAME_RE = re.compile(r"filename=([^;]+)", re.IGNORECASE)


# =============================================================================
# Data classes
# =============================================================================
@dataclass
class ResizeRequest:
    """Everything needed to POST one resize job."""
    source_path: Path
    outputs: list[dict]
    form: dict[str, str]
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class ResizeResult:
    """A successful service response, ready to be written to disk."""
    content: bytes
    content_type: str
    filename: str

    @property
    def is_archive(self) -> bool:
        return "application/zip" in self.content_type


# =============================================================================
# Request building
# =============================================================================
def build_request(
    source_path: Path | None,
    outputs: OutputSet,
    maintain_aspect: bool,
    fit: str,
    token: str = "",
) -> ResizeRequest:
    """Validate the form and assemble the multipart fields and headers.

    Raises ValidationError when no source is selected or there are no
    outputs; nothing is sent in that case.
    """
    if source_path is None:
        raise ValidationError("Please upload a file first")
    if outputs.is_empty:
        raise ValidationError("Please add at least one output")

    payload = outputs.to_payload()
    form = {
        "outputs": json.dumps(payload),
        "maintainAspect": "true" if maintain_aspect else "false",
    }
    if maintain_aspect:
        form["fit"] = fit

    headers = {}
    if token:
        headers["Authorization"] = f"Bearer {token}"

    return ResizeRequest(Path(source_path), payload, form, headers)


# =============================================================================
# Response handling
# =============================================================================
def download_filename(content_type: str, disposition: str, source_path: Path, outputs: list[dict]) -> str:
    """Pick the save name for a response.

    ``filename=`` from Content-Disposition wins (quotes stripped).  Without
    it a zip is called ``resized.zip`` and a single image
    ``<source stem>_<w>x<h>.<format>`` after the first output.
    """
    match = _FILENAME_RE.search(disposition or "")
    if match:
        name = match.group(1).replace('"', "").strip()
        if name:
            return name
    if "application/zip" in (content_type or ""):
        return FALLBACK_ZIP_NAME
    base = source_path.stem if source_path.name else FALLBACK_BASE_NAME
    first = outputs[0]
    return f"{base or FALLBACK_BASE_NAME}_{first['width']}x{first['height']}.{first['format']}"


def _error_message(response: httpx.Response) -> str:
    try:
        text = response.text
    except (UnicodeDecodeError, httpx.HTTPError):
        return GENERIC_ERROR_MESSAGE
    return text.strip() or GENERIC_ERROR_MESSAGE


def send_request(
    request: ResizeRequest,
    url: str = DEFAULT_SERVICE_URL,
    timeout: float = REQUEST_TIMEOUT,
    client: httpx.Client | None = None,
) -> ResizeResult:
    """POST *request* and return the decoded result.

    Raises TransportError on network failure or a non-success status, and
    ImageLoadError if the source file can no longer be read.
    """
    path = request.source_path
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise ImageLoadError(f"Could not read {path.name}: {exc}") from exc

    mime = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    files = {IMAGE_FIELD: (path.name, data, mime)}

    logger.info("POST %s: %s with %d output(s)", url, path.name, len(request.outputs))
    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=timeout)
    try:
        response = client.post(url, data=request.form, files=files, headers=request.headers)
    except httpx.HTTPError as exc:
        logger.error("Resize request to %s failed: %s", url, exc)
        raise TransportError(str(exc) or GENERIC_ERROR_MESSAGE) from exc
    finally:
        if owns_client:
            client.close()

    if not response.is_success:
        message = _error_message(response)
        logger.warning("Resize service answered %d: %s", response.status_code, message)
        raise TransportError(message, status_code=response.status_code)

    content_type = response.headers.get("content-type", "")
    filename = download_filename(
        content_type, response.headers.get("content-disposition", ""), path, request.outputs,
    )
    logger.info("Received %s (%d bytes, %s)", filename, len(response.content), content_type)
    return ResizeResult(response.content, content_type, filename)


def request_resize(
    source_path: Path | None,
    outputs: OutputSet,
    maintain_aspect: bool,
    fit: str,
    token: str = "",
    url: str = DEFAULT_SERVICE_URL,
    timeout: float = REQUEST_TIMEOUT,
    client: httpx.Client | None = None,
) -> ResizeResult:
    """Build and send a resize request in one call."""
    request = build_request(source_path, outputs, maintain_aspect, fit, token)
    return send_request(request, url=url, timeout=timeout, client=client)


def save_result(result: ResizeResult, directory: Path) -> Path:
    """Write *result* into *directory* without overwriting existing files."""
    directory.mkdir(parents=True, exist_ok=True)
    out_path = unique_path(directory / Path(result.filename).name)
    out_path.write_bytes(result.content)
    logger.info("Saved %s", out_path)
    return out_path
