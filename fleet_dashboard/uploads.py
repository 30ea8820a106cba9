"""Attachment validation and concurrent uploads (bank slips, receipts)."""
import base64
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from urllib.parse import unquote, urlparse

from fleet_dashboard.errors import DashboardError
from fleet_dashboard.theme import MAX_UPLOAD_MB

log = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"pdf", "jpg", "jpeg", "png"}
MAX_UPLOAD_BYTES = MAX_UPLOAD_MB * 1024 * 1024

CONTENT_TYPES = {
    "pdf": "application/pdf",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
}


def file_extension(filename):
    return os.path.splitext(filename or "")[1].lstrip(".").lower()


def validate_attachment(filename, data):
    """Return (ok, message).  The first violation rejects the whole file."""
    ext = file_extension(filename)
    if ext not in ALLOWED_EXTENSIONS:
        return False, f"{filename}: please upload a PDF or image file (JPG, PNG)."
    if len(data) > MAX_UPLOAD_BYTES:
        return False, f"{filename}: please upload a file smaller than {MAX_UPLOAD_MB}MB."
    if not data:
        return False, f"{filename}: file is empty."
    return True, f"{len(data) / 1024:,.0f} KB"


def decode_upload(contents):
    """Decode a dcc.Upload data URL into raw bytes."""
    content_type, content_string = contents.split(",", 1)
    return base64.b64decode(content_string)


def storage_path(prefix, filename, seq=0):
    """`<prefix>/<prefix>-<millis>-<seq>.<ext>`, unique per upload."""
    ext = file_extension(filename) or "bin"
    stamp = int(time.time() * 1000)
    return f"{prefix}/{prefix}-{stamp}-{seq}.{ext}"


def storage_key(url, bucket):
    """Object path of a public storage URL inside `bucket`, or None."""
    path = unquote(urlparse(url or "").path)
    marker = f"/{bucket}/"
    if marker not in path:
        return None
    return path.split(marker, 1)[1] or None


def upload_many(store, bucket, prefix, files):
    """Upload `files` ([(filename, bytes)]) concurrently.

    Returns (succeeded, failed): succeeded is [{"url", "filename", "size",
    "index"}] in input order, `index` being the file's position in `files`;
    failed is [(filename, error)].  One failed upload does not stop the others.
    """
    if not files:
        return [], []

    def _one(seq, filename, data):
        path = storage_path(prefix, filename, seq)
        content_type = CONTENT_TYPES.get(file_extension(filename), "application/octet-stream")
        return store.upload_file(bucket, path, data, content_type)

    with ThreadPoolExecutor(max_workers=min(8, len(files))) as pool:
        futures = [(filename, data, pool.submit(_one, seq, filename, data))
                   for seq, (filename, data) in enumerate(files)]

    succeeded, failed = [], []
    for index, (filename, data, fut) in enumerate(futures):
        try:
            url = fut.result()
        except DashboardError as e:
            log.warning("Upload of %s to %s failed: %s", filename, bucket, e)
            failed.append((filename, e))
            continue
        succeeded.append({"url": url, "filename": filename, "size": len(data), "index": index})
    return succeeded, failed
