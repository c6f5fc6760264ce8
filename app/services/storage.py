# File: app/services/storage.py
import logging
import requests, uuid
from app.core.config import settings

SUPABASE_URL = settings.supabase_url
SUPABASE_SERVICE_ROLE = settings.supabase_service_role
BUCKET = settings.supabase_bucket

ALLOWED_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/plain",
}


class StorageError(Exception):
    pass


def _headers(content_type: str | None = None) -> dict:
    h = {"Authorization": f"Bearer {SUPABASE_SERVICE_ROLE}"}
    if content_type:
        h["Content-Type"] = content_type
    return h


def make_object_key(filename: str) -> str:
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    return f"complaints/{uuid.uuid4().hex}.{ext}"


def upload(data: bytes, content_type: str, filename: str) -> dict:
    """Uploads to Supabase Storage via REST; returns the public URL and object key."""
    if not (SUPABASE_URL and SUPABASE_SERVICE_ROLE):
        raise StorageError("File storage is not configured")
    key = make_object_key(filename)
    try:
        r = requests.post(
            f"{SUPABASE_URL}/storage/v1/object/{BUCKET}/{key}",
            headers={**_headers(content_type), "x-upsert": "true"},
            data=data,
            timeout=30,
        )
        r.raise_for_status()
    except requests.RequestException as e:
        raise StorageError(f"Error uploading file: {e}") from e
    return {
        "url": f"{SUPABASE_URL}/storage/v1/object/public/{BUCKET}/{key}",
        "public_id": key,
    }


def delete(public_id: str) -> bool:
    if not (SUPABASE_URL and SUPABASE_SERVICE_ROLE):
        return False
    try:
        r = requests.delete(
            f"{SUPABASE_URL}/storage/v1/object/{BUCKET}",
            headers=_headers("application/json"),
            json={"prefixes": [public_id]},
            timeout=30,
        )
        r.raise_for_status()
        return True
    except requests.RequestException as e:
        logging.error(f"Failed to delete stored object {public_id}: {e}", exc_info=True)
        return False
