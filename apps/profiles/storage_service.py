"""
Supabase Storage Service for Profile Assets

Provides Supabase Storage operations for wizard uploads:
- Profile pictures at {user_id}/avatar.{ext}
- CA certificates at {user_id}/{certificate_type}.{ext}
- Deletion and public URL helpers
"""
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse
from uuid import UUID

import httpx
from django.conf import settings

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 5 * 1024 * 1024  # 5MB per file

DEFAULT_CERTIFICATE_TYPE = 'membership'


@dataclass(frozen=True)
class FileRules:
    max_size: int
    allowed_types: tuple[str, ...]
    allowed_extensions: tuple[str, ...]


PROFILE_PICTURE_RULES = FileRules(
    max_size=MAX_FILE_SIZE,
    allowed_types=('image/jpeg', 'image/jpg', 'image/png', 'image/webp'),
    allowed_extensions=('.jpg', '.jpeg', '.png', '.webp'),
)

CERTIFICATE_RULES = FileRules(
    max_size=MAX_FILE_SIZE,
    allowed_types=('application/pdf', 'image/jpeg', 'image/jpg', 'image/png'),
    allowed_extensions=('.pdf', '.jpg', '.jpeg', '.png'),
)


@dataclass
class UploadResult:
    """Result of file upload operation."""
    success: bool
    url: Optional[str] = None
    path: Optional[str] = None
    error: Optional[str] = None


def _supabase_url() -> str:
    return settings.SUPABASE_URL


def _profile_pictures_bucket() -> str:
    return settings.SUPABASE_PROFILE_PICTURES_BUCKET


def _certificates_bucket() -> str:
    return settings.SUPABASE_CERTIFICATES_BUCKET


def _get_storage_headers() -> dict:
    """Get headers for Supabase Storage API requests."""
    service_key = settings.SUPABASE_SERVICE_ROLE_KEY
    return {
        'Authorization': f'Bearer {service_key}',
        'apikey': service_key,
    }


def _file_extension(file_name: str) -> str:
    return file_name.rsplit('.', 1)[-1].lower() if file_name else ''


def validate_file(content_type: str, size: int, file_name: str, rules: FileRules) -> Optional[str]:
    """
    Validate file before upload.

    Returns error message if validation fails, None if valid.
    """
    if size > rules.max_size:
        return f'File size must be less than {rules.max_size // (1024 * 1024)}MB'

    if content_type not in rules.allowed_types:
        return f'File type not supported. Allowed types: {", ".join(rules.allowed_types)}'

    if f'.{_file_extension(file_name)}' not in rules.allowed_extensions:
        return f'File extension not supported. Allowed extensions: {", ".join(rules.allowed_extensions)}'

    return None


def validate_profile_picture(content_type: str, size: int, file_name: str) -> Optional[str]:
    return validate_file(content_type, size, file_name, PROFILE_PICTURE_RULES)


def validate_certificate(content_type: str, size: int, file_name: str) -> Optional[str]:
    return validate_file(content_type, size, file_name, CERTIFICATE_RULES)


def get_public_url(bucket: str, storage_path: str) -> str:
    return f'{_supabase_url()}/storage/v1/object/public/{bucket}/{storage_path}'


def get_profile_picture_url(user_id: UUID, extension: str) -> str:
    return get_public_url(_profile_pictures_bucket(), f'{user_id}/avatar.{extension}')


def get_certificate_url(
    user_id: UUID,
    extension: str,
    certificate_type: str = DEFAULT_CERTIFICATE_TYPE,
) -> str:
    return get_public_url(_certificates_bucket(), f'{user_id}/{certificate_type}.{extension}')


def extract_file_info_from_url(url: str) -> Optional[dict]:
    """
    Split a storage URL into its file name and lowercase extension.

    Returns None for anything that is not an absolute URL.
    """
    parsed = urlparse(url or '')
    if not parsed.scheme or not parsed.netloc:
        return None

    file_name = parsed.path.split('/')[-1]
    extension = file_name.rsplit('.', 1)[-1].lower() if '.' in file_name else ''
    return {'file_name': file_name, 'extension': extension}


def _remove_objects(bucket: str, storage_paths: list[str]) -> bool:
    """Delete objects by path. Missing objects are not an error."""
    delete_url = f'{_supabase_url()}/storage/v1/object/{bucket}'

    with httpx.Client(timeout=30.0) as client:
        response = client.request(
            'DELETE',
            delete_url,
            headers=_get_storage_headers(),
            json={'prefixes': storage_paths},
        )

    if not response.is_success and response.status_code != 404:
        logger.error(f'Failed to delete {storage_paths} from {bucket}: {response.text}')
        return False
    return True


def _upload_object(bucket: str, storage_path: str, file_content: bytes, content_type: str) -> bool:
    upload_url = f'{_supabase_url()}/storage/v1/object/{bucket}/{storage_path}'

    headers = _get_storage_headers()
    headers['Content-Type'] = content_type
    headers['x-upsert'] = 'true'

    with httpx.Client(timeout=60.0) as client:
        response = client.post(
            upload_url,
            content=file_content,
            headers=headers,
        )

    if not response.is_success:
        logger.error(f'Supabase storage upload failed: {response.text}')
        return False
    return True


def upload_profile_picture(
    user_id: UUID,
    file_content: bytes,
    file_name: str,
    content_type: str,
) -> UploadResult:
    """
    Upload a profile picture, replacing any previous one with the same extension.

    Args:
        user_id: Owner of the picture
        file_content: File bytes
        file_name: Original file name (its extension picks the stored name)
        content_type: MIME type

    Returns:
        UploadResult with the public URL or an error
    """
    validation_error = validate_profile_picture(content_type, len(file_content), file_name)
    if validation_error:
        return UploadResult(success=False, error=validation_error)

    bucket = _profile_pictures_bucket()
    storage_path = f'{user_id}/avatar.{_file_extension(file_name)}'

    try:
        if not _remove_objects(bucket, [storage_path]):
            # x-upsert still overwrites the object
            logger.warning(f'Could not remove previous profile picture for {user_id}')

        if not _upload_object(bucket, storage_path, file_content, content_type):
            return UploadResult(success=False, error='Failed to upload profile picture')

    except httpx.RequestError as e:
        logger.error(f'Storage request error: {e}')
        return UploadResult(success=False, error='Failed to upload profile picture')

    logger.info(f'Uploaded profile picture for {user_id}')
    return UploadResult(
        success=True,
        url=get_public_url(bucket, storage_path),
        path=storage_path,
    )


def upload_certificate(
    user_id: UUID,
    file_content: bytes,
    file_name: str,
    content_type: str,
    certificate_type: str = DEFAULT_CERTIFICATE_TYPE,
) -> UploadResult:
    """
    Upload a CA certificate (PDF or image) with upsert semantics.

    Returns:
        UploadResult with the URL or an error
    """
    validation_error = validate_certificate(content_type, len(file_content), file_name)
    if validation_error:
        return UploadResult(success=False, error=validation_error)

    bucket = _certificates_bucket()
    storage_path = f'{user_id}/{certificate_type}.{_file_extension(file_name)}'

    try:
        if not _upload_object(bucket, storage_path, file_content, content_type):
            return UploadResult(success=False, error='Failed to upload certificate')

    except httpx.RequestError as e:
        logger.error(f'Storage request error: {e}')
        return UploadResult(success=False, error='Failed to upload certificate')

    logger.info(f'Uploaded {certificate_type} certificate for {user_id}')
    return UploadResult(
        success=True,
        url=get_public_url(bucket, storage_path),
        path=storage_path,
    )


def delete_profile_picture(user_id: UUID) -> bool:
    """Remove the avatar under every allowed extension."""
    paths = [
        f'{user_id}/avatar.{extension.lstrip(".")}'
        for extension in PROFILE_PICTURE_RULES.allowed_extensions
    ]
    try:
        return _remove_objects(_profile_pictures_bucket(), paths)
    except httpx.RequestError as e:
        logger.error(f'Storage request error: {e}')
        return False


def delete_certificate(user_id: UUID, certificate_type: str = DEFAULT_CERTIFICATE_TYPE) -> bool:
    """Remove a certificate under every allowed extension."""
    paths = [
        f'{user_id}/{certificate_type}.{extension.lstrip(".")}'
        for extension in CERTIFICATE_RULES.allowed_extensions
    ]
    try:
        return _remove_objects(_certificates_bucket(), paths)
    except httpx.RequestError as e:
        logger.error(f'Storage request error: {e}')
        return False
