"""
Spec Diff Flask Routes
======================
API endpoints for missing-line detection, structural merge, document
upload and download.
"""

import io
import time
from functools import wraps
from flask import Blueprint, request, jsonify, session, g, send_file
from werkzeug.exceptions import HTTPException

from config_logging import (
    get_logger,
    get_config,
    verify_csrf_token,
    SpecDiffError,
    ValidationError,
    FileError,
)

from .differ import DiffEngine, split_lines
from .merger import StructuralMerger
from .extraction import read_document
from .export import build_download, select_download_content

logger = get_logger('spec_diff')

# Create blueprint
sd_blueprint = Blueprint('spec_diff', __name__)


# =============================================================================
# STANDARDIZED ERROR HANDLING DECORATOR
# =============================================================================

def _error_response(code: str, message: str, status: int, details: dict = None):
    error = {
        'code': code,
        'message': message,
        'correlation_id': getattr(g, 'correlation_id', 'unknown')
    }
    if details:
        error['details'] = details
    return jsonify({'success': False, 'error': error}), status


def handle_sd_errors(f):
    """
    Decorator for standardized API error handling in Spec Diff routes.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        start_time = time.time()
        try:
            result = f(*args, **kwargs)

            elapsed = time.time() - start_time
            if elapsed > 5.0:
                logger.warning(f"Slow spec diff API call: {f.__name__} took {elapsed:.1f}s")

            return result

        except SpecDiffError as e:
            if e.status_code >= 500:
                logger.error(f"{e.code} in {f.__name__}: {e}")
            else:
                logger.warning(f"{e.code} in {f.__name__}: {e}")
            return _error_response(e.code, e.message, e.status_code, e.details)
        except HTTPException:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error in {f.__name__}: {e}")
            return _error_response('INTERNAL_ERROR', 'An unexpected error occurred', 500)

    return decorated


# =============================================================================
# CSRF ENFORCEMENT FOR WRITE OPERATIONS
# =============================================================================

@sd_blueprint.before_request
def enforce_csrf_on_writes():
    """
    Enforce CSRF protection on all non-GET requests.
    """
    if request.method in ('GET', 'HEAD', 'OPTIONS'):
        return None

    if not get_config().csrf_enabled:
        return None

    token = request.headers.get('X-CSRF-Token') or request.form.get('csrf_token')
    expected = session.get('csrf_token')

    if not token or not expected or not verify_csrf_token(token, expected):
        logger.warning("CSRF validation failed on spec_diff",
                       path=request.path, method=request.method)
        return _error_response('CSRF_ERROR', 'Invalid or missing CSRF token', 403)

    return None


# =============================================================================
# REQUEST HELPERS
# =============================================================================

def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _require_text(data: dict, key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise ValidationError(f"'{key}' is required and must be a string", field=key)
    return value


def _selected_ids(data: dict) -> list:
    ids = data.get('selected_ids', [])
    if not isinstance(ids, list) or any(
            isinstance(i, bool) or not isinstance(i, int) for i in ids):
        raise ValidationError("'selected_ids' must be a list of integers", field='selected_ids')
    return ids


def _merger() -> StructuralMerger:
    config = get_config()
    return StructuralMerger(heading_open=config.heading_open,
                            heading_close=config.heading_close)


# =============================================================================
# API ENDPOINTS
# =============================================================================

@sd_blueprint.route('/upload', methods=['POST'])
@handle_sd_errors
def upload_document():
    """
    Decode an uploaded .txt or .md document.

    Request: multipart form with a 'file' field.

    Returns:
        { success: true, filename, text, line_count }
    """
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        raise FileError("No file provided")

    text = read_document(upload.filename, upload.read(), get_config().allowed_extensions)

    return jsonify({
        'success': True,
        'filename': upload.filename,
        'text': text,
        'line_count': len(split_lines(text))
    })


@sd_blueprint.route('/diff', methods=['POST'])
@handle_sd_errors
def compute_diff():
    """
    Detect base lines missing from the modified document.

    Request body:
        { base_text: str, modified_text: str }

    Returns:
        {
            success: true,
            diff: {
                candidates: [ { id, text } ],
                stats: { shared, added, removed }
            }
        }
    """
    data = _json_body()
    base_text = _require_text(data, 'base_text')
    modified_text = _require_text(data, 'modified_text')

    with logger.log_operation('compute_diff'):
        result = DiffEngine().compute_text(base_text, modified_text)

    return jsonify({
        'success': True,
        'diff': result.to_dict()
    })


@sd_blueprint.route('/merge', methods=['POST'])
@handle_sd_errors
def merge_selected():
    """
    Restore selected missing lines into the modified document.

    Request body:
        { base_text: str, modified_text: str, selected_ids: [int] }

    Returns:
        {
            success: true,
            merge: { lines, text, inserted, orphans, inserted_count }
        }

    An empty selection answers 400 with code NOTHING_TO_MERGE.
    """
    data = _json_body()
    base_text = _require_text(data, 'base_text')
    modified_text = _require_text(data, 'modified_text')
    selected_ids = _selected_ids(data)

    result = _merger().merge_text(base_text, modified_text, selected_ids)

    return jsonify({
        'success': True,
        'merge': result.to_dict()
    })


@sd_blueprint.route('/download', methods=['POST'])
@handle_sd_errors
def download_document():
    """
    Return the final document as a file attachment.

    Request body:
        { merged_text?: str, modified_text?: str, file_name?: str, extension?: str }

    The merged text is used when present, otherwise the modified text.
    """
    data = _json_body()
    merged_text = data.get('merged_text')
    modified_text = data.get('modified_text')
    for key, value in (('merged_text', merged_text), ('modified_text', modified_text)):
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"'{key}' must be a string", field=key)

    if merged_text is None and modified_text is None:
        raise ValidationError("Nothing to download: provide merged_text or modified_text")

    file_name = data.get('file_name')
    if file_name is not None and not isinstance(file_name, str):
        raise ValidationError("'file_name' must be a string", field='file_name')

    artifact = build_download(
        select_download_content(merged_text, modified_text),
        file_name=file_name,
        extension=data.get('extension') or 'txt',
        has_merged=bool(merged_text),
        allowed_extensions=get_config().download_extensions
    )

    logger.info(f"Download prepared: {artifact.filename} ({len(artifact.data)} bytes)")

    return send_file(
        io.BytesIO(artifact.data),
        mimetype=artifact.mimetype,
        as_attachment=True,
        download_name=artifact.filename
    )


@sd_blueprint.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    config = get_config()
    return jsonify({
        'success': True,
        'module': 'spec_diff',
        'version': '1.0.0',
        'status': 'healthy',
        'heading_markers': [config.heading_open, config.heading_close],
        'upload_extensions': list(config.allowed_extensions),
        'download_extensions': list(config.download_extensions)
    })
