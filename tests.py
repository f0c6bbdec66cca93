#!/usr/bin/env python3
"""
Spec Diff Manager Test Suite v1.0.0
===================================
Validates configuration, security controls and the API endpoints.

Run with: python -m pytest tests.py -v
Or standalone: python tests.py
"""

import os
import sys
import json
import unittest
from pathlib import Path
from io import BytesIO
from unittest.mock import patch

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

os.environ.setdefault('SDM_LOG_TO_FILE', 'false')

from app import app
from config_logging import (
    AppConfig, get_config, reset_config, VERSION,
    SpecDiffError, ValidationError, FileError, ProcessingError, NothingToMergeError,
    handle_errors, sanitize_filename, validate_file_extension,
    generate_csrf_token, verify_csrf_token,
)

BASE_TEXT = "【A】\nx\ny\n【B】\nz"
MODIFIED_TEXT = "【A】\nx\n【B】\nz"


class APITestCase(unittest.TestCase):
    """Shared client setup with CSRF disabled."""

    csrf_enabled = False

    def setUp(self):
        """Set up test client."""
        app.config['TESTING'] = True
        self.config = get_config()
        self.config.csrf_enabled = self.csrf_enabled
        self.client = app.test_client()

    def tearDown(self):
        """Drop per-test configuration changes."""
        reset_config()

    def post_json(self, path, payload, headers=None):
        return self.client.post(
            f'/api/spec-diff{path}',
            data=json.dumps(payload),
            content_type='application/json',
            headers=headers or {}
        )


class TestSecurityControls(APITestCase):
    """Test security-related functionality."""

    csrf_enabled = True

    def test_csrf_token_endpoint(self):
        """
        CSRF token endpoint returns a usable token.

        Expects: 200 response with csrf_token field (min 32 chars).
        """
        response = self.client.get('/api/csrf-token')
        self.assertEqual(response.status_code, 200)
        data = json.loads(response.data)
        self.assertGreaterEqual(len(data['csrf_token']), 32)

    def test_write_without_token_rejected(self):
        """POST without a CSRF token is refused with 403."""
        response = self.post_json('/diff', {'base_text': 'a', 'modified_text': 'b'})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(json.loads(response.data)['error']['code'], 'CSRF_ERROR')

    def test_write_with_wrong_token_rejected(self):
        self.client.get('/api/csrf-token')
        response = self.post_json('/diff', {'base_text': 'a', 'modified_text': 'b'},
                                  headers={'X-CSRF-Token': 'not-the-token'})
        self.assertEqual(response.status_code, 403)

    def test_write_with_token_accepted(self):
        token = json.loads(self.client.get('/api/csrf-token').data)['csrf_token']
        response = self.post_json('/diff', {'base_text': 'a', 'modified_text': 'b'},
                                  headers={'X-CSRF-Token': token})
        self.assertEqual(response.status_code, 200)

    def test_security_headers_present(self):
        """
        Security headers are added to responses.

        Expects: X-Content-Type-Options, X-Frame-Options, Referrer-Policy present.
        """
        response = self.client.get('/api/health')
        self.assertEqual(response.headers['X-Content-Type-Options'], 'nosniff')
        self.assertEqual(response.headers['X-Frame-Options'], 'DENY')
        self.assertIn('Referrer-Policy', response.headers)

    def test_file_size_limit_configured(self):
        self.assertGreater(app.config['MAX_CONTENT_LENGTH'], 0)
        self.assertLessEqual(app.config['MAX_CONTENT_LENGTH'], 100 * 1024 * 1024)

    def test_csrf_helpers(self):
        token = generate_csrf_token()
        self.assertTrue(verify_csrf_token(token, token))
        self.assertFalse(verify_csrf_token(token, token + 'x'))


class TestDiffEndpoint(APITestCase):
    """Tests for POST /api/spec-diff/diff."""

    def test_diff_returns_candidates_and_stats(self):
        response = self.post_json('/diff', {'base_text': BASE_TEXT, 'modified_text': MODIFIED_TEXT})
        self.assertEqual(response.status_code, 200)
        data = json.loads(response.data)
        self.assertTrue(data['success'])
        self.assertEqual(data['diff']['candidates'], [{'id': 2, 'text': 'y'}])
        self.assertEqual(data['diff']['stats'], {'shared': 4, 'added': 0, 'removed': 1})

    def test_diff_missing_field(self):
        response = self.post_json('/diff', {'base_text': BASE_TEXT})
        self.assertEqual(response.status_code, 400)
        data = json.loads(response.data)
        self.assertEqual(data['error']['code'], 'VALIDATION_ERROR')
        self.assertIn('correlation_id', data['error'])

    def test_diff_invalid_json(self):
        response = self.client.post('/api/spec-diff/diff', data='{not json',
                                    content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_diff_empty_documents(self):
        response = self.post_json('/diff', {'base_text': '', 'modified_text': ''})
        data = json.loads(response.data)
        self.assertEqual(data['diff']['candidates'], [])
        self.assertEqual(data['diff']['stats']['removed'], 0)


class TestMergeEndpoint(APITestCase):
    """Tests for POST /api/spec-diff/merge."""

    def test_merge_restores_line_in_section(self):
        response = self.post_json('/merge', {
            'base_text': BASE_TEXT,
            'modified_text': MODIFIED_TEXT,
            'selected_ids': [2]
        })
        self.assertEqual(response.status_code, 200)
        merge = json.loads(response.data)['merge']
        self.assertEqual(merge['text'], BASE_TEXT)
        self.assertEqual(merge['inserted'], {'【A】': ['y']})
        self.assertEqual(merge['inserted_count'], 1)

    def test_merge_orphan_block(self):
        response = self.post_json('/merge', {
            'base_text': "note\n【A】\nx",
            'modified_text': "【A】\nx",
            'selected_ids': [0]
        })
        merge = json.loads(response.data)['merge']
        self.assertEqual(
            merge['lines'],
            ["【A】", "x", "", "---", "[Auto-Appended Missing Blocks]", "", "note"]
        )

    def test_merge_empty_selection_is_noop_signal(self):
        response = self.post_json('/merge', {
            'base_text': BASE_TEXT,
            'modified_text': MODIFIED_TEXT,
            'selected_ids': []
        })
        self.assertEqual(response.status_code, 400)
        data = json.loads(response.data)
        self.assertFalse(data['success'])
        self.assertEqual(data['error']['code'], 'NOTHING_TO_MERGE')
        self.assertNotIn('merge', data)

    def test_merge_rejects_non_integer_ids(self):
        response = self.post_json('/merge', {
            'base_text': BASE_TEXT,
            'modified_text': MODIFIED_TEXT,
            'selected_ids': ['2', True]
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(json.loads(response.data)['error']['code'], 'VALIDATION_ERROR')

    def test_merge_uses_configured_markers(self):
        with patch.object(self.config, 'heading_open', '['), \
                patch.object(self.config, 'heading_close', ']'):
            response = self.post_json('/merge', {
                'base_text': "[A]\nlost\n[B]",
                'modified_text': "[A]\n[B]",
                'selected_ids': [1]
            })
        merge = json.loads(response.data)['merge']
        self.assertEqual(merge['lines'], ["[A]", "lost", "[B]"])


class TestUploadEndpoint(APITestCase):
    """Tests for POST /api/spec-diff/upload."""

    def test_upload_text_file(self):
        response = self.client.post(
            '/api/spec-diff/upload',
            data={'file': (BytesIO(BASE_TEXT.encode('utf-8')), 'base.txt')},
            content_type='multipart/form-data'
        )
        self.assertEqual(response.status_code, 200)
        data = json.loads(response.data)
        self.assertEqual(data['text'], BASE_TEXT)
        self.assertEqual(data['line_count'], 5)
        self.assertEqual(data['filename'], 'base.txt')

    def test_upload_rejects_unsupported_type(self):
        response = self.client.post(
            '/api/spec-diff/upload',
            data={'file': (BytesIO(b'PK'), 'base.docx')},
            content_type='multipart/form-data'
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(json.loads(response.data)['error']['code'], 'FILE_ERROR')

    def test_upload_without_file(self):
        response = self.client.post('/api/spec-diff/upload', data={},
                                    content_type='multipart/form-data')
        self.assertEqual(response.status_code, 400)

    def test_upload_over_limit_reports_configured_size(self):
        limit = app.config['MAX_CONTENT_LENGTH']
        app.config['MAX_CONTENT_LENGTH'] = 100
        try:
            response = self.client.post(
                '/api/spec-diff/upload',
                data={'file': (BytesIO(b'x' * 500), 'base.txt')},
                content_type='multipart/form-data'
            )
        finally:
            app.config['MAX_CONTENT_LENGTH'] = limit
        self.assertEqual(response.status_code, 413)
        error = json.loads(response.data)['error']
        self.assertEqual(error['code'], 'FILE_TOO_LARGE')
        self.assertIn('100 bytes', error['message'])


class TestDownloadEndpoint(APITestCase):
    """Tests for POST /api/spec-diff/download."""

    def test_download_merged_text(self):
        response = self.post_json('/download', {
            'merged_text': 'final',
            'modified_text': 'draft',
            'file_name': 'spec_final',
            'extension': 'md'
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, b'final')
        self.assertEqual(response.mimetype, 'text/markdown')
        self.assertIn('spec_final.md', response.headers['Content-Disposition'])

    def test_download_falls_back_to_modified(self):
        response = self.post_json('/download', {'modified_text': 'draft'})
        self.assertEqual(response.data, b'draft')
        self.assertIn("filename*=UTF-8''", response.headers['Content-Disposition'])

    def test_download_rejects_extension(self):
        response = self.post_json('/download', {'modified_text': 'x', 'extension': 'exe'})
        self.assertEqual(response.status_code, 400)

    def test_download_requires_content(self):
        response = self.post_json('/download', {'file_name': 'x'})
        self.assertEqual(response.status_code, 400)


class TestHealth(APITestCase):
    """Health endpoints."""

    def test_app_health(self):
        data = json.loads(self.client.get('/api/health').data)
        self.assertEqual(data['status'], 'healthy')
        self.assertEqual(data['version'], VERSION)

    def test_module_health(self):
        data = json.loads(self.client.get('/api/spec-diff/health').data)
        self.assertEqual(data['module'], 'spec_diff')
        self.assertEqual(data['heading_markers'], ['【', '】'])


class TestConfigDefaults(unittest.TestCase):
    """Configuration loading and validation."""

    def test_defaults_are_secure(self):
        config = AppConfig(log_to_file=False)
        self.assertEqual(config.host, '127.0.0.1')
        self.assertFalse(config.debug)
        self.assertTrue(config.csrf_enabled)
        self.assertGreaterEqual(len(config.secret_key), 32)
        self.assertEqual(config.allowed_extensions, ('.txt', '.md'))

    def test_from_env(self):
        env = {
            'SDM_PORT': '6000',
            'SDM_CSRF': 'false',
            'SDM_HEADING_OPEN': '[',
            'SDM_HEADING_CLOSE': ']',
            'SDM_LOG_TO_FILE': 'false',
        }
        with patch.dict(os.environ, env):
            config = AppConfig.from_env()
        self.assertEqual(config.port, 6000)
        self.assertFalse(config.csrf_enabled)
        self.assertEqual((config.heading_open, config.heading_close), ('[', ']'))

    def test_production_forces_debug_off(self):
        with patch.dict(os.environ, {'SDM_ENV': 'production'}):
            config = AppConfig(debug=True, log_to_file=False)
        self.assertFalse(config.debug)
        self.assertEqual(config.log_level, 'WARNING')

    def test_validate_reports_problems(self):
        config = AppConfig(secret_key='short', heading_open='', log_to_file=False)
        is_valid, errors = config.validate()
        self.assertFalse(is_valid)
        self.assertEqual(len(errors), 2)


class TestErrorHandling(unittest.TestCase):
    """Exception hierarchy and helpers."""

    def test_error_codes(self):
        self.assertEqual(ValidationError('x').status_code, 400)
        self.assertEqual(FileError('x', filename='a.txt').details['filename'], 'a.txt')
        self.assertEqual(ProcessingError('x').status_code, 500)
        self.assertEqual(NothingToMergeError().code, 'NOTHING_TO_MERGE')
        self.assertIsInstance(NothingToMergeError(), SpecDiffError)

    def test_error_to_dict(self):
        body = ValidationError('bad', field='selected_ids').to_dict()
        self.assertFalse(body['success'])
        self.assertEqual(body['error']['details']['field'], 'selected_ids')

    def test_handle_errors_remaps_builtins(self):
        @handle_errors()
        def parse(value):
            return int(value)

        self.assertEqual(parse('3'), 3)
        with self.assertRaises(ValidationError):
            parse('three')

    def test_sanitize_filename(self):
        self.assertEqual(sanitize_filename('../secret'), 'secret')
        self.assertEqual(sanitize_filename('完成版ドキュメント'), '完成版ドキュメント')
        self.assertEqual(sanitize_filename('...'), 'unnamed')

    def test_validate_file_extension(self):
        self.assertTrue(validate_file_extension('notes.MD'))
        self.assertFalse(validate_file_extension('notes.pdf'))


if __name__ == '__main__':
    unittest.main(verbosity=2)
