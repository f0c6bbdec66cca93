"""
Spec Diff Manager - Main Flask Application
Upload a base and a modified document, pick the lines that went missing,
and restore them into the right sections.
"""
from flask import Flask, jsonify, session, g

from config_logging import (
    get_config, get_logger, generate_csrf_token,
    StructuredLogger, SpecDiffError, VERSION, APP_NAME
)
from spec_diff import sd_blueprint

config = get_config()
logger = get_logger('app')

app = Flask(__name__)
app.config['SECRET_KEY'] = config.secret_key
app.config['MAX_CONTENT_LENGTH'] = config.max_content_length
app.register_blueprint(sd_blueprint, url_prefix='/api/spec-diff')


@app.before_request
def assign_correlation_id():
    """Tag every request so its log lines can be grouped."""
    g.correlation_id = StructuredLogger.new_correlation_id()


@app.after_request
def add_security_headers(response):
    """Add security headers to every response."""
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-XSS-Protection'] = '1; mode=block'
    response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
    return response


@app.errorhandler(SpecDiffError)
def handle_spec_diff_error(error):
    """Errors raised outside the blueprint's own handler."""
    logger.warning(f"{error.code}: {error.message}")
    body = error.to_dict()
    body['error']['correlation_id'] = getattr(g, 'correlation_id', 'unknown')
    return jsonify(body), error.status_code


def _format_size(size: int) -> str:
    if size >= 1024 * 1024:
        return f"{size / (1024 * 1024):g}MB"
    if size >= 1024:
        return f"{size / 1024:g}KB"
    return f"{size} bytes"


@app.errorhandler(413)
def handle_too_large(error):
    """Upload exceeded MAX_CONTENT_LENGTH."""
    limit = app.config.get("MAX_CONTENT_LENGTH") or 0
    return jsonify({
        'success': False,
        'error': {
            'code': 'FILE_TOO_LARGE',
            'message': f'File exceeds the {_format_size(limit)} limit',
            'correlation_id': getattr(g, 'correlation_id', 'unknown')
        }
    }), 413


@app.route('/api/health', methods=['GET'])
def health():
    """Application health check."""
    return jsonify({
        'success': True,
        'app': APP_NAME,
        'version': VERSION,
        'status': 'healthy'
    })


@app.route('/api/csrf-token', methods=['GET'])
def csrf_token():
    """Issue (or reuse) the session CSRF token."""
    if 'csrf_token' not in session:
        session['csrf_token'] = generate_csrf_token()
    return jsonify({'csrf_token': session['csrf_token']})


if __name__ == '__main__':
    _, errors = config.validate()
    for error in errors:
        logger.warning(f"Configuration problem: {error}")
    print("=" * 60)
    print(f"  {APP_NAME} v{VERSION}")
    print(f"  Starting server at http://{config.host}:{config.port}")
    print("=" * 60)
    app.run(host=config.host, port=config.port, debug=config.debug)
