import secrets

import click
from flask import Flask, current_app, g, jsonify, request

from .auth import PortalAuthService
from .config import get_config
from .cookies import FlaskCookieStore
from .models import init_database, make_session_factory
from .results import ErrorKind

STATUS_CODES = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.MEMBER_NOT_FOUND: 404,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.NOT_AUTHENTICATED: 401,
    ErrorKind.SESSION_EXPIRED: 401,
    ErrorKind.INVALID_SESSION: 403,
    ErrorKind.UNEXPECTED_ERROR: 500,
}


def create_app(config=None, session_factory=None, email_sender=None) -> Flask:
    config = config or get_config()

    # --- SETUP ---
    app = Flask(__name__)
    app.config['PORTAL_CONFIG'] = config
    app.config['PORTAL_EMAIL_SENDER'] = email_sender
    app.extensions['portal_db'] = session_factory or make_session_factory(config.DATABASE_URL)

    # --- MIDDLEWARE / HELPERS ---
    @app.after_request
    def add_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Content-Security-Policy'] = "default-src 'self'"
        cookies = g.pop('portal_cookies', None)
        if cookies is not None:
            cookies.apply(response)
        return response

    @app.teardown_request
    def close_db(exc):
        db = g.pop('portal_db', None)
        if db is not None:
            db.close()

    # --- ROUTES ---

    @app.route('/portal/<slug>/gym', methods=['GET'])
    def gym_info(slug):
        return _respond(_service().get_gym_by_slug(slug))

    @app.route('/portal/<slug>/pin-status', methods=['POST'])
    def pin_status(slug):
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            return jsonify({"success": False, "error": "Request body must be a JSON object"}), 400
        if not data.get('email'):
            return jsonify({"success": False, "error": "Email is required"}), 400

        service = _service()
        gym = service.get_gym_by_slug(slug)
        if not gym.success:
            return _respond(gym)
        return _respond(service.check_member_pin_status(data['email'], gym.data.id))

    @app.route('/portal/<slug>/request-access', methods=['POST'])
    def request_access(slug):
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            return jsonify({"success": False, "error": "Request body must be a JSON object"}), 400
        if not data.get('email'):
            return jsonify({"success": False, "error": "Email is required"}), 400

        service = _service()
        gym = service.get_gym_by_slug(slug)
        if not gym.success:
            return _respond(gym)
        return _respond(service.request_portal_access(data['email'], gym.data.id))

    @app.route('/portal/<slug>/sign-in', methods=['POST'])
    def sign_in(slug):
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            return jsonify({"success": False, "error": "Request body must be a JSON object"}), 400
        if not data.get('email') or not data.get('pin'):
            return jsonify({"success": False, "error": "Email and PIN are required"}), 400
        return _respond(_service().sign_in_with_pin(data['email'], str(data['pin']), slug))

    @app.route('/portal/<slug>/me', methods=['GET'])
    def me(slug):
        return _respond(_service().get_authenticated_member(slug))

    @app.route('/portal/<slug>/me/info', methods=['GET'])
    def me_info(slug):
        return _respond(_service().get_authenticated_member_info(slug))

    @app.route('/portal/sign-out', methods=['POST'])
    def sign_out():
        return _respond(_service().sign_out())

    # --- CLI ---

    @app.cli.command('init-db')
    def init_db_command():
        """Create the gyms and members tables."""
        session_factory = app.extensions['portal_db']
        init_database(session_factory.kw['bind'])
        click.echo("Database initialized.")

    @app.cli.command('generate-key')
    def generate_key_command():
        """Print a new PIN_ENCRYPTION_KEY value."""
        click.echo(secrets.token_hex(32))

    return app


def _service() -> PortalAuthService:
    if 'portal_db' not in g:
        g.portal_db = current_app.extensions['portal_db']()
    if 'portal_cookies' not in g:
        g.portal_cookies = FlaskCookieStore(request)
    return PortalAuthService(
        g.portal_db,
        g.portal_cookies,
        config=current_app.config['PORTAL_CONFIG'],
        email_sender=current_app.config['PORTAL_EMAIL_SENDER']
    )


def _respond(result):
    if result.success:
        return jsonify(result.to_dict()), 200
    return jsonify(result.to_dict()), STATUS_CODES[result.kind]


if __name__ == "__main__":
    # In production, run with Gunicorn + SSL
    create_app().run(debug=False)
