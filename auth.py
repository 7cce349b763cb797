"""
Bearer Token Authentication
Identity-provider ID tokens are verified server side and mapped onto local users
"""
import logging
from flask import jsonify, current_app
from flask.sessions import SecureCookieSessionInterface
from flask_login import LoginManager
from models import User
import jwt

logger = logging.getLogger(__name__)

login_manager = LoginManager()


class StatelessSessionInterface(SecureCookieSessionInterface):
    """
    Identity comes from the bearer token on every request, so the cookie
    session is never read back or sent out. Responses carry no Set-Cookie and
    no Vary: Cookie.
    """

    def open_session(self, app, request):
        return self.session_class()

    def save_session(self, app, session, response):
        return None


def extract_bearer_token(auth_header):
    """Pull the token out of an 'Authorization: Bearer <token>' header"""
    if not auth_header or not auth_header.startswith('Bearer '):
        return None
    return auth_header[7:] or None


def decode_token(token):
    """Decode and validate an identity-provider JWT"""
    options = {}
    audience = current_app.config.get('JWT_AUDIENCE')
    issuer = current_app.config.get('JWT_ISSUER')
    if audience:
        options['audience'] = audience
    if issuer:
        options['issuer'] = issuer

    try:
        payload = jwt.decode(
            token,
            current_app.config['JWT_SECRET'],
            algorithms=[current_app.config['JWT_ALGORITHM']],
            **options
        )
        return {'success': True, 'payload': payload}
    except jwt.ExpiredSignatureError:
        return {'success': False, 'error': 'Token expired'}
    except jwt.InvalidTokenError as e:
        return {'success': False, 'error': str(e)}


def get_token_uid(payload):
    """Firebase puts the uid in both user_id and sub"""
    return payload.get('user_id') or payload.get('sub')


@login_manager.request_loader
def load_user_from_request(request):
    token = extract_bearer_token(request.headers.get('Authorization'))
    if not token:
        return None

    result = decode_token(token)
    if not result['success']:
        logger.warning(f"Rejected bearer token: {result['error']}")
        return None

    uid = get_token_uid(result['payload'])
    if not uid:
        return None

    return User.query.filter_by(firebase_uid=uid).first()


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'error': 'Authentication required. Please log in again.'}), 401
