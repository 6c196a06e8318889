"""
Caller identity and user provisioning

Requests authenticate with ``Authorization: Bearer <token>``. Tokens are
issued by the identity provider as signed, time-limited payloads of the form
``{"sub": ..., "email": ..., "name": ...}``; ``sub`` becomes the user id.
"""
import click
from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.exc import IntegrityError

from paperbrief import db, login_manager
from paperbrief.models import User

auth_bp = Blueprint('auth', __name__)


def _serializer():
    return URLSafeTimedSerializer(
        current_app.config['SECRET_KEY'],
        salt=current_app.config['IDENTITY_TOKEN_SALT'],
    )


def issue_identity_token(sub, email=None, name=None):
    """Sign an identity token for ``sub``"""
    claims = {'sub': sub}
    if email:
        claims['email'] = email
    if name:
        claims['name'] = name
    return _serializer().dumps(claims)


def verify_identity_token(token):
    """Return the token's claims, or None if it is invalid or expired"""
    try:
        claims = _serializer().loads(token, max_age=current_app.config['IDENTITY_TOKEN_MAX_AGE'])
    except SignatureExpired:
        current_app.logger.info('Rejected expired identity token')
        return None
    except BadSignature:
        current_app.logger.info('Rejected identity token with bad signature')
        return None
    if not isinstance(claims, dict) or not isinstance(claims.get('sub'), str) or not claims['sub']:
        return None
    return claims


def ensure_user_row(user_id, email=None, name=None):
    """Fetch the user for ``user_id``, creating the row on first sight"""
    user = db.session.get(User, user_id)
    if user is None:
        user = User(id=user_id, email=email, name=name)
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError:
            # Another request created the row first, or the email is taken
            db.session.rollback()
            user = db.session.get(User, user_id)
            if user is None:
                user = User(id=user_id, name=name)
                db.session.add(user)
                db.session.commit()
        else:
            current_app.logger.info('Created user %s', user_id)
        return user

    changed = False
    if email and not user.email:
        user.email = email
        changed = True
    if name and not user.name:
        user.name = name
        changed = True
    if changed:
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            user = db.session.get(User, user_id)
    return user


@login_manager.user_loader
def load_user(user_id):
    """Load user by ID"""
    return db.session.get(User, user_id)


@login_manager.request_loader
def load_user_from_request(req):
    """Authenticate the request from its bearer token"""
    header = req.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    claims = verify_identity_token(token.strip())
    if claims is None:
        return None
    return ensure_user_row(claims['sub'], email=claims.get('email'), name=claims.get('name'))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'ok': False, 'error': 'Unauthorized'}), 401


@auth_bp.route('/me')
@login_required
def me():
    """Identity of the caller"""
    return jsonify({
        'ok': True,
        'data': {
            'id': current_user.id,
            'email': current_user.email,
            'name': current_user.name,
            'createdAt': current_user.created_at.isoformat() if current_user.created_at else None,
        }
    })


@auth_bp.cli.command('issue-token')
@click.argument('sub')
@click.option('--email', default=None)
@click.option('--name', default=None)
def issue_token_command(sub, email, name):
    """Print an identity token for SUB (development use)."""
    click.echo(issue_identity_token(sub, email=email, name=name))
