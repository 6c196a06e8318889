"""
Authentication Tests
"""
import pytest

from paperbrief import db
from paperbrief.auth import ensure_user_row, issue_identity_token, verify_identity_token
from paperbrief.models import User


class TestIdentityTokens:
    """Test token issue and verification"""

    def test_round_trip(self, app):
        with app.app_context():
            token = issue_identity_token('user-9', email='nine@example.com')
            claims = verify_identity_token(token)

            assert claims == {'sub': 'user-9', 'email': 'nine@example.com'}

    def test_tampered_token(self, app):
        with app.app_context():
            token = issue_identity_token('user-9')
            assert verify_identity_token(token[:-2] + 'xx') is None

    def test_token_signed_with_other_secret(self, app):
        with app.app_context():
            token = issue_identity_token('user-9')
            app.config['SECRET_KEY'] = 'rotated'
            assert verify_identity_token(token) is None

    def test_expired_token(self, app):
        with app.app_context():
            token = issue_identity_token('user-9')
            app.config['IDENTITY_TOKEN_MAX_AGE'] = -1
            assert verify_identity_token(token) is None


class TestEnsureUserRow:
    """Test lazy user provisioning"""

    def test_creates_once(self, app):
        with app.app_context():
            first = ensure_user_row('sub-1', email='s@example.com', name='S')
            second = ensure_user_row('sub-1')

            assert first.id == second.id == 'sub-1'
            assert User.query.count() == 1
            assert second.email == 's@example.com'

    def test_fills_missing_profile(self, app):
        with app.app_context():
            ensure_user_row('sub-1')
            user = ensure_user_row('sub-1', email='late@example.com', name='Late')

            assert user.email == 'late@example.com'
            assert user.name == 'Late'

    def test_duplicate_email_still_creates_user(self, app):
        """An email already used by another subject should not block sign-in"""
        with app.app_context():
            ensure_user_row('sub-1', email='shared@example.com')
            user = ensure_user_row('sub-2', email='shared@example.com')

            assert user.id == 'sub-2'
            assert user.email is None
            assert db.session.get(User, 'sub-1').email == 'shared@example.com'


class TestProtectedRoutes:
    """Test route protection"""

    @pytest.mark.parametrize('method,path', [
        ('post', '/summarize'),
        ('get', '/history'),
        ('get', '/summaries'),
        ('get', '/summary/abc'),
        ('delete', '/summary/abc'),
        ('get', '/me'),
    ])
    def test_requires_login(self, client, method, path):
        """Endpoints should answer 401 without a token"""
        response = getattr(client, method)(path)
        assert response.status_code == 401
        assert response.get_json()['ok'] is False

    def test_wrong_scheme(self, client, token_for):
        response = client.get('/me', headers={'Authorization': f'Token {token_for("user-1")}'})
        assert response.status_code == 401

    def test_me(self, client, auth_headers):
        response = client.get('/me', headers=auth_headers)

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['id'] == 'user-1'
        assert data['email'] == 'one@example.com'

    def test_no_user_created_without_token(self, app, client):
        client.get('/history')
        with app.app_context():
            assert User.query.count() == 0


class TestIssueTokenCommand:

    def test_cli_issues_valid_token(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['auth', 'issue-token', 'cli-user', '--email', 'cli@example.com'])

        assert result.exit_code == 0
        with app.app_context():
            claims = verify_identity_token(result.output.strip())
        assert claims['sub'] == 'cli-user'
        assert claims['email'] == 'cli@example.com'
