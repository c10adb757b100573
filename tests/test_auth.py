"""
Login, token refresh and bearer-token enforcement.
"""

from datetime import timedelta

from app.core.security import create_access_token, hash_password
from app.models.user import UserRole
from tests.conftest import auth_headers, make_company, make_user


def _user(db, email="owner@test.com", password="Pass123", is_active=True):
    user = make_user(
        db,
        email,
        UserRole.COMPANY,
        company=make_company(db),
        hashed_password=hash_password(password),
    )
    if not is_active:
        user.is_active = False
        db.commit()
    return user


class TestAuth:
    def test_login_success(self, client, db):
        _user(db)
        r = client.post("/api/v1/auth/login", json={"email": "owner@test.com", "password": "Pass123"})
        assert r.status_code == 200, r.text
        data = r.json()
        assert data["token_type"] == "bearer"

        r = client.get("/api/v1/materials", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert r.status_code == 200

    def test_login_wrong_password(self, client, db):
        _user(db)
        r = client.post("/api/v1/auth/login", json={"email": "owner@test.com", "password": "Wrong999"})
        assert r.status_code == 401

    def test_login_unknown_email(self, client):
        r = client.post("/api/v1/auth/login", json={"email": "nobody@test.com", "password": "Pass123"})
        assert r.status_code == 401

    def test_login_inactive_user(self, client, db):
        _user(db, is_active=False)
        r = client.post("/api/v1/auth/login", json={"email": "owner@test.com", "password": "Pass123"})
        assert r.status_code == 400

    def test_password_over_72_bytes_is_422(self, client):
        r = client.post("/api/v1/auth/login", json={"email": "a@test.com", "password": "x" * 73})
        assert r.status_code == 422

    def test_protected_endpoint_without_token(self, client):
        assert client.get("/api/v1/materials").status_code == 401

    def test_protected_endpoint_invalid_token(self, client):
        r = client.get("/api/v1/materials", headers={"Authorization": "Bearer not.a.real.token"})
        assert r.status_code == 401

    def test_expired_token_rejected(self, client, db):
        user = _user(db)
        token = create_access_token({"sub": str(user.id)}, expires_delta=timedelta(seconds=-1))
        r = client.get("/api/v1/materials", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 401

    def test_deactivated_user_token_rejected(self, client, db):
        user = _user(db)
        headers = auth_headers(user)
        user.is_active = False
        db.commit()
        assert client.get("/api/v1/materials", headers=headers).status_code == 401

    def test_refresh_issues_new_token(self, client, db):
        headers = auth_headers(_user(db))
        r = client.get("/api/v1/auth/refresh", headers=headers)
        assert r.status_code == 200
        assert r.json()["access_token"] != headers["Authorization"].split()[1]
