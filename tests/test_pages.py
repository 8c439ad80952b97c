"""Tests for informational pages, errors and middleware."""

from fastapi.testclient import TestClient


class TestPages:
    def test_index_anonymous(self, client: TestClient):
        response = client.get("/")
        assert response.status_code == 200
        assert "Welcome to Passgate" in response.text

    def test_index_authenticated(self, auth_client: TestClient):
        response = auth_client.get("/")
        assert "Welcome, Test User" in response.text
        assert "test@example.com" in response.text

    def test_static_pages(self, client: TestClient):
        for path, title in (("/home", "Home"), ("/about", "About"), ("/contact", "Contact")):
            response = client.get(path)
            assert response.status_code == 200
            assert f"<h1>{title}</h1>" in response.text

    def test_stylesheet(self, client: TestClient):
        response = client.get("/static/style.css")
        assert response.status_code == 200

    def test_unknown_route(self, client: TestClient):
        response = client.get("/no-such-page")
        assert response.status_code == 404
        assert response.text == "404: Page not found"

    def test_wrong_method(self, client: TestClient):
        response = client.delete("/login")
        assert response.status_code == 405


class TestMiddleware:
    def test_security_headers(self, client: TestClient):
        response = client.get("/")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "default-src 'self'" in response.headers["Content-Security-Policy"]

    def test_request_too_large(self, client: TestClient):
        response = client.post("/login", content=b"x" * (65 * 1024))
        assert response.status_code == 413


class TestHealthCheck:
    def test_health_check(self, client: TestClient):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["app"] == "passgate"
