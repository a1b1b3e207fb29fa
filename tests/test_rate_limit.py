from conftest import make_app


def test_login_rate_limit():
    app = make_app(RATELIMIT_ENABLED=True)
    client = app.test_client()
    for _ in range(5):
        res = client.post("/api/login", json={"username": "wrong", "password": "wrong"})
        assert res.status_code == 401
    res = client.post("/api/login", json={"username": "wrong", "password": "wrong"})
    assert res.status_code == 429
    assert res.get_json()["error"]["code"] == "rate_limited"


def test_register_rate_limit():
    app = make_app(RATELIMIT_ENABLED=True, LOGIN_RATE_LIMIT="2 per minute")
    client = app.test_client()
    for _ in range(2):
        res = client.post("/api/register", json={})
        assert res.status_code == 400
    assert client.post("/api/register", json={}).status_code == 429


def test_limit_is_per_path():
    app = make_app(RATELIMIT_ENABLED=True, LOGIN_RATE_LIMIT="1 per minute")
    client = app.test_client()
    client.post("/api/login", json={"username": "wrong", "password": "wrong"})
    assert client.post("/api/login", json={"username": "wrong", "password": "wrong"}).status_code == 429
    assert client.post("/api/register", json={}).status_code == 400
