import json

API = "/sync/api"


async def signup(client, email="user@example.com", password="secret123", name="User"):
    """Register an account and return its bearer token.

    The cookie jar is cleared so later requests authenticate only with
    the header the test passes explicitly.
    """
    response = await client.post(f"{API}/auth/signup", json={"email": email, "password": password, "name": name})
    assert response.status_code == 201, response.text
    client.cookies.clear()
    return response.json()["token"]


async def login(client, email="user@example.com", password="secret123"):
    response = await client.post(f"{API}/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    client.cookies.clear()
    return response.json()["token"]


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def diagram_body(diagram_id="diagram-1", name="Shop", **extra):
    body = {"id": diagram_id, "name": name, "databaseType": "postgresql", "tables": []}
    body.update(extra)
    return json.dumps(body)
