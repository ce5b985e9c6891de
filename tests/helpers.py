import datetime as dt


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def signup(client, name="Jo", email="jo@x.com", password="secret1"):
    res = client.post("/users/signup", json={"name": name, "email": email, "password": password})
    assert res.status_code == 201, res.text
    return res.json()


def booking_payload(**overrides):
    payload = {
        "groundId": "ground1",
        "groundName": "Premium Stadium",
        "date": (dt.date.today() + dt.timedelta(days=3)).isoformat(),
        "startTime": "08:00",
        "endTime": "10:00",
        "price": 50,
    }
    payload.update(overrides)
    return payload


def enrollment_payload(**overrides):
    payload = {
        "coach": "Maria Rodriguez",
        "package": "Premium Package",
        "startDate": "2025-05-01",
        "endDate": "2025-05-31",
        "trainingDays": ["Monday", "Wednesday"],
        "players": [{"name": "Sam", "age": "12"}, {"name": "Alex", "age": "11"}],
    }
    payload.update(overrides)
    return payload
