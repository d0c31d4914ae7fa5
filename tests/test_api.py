import json
from datetime import datetime

import pytest
from werkzeug.test import Client, EnvironBuilder

from secretly.api import Api, ApiError, ApiResponse
from secretly.database import Queries, connect, migrate


@pytest.fixture
def queries():
    connection = connect(":memory:")
    migrate(connection)
    yield Queries(connection)
    connection.close()


@pytest.fixture
def api(queries):
    return Api(queries)


@pytest.fixture
def client(api):
    return Client(api)


def _pairs(queries, environment_id):
    return sorted(
        (value.key, value.value)
        for value in queries.get_values_by_environment_id(environment_id)
    )


def test_list_empty(client):
    response = client.get("/api/v1/env")
    assert response.status_code == 200
    assert response.get_json() == {
        "data": [],
        "code": 200,
        "message": "Environments retrieved",
        "error": "",
    }


def test_response_is_compact_json_line(client):
    response = client.get("/api/v1/env")
    assert response.headers["Content-Type"] == "application/json"
    assert response.get_data(as_text=True) == (
        '{"data":[],"code":200,"message":"Environments retrieved","error":""}\n'
    )


def test_create_environment_with_values(client, queries):
    response = client.post(
        "/api/v1/env",
        json={"name": "development", "values": [{"key": "API_URL", "value": "http://localhost"}]},
    )
    body = response.get_json()
    assert body["code"] == 201
    assert body["message"] == "Environment created"
    stored = queries.get_environment_by_name("development")
    assert body["data"]["id"] == stored.id
    assert body["data"]["name"] == "development"
    assert _pairs(queries, stored.id) == [("API_URL", "http://localhost")]


def test_created_timestamps_round_trip(client, queries):
    body = client.post("/api/v1/env", json={"name": "development"}).get_json()
    stored = queries.get_environment(body["data"]["id"])
    created = body["data"]["created_at"]
    assert created.endswith("Z")
    assert datetime.fromisoformat(created.replace("Z", "+00:00")) == stored.created_at


def test_create_with_invalid_json_reports_bad_request(client, queries):
    response = client.post("/api/v1/env", data="{not json")
    assert response.status_code == 200
    assert response.get_json() == {
        "data": None,
        "code": 400,
        "message": "",
        "error": "Failed to create environment",
    }
    assert queries.get_all_environments() == []


@pytest.mark.parametrize("payload", ["", "[1, 2]", '{"name": 5}', '{"values": "x"}'])
def test_create_rejects_malformed_bodies(client, queries, payload):
    body = client.post("/api/v1/env", data=payload).get_json()
    assert body["code"] == 400
    assert body["error"] == "Failed to create environment"
    assert queries.get_all_environments() == []


def test_create_matches_field_names_without_case(client, queries):
    body = client.post("/api/v1/env", json={"Name": "staging"}).get_json()
    assert body["code"] == 201
    assert queries.get_environment(body["data"]["id"]).name == "staging"


def test_list_includes_values(client, queries):
    environment = queries.create_environment("development")
    value = queries.create_value(environment.id, "A", "1")
    body = client.get("/api/v1/env").get_json()
    assert body["data"] == [
        {
            "id": environment.id,
            "name": "development",
            "values": [{"id": value.id, "key": "A", "value": "1"}],
        }
    ]


def test_list_filtered_by_name(client, queries):
    queries.create_environment("development")
    production = queries.create_environment("production")
    body = client.get("/api/v1/env?name=production").get_json()
    assert [item["id"] for item in body["data"]] == [production.id]


def test_list_with_unknown_name_fails(client):
    body = client.get("/api/v1/env?name=missing").get_json()
    assert body["code"] == 500
    assert body["error"] == "Failed to get environment"


def test_get_environment(client, queries):
    environment = queries.create_environment("development")
    queries.create_value(environment.id, "A", "1")
    body = client.get(f"/api/v1/env/{environment.id}").get_json()
    assert body["message"] == "Environment retrieved"
    assert body["data"]["name"] == "development"
    assert [(v["key"], v["value"]) for v in body["data"]["values"]] == [("A", "1")]


@pytest.mark.parametrize("bad_id", ["abc", "1.5", "99999999999999999999"])
def test_get_environment_with_bad_id(client, bad_id):
    body = client.get(f"/api/v1/env/{bad_id}").get_json()
    assert body["code"] == 400
    assert body["error"] == "Failed to get environment"


def test_get_missing_environment(client):
    body = client.get("/api/v1/env/999").get_json()
    assert body["code"] == 500
    assert body["error"] == "Failed to get environment"


def test_update_creates_and_updates_values(client, queries):
    environment = queries.create_environment("development")
    original = queries.create_value(environment.id, "A", "1")
    body = client.put(
        f"/api/v1/env/{environment.id}",
        json={"values": [{"key": "A", "value": "2"}, {"key": "B", "value": "3"}]},
    ).get_json()
    assert body == {"data": None, "code": 200, "message": "Environment updated", "error": ""}
    assert _pairs(queries, environment.id) == [("A", "2"), ("B", "3")]
    assert queries.get_value_by_key(environment.id, "A").id == original.id


def test_update_with_bad_id_or_body(client, queries):
    environment = queries.create_environment("development")
    bad_id = client.put("/api/v1/env/x", json={"values": []}).get_json()
    bad_body = client.put(f"/api/v1/env/{environment.id}", data="nope").get_json()
    for body in (bad_id, bad_body):
        assert body["code"] == 400
        assert body["error"] == "Failed to update environment"


def test_delete_environment(client, queries):
    environment = queries.create_environment("development")
    body = client.delete(f"/api/v1/env/{environment.id}").get_json()
    assert body["message"] == "Environment deleted"
    assert queries.get_all_environments() == []


def test_delete_value(client, queries):
    environment = queries.create_environment("development")
    value = queries.create_value(environment.id, "A", "1")
    body = client.delete(f"/api/v1/env/{environment.id}/value/{value.id}").get_json()
    assert body["message"] == "Value deleted"
    assert queries.get_values_by_environment_id(environment.id) == []


def test_delete_value_of_missing_environment(client, queries):
    environment = queries.create_environment("development")
    value = queries.create_value(environment.id, "A", "1")
    body = client.delete(f"/api/v1/env/{environment.id + 100}/value/{value.id}").get_json()
    assert body["code"] == 500
    assert body["error"] == "Failed to delete value"
    assert queries.get_value(value.id) == value


def test_delete_value_with_bad_key(client, queries):
    environment = queries.create_environment("development")
    body = client.delete(f"/api/v1/env/{environment.id}/value/abc").get_json()
    assert body["code"] == 400
    assert body["error"] == "Failed to delete value"


def test_wrong_method_and_unknown_path(client):
    assert client.patch("/api/v1/env").status_code == 405
    assert client.get("/api/v2/nothing").status_code == 404


def test_output_escapes_html_characters(client):
    name = "<b>&</b>"
    response = client.post("/api/v1/env", json={"name": name})
    text = response.get_data(as_text=True)
    assert "<b>" not in text
    assert "\\u003cb\\u003e\\u0026" in text
    assert response.get_json()["data"]["name"] == name


def test_handler_raises_api_error(api):
    request = EnvironBuilder(path="/api/v1/env/x").get_request()
    with pytest.raises(ApiError) as caught:
        api.get_environment(request, "x")
    assert caught.value.code == 400
    assert caught.value.response == ApiResponse(code=400, error="Failed to get environment")


def test_api_response_to_json():
    encoded = ApiResponse(code=200, message="ok").to_json()
    assert encoded.endswith(b"\n")
    assert json.loads(encoded) == {"data": None, "code": 200, "message": "ok", "error": ""}


def test_dispatch_returns_response(api, queries):
    queries.create_environment("development")
    request = EnvironBuilder(path="/api/v1/env", method="GET").get_request()
    response = api.dispatch(request)
    assert response.status_code == 200
    assert [item["name"] for item in response.get_json()["data"]] == ["development"]