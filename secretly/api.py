"""JSON API for managing environments and their values."""

from __future__ import annotations

import json
import logging
import re
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, fields, is_dataclass
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any

from werkzeug.exceptions import HTTPException
from werkzeug.routing import Map, Rule
from werkzeug.wrappers import Request, Response

from secretly.database import Environment, NotFoundError, Queries

_log = logging.getLogger(__name__)

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_INTEGER = re.compile(r"[+-]?[0-9]+")

# Characters kept out of JSON output so it is safe to embed in HTML.
_JSON_ESCAPES = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)

_STORAGE_ERRORS = (NotFoundError, sqlite3.Error)


def _format_time(moment: datetime) -> str:
    utc = moment.astimezone(timezone.utc)
    text = utc.strftime("%Y-%m-%dT%H:%M:%S")
    if utc.microsecond:
        text += f".{utc.microsecond:06d}".rstrip("0")
    return text + "Z"


def _json_default(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return _format_time(obj)
    if is_dataclass(obj) and not isinstance(obj, type):
        return {field.name: getattr(obj, field.name) for field in fields(obj)}
    raise TypeError(f"cannot encode {type(obj).__name__} as JSON")


@dataclass(frozen=True)
class ApiResponse:
    """The envelope every API reply is wrapped in."""

    code: int
    message: str = ""
    data: Any = None
    error: str = ""

    def to_json(self) -> bytes:
        """Encode the envelope as one line of compact JSON."""
        payload = {
            "data": self.data,
            "code": int(self.code),
            "message": self.message,
            "error": self.error,
        }
        text = json.dumps(
            payload,
            ensure_ascii=False,
            separators=(",", ":"),
            default=_json_default,
        )
        return (text.translate(_JSON_ESCAPES) + "\n").encode("utf-8")


class ApiError(Exception):
    """A request that failed; carries the code and message to report."""

    def __init__(self, code: int, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.code = int(code)
        self.message = message
        self.cause = cause

    @property
    def response(self) -> ApiResponse:
        return ApiResponse(code=self.code, error=self.message)


@contextmanager
def _failure(code: int, message: str) -> Iterator[None]:
    try:
        yield
    except _STORAGE_ERRORS as exc:
        raise ApiError(code, message, exc) from exc


def _parse_id(text: str, message: str) -> int:
    if _INTEGER.fullmatch(text):
        number = int(text)
        if _INT64_MIN <= number <= _INT64_MAX:
            return number
        cause = ValueError(f"parsing {text!r}: value out of range")
    else:
        cause = ValueError(f"parsing {text!r}: invalid syntax")
    raise ApiError(HTTPStatus.BAD_REQUEST, message, cause)


def _field(obj: dict[str, Any], name: str) -> Any:
    """Look up a JSON field by name, ignoring case; the last match wins."""
    found = None
    for key, value in obj.items():
        if key.lower() == name:
            found = value
    return found


def _string(obj: dict[str, Any], name: str) -> str:
    value = _field(obj, name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {name!r} must be a string")
    return value


def _decode_object(request: Request) -> dict[str, Any]:
    text = request.get_data(as_text=True).lstrip()
    if not text:
        raise ValueError("EOF")
    value, _ = json.JSONDecoder().raw_decode(text)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"cannot decode JSON {type(value).__name__} into an object")
    return value


def _decode_values(body: dict[str, Any]) -> list[tuple[str, str]]:
    raw = _field(body, "values")
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError("field 'values' must be an array")
    pairs = []
    for item in raw:
        if item is None:
            pairs.append(("", ""))
            continue
        if not isinstance(item, dict):
            raise ValueError("each value must be an object")
        pairs.append((_string(item, "key"), _string(item, "value")))
    return pairs


def _parse_body(request: Request, message: str) -> dict[str, Any]:
    try:
        return _decode_object(request)
    except ValueError as exc:
        raise ApiError(HTTPStatus.BAD_REQUEST, message, exc) from exc


class Api:
    """WSGI application serving the ``/api/v1/env`` endpoints."""

    def __init__(self, queries: Queries) -> None:
        self.queries = queries
        self._url_map = Map(
            [
                Rule("/api/v1/env", methods=["GET"], endpoint=self.get_environments),
                Rule("/api/v1/env", methods=["POST"], endpoint=self.create_environment),
                Rule("/api/v1/env/<id>", methods=["GET"], endpoint=self.get_environment),
                Rule("/api/v1/env/<id>", methods=["PUT"], endpoint=self.update_environment),
                Rule("/api/v1/env/<id>", methods=["DELETE"], endpoint=self.delete_environment),
                Rule(
                    "/api/v1/env/<id>/value/<key>",
                    methods=["DELETE"],
                    endpoint=self.delete_value,
                ),
            ],
            strict_slashes=False,
        )

    def __call__(self, environ, start_response):
        return self.dispatch(Request(environ))(environ, start_response)

    def dispatch(self, request: Request):
        """Route *request* to its handler and build the HTTP response."""
        adapter = self._url_map.bind_to_environ(request.environ)
        try:
            handler, arguments = adapter.match()
        except HTTPException as exc:
            return exc.get_response(request.environ)
        try:
            result = handler(request, **arguments)
        except ApiError as exc:
            _log.error(
                "Error path=%s code=%d message=%s error=%s",
                request.path,
                exc.code,
                exc.message,
                exc.cause,
            )
            result = exc.response
        return Response(result.to_json(), mimetype="application/json")

    def _describe(self, environment: Environment) -> dict[str, Any]:
        with _failure(HTTPStatus.INTERNAL_SERVER_ERROR, "Failed to get values"):
            values = self.queries.get_values_by_environment_id(environment.id)
        return {
            "id": environment.id,
            "name": environment.name,
            "values": [
                {"id": value.id, "key": value.key, "value": value.value} for value in values
            ],
        }

    def get_environments(self, request: Request) -> ApiResponse:
        """List every environment, or only the one named by ``?name=``."""
        name = request.args.get("name", "")
        if name:
            with _failure(HTTPStatus.INTERNAL_SERVER_ERROR, "Failed to get environment"):
                environments = [self.queries.get_environment_by_name(name)]
        else:
            with _failure(HTTPStatus.INTERNAL_SERVER_ERROR, "Failed to get environments"):
                environments = self.queries.get_all_environments()
        data = [self._describe(environment) for environment in environments]
        return ApiResponse(HTTPStatus.OK, "Environments retrieved", data)

    def create_environment(self, request: Request) -> ApiResponse:
        """Create an environment and any values given with it."""
        message = "Failed to create environment"
        body = _parse_body(request, message)
        try:
            name = _string(body, "name")
            values = _decode_values(body)
        except ValueError as exc:
            raise ApiError(HTTPStatus.BAD_REQUEST, message, exc) from exc

        with _failure(HTTPStatus.INTERNAL_SERVER_ERROR, message):
            environment = self.queries.create_environment(name)
        for key, value in values:
            with _failure(HTTPStatus.INTERNAL_SERVER_ERROR, "Failed to create value"):
                self.queries.create_value(environment.id, key, value)
        return ApiResponse(HTTPStatus.CREATED, "Environment created", environment)

    def get_environment(self, request: Request, id: str) -> ApiResponse:
        """Return one environment with its values."""
        message = "Failed to get environment"
        environment_id = _parse_id(id, message)
        with _failure(HTTPStatus.INTERNAL_SERVER_ERROR, message):
            environment = self.queries.get_environment(environment_id)
        return ApiResponse(HTTPStatus.OK, "Environment retrieved", self._describe(environment))

    def update_environment(self, request: Request, id: str) -> ApiResponse:
        """Set the given keys, creating those the environment lacks."""
        message = "Failed to update environment"
        environment_id = _parse_id(id, message)
        body = _parse_body(request, message)
        try:
            values = _decode_values(body)
        except ValueError as exc:
            raise ApiError(HTTPStatus.BAD_REQUEST, message, exc) from exc

        for key, value in values:
            try:
                existing = self.queries.get_value_by_key(environment_id, key)
            except _STORAGE_ERRORS:
                with _failure(HTTPStatus.INTERNAL_SERVER_ERROR, "Failed to create value"):
                    self.queries.create_value(environment_id, key, value)
            else:
                with _failure(HTTPStatus.INTERNAL_SERVER_ERROR, "Failed to update value"):
                    self.queries.update_value(existing.id, value)
        return ApiResponse(HTTPStatus.OK, "Environment updated")

    def delete_environment(self, request: Request, id: str) -> ApiResponse:
        """Delete one environment."""
        message = "Failed to delete environment"
        environment_id = _parse_id(id, message)
        with _failure(HTTPStatus.INTERNAL_SERVER_ERROR, message):
            self.queries.delete_environment(environment_id)
        return ApiResponse(HTTPStatus.OK, "Environment deleted")

    def delete_value(self, request: Request, id: str, key: str) -> ApiResponse:
        """Delete the value with id *key* once the environment is known to exist."""
        message = "Failed to delete value"
        environment_id = _parse_id(id, message)
        with _failure(HTTPStatus.INTERNAL_SERVER_ERROR, message):
            self.queries.get_environment(environment_id)
        value_id = _parse_id(key, message)
        with _failure(HTTPStatus.INTERNAL_SERVER_ERROR, message):
            self.queries.delete_value(value_id)
        return ApiResponse(HTTPStatus.OK, "Value deleted")