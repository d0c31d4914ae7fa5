# secretly

secretly keeps environment settings in one place. Each *environment* (for
example `development` or `production`) has a name and a set of key/value
pairs. Everything is stored in a single SQLite file, and a WSGI application
exposes a JSON API over it.

## Installing

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Storage

`secretly.database` holds the storage layer:

- `connect(path)` opens a SQLite database in autocommit mode.
- `migrate(connection)` creates the `environment` and `environment_values`
  tables if they are missing and returns the schema version.
- `Queries(connection)` runs the queries: `create_environment`,
  `get_environment`, `get_environment_by_name`, `get_all_environments`,
  `delete_environment`, `create_value`, `get_value`, `get_value_by_key`,
  `get_values_by_environment_id`, `get_all_values`, `update_value` and
  `delete_value`. They return `Environment` and `EnvironmentValue`
  dataclasses.
- Lookups that expect one row and find none raise `NotFoundError`.
- `Queries.transaction()` is a context manager that rolls back everything
  done inside it if an exception escapes.

```python
from secretly.database import connect, migrate, Queries

connection = connect("secretly.db")
migrate(connection)
queries = Queries(connection)

env = queries.create_environment("staging")
queries.create_value(env.id, "LOG_LEVEL", "info")
```

## The JSON API

`secretly.api.Api(queries)` is a WSGI application:

```python
from secretly.api import Api

app = Api(queries)
```

| Method   | Path                           | What it does                                   |
|----------|--------------------------------|------------------------------------------------|
| `GET`    | `/api/v1/env`                  | List all environments with their values        |
| `GET`    | `/api/v1/env?name=development` | List only the environment with that name       |
| `POST`   | `/api/v1/env`                  | Create an environment, optionally with values  |
| `GET`    | `/api/v1/env/{id}`             | Fetch one environment with its values          |
| `PUT`    | `/api/v1/env/{id}`             | Add or update values of an environment         |
| `DELETE` | `/api/v1/env/{id}`             | Delete an environment                          |
| `DELETE` | `/api/v1/env/{id}/value/{key}` | Delete one value, given the value's numeric id |

Request bodies look like this:

```
{"name": "development", "values": [{"key": "DEBUG", "value": "1"}]}
```

For `PUT`, keys the environment already has are overwritten and new keys are
added.

Every reply from these routes is sent with HTTP status 200 and a JSON body
(`ApiResponse`) with the fields `code`, `message`, `data` and `error`. The
`code` field carries the outcome (200, 201, 400 or 500). On failure, `error`
holds a short description such as `"Failed to get environment"` and the
cause is logged through the `secretly.api` logger. Paths and methods outside
the table get the ordinary 404 or 405 HTTP error responses.

## Configuration

`secretly.config.load_config()` reads `PORT` (default `8080`) and `DB_PATH`
(default `secretly.db`) from the process environment, or from a mapping
passed to it, and returns a `Config` with `port` and `db_path`. A variable
that is set, even to an empty string, overrides its default.

## Environment files

`secretly.envfile.EnvFile` reads and writes simple `KEY=value` files. Empty
lines, lines starting with `#` and lines without `=` are skipped when loading;
keys and values are stripped of surrounding whitespace.

```python
from secretly.envfile import EnvFile

env_file = EnvFile(".env")
variables = env_file.load()
variables["LOG_LEVEL"] = "debug"
env_file.save(variables)
```

## Page layout

`secretly.templates.render_layout(title, content)` wraps already-rendered
HTML content in the site's page layout. The title is HTML-escaped; the
content is inserted as is.

## What the package does not do

There is no command to start a server, and no HTTP server of its own: to
serve the API, hand `Api(queries)` to a WSGI server of your choice, after
calling `migrate` on the connection. There is no web front page and no
static files are served; `render_layout` only produces the surrounding HTML.