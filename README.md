# bankapi

`bankapi` is a small HTTP server that exposes a bank database as JSON. Two
kinds of client talk to it:

* a **web client**, which lists and adds rows of the bank's tables;
* **ATM terminals**, which look up an account by card, log sensor events and
  move money (deposit, withdraw, transfer).

Database access goes through SQLAlchemy. `DataManager.connect` opens a MySQL
server through the `mysql+pymysql` driver, so the PyMySQL distribution must be
installed alongside this package for that to work; it is not installed
automatically. `DataManager.open_url` accepts any SQLAlchemy database URL
(for example `sqlite:///bank.db`), which is handy for local work and tests.

By default `DataManager` passes TLS client certificate paths
(`C:/MySQL/certs/client-key.pem`, `client-cert.pem`, `ca.pem`) to MySQL;
give `DataManager(ssl_options={})` to connect without them, or a mapping with
`key`, `cert` and `ca` entries of your own.

## Running the server

The package installs one command:

    bankapi

It connects to the database, builds the routes with `APIServer.create_app`,
serves them with `APIServer.start` and runs until interrupted. Options:

| Option          | Default        | Meaning                                         |
|-----------------|----------------|-------------------------------------------------|
| `--url`         | (none)         | full database URL; overrides the MySQL options  |
| `--db-host`     | `192.168.2.57` | MySQL host                                      |
| `--db-name`     | `bank`         | database name                                   |
| `--db-user`     | `master`       | user name                                       |
| `--db-password` | `password`     | password                                        |
| `--db-port`     | `3306`         | MySQL port                                      |
| `--listen`      | `0.0.0.0`      | address to listen on                            |
| `--port`        | `8080`         | HTTP port                                       |

For a local SQLite file:

    bankapi --url sqlite:///bank.db --port 8080

The command exits with status 1 when the database cannot be reached or the
port cannot be bound.

From Python, `APIServer(manager).start(port)` serves in a background thread
and returns the bound port (pass `0` for any free port); `APIServer.stop`
shuts it down. `start` raises `ServerError` when the port cannot be bound or
the server is already running. `APIServer` is also a context manager that
stops the server and its worker pool on exit.

## Tables

Each table of the database has its own class, all built on
`bankapi.database.Table`:

| Name            | Class              | Notes                                                                         |
|-----------------|--------------------|-------------------------------------------------------------------------------|
| `clientdb`      | `ClientTable`      | `get_all` adds a `hasAccount` flag (1 when `accountdb` has a row for the client) |
| `accountdb`     | `AccountTable`     | looked up by `RFID_UUID`; `deposit`, `withdraw`, `transfer`                   |
| `announcedb`    | `AnnounceTable`    | the generic operations only                                                   |
| `announcelogdb` | `AnnounceLogTable` | `get_all` counts log records per announcement, most recorded first            |
| `atmlogdb`      | `AtmLogTable`      | `get_all` returns the ten newest rows; `insert` logs an ATM sensor event      |

Every table offers `get_all`, `get_latest`, `get_by_id`, `get_by_condition`,
`insert`, `update` and `remove`. Rows come back as plain dictionaries keyed
by column name; decimals, dates and bytes are turned into JSON-friendly
values, and a row that is not found gives an empty dictionary. The generic
`insert` and `update` build their statements from the keys of a mapping
(`build_insert_query`, `build_update_query`), with every value passed as a
bound parameter; table and column names must be plain SQL identifiers or a
`ValueError` is raised.

`AccountTable.get_by_condition(cond, value)` looks the account up by
`RFID_UUID = cond` and adds `"success": 1` to a found row; `value` is not
used. `AtmLogTable.get_by_condition(cond, value)` returns the `balance`
column of the row with `UID = cond` and `name = value`.

`update(id, data)` on `AccountTable` and `AtmLogTable` runs a balance
operation chosen by `Action` (`DEPOSIT = 0`, `WITHDRAW = 1`, `SEND = 2`) with
`UID`, `amount` and `targetUID` taken from `data["data"]`; any other id
raises `ValueError`. A withdrawal only succeeds when the balance covers the
amount. A transfer withdraws from the sender and credits the receiver inside
one transaction (`DataManager.transaction`), so either both happen or
neither does. The sender is a card UID, mapped to an account key with
`resolve_card_uid`; an unknown card maps to `"-1"` and so matches no
account. The receiver (`targetUID`) is used as an account key as given.
These operations return `False` when no row was changed.

## HTTP routes

### Web client

| Method | Path                     | Result                                        |
|--------|--------------------------|-----------------------------------------------|
| GET    | `/client/<table>`        | all rows of the table as a JSON array         |
| GET    | `/client/<table>/latest` | all rows of the table as a JSON array         |
| POST   | `/client/<table>`        | inserts the object found under `"data"`       |

A POST body looks like:

```json
{"data": {"name": "Jane Doe", "phone": "000-0000"}}
```

### ATM terminals

| Method | Path       | Result                                                                          |
|--------|------------|---------------------------------------------------------------------------------|
| GET    | `/api/atm` | the `accountdb` row for query parameter `uid` (a card UID, resolved with `resolve_card_uid`) |
| POST   | `/api/atm` | logs an event into `atmlogdb`: `time`, `clientName`, `SensorType` under `"data"` |
| PUT    | `/api/atm` | moves money in `accountdb` by `"action"`: `Deposit`, `Withdraw` or `Send`       |

A missing or unrecognised `action` is treated as `Deposit`. A transfer
request:

```json
{
  "data": {
    "action": "Send",
    "UID": "CARD0001",
    "amount": "5000",
    "targetUID": "ACCT0002"
  }
}
```

### Replies

Reads answer with the row or rows as compact JSON; an unknown table gives an
empty body, and a row that is not found gives `{}`. Writes answer with
`EndPoints.build_post_response`:

```json
{"code": 200, "memberTable": "accountdb", "message": "...", "success": true}
```

and, when the write failed (bad JSON, unknown table, a database error or no
row changed), status 500 with

```json
{"code": 500, "message": "...", "success": false}
```

A `DatabaseError` raised while serving a read also answers with status 500
and a JSON body carrying the error message.

## Using the pieces directly

`EndPoints` maps table names to table objects (`register_db`), turns request
bodies into table calls (`insert_success`, `update_success`) and table
results into `HttpResponse` values (`build_response`,
`build_response_where`, `build_response_recent`, `build_post_response`);
`HttpResponse.json()` decodes a body. `Responses` runs those builders on a
thread pool (`async_response`, `async_response_where`,
`async_post_response`), returning futures, and is closed with `shutdown`.
Connection and statement failures are reported as `DatabaseError`.

## What it does not do

The package does not create or migrate the database schema: the tables
listed above must already exist. It has no authentication or access control
of its own.

## Tests

The test suite uses pytest and needs the `test` extra.