"""Database / query execution backends.

Every query runs on its own connection: open, one statement, close. Results come
back as a NormalizedResult (fields, rows, runtime of the query phase).

Backends supported:
  - MySQL      : PyMySQL
  - PostgreSQL : psycopg2

A new backend implements the QueryEngine protocol in ``db.base`` and registers
itself with ``@register_engine``; callers never branch on the engine kind.
"""
