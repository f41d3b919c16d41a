from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import psycopg
from psycopg import Connection
from psycopg.rows import dict_row

from .config import DbConfig


class DbError(Exception):
    pass


@dataclass(frozen=True)
class Db:
    """Opens one short-lived connection per unit of work.

    Rows come back as dicts so repositories can map them by column name.
    """

    cfg: DbConfig

    def connect(self) -> Connection:
        try:
            return psycopg.connect(
                host=self.cfg.host,
                port=self.cfg.port,
                dbname=self.cfg.name,
                user=self.cfg.user,
                password=self.cfg.password,
                sslmode=self.cfg.sslmode,
                autocommit=True,
                row_factory=dict_row,
            )
        except psycopg.Error as e:
            raise DbError(
                f"Cannot connect to database {self.cfg.name!r} on {self.cfg.host}:{self.cfg.port}. "
                "Check config.toml [db]."
            ) from e

    @contextmanager
    def session(self) -> Iterator[Connection]:
        conn = self.connect()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        # commit on clean exit, rollback on any exception
        with self.session() as conn, conn.transaction():
            yield conn
