from __future__ import annotations

from psycopg import Connection


class UserRepository:
    def get_by_email(self, conn: Connection, email: str) -> dict | None:
        cur = conn.execute(
            """
            SELECT su_id, su_email, su_password_hash, su_type, su_is_approve
            FROM service_users
            WHERE lower(su_email) = lower(%s);
            """,
            (email,),
        )
        return cur.fetchone()

    def get_by_id(self, conn: Connection, user_id: int) -> dict | None:
        cur = conn.execute(
            """
            SELECT su_id, su_email, su_type, su_is_approve
            FROM service_users
            WHERE su_id = %s;
            """,
            (user_id,),
        )
        return cur.fetchone()

    def create(self, conn: Connection, email: str, password_hash: str) -> dict:
        # new accounts wait for an administrator to flip su_is_approve
        cur = conn.execute(
            """
            INSERT INTO service_users (su_email, su_password_hash, su_is_approve)
            VALUES (%s, %s, false)
            RETURNING su_id, su_email, su_type, su_is_approve;
            """,
            (email, password_hash),
        )
        return cur.fetchone()
