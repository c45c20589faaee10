"""
PostgreSQL repository adapters - Implement the domain's persistence ports.

This module provides PostgreSQL implementations of the username, auth and
profile ports using psycopg3 with raw SQL.

Username Claims
---------------
Usernames are stored lowercase in profiles.username under a UNIQUE
constraint, so two sign-ups racing for the same name cannot both win: the
loser gets a UniqueViolation, reported to the domain as
AuthBackendError("Username already taken"). The availability lookup is the
is_username_available() SQL function, which also consults
reserved_usernames.

Sessions and One-Time Codes
---------------------------
Expiry is evaluated with database time (NOW()) so app server clock skew
cannot extend a session or a code.
"""

import logging
from datetime import datetime
from pathlib import Path

from psycopg import errors
from psycopg_pool import ConnectionPool

from src.domain.exceptions import AuthBackendError, AvailabilityBackendError
from src.domain.ports import (
    AuthCodePurpose,
    Profile,
    ProfileUpdate,
    Session,
    StoredCredentials,
    User,
)

logger = logging.getLogger(__name__)

AUTH_CODE_TTL = "1 hour"

_USER_COLUMNS = """
    u.id, u.email, u.email_confirmed_at IS NOT NULL, p.username, p.display_name
"""

_PROFILE_COLUMNS = """
    id, username, display_name, bio, avatar_url, created_at, updated_at
"""


def _user_from_row(row: tuple) -> User:
    return User(
        id=str(row[0]),
        email=row[1],
        email_confirmed=row[2],
        username=row[3],
        display_name=row[4],
    )


def _profile_from_row(row: tuple) -> Profile:
    return Profile(
        id=str(row[0]),
        username=row[1],
        display_name=row[2],
        bio=row[3],
        avatar_url=row[4],
        created_at=row[5],
        updated_at=row[6],
    )


class PostgresUsernameRepository:
    """
    Implements UsernameRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def is_username_available(self, username: str) -> bool:
        """
        Check a normalized username against reserved and claimed names.

        Raises:
            AvailabilityBackendError: On any database failure
        """
        try:
            with self._pool.connection() as conn:
                row = conn.execute(
                    "SELECT is_username_available(%s)", (username,)
                ).fetchone()
        except Exception as e:
            logger.error("Username availability lookup failed: %s", e)
            raise AvailabilityBackendError("Unable to check username availability") from e

        return bool(row[0]) if row is not None else False


class PostgresAuthRepository:
    """
    Implements AuthRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def create_user(
        self,
        email: str,
        password_hash: str,
        username: str,
        display_name: str,
        email_confirmed: bool,
    ) -> User:
        """
        Insert user and profile in one transaction.

        Raises:
            AuthBackendError: On duplicate email or username
        """
        user_sql = """
            INSERT INTO users (email, password_hash, email_confirmed_at)
            VALUES (%s, %s, CASE WHEN %s THEN NOW() ELSE NULL END)
            RETURNING id
        """
        profile_sql = """
            INSERT INTO profiles (id, username, display_name)
            VALUES (%s, %s, %s)
        """

        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(user_sql, (email, password_hash, email_confirmed))
                user_id = cursor.fetchone()[0]
                cursor.execute(profile_sql, (user_id, username, display_name))
                conn.commit()
        except errors.UniqueViolation as e:
            constraint = e.diag.constraint_name
            if constraint == "profiles_username_key":
                raise AuthBackendError("Username already taken", code="username_taken") from e
            raise AuthBackendError("User already registered", code="email_taken") from e

        return User(
            id=str(user_id),
            email=email,
            username=username,
            display_name=display_name,
            email_confirmed=email_confirmed,
        )

    def get_credentials(self, email: str) -> StoredCredentials | None:
        sql = f"""
            SELECT {_USER_COLUMNS}, u.password_hash
            FROM users u
            LEFT JOIN profiles p ON p.id = u.id
            WHERE u.email = %s
        """
        with self._pool.connection() as conn:
            row = conn.execute(sql, (email,)).fetchone()

        if row is None:
            return None
        return StoredCredentials(user=_user_from_row(row), password_hash=row[5])

    def confirm_email(self, user_id: str) -> User:
        update_sql = """
            UPDATE users
            SET email_confirmed_at = COALESCE(email_confirmed_at, NOW())
            WHERE id = %s
        """
        select_sql = f"""
            SELECT {_USER_COLUMNS}
            FROM users u
            LEFT JOIN profiles p ON p.id = u.id
            WHERE u.id = %s
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(update_sql, (user_id,))
            cursor.execute(select_sql, (user_id,))
            row = cursor.fetchone()
            conn.commit()

        if row is None:
            raise AuthBackendError("User not found", code="user_not_found")
        return _user_from_row(row)

    def update_password_hash(self, user_id: str, password_hash: str) -> None:
        with self._pool.connection() as conn:
            conn.execute(
                "UPDATE users SET password_hash = %s WHERE id = %s",
                (password_hash, user_id),
            )

    def create_session(self, user_id: str, access_token: str, ttl_seconds: int) -> Session:
        sql = """
            INSERT INTO sessions (access_token, user_id, expires_at)
            VALUES (%s, %s, NOW() + %s * INTERVAL '1 second')
        """
        with self._pool.connection() as conn:
            conn.execute(sql, (access_token, user_id, ttl_seconds))

        session = self.get_session(access_token)
        if session is None:
            raise AuthBackendError("Failed to create session")
        return session

    def get_session(self, access_token: str) -> Session | None:
        sql = f"""
            SELECT {_USER_COLUMNS}, s.access_token, s.expires_at
            FROM sessions s
            JOIN users u ON u.id = s.user_id
            LEFT JOIN profiles p ON p.id = u.id
            WHERE s.access_token = %s AND s.expires_at > NOW()
        """
        with self._pool.connection() as conn:
            row = conn.execute(sql, (access_token,)).fetchone()

        if row is None:
            return None
        expires_at: datetime = row[6]
        return Session(access_token=row[5], user=_user_from_row(row), expires_at=expires_at)

    def delete_session(self, access_token: str) -> None:
        with self._pool.connection() as conn:
            conn.execute("DELETE FROM sessions WHERE access_token = %s", (access_token,))

    def create_auth_code(self, user_id: str, code: str, purpose: AuthCodePurpose) -> None:
        with self._pool.connection() as conn:
            conn.execute(
                "INSERT INTO auth_codes (code, user_id, purpose) VALUES (%s, %s, %s)",
                (code, user_id, purpose.value),
            )

    def consume_auth_code(self, code: str, purpose: AuthCodePurpose) -> User | None:
        """
        Delete a live code and return its user.

        DELETE ... RETURNING makes consumption single-use under concurrency:
        only one caller can ever get the row back.
        """
        delete_sql = f"""
            DELETE FROM auth_codes
            WHERE code = %s
              AND purpose = %s
              AND created_at > NOW() - INTERVAL '{AUTH_CODE_TTL}'
            RETURNING user_id
        """
        select_sql = f"""
            SELECT {_USER_COLUMNS}
            FROM users u
            LEFT JOIN profiles p ON p.id = u.id
            WHERE u.id = %s
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(delete_sql, (code, purpose.value))
            deleted = cursor.fetchone()
            if deleted is None:
                conn.commit()
                return None
            cursor.execute(select_sql, (deleted[0],))
            row = cursor.fetchone()
            conn.commit()

        return _user_from_row(row) if row is not None else None


class PostgresProfileRepository:
    """
    Implements ProfileRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def get_by_id(self, user_id: str) -> Profile | None:
        sql = f"SELECT {_PROFILE_COLUMNS} FROM profiles WHERE id = %s"
        with self._pool.connection() as conn:
            row = conn.execute(sql, (user_id,)).fetchone()
        return _profile_from_row(row) if row is not None else None

    def get_by_username(self, username: str) -> Profile | None:
        sql = f"SELECT {_PROFILE_COLUMNS} FROM profiles WHERE username = %s"
        with self._pool.connection() as conn:
            row = conn.execute(sql, (username,)).fetchone()
        return _profile_from_row(row) if row is not None else None

    def update(self, user_id: str, updates: ProfileUpdate) -> Profile:
        """
        Apply a partial update.

        Column names come from ProfileUpdate's fixed field set, never from
        user input, so interpolating them is safe.

        Raises:
            AuthBackendError: "Username already taken" or "User not found"
        """
        changes = updates.changes()
        if not changes:
            profile = self.get_by_id(user_id)
            if profile is None:
                raise AuthBackendError("User not found", code="user_not_found")
            return profile

        assignments = ", ".join(f"{column} = %s" for column in changes)
        sql = f"""
            UPDATE profiles
            SET {assignments}, updated_at = NOW()
            WHERE id = %s
            RETURNING {_PROFILE_COLUMNS}
        """
        try:
            with self._pool.connection() as conn:
                row = conn.execute(sql, (*changes.values(), user_id)).fetchone()
        except errors.UniqueViolation as e:
            raise AuthBackendError("Username already taken", code="username_taken") from e

        if row is None:
            raise AuthBackendError("User not found", code="user_not_found")
        return _profile_from_row(row)


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
