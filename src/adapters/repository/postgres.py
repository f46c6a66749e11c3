"""
PostgreSQL repository adapter - Implements RegistryRepository protocol.

This module provides the PostgreSQL implementation of the domain's
repository port using psycopg3 with raw SQL.

Atomicity Design:
-----------------
transaction() checks a connection out of the pool and opens a database
transaction on it. Every repository call made inside the scope runs on
that connection, so a registry operation's reads, counter increment and
inserts commit together or roll back together.

Id counters are rows in registry_sequences rather than SQL sequences:
nextval() is not transactional, and a rolled-back creation must not
consume an id.

Calls made outside transaction() use a fresh pooled connection each,
committed on return.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from psycopg import Connection, Cursor
from psycopg_pool import ConnectionPool

from src.domain.models import Business, Customer, Document, DocumentType, VerificationRecord
from src.domain.ports import IdSequence

logger = logging.getLogger(__name__)


class PostgresRegistryRepository:
    """
    Implements RegistryRepository protocol via psycopg3.

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
        self._conn: Connection | None = None

    @contextmanager
    def transaction(self) -> Iterator[None]:
        # Nested scopes reuse the open connection as a savepoint
        if self._conn is not None:
            with self._conn.transaction():
                yield
            return

        with self._pool.connection() as conn, conn.transaction():
            self._conn = conn
            try:
                yield
            finally:
                self._conn = None

    @contextmanager
    def _cursor(self) -> Iterator[Cursor]:
        if self._conn is not None:
            with self._conn.cursor() as cursor:
                yield cursor
        else:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                yield cursor

    # Counters

    def peek_id(self, sequence: IdSequence) -> int:
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT next_value FROM registry_sequences WHERE name = %s",
                (sequence.value,),
            )
            row = cursor.fetchone()
        if row is None:
            raise RuntimeError(f"Sequence not initialized: {sequence.value}")
        return row[0]

    def allocate_id(self, sequence: IdSequence) -> int:
        sql = """
            UPDATE registry_sequences
            SET next_value = next_value + 1
            WHERE name = %s
            RETURNING next_value - 1
        """
        with self._cursor() as cursor:
            cursor.execute(sql, (sequence.value,))
            row = cursor.fetchone()
        if row is None:
            raise RuntimeError(f"Sequence not initialized: {sequence.value}")
        return row[0]

    # Customers

    def get_customer(self, customer_id: int) -> Customer | None:
        sql = """
            SELECT id, name, date_of_birth, country, owner, kyc_level
            FROM customers
            WHERE id = %s
        """
        with self._cursor() as cursor:
            cursor.execute(sql, (customer_id,))
            row = cursor.fetchone()
        if row is None:
            return None
        return Customer(
            id=row[0],
            name=row[1],
            date_of_birth=row[2],
            country=row[3],
            owner=row[4],
            kyc_level=row[5],
        )

    def save_customer(self, customer: Customer) -> None:
        sql = """
            INSERT INTO customers (id, name, date_of_birth, country, owner, kyc_level)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (id) DO UPDATE
            SET name = EXCLUDED.name,
                date_of_birth = EXCLUDED.date_of_birth,
                country = EXCLUDED.country,
                owner = EXCLUDED.owner,
                kyc_level = EXCLUDED.kyc_level
        """
        with self._cursor() as cursor:
            cursor.execute(
                sql,
                (
                    customer.id,
                    customer.name,
                    customer.date_of_birth,
                    customer.country,
                    customer.owner,
                    customer.kyc_level,
                ),
            )

    # Businesses

    def get_business(self, business_id: int) -> Business | None:
        sql = "SELECT id, owner, name, category, approved FROM businesses WHERE id = %s"
        with self._cursor() as cursor:
            cursor.execute(sql, (business_id,))
            row = cursor.fetchone()
        if row is None:
            return None
        return Business(id=row[0], owner=row[1], name=row[2], category=row[3], approved=row[4])

    def save_business(self, business: Business) -> None:
        sql = """
            INSERT INTO businesses (id, owner, name, category, approved)
            VALUES (%s, %s, %s, %s, %s)
            ON CONFLICT (id) DO UPDATE
            SET owner = EXCLUDED.owner,
                name = EXCLUDED.name,
                category = EXCLUDED.category,
                approved = EXCLUDED.approved
        """
        with self._cursor() as cursor:
            cursor.execute(
                sql,
                (business.id, business.owner, business.name, business.category, business.approved),
            )

    # Document types

    def get_document_type(self, name: str) -> DocumentType | None:
        sql = """
            SELECT name, required_level, expiry_blocks, active
            FROM document_types
            WHERE name = %s
        """
        with self._cursor() as cursor:
            cursor.execute(sql, (name,))
            row = cursor.fetchone()
        if row is None:
            return None
        return DocumentType(name=row[0], required_level=row[1], expiry_blocks=row[2], active=row[3])

    def save_document_type(self, document_type: DocumentType) -> None:
        sql = """
            INSERT INTO document_types (name, required_level, expiry_blocks, active)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (name) DO UPDATE
            SET required_level = EXCLUDED.required_level,
                expiry_blocks = EXCLUDED.expiry_blocks,
                active = EXCLUDED.active
        """
        with self._cursor() as cursor:
            cursor.execute(
                sql,
                (
                    document_type.name,
                    document_type.required_level,
                    document_type.expiry_blocks,
                    document_type.active,
                ),
            )

    # Documents

    def get_document(self, customer_id: int, type_name: str) -> Document | None:
        sql = """
            SELECT customer_id, type_name, hash, uploaded_at
            FROM documents
            WHERE customer_id = %s AND type_name = %s
        """
        with self._cursor() as cursor:
            cursor.execute(sql, (customer_id, type_name))
            row = cursor.fetchone()
        if row is None:
            return None
        return Document(customer_id=row[0], type_name=row[1], hash=bytes(row[2]), uploaded_at=row[3])

    def save_document(self, document: Document) -> None:
        # Plain INSERT: documents are immutable, a conflict is a bug upstream
        sql = """
            INSERT INTO documents (customer_id, type_name, hash, uploaded_at)
            VALUES (%s, %s, %s, %s)
        """
        with self._cursor() as cursor:
            cursor.execute(
                sql,
                (document.customer_id, document.type_name, document.hash, document.uploaded_at),
            )

    # Verification history

    def get_verification_history(self, customer_id: int) -> list[VerificationRecord]:
        sql = """
            SELECT business_id, verified, block_height
            FROM verification_history
            WHERE customer_id = %s
            ORDER BY id
        """
        with self._cursor() as cursor:
            cursor.execute(sql, (customer_id,))
            rows = cursor.fetchall()
        return [
            VerificationRecord(business_id=row[0], verified=row[1], block_height=row[2])
            for row in rows
        ]

    def append_verification(self, customer_id: int, record: VerificationRecord) -> None:
        sql = """
            INSERT INTO verification_history (customer_id, business_id, verified, block_height)
            VALUES (%s, %s, %s, %s)
        """
        with self._cursor() as cursor:
            cursor.execute(
                sql, (customer_id, record.business_id, record.verified, record.block_height)
            )

    # Business customer links

    def get_business_customers(self, business_id: int) -> list[int]:
        sql = """
            SELECT customer_id
            FROM business_customers
            WHERE business_id = %s
            ORDER BY id
        """
        with self._cursor() as cursor:
            cursor.execute(sql, (business_id,))
            return [row[0] for row in cursor.fetchall()]

    def append_business_customer(self, business_id: int, customer_id: int) -> None:
        sql = "INSERT INTO business_customers (business_id, customer_id) VALUES (%s, %s)"
        with self._cursor() as cursor:
            cursor.execute(sql, (business_id, customer_id))


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
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
