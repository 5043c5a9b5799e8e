"""
core/schema.py -- SQLAlchemy Core table definitions shared by every store.

One MetaData for the whole service. auth/store.py and org/store.py each own
the queries for their tables, but they live in one database so the identity
lookup can join users to roles and enterprises in a single read.

CHECK constraints hold permissions.module and users.status to their closed
sets, so a bad value fails at the database even if a caller skips the enum.

Timestamps are ISO 8601 strings (String(32)), matching how the stores write
them via _now_iso(). Booleans are stored as 0/1 integers.

Layer rule: core/ is the kernel. No imports from api/, auth/, or org/.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine

# Fixed set of protected modules. Mirrored by auth.models.Module.
MODULE_NAMES: tuple[str, ...] = ("dashboard", "users", "roles", "enterprises", "employees", "products")

USER_STATUSES: tuple[str, ...] = ("active", "inactive", "locked")


def _one_of(column: str, values: tuple[str, ...]) -> str:
    return f"{column} IN (" + ", ".join(f"'{v}'" for v in values) + ")"


metadata = MetaData()

enterprises = Table(
    "enterprises",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("location", String(255)),
    Column("contact_info", Text),  # JSON object serialized as text
    Column("status", String(20), nullable=False, server_default="active"),
    Column("created_at", String(32), nullable=False),
)

roles = Table(
    "roles",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False, unique=True),
    Column("description", Text),
    Column("created_at", String(32), nullable=False),
)

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(100), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("status", String(20), nullable=False, server_default="active"),
    Column("role_id", Integer, ForeignKey("roles.id")),
    Column("enterprise_id", Integer, ForeignKey("enterprises.id")),
    Column("last_login", String(32)),
    Column("created_at", String(32), nullable=False),
    CheckConstraint(_one_of("status", USER_STATUSES), name="ck_user_status"),
)

permissions = Table(
    "permissions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False),
    Column("module", String(30), nullable=False),
    Column("can_read", Integer, nullable=False, server_default="0"),
    Column("can_create", Integer, nullable=False, server_default="0"),
    Column("can_update", Integer, nullable=False, server_default="0"),
    Column("can_delete", Integer, nullable=False, server_default="0"),
    UniqueConstraint("role_id", "module", name="uq_role_module"),
    CheckConstraint(_one_of("module", MODULE_NAMES), name="ck_permission_module"),
)

employees = Table(
    "employees",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("department", String(100)),
    Column("role", String(100)),
    Column("salary", Numeric(12, 2, asdecimal=False)),
    Column("status", String(20), nullable=False, server_default="active"),
    Column("enterprise_id", Integer, ForeignKey("enterprises.id", ondelete="CASCADE"), nullable=False),
    Column("created_at", String(32), nullable=False),
)

products = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("sku", String(100), unique=True),
    Column("price", Numeric(12, 2, asdecimal=False)),
    Column("category", String(100)),
    Column("status", String(20), nullable=False, server_default="active"),
    Column("enterprise_id", Integer, ForeignKey("enterprises.id", ondelete="CASCADE"), nullable=False),
    Column("employee_id", Integer, ForeignKey("employees.id")),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Engine factory
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign key enforcement.

    WAL lets readers proceed while a role's grants are being replaced. SQLite
    ignores FOREIGN KEY clauses unless the pragma is on, and PRAGMAs are not
    inherited by new pooled connections, so this runs per-connection.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(db_url: str) -> Engine:
    """Create an engine for db_url and make sure every table exists."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    metadata.create_all(engine)
    return engine
