from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker, declarative_base
import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./contentflow.db")


def build_engine(url: str):
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 30}
    else:
        connect_args = {}
    engine = create_engine(url, connect_args=connect_args)
    if url.startswith("sqlite"):
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def _enable_sqlite_foreign_keys(dbapi_connection, _record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = build_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def insert_ignoring_conflicts(db: Session, model, values: dict, index_elements: list[str]) -> None:
    """Insert a row unless one with the same key already exists.

    PostgreSQL and SQLite get a native ``ON CONFLICT DO NOTHING``; other
    dialects fall back to a savepoint that swallows the duplicate key.
    """

    dialect = db.get_bind().dialect.name
    if dialect in ("postgresql", "sqlite"):
        stmt = _dialect_insert(dialect, model).values(**values).on_conflict_do_nothing(
            index_elements=index_elements
        )
        db.execute(stmt)
        return
    try:
        with db.begin_nested():
            db.add(model(**values))
    except IntegrityError:
        pass


def upsert(db: Session, model, values: dict, index_elements: list[str], update_columns: list[str]) -> None:
    """Insert a row or overwrite ``update_columns`` on the conflicting row."""

    dialect = db.get_bind().dialect.name
    if dialect in ("postgresql", "sqlite"):
        insert_stmt = _dialect_insert(dialect, model).values(**values)
        stmt = insert_stmt.on_conflict_do_update(
            index_elements=index_elements,
            set_={column: insert_stmt.excluded[column] for column in update_columns},
        )
        db.execute(stmt)
        return
    existing = db.query(model).filter_by(**{key: values[key] for key in index_elements}).with_for_update().first()
    if existing is None:
        db.add(model(**values))
    else:
        for column in update_columns:
            setattr(existing, column, values[column])
    db.flush()


def _dialect_insert(dialect: str, model):
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        from sqlalchemy.dialects.sqlite import insert
    return insert(model)
