import logging
import time

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from agenda.config import DATABASE_URL, DB_ECHO, DB_SLOW_QUERY_THRESHOLD

logger = logging.getLogger(__name__)


def create_db_engine(url: str = DATABASE_URL, **kwargs) -> Engine:
    """Cria o engine do banco.

    No SQLite o driver abre transações sozinho e de forma "preguiçosa"; por isso
    desligamos esse comportamento e toda transação começa com BEGIN IMMEDIATE,
    que pega o lock de escrita já no início. É isso que serializa duas reservas
    concorrentes para o mesmo horário.
    """
    is_sqlite = url.startswith("sqlite")
    if is_sqlite:
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", 30)
        kwargs["connect_args"] = connect_args
    else:
        kwargs.setdefault("pool_pre_ping", True)

    engine = create_engine(url, echo=DB_ECHO, **kwargs)

    if is_sqlite:

        @event.listens_for(engine, "connect")
        def _disable_pysqlite_transactions(dbapi_connection, _connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    @event.listens_for(engine, "before_cursor_execute")
    def before_cursor_execute(conn, _cursor, _statement, _parameters, _context, _executemany):
        conn.info.setdefault("query_start_time", []).append(time.time())

    @event.listens_for(engine, "after_cursor_execute")
    def after_cursor_execute(conn, _cursor, statement, _parameters, _context, _executemany):
        total = time.time() - conn.info["query_start_time"].pop(-1)
        if total > DB_SLOW_QUERY_THRESHOLD:
            logger.warning(f"🐌 Slow query ({total:.2f}s): {statement[:200]}...")

    logger.info(f"✅ Database engine created ({engine.dialect.name})")
    return engine


engine = create_db_engine()


def create_db_and_tables(bind: Engine = engine) -> None:
    # registra as tabelas no metadata antes do create_all
    from agenda.models import appointment, blocked_date, calendar, user  # noqa: F401

    SQLModel.metadata.create_all(bind)


def get_session():
    with Session(engine) as session:
        yield session
