# healthclub/db/database.py
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.engine import URL
from dotenv import load_dotenv

load_dotenv()

from healthclub.config.settings import settings  # noqa: E402


def build_database_url():
    if settings.database_url:
        return settings.database_url

    # MySQL (RDS) connection
    return URL.create(
        "mysql+pymysql",
        username=settings.db_user,
        password=settings.db_pass,
        host=settings.db_host,
        port=settings.db_port,
        database=settings.db_name,
    )


def enable_sqlite_savepoints(sqlite_engine):
    """
    pysqlite opens transactions lazily, which breaks SAVEPOINT (begin_nested).
    Let SQLAlchemy emit BEGIN itself.
    """

    @event.listens_for(sqlite_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sqlite_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


url = build_database_url()

if str(url).startswith("sqlite"):
    engine = create_engine(url, connect_args={"check_same_thread": False})
    enable_sqlite_savepoints(engine)
else:
    engine = create_engine(
        url,
        pool_pre_ping=True,     # detect dropped connections
        pool_recycle=1800,      # recycle every 30 minutes
        pool_size=5,
        max_overflow=10,
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# request-scoped session for Depends()
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
