from sqlmodel import SQLModel, Session, create_engine

from app.core.config import settings


connect_args = {}
if settings.database_url.startswith("sqlite"):
    # Sessions are handed between FastAPI's threadpool workers
    connect_args = {"check_same_thread": False}

engine = create_engine(settings.database_url, connect_args=connect_args)


def create_db_and_tables():
    import app.db.schema  # noqa: F401  registers tables on SQLModel.metadata
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session
