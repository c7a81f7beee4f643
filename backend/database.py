from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
import os

Base = declarative_base()


def make_session_factory(db_path: str):
    """Engine + sessionmaker for the local chat store at ``db_path``.

    ``":memory:"`` gives a throwaway database for tests. Tables are created on
    first use (see ``create_tables``) so a damaged file is reported there, not here.
    """
    if db_path != ":memory:":
        os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
    engine = create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine: Engine):
    # Models must be imported before create_all so they are registered on Base
    from models import db_models  # noqa: F401
    Base.metadata.create_all(bind=engine)
