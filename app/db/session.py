# app/db/session.py
from sqlalchemy.engine import Engine

from app.db.engine import engine
from app.db.models import Base


def init_db(bind: Engine = engine) -> None:
    Base.metadata.create_all(bind=bind, checkfirst=True)
