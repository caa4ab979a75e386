import uuid

from sqlalchemy.orm import declarative_base

# Base для моделей
Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())
