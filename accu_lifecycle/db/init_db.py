from accu_lifecycle.db.base import Base
from accu_lifecycle.db.session import get_engine
from accu_lifecycle import models  # noqa: F401


def init_db() -> None:
    Base.metadata.create_all(bind=get_engine())
