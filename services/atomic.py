from contextlib import contextmanager


@contextmanager
def atomic(session):
    """
    Everything written through ``session`` inside the block is committed
    together, or rolled back together if the block raises.
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
