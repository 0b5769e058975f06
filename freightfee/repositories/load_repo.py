from sqlalchemy.orm import Session

from freightfee.models.load import Load


def get_load(db: Session, load_id: int) -> Load | None:
    return db.query(Load).filter(Load.id == load_id).first()


def get_load_for_update(db: Session, load_id: int) -> Load | None:
    """Fresh row under a row lock; use only inside a transaction scope."""
    return (
        db.query(Load)
        .filter(Load.id == load_id)
        .populate_existing()
        .with_for_update()
        .first()
    )
