"""Record-number allocation.

Record numbers are handed out by a single upsert-increment statement on the
``sequence_counter`` row:

    INSERT INTO sequence_counter (name, value) VALUES (:name, 1)
    ON CONFLICT (name) DO UPDATE SET value = sequence_counter.value + 1
    RETURNING value

The database serializes concurrent increments, so every service instance
sees a distinct value. The counter is never cached in-process.
"""

from enum import Enum

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from ..models.sequence_counter import SequenceCounter


class SequenceName(str, Enum):
    TASK = "TASK"
    RECEIVE = "RECEIVE"


_UPSERT_BY_DIALECT = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


def next_sequence_value(db: Session, name: SequenceName) -> int:
    """Atomically increment and return the named counter (first value is 1)."""
    dialect = db.get_bind().dialect.name
    try:
        insert = _UPSERT_BY_DIALECT[dialect]
    except KeyError:
        raise RuntimeError(f"Record-number counter not supported on dialect {dialect!r}")

    stmt = insert(SequenceCounter).values(name=SequenceName(name).value, value=1)
    stmt = stmt.on_conflict_do_update(
        index_elements=[SequenceCounter.name],
        set_={"value": SequenceCounter.value + 1},
    ).returning(SequenceCounter.value)

    return int(db.execute(stmt).scalar_one())


def next_record_number(db: Session, name: SequenceName = SequenceName.TASK) -> str:
    """Allocate the next record number as its display string."""
    return str(next_sequence_value(db, name))
