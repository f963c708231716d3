"""SequenceCounter model - named, atomically incremented counters.

One row per sequence name (TASK, RECEIVE). Values are only ever advanced by a
single upsert statement, so concurrent service instances never hand out the
same number twice.
"""

from sqlalchemy import Column, String, BigInteger

from .base import Base


class SequenceCounter(Base):
    __tablename__ = "sequence_counter"

    name = Column(String(32), primary_key=True)
    value = Column(BigInteger, nullable=False, default=0)

    def __repr__(self):
        return f"<SequenceCounter(name={self.name}, value={self.value})>"
