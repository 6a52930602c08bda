from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase

# Largest value an INTEGER primary key can hold (signed 64-bit).
MAX_ROW_ID = 2**63 - 1


class Base(DeclarativeBase):
    pass
