"""ORM Models — SQLAlchemy declarative models for the member directory.

Invariants:
    - All models inherit from Base (db/base.py)
    - Member is the only mutable entity; PairCreditRecord is append-only history

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all / autogenerate
"""

from binary_network.models.member import Member  # noqa: F401
from binary_network.models.pair_credit import PairCreditRecord  # noqa: F401
