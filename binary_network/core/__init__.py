"""Core Layer — pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are pure and deterministic (code generation takes an injectable rng)

Design Decisions:
    - Functional core separated from imperative shell: tree walks and pair math
      operate on MemberNode snapshots the directory loads
"""
