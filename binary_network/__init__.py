"""Binary Network Engine — placement and pair-commission propagation for a two-leg affiliate tree.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Empty __init__.py: explicit imports only, no star exports
"""
