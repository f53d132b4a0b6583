"""Core mathematics for the EdgeRunner Kelly calculator.

This package contains pure, presentation-agnostic building blocks:

- ``odds_math``  — decimal / American / fractional parsing and formatting
- ``kelly``      — single-bet Kelly sizing, price resolution, side flipping
- ``allocation`` — independent and exact multi-outcome Kelly allocators

Nothing in this package imports from ``edgerunner.services``.
All modules are side-effect-free and unit-testable in isolation.
"""
