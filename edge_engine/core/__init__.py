"""Core mathematics and configuration for the odds edge engine.

This package contains pure building blocks:

- ``odds_math``     — odds conversion, pair normalisation, medians
- ``engine_config`` — tunables: bookmaker priority, sample gate, tolerances
- ``markets``       — market-kind classification and display labels

Nothing in this package imports from ``edge_engine.services``.
All modules are side-effect-free and unit-testable in isolation.
"""
