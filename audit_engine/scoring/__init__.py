"""
scoring/ - Audit Scoring Engine calculators

Modules:
    utils.py           - Decimal utilities and the shared rounding rule
    section_scorer.py  - Item responses -> section earned/max/percentage
    total_scorer.py    - Section scores -> original / adjusted audit totals
"""
