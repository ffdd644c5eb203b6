"""
Engines - pure computation over audit inputs.

- fairness: split, inequality, rules, scoring
- evidence: document assembly and rendering
"""
