"""
Payout Fairness Audit Engine

Splits challenge bounties, audits payout fairness and produces
tamper-evident evidence packages.
"""

__version__ = "1.0.0"
