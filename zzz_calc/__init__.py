"""
ZZZ Damage Calculator
=====================
Damage preview (Standard / Anomaly / Rupture) and marginal stat ranking for
Zenless Zone Zero builds.
"""

__version__ = "0.1.0"
