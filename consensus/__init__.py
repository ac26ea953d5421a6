"""
Consensus Core

A next-outcome predictor for sequential HIGH/LOW rounds. Blends a weighted
indicator model with a council of heuristic advisors, adapts its weights
online and falls back to a defensive mode after a losing stretch.
"""

__version__ = "0.1.0"
