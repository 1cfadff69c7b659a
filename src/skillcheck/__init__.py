"""
skillcheck - timed skill minigames behind a single-session host.

Five minigames (memory sequence, circuit solver, code cracker, safe cracker
and thermite) run one at a time under MinigameHost, which resolves
difficulty tiers, routes player input and reports (success, data) results.
"""

__version__ = "0.1.0"
