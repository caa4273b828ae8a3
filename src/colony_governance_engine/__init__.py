"""Colony governance engine.

Derives an operational-health report from a project activity snapshot:
SLO checks, open incidents, a reliability budget, work-flow bottlenecks and
a longitudinal health history artifact. Every engine is a pure function of
its inputs; reading and persisting files is left to the caller (see main.py).
"""

__version__ = "0.1.0"
