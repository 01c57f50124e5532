"""
Curriculum Dependency Graph Engine
Turns a list of subjects and their prerequisites into a canonical graph,
a year/quarter grid layout, enablement flags, criticality scores and
progress statistics for a student planner.
"""

__version__ = "0.1.0"
