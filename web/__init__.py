"""
Web application package for the Chess AI engine.

Provides a FastAPI REST API: a time-budget endpoint that exposes the time
planner directly, and a move endpoint that searches under a clock.
"""
