"""Game domain services: scoring, round timer, tab integrity and round flow.

Scoring, timer and integrity modules know nothing about Flask and are driven
through a ``Scheduler``; ``rounds`` and ``runtime`` wire them to the database
and Socket.IO for the HTTP routes and socket handlers.
"""
